"""CRM delivery client for qualified leads.

Posts a fixed-shape JSON payload to the configured sync URL. Transport
errors, timeouts and non-2xx responses count as failed attempts and are
retried per the RetryPolicy (3 attempts, 1s then 2s between them by
default). A malformed sync URL fails on the first attempt. When every
attempt fails the last error is raised as CRMSyncError.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from core.config import Settings, get_settings
from core.exceptions import CRMSyncError
from core.logging_config import get_logger, log_external_call
from domain.models import LEAD_SOURCE, LeadRecord
from services.retry import RetryPolicy, SleepFunction, linear_backoff

LOGGER = get_logger(__name__)

DEFAULT_FULL_NAME = "WhatsApp Prospect"

# InvalidURL is raised before a request exists, so it is not an HTTPError.
DELIVERY_ERRORS = (httpx.HTTPError, httpx.InvalidURL)


class SyncStatus(str, Enum):
    OK = "ok"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class SyncOutcome:
    """Result of a delivery that did not fail."""

    status: SyncStatus
    attempts: int = 0

    @property
    def skipped(self) -> bool:
        return self.status == SyncStatus.SKIPPED

    def to_dict(self) -> Dict[str, Any]:
        return {"status": self.status.value, "attempts": self.attempts}


def _error_text(error: BaseException) -> str:
    if isinstance(error, httpx.HTTPStatusError):
        body = error.response.text[:500]
        return f"HTTP {error.response.status_code}: {body}" if body else f"HTTP {error.response.status_code}"
    return str(error) or type(error).__name__


class CRMClient:
    """
    Client for the external CRM lead endpoint.

    Without a sync URL the client is inert: ``sync`` returns a SKIPPED
    outcome and makes no network call.
    """

    def __init__(
        self,
        sync_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_seconds: float = 5.0,
        retry_policy: Optional[RetryPolicy] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep: Optional[SleepFunction] = None,
    ):
        self.sync_url = sync_url
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds
        self.retry_policy = retry_policy or RetryPolicy(
            max_attempts=3,
            delay=linear_backoff(1.0),
            retry_on=(httpx.HTTPError,),
        )
        self._transport = transport
        self._sleep = sleep

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "CRMClient":
        settings = settings or get_settings()
        return cls(
            sync_url=settings.crm_sync_url,
            api_key=settings.crm_api_key,
            timeout_seconds=settings.crm_timeout_seconds,
            retry_policy=RetryPolicy(
                max_attempts=settings.crm_max_attempts,
                delay=linear_backoff(settings.crm_backoff_seconds),
                retry_on=(httpx.HTTPError,),
            ),
        )

    def is_configured(self) -> bool:
        return bool(self.sync_url)

    def _get_headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        return headers

    @staticmethod
    def build_payload(lead: LeadRecord) -> Dict[str, Any]:
        details = lead.details
        return {
            "source": LEAD_SOURCE,
            "externalId": lead.id,
            "fullName": details.name or DEFAULT_FULL_NAME,
            "phone": lead.phone,
            "email": None,
            "budget": details.budget,
            "preferredLocation": details.location,
            "propertyType": details.type,
            "timeline": details.timeline,
            "score": lead.score,
            "conversationSummary": lead.summary,
            "metadata": {
                "status": lead.status.value,
                "createdAt": lead.created_at,
                "updatedAt": lead.updated_at,
                "notes": lead.notes,
            },
        }

    async def _post(self, client: httpx.AsyncClient, payload: Dict[str, Any], attempt: int, lead_id: str) -> None:
        start_time = time.perf_counter()
        success = False
        try:
            response = await client.post(self.sync_url, json=payload, headers=self._get_headers())
            response.raise_for_status()
            success = True
        except DELIVERY_ERRORS as e:
            LOGGER.warning(
                f"CRM sync attempt {attempt} failed for lead {lead_id}: {_error_text(e)}",
                extra={"extra_data": {"lead_id": lead_id, "attempt": attempt}},
            )
            raise
        finally:
            log_external_call(
                LOGGER,
                service="crm",
                operation="sync_lead",
                success=success,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                lead_id=lead_id,
                attempt=attempt,
            )

    async def sync(self, lead: LeadRecord) -> SyncOutcome:
        """
        Deliver ``lead`` to the CRM.

        Returns:
            SyncOutcome(OK, attempts) on success, or SyncOutcome(SKIPPED)
            when no sync URL is configured.

        Raises:
            CRMSyncError: every attempt failed; carries ``attempts`` and
                ``last_error``.
        """
        if not self.is_configured():
            LOGGER.info(f"CRM sync skipped for lead {lead.id}: CRM_SYNC_URL not configured")
            return SyncOutcome(SyncStatus.SKIPPED)

        payload = self.build_payload(lead)
        attempts = 0
        async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
            try:
                async for attempt in self.retry_policy.retrying(sleep=self._sleep, logger=LOGGER):
                    with attempt:
                        attempts = attempt.retry_state.attempt_number
                        await self._post(client, payload, attempts, lead.id)
            except DELIVERY_ERRORS as e:
                last_error = _error_text(e)
                raise CRMSyncError(
                    f"CRM sync failed for lead {lead.id} after {attempts} attempts: {last_error}",
                    attempts=attempts,
                    last_error=last_error,
                ) from e

        LOGGER.info(f"CRM sync successful for lead {lead.id}", extra={"extra_data": {"lead_id": lead.id}})
        return SyncOutcome(SyncStatus.OK, attempts=attempts)


__all__ = ["CRMClient", "SyncOutcome", "SyncStatus", "DEFAULT_FULL_NAME"]
