"""WhatsApp Cloud API client for outbound messages.

In dry-run mode messages are logged and never sent. Delivery failures raise
MessagingError; the pipeline logs them and carries on with the next message.
"""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from core.config import Settings, get_settings
from core.exceptions import MessagingError, MissingCredentialsError, RateLimitError
from core.logging_config import get_logger, log_external_call
from outreach.messages import OutboundMessage

LOGGER = get_logger(__name__)

GRAPH_API_BASE_URL = "https://graph.facebook.com"


@dataclass
class SendResult:
    """Result from sending a WhatsApp message."""

    success: bool
    message_id: Optional[str] = None
    dry_run: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "message_id": self.message_id, "dry_run": self.dry_run}


def _first_message_id(response: httpx.Response) -> Optional[str]:
    """Read ``messages[0].id`` from a 2xx Graph API response."""
    try:
        data = response.json()
    except ValueError as e:
        raise MessagingError(f"WhatsApp API returned a non-JSON body: {response.text[:300]}") from e
    if not isinstance(data, dict):
        raise MessagingError(f"WhatsApp API returned an unexpected body: {response.text[:300]}")

    messages = data.get("messages")
    if isinstance(messages, list) and messages and isinstance(messages[0], dict):
        message_id = messages[0].get("id")
        return str(message_id) if message_id is not None else None
    return None


class WhatsAppClient:
    """
    Sends messages through ``POST /{version}/{phone_number_id}/messages``.

    Usage:
        client = WhatsAppClient.from_settings()
        await client.send(build_reply("233200000000", "Hello!"))
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        phone_number_id: Optional[str] = None,
        api_version: str = "v22.0",
        timeout_seconds: float = 10.0,
        dry_run: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.access_token = access_token
        self.phone_number_id = phone_number_id
        self.api_version = api_version
        self.timeout_seconds = timeout_seconds
        self.dry_run = dry_run
        self._transport = transport

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "WhatsAppClient":
        settings = settings or get_settings()
        return cls(
            access_token=settings.whatsapp_access_token,
            phone_number_id=settings.whatsapp_phone_number_id,
            api_version=settings.whatsapp_api_version,
            timeout_seconds=settings.whatsapp_timeout_seconds,
            dry_run=settings.dry_run,
        )

    def is_configured(self) -> bool:
        return bool(self.access_token and self.phone_number_id)

    @property
    def messages_url(self) -> str:
        return f"{GRAPH_API_BASE_URL}/{self.api_version}/{self.phone_number_id}/messages"

    def _get_headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    async def send(self, message: OutboundMessage) -> SendResult:
        """
        Deliver one message.

        Raises:
            MissingCredentialsError: Live mode without credentials.
            RateLimitError: The Graph API answered 429.
            MessagingError: Any other transport or API failure.
        """
        if self.dry_run:
            LOGGER.info(
                f"[DRY RUN] WhatsApp {message.tag} to {message.to}: {(message.body or message.image_url or '')[:80]}",
                extra={"extra_data": {"sender": message.to, "tag": message.tag}},
            )
            return SendResult(success=True, dry_run=True)

        if not self.is_configured():
            raise MissingCredentialsError("WhatsApp credentials not configured")

        start_time = time.perf_counter()
        success = False
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport) as client:
                response = await client.post(self.messages_url, json=message.to_payload(), headers=self._get_headers())
            if response.status_code == 429:
                raise RateLimitError("WhatsApp rate limit exceeded")
            response.raise_for_status()
            message_id = _first_message_id(response)
            success = True
            return SendResult(success=True, message_id=message_id)
        except httpx.HTTPStatusError as e:
            raise MessagingError(f"WhatsApp API error {e.response.status_code}: {e.response.text[:300]}") from e
        except httpx.HTTPError as e:
            raise MessagingError(f"WhatsApp HTTP error: {e}") from e
        finally:
            log_external_call(
                LOGGER,
                service="whatsapp",
                operation="send_message",
                success=success,
                duration_ms=(time.perf_counter() - start_time) * 1000,
                sender=message.to,
                tag=message.tag,
            )


__all__ = ["WhatsAppClient", "SendResult", "GRAPH_API_BASE_URL"]
