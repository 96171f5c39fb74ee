"""Apply CRM delivery outcomes to stored leads."""
from __future__ import annotations

from typing import Optional

from core.exceptions import CRMSyncError
from core.logging_config import get_logger
from domain.models import LeadRecord, LeadStatus
from services.crm_client import CRMClient, SyncOutcome
from services.lead_store import LeadStore

LOGGER = get_logger(__name__)


class LeadSyncService:
    """
    Runs one CRM delivery for a freshly stored lead and records the result.

    success -> synced; failure after retries -> sync_failed with the error
    text; skipped (no CRM configured) -> status stays pending_sync. Failures
    never propagate to the caller.
    """

    def __init__(self, store: LeadStore, crm: CRMClient):
        self.store = store
        self.crm = crm

    async def sync_lead(self, lead: LeadRecord) -> Optional[LeadRecord]:
        """
        Deliver ``lead`` and persist the outcome.

        Returns:
            The stored record after the transition, ``lead`` unchanged when
            sync was skipped, or None when the lead vanished from the store.
        """
        try:
            outcome: SyncOutcome = await self.crm.sync(lead)
        except CRMSyncError as e:
            LOGGER.error(
                f"CRM sync failed for lead {lead.id} after {e.attempts} attempts",
                extra={"extra_data": {"lead_id": lead.id, "attempts": e.attempts, "error": e.last_error}},
            )
            return await self.store.update_status(
                lead.id,
                LeadStatus.SYNC_FAILED,
                {"lastSyncError": e.last_error},
            )

        if outcome.skipped:
            return lead

        return await self.store.update_status(lead.id, LeadStatus.SYNCED, {"lastSyncError": None})


__all__ = ["LeadSyncService"]
