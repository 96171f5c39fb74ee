"""Durable lead collection: append, status transitions and filtered listing."""
from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

from core.exceptions import InvalidStatusTransitionError, ValidationError
from core.logging_config import get_logger
from core.utils import parse_timestamp, to_iso, utcnow
from domain.models import LeadRecord, LeadStatus
from services.json_store import Document, JsonCollection

LOGGER = get_logger(__name__)

# Fields a status update may carry besides the status itself.
STATUS_EXTRA_FIELDS = frozenset({"lastSyncError", "notes"})

DateInput = Union[str, datetime, None]


def _coerce_status(status: Union[str, LeadStatus]) -> LeadStatus:
    try:
        return LeadStatus(status)
    except ValueError as e:
        raise ValidationError(f"Unknown lead status: {status!r}") from e


def _coerce_bound(value: DateInput, label: str) -> Optional[datetime]:
    if value is None or value == "":
        return None
    parsed = parse_timestamp(value)
    if parsed is None:
        raise ValidationError(f"Invalid {label}: {value!r}")
    return parsed


def _next_updated_at(previous: Optional[str]) -> str:
    """Now, but never earlier than the previous updatedAt."""
    now = utcnow()
    prior = parse_timestamp(previous)
    if prior is not None and prior > now:
        now = prior
    return to_iso(now)


class LeadStore:
    """
    Leads persisted as one JSON array.

    Status moves only from pending_sync to one of the terminal statuses.
    Records are never deleted here.
    """

    def __init__(self, path: Path):
        self.collection = JsonCollection(path, name="leads")

    @property
    def path(self) -> Path:
        return self.collection.path

    async def append(self, lead: LeadRecord) -> LeadRecord:
        document = lead.to_dict()

        def _append(documents: List[Document]) -> LeadRecord:
            if any(doc.get("id") == lead.id for doc in documents):
                raise ValidationError(f"Lead id already exists: {lead.id}")
            documents.append(document)
            return lead

        await self.collection.update(_append)
        LOGGER.info(
            f"Stored lead {lead.id} (score={lead.score})",
            extra={"extra_data": {"lead_id": lead.id, "sender": lead.phone, "score": lead.score}},
        )
        return lead

    async def get(self, lead_id: str) -> Optional[LeadRecord]:
        for doc in await self.collection.read_all():
            if doc.get("id") == lead_id:
                return LeadRecord.from_dict(doc)
        return None

    async def find_by_phone(self, phone: str) -> List[LeadRecord]:
        return [
            LeadRecord.from_dict(doc)
            for doc in await self.collection.read_all()
            if doc.get("phone") == phone
        ]

    async def update_status(
        self,
        lead_id: str,
        status: Union[str, LeadStatus],
        extra: Optional[Mapping[str, Any]] = None,
    ) -> Optional[LeadRecord]:
        """
        Move a lead to a terminal status.

        Args:
            lead_id: Lead to update.
            status: Target status; must be synced or sync_failed.
            extra: Optional ``lastSyncError`` / ``notes`` values to store.

        Returns:
            The updated record, or None when no lead has ``lead_id`` (the
            collection is left untouched).

        Raises:
            InvalidStatusTransitionError: The lead is already terminal, or the
                target status is not terminal.
            ValidationError: Unknown status or unsupported extra fields.
        """
        target = _coerce_status(status)
        extra = dict(extra or {})
        unknown = set(extra) - STATUS_EXTRA_FIELDS
        if unknown:
            raise ValidationError(f"Unsupported lead update fields: {sorted(unknown)}")

        def _update(documents: List[Document]) -> Optional[Document]:
            for index, doc in enumerate(documents):
                if doc.get("id") != lead_id:
                    continue
                current = _coerce_status(doc.get("status") or LeadStatus.PENDING_SYNC.value)
                if current.is_terminal or not target.is_terminal:
                    raise InvalidStatusTransitionError(
                        f"Lead {lead_id}: cannot move from {current.value} to {target.value}"
                    )
                updated = {
                    **doc,
                    **extra,
                    "status": target.value,
                    "updatedAt": _next_updated_at(doc.get("updatedAt")),
                }
                documents[index] = updated
                return updated
            return None

        updated = await self.collection.update(_update)
        if updated is None:
            LOGGER.warning(f"Status update for unknown lead {lead_id}")
            return None

        LOGGER.info(
            f"Lead {lead_id} -> {target.value}",
            extra={"extra_data": {"lead_id": lead_id, "status": target.value}},
        )
        return LeadRecord.from_dict(updated)

    async def list_leads(
        self,
        status: Union[str, LeadStatus, None] = None,
        min_score: Optional[int] = None,
        start_date: DateInput = None,
        end_date: DateInput = None,
    ) -> List[LeadRecord]:
        """
        Leads matching every supplied filter, in stored order.

        Date bounds are inclusive and compared against ``createdAt``. A record
        whose ``createdAt`` cannot be parsed is not excluded by a date bound.
        """
        wanted_status = _coerce_status(status).value if status else None
        start = _coerce_bound(start_date, "start_date")
        end = _coerce_bound(end_date, "end_date")

        results: List[LeadRecord] = []
        for doc in await self.collection.read_all():
            if wanted_status and doc.get("status") != wanted_status:
                continue
            if min_score is not None and (doc.get("score") or 0) < min_score:
                continue
            created = parse_timestamp(doc.get("createdAt"))
            if created is not None:
                if start is not None and created < start:
                    continue
                if end is not None and created > end:
                    continue
            results.append(LeadRecord.from_dict(doc))
        return results

    async def count(self) -> int:
        return len(await self.collection.read_all())


def summarize_status_counts(leads: List[LeadRecord]) -> Dict[str, int]:
    counts = {status.value: 0 for status in LeadStatus}
    for lead in leads:
        counts[lead.status.value] += 1
    return counts


__all__ = ["LeadStore", "STATUS_EXTRA_FIELDS", "summarize_status_counts"]
