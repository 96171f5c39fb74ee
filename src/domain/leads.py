"""
Lead synthesis: merge model-derived and heuristic fields, score, qualify.

Scoring is deterministic and auditable: each of the five qualification
fields contributes SCORE_PER_FIELD points when present after the merge.
No partial credit, no weighting.
"""
from __future__ import annotations

from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional, Sequence

from core.logging_config import get_logger
from core.utils import monotonic_millis, short_random, utcnow_iso
from domain.matching import format_amount
from domain.models import LeadDetails, LeadRecord, LeadStatus, Role, Turn
from domain.preferences import PreferenceSet

LOGGER = get_logger(__name__)

LEAD_FIELDS = ("name", "budget", "location", "type", "timeline")
SCORE_PER_FIELD = 20
MAX_SCORE = SCORE_PER_FIELD * len(LEAD_FIELDS)
QUALIFICATION_THRESHOLD = 80

SUMMARY_MAX_CHARS = 500


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class PartialLead:
    """
    Qualification fields that may be partly unknown.

    ``merge`` is right-biased: a value present on the right-hand side wins,
    and absent right-hand values are filled from the left. Blank strings
    count as absent.
    """

    name: Optional[str] = None
    budget: Optional[str] = None
    location: Optional[str] = None
    type: Optional[str] = None
    timeline: Optional[str] = None

    def __post_init__(self) -> None:
        for f in fields(self):
            object.__setattr__(self, f.name, _clean(getattr(self, f.name)))

    @classmethod
    def from_mapping(cls, data: Optional[Mapping[str, Any]]) -> "PartialLead":
        data = data or {}
        return cls(**{name: data.get(name) for name in LEAD_FIELDS})

    @classmethod
    def from_preferences(cls, preferences: PreferenceSet, currency: str) -> "PartialLead":
        budget = None
        if preferences.budget_max is not None:
            budget = format_amount(preferences.budget_max, currency)
        return cls(
            location=preferences.location,
            type=preferences.property_type,
            budget=budget,
            timeline=preferences.timeline,
        )

    def merge(self, override: "PartialLead") -> "PartialLead":
        """Return a new PartialLead where ``override`` values take precedence."""
        return replace(
            self,
            **{
                name: getattr(override, name) if getattr(override, name) is not None else getattr(self, name)
                for name in LEAD_FIELDS
            },
        )

    def present_fields(self) -> tuple:
        return tuple(name for name in LEAD_FIELDS if getattr(self, name) is not None)

    def to_details(self) -> LeadDetails:
        return LeadDetails(**{name: getattr(self, name) for name in LEAD_FIELDS})

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {name: getattr(self, name) for name in LEAD_FIELDS}


def score_lead(partial: PartialLead) -> int:
    """Qualification score in [0, 100], always a multiple of SCORE_PER_FIELD."""
    return SCORE_PER_FIELD * len(partial.present_fields())


def is_qualified(score: int) -> bool:
    return score >= QUALIFICATION_THRESHOLD


def generate_lead_id(sender: str) -> str:
    """Sender, process-monotonic millisecond timestamp and a short random suffix."""
    return f"{sender}-{monotonic_millis()}-{short_random(4)}"


def summarize_conversation(turns: Sequence[Turn], max_chars: int = SUMMARY_MAX_CHARS) -> str:
    """What the prospect said, oldest first, clipped to ``max_chars``."""
    said = [turn.content.strip() for turn in turns if turn.role == Role.USER and turn.content.strip()]
    summary = " | ".join(said)
    if len(summary) > max_chars:
        summary = summary[: max_chars - 3].rstrip() + "..."
    return summary


def synthesize_lead(
    preferences: PreferenceSet,
    model_fields: Optional[PartialLead],
    summary: str,
    sender: str,
    currency: str = "GHS",
) -> Optional[LeadRecord]:
    """
    Merge heuristic and model fields into a lead and qualify it.

    Args:
        preferences: Heuristic preferences for the current message.
        model_fields: Structured fields extracted by the model; they take
            precedence over heuristics.
        summary: Conversation summary stored on the lead.
        sender: Sender identifier (phone).
        currency: Currency code used to format a heuristic budget.

    Returns:
        A pending_sync LeadRecord when the score reaches the qualification
        threshold, otherwise None.
    """
    heuristic = PartialLead.from_preferences(preferences, currency)
    merged = heuristic.merge(model_fields or PartialLead())
    score = score_lead(merged)

    if not is_qualified(score):
        LOGGER.debug(
            f"Lead for {sender} not qualified (score={score})",
            extra={"extra_data": {"sender": sender, "score": score, "fields": merged.present_fields()}},
        )
        return None

    timestamp = utcnow_iso()
    return LeadRecord(
        id=generate_lead_id(sender),
        phone=sender,
        details=merged.to_details(),
        score=score,
        summary=summary,
        status=LeadStatus.PENDING_SYNC,
        created_at=timestamp,
        updated_at=timestamp,
    )


__all__ = [
    "LEAD_FIELDS",
    "SCORE_PER_FIELD",
    "MAX_SCORE",
    "QUALIFICATION_THRESHOLD",
    "PartialLead",
    "score_lead",
    "is_qualified",
    "generate_lead_id",
    "summarize_conversation",
    "synthesize_lead",
]
