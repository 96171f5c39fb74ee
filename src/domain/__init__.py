"""Domain layer: records, preference extraction, matching and lead synthesis."""
from __future__ import annotations

from domain.models import (
    LeadDetails,
    LeadRecord,
    LeadStatus,
    PropertyListing,
    Role,
    Turn,
)
from domain.preferences import PreferenceSet, extract_preferences
from domain.matching import build_inventory_context, match_inventory, select_grounding_listings
from domain.leads import (
    QUALIFICATION_THRESHOLD,
    PartialLead,
    score_lead,
    summarize_conversation,
    synthesize_lead,
)

__all__ = [
    "LeadDetails",
    "LeadRecord",
    "LeadStatus",
    "PropertyListing",
    "Role",
    "Turn",
    "PreferenceSet",
    "extract_preferences",
    "match_inventory",
    "select_grounding_listings",
    "build_inventory_context",
    "QUALIFICATION_THRESHOLD",
    "PartialLead",
    "score_lead",
    "summarize_conversation",
    "synthesize_lead",
]
