"""
Keyword-based preference extraction for inbound property enquiries.

Deterministic and side-effect free: the same text and inventory always give
the same PreferenceSet, and a missing signal is None/empty rather than an
error. This is a heuristic, not a language model.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Optional, Sequence, Tuple

from domain.models import PropertyListing

# =============================================================================
# Vocabularies
# =============================================================================

INTENT_PROPERTY_SEARCH = "property_search"
INTENT_PRICING = "pricing"
INTENT_AVAILABILITY = "availability"
INTENT_VIRTUAL_TOUR = "virtual_tour"
INTENT_VIEWING = "viewing_request"

INTENT_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    INTENT_PROPERTY_SEARCH: (
        "looking for", "searching for", "search", "i want", "i need", "interested in",
        "apartment", "house", "property", "properties", "home", "flat", "land", "plot",
        "bedroom", "bed", "rent", "buy", "for sale", "listing", "listings",
    ),
    INTENT_PRICING: (
        "price", "prices", "pricing", "cost", "how much", "budget", "under", "below",
        "cheap", "affordable", "afford", "max", "maximum", "ghs", "cedis",
    ),
    INTENT_AVAILABILITY: (
        "available", "availability", "vacant", "still open", "move in", "when can",
    ),
    INTENT_VIRTUAL_TOUR: (
        "virtual tour", "video tour", "3d tour", "online tour", "walkthrough", "video",
    ),
    INTENT_VIEWING: (
        "viewing", "view the", "visit", "inspection", "inspect", "see the property",
        "see it", "schedule", "appointment", "come see", "tour",
    ),
}

# More specific neighbourhoods come before the cities that contain them.
BASE_LOCATIONS: Tuple[str, ...] = (
    "east legon", "airport residential", "cantonments", "labone", "osu", "dzorwulu",
    "roman ridge", "spintex", "adenta", "madina", "tema", "kumasi", "takoradi",
    "cape coast", "accra",
)

PROPERTY_TYPE_ALIASES: Dict[str, Tuple[str, ...]] = {
    "apartment": ("apartment", "flat", "condo", "studio"),
    "townhouse": ("townhouse", "town house", "terrace"),
    "house": ("house", "home", "bungalow", "villa", "duplex", "detached"),
    "land": ("land", "plot", "acre"),
    "commercial": ("office", "shop", "warehouse", "commercial"),
}

_NUMBER = r"\d+(?:,\d{3})*(?:\.\d+)?"
_UNIT = r"(?:k|thousand|m|mil|million)"
_MONEY_CUE = (
    r"(?:\b(?:under|below|budget(?:\s+(?:is|of))?|max(?:imum)?|up\s+to|less\s+than"
    r"|around|about|within|ghs|ghc|usd)|\$|gh¢)"
)

# A number is read as a budget when a money cue precedes it, a unit follows it,
# or a currency word follows it. The pattern is unanchored, so an unrelated
# number sitting next to a cue is still read as the budget.
BUDGET_PATTERN = re.compile(
    rf"{_MONEY_CUE}\s*:?\s*(?P<cued>{_NUMBER})\s*(?P<cued_unit>{_UNIT})?\b"
    rf"|(?P<bare>{_NUMBER})\s*(?P<bare_unit>{_UNIT})\b"
    rf"|(?P<priced>{_NUMBER})\s*(?:cedis|ghs|usd|dollars)\b",
    re.IGNORECASE,
)

UNIT_MULTIPLIERS = {
    "k": 1_000,
    "thousand": 1_000,
    "m": 1_000_000,
    "mil": 1_000_000,
    "million": 1_000_000,
}

# Evaluated in order; the last rule that matches wins.
TIMELINE_RULES: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r"\b(?:immediately|asap)\b", re.IGNORECASE), "immediate"),
    (re.compile(r"\bnext month\b", re.IGNORECASE), "next month"),
    (re.compile(r"\bnext week\b", re.IGNORECASE), "next week"),
)

ESCALATE_PATTERN = re.compile(
    r"\b(?:agent|human|real person|representative|manager|call me|speak to|talk to)\b",
    re.IGNORECASE,
)
IMAGE_PATTERN = re.compile(r"\b(?:photos?|pictures?|pics?|images?)\b", re.IGNORECASE)
URGENT_PATTERN = re.compile(r"\b(?:urgent|urgently|asap|emergency|right away|today)\b", re.IGNORECASE)


# =============================================================================
# Result
# =============================================================================


@dataclass(frozen=True)
class PreferenceSet:
    """Preferences read out of a single inbound message."""

    intents: FrozenSet[str] = field(default_factory=frozenset)
    location: Optional[str] = None
    property_type: Optional[str] = None
    budget_max: Optional[float] = None
    timeline: Optional[str] = None
    wants_virtual_tour: bool = False
    wants_viewing: bool = False
    escalate_request: bool = False
    wants_image: bool = False
    urgent_request: bool = False

    def has_intent(self, intent: str) -> bool:
        return intent in self.intents

    def to_dict(self) -> Dict[str, Any]:
        return {
            "intents": sorted(self.intents),
            "location": self.location,
            "propertyType": self.property_type,
            "budgetMax": self.budget_max,
            "timeline": self.timeline,
            "wantsVirtualTour": self.wants_virtual_tour,
            "wantsViewing": self.wants_viewing,
            "escalateRequest": self.escalate_request,
            "wantsImage": self.wants_image,
            "urgentRequest": self.urgent_request,
        }


# =============================================================================
# Vocabulary builders
# =============================================================================


def _contains_phrase(text: str, phrase: str) -> bool:
    return re.search(rf"(?<!\w){re.escape(phrase)}(?!\w)", text) is not None


def _dedupe(values: Iterable[str]) -> List[str]:
    seen = set()
    ordered = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


def build_location_vocabulary(inventory: Sequence[PropertyListing]) -> List[str]:
    """Base locations followed by every comma-separated token of listing locations."""
    tokens: List[str] = []
    for listing in inventory:
        for part in re.split(r"[,/]", listing.location or ""):
            tokens.append(part.strip().lower())
    return _dedupe([*BASE_LOCATIONS, *tokens])


def build_type_aliases(inventory: Sequence[PropertyListing]) -> Dict[str, Tuple[str, ...]]:
    """Fixed aliases unioned with the literal type names found in the inventory."""
    aliases = {name: tuple(values) for name, values in PROPERTY_TYPE_ALIASES.items()}
    for listing in inventory:
        type_name = (listing.type or "").strip().lower()
        if not type_name:
            continue
        existing = aliases.get(type_name, ())
        if type_name not in existing:
            aliases[type_name] = (*existing, type_name)
    return aliases


# =============================================================================
# Field extractors
# =============================================================================


def detect_intents(text: str) -> FrozenSet[str]:
    lowered = text.lower()
    return frozenset(
        intent
        for intent, keywords in INTENT_KEYWORDS.items()
        if any(_contains_phrase(lowered, keyword) for keyword in keywords)
    )


def detect_location(text: str, vocabulary: Sequence[str]) -> Optional[str]:
    lowered = text.lower()
    for location in vocabulary:
        if location in lowered:
            return location
    return None


def detect_property_type(text: str, aliases: Dict[str, Tuple[str, ...]]) -> Optional[str]:
    lowered = text.lower()
    for type_name, names in aliases.items():
        if any(alias in lowered for alias in names):
            return type_name
    return None


def parse_budget(text: str) -> Optional[float]:
    """
    First amount that reads as money, scaled by its unit.

    >>> parse_budget("under 500k")
    500000.0
    >>> parse_budget("about 1.5 million")
    1500000.0
    """
    match = BUDGET_PATTERN.search(text)
    if match is None:
        return None

    for number_group, unit_group in (("cued", "cued_unit"), ("bare", "bare_unit"), ("priced", None)):
        raw = match.group(number_group)
        if raw is None:
            continue
        unit = (match.group(unit_group) or "").lower() if unit_group else ""
        value = float(raw.replace(",", ""))
        return value * UNIT_MULTIPLIERS.get(unit, 1)
    return None


def detect_timeline(text: str) -> Optional[str]:
    timeline = None
    for pattern, label in TIMELINE_RULES:
        if pattern.search(text):
            timeline = label
    return timeline


def extract_preferences(
    text: Optional[str],
    inventory: Sequence[PropertyListing] = (),
) -> PreferenceSet:
    """
    Read structured preferences out of a raw message.

    Args:
        text: The inbound message text. None or empty yields an empty set.
        inventory: Listings whose locations and type names extend the vocabularies.

    Returns:
        PreferenceSet; never raises for unrecognised input.
    """
    if not text or not text.strip():
        return PreferenceSet()

    intents = detect_intents(text)
    return PreferenceSet(
        intents=intents,
        location=detect_location(text, build_location_vocabulary(inventory)),
        property_type=detect_property_type(text, build_type_aliases(inventory)),
        budget_max=parse_budget(text),
        timeline=detect_timeline(text),
        wants_virtual_tour=INTENT_VIRTUAL_TOUR in intents,
        wants_viewing=INTENT_VIEWING in intents,
        escalate_request=ESCALATE_PATTERN.search(text) is not None,
        wants_image=IMAGE_PATTERN.search(text) is not None,
        urgent_request=URGENT_PATTERN.search(text) is not None,
    )


__all__ = [
    "INTENT_PROPERTY_SEARCH",
    "INTENT_PRICING",
    "INTENT_AVAILABILITY",
    "INTENT_VIRTUAL_TOUR",
    "INTENT_VIEWING",
    "PreferenceSet",
    "build_location_vocabulary",
    "build_type_aliases",
    "detect_intents",
    "detect_location",
    "detect_property_type",
    "parse_budget",
    "detect_timeline",
    "extract_preferences",
]
