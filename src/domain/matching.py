"""Inventory matching and reply grounding context."""
from __future__ import annotations

from typing import List, Optional, Sequence

from domain.models import PropertyListing
from domain.preferences import PreferenceSet

# Listings handed to the reply model when nothing matches.
FALLBACK_CONTEXT_LIMIT = 5


def _within_budget(listing: PropertyListing, budget_max: float) -> bool:
    price = listing.governing_price
    # Unknown price is never treated as over budget.
    return price is None or price <= budget_max


def match_inventory(
    inventory: Sequence[PropertyListing],
    preferences: PreferenceSet,
) -> List[PropertyListing]:
    """
    Filter the inventory down to listings that satisfy every stated preference.

    Order of the input inventory is preserved. Inactive listings never match.
    """
    location = (preferences.location or "").lower()
    property_type = (preferences.property_type or "").lower()

    matches = []
    for listing in inventory:
        if not listing.is_active:
            continue
        if location and location not in (listing.location or "").lower():
            continue
        if property_type and (listing.type or "").strip().lower() != property_type:
            continue
        if preferences.budget_max is not None and not _within_budget(listing, preferences.budget_max):
            continue
        matches.append(listing)
    return matches


def select_grounding_listings(
    inventory: Sequence[PropertyListing],
    matches: Sequence[PropertyListing],
    limit: int = FALLBACK_CONTEXT_LIMIT,
) -> List[PropertyListing]:
    """
    Listings to describe to the reply model.

    True matches when there are any; otherwise the first ``limit`` active
    listings so the reply is never silent about the inventory. This fallback
    never feeds the explicit shortlist.
    """
    if matches:
        return list(matches)
    return [listing for listing in inventory if listing.is_active][:limit]


def format_amount(amount: Optional[float], currency: str) -> str:
    if amount is None:
        return "Price on request"
    return f"{currency} {amount:,.0f}"


def format_price(listing: PropertyListing, currency: str) -> str:
    """Human price line, e.g. 'GHS 3,500 / month' for rentals."""
    amount = listing.governing_price
    text = format_amount(amount, currency)
    if listing.is_rental and amount is not None:
        frequency = (listing.rental_frequency or "month").strip().lower()
        text = f"{text} / {frequency}"
    return text


def describe_listing(listing: PropertyListing, currency: str) -> str:
    """One-line description used in prompts and shortlists."""
    parts = [listing.name]
    where = ", ".join(part for part in (listing.location, listing.city) if part)
    if where and where.lower() not in listing.name.lower():
        parts.append(where)
    if listing.bedrooms is not None:
        parts.append(f"{listing.bedrooms} bed")
    if listing.type:
        parts.append(listing.type)
    parts.append("for rent" if listing.is_rental else "for sale")
    parts.append(format_price(listing, currency))
    if listing.availability:
        parts.append(f"available {listing.availability}")
    return " | ".join(parts)


def build_inventory_context(listings: Sequence[PropertyListing], currency: str) -> str:
    """Text block describing listings for the reply model prompt."""
    if not listings:
        return "No properties are currently listed."
    lines = []
    for listing in listings:
        line = f"- [{listing.id}] {describe_listing(listing, currency)}"
        if listing.amenities:
            line += f" | amenities: {', '.join(listing.amenities[:6])}"
        if listing.virtual_tour:
            line += f" | virtual tour: {listing.virtual_tour}"
        lines.append(line)
    return "\n".join(lines)


__all__ = [
    "FALLBACK_CONTEXT_LIMIT",
    "match_inventory",
    "select_grounding_listings",
    "format_amount",
    "format_price",
    "describe_listing",
    "build_inventory_context",
]
