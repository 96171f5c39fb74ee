"""Property inventory persistence: listing, lookup and admin CRUD."""
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from core.exceptions import ValidationError
from core.logging_config import get_logger
from core.utils import monotonic_millis, short_random, utcnow_iso
from domain.models import PROPERTY_ARCHIVED, PropertyListing, normalize_status
from services.json_store import Document, JsonCollection

LOGGER = get_logger(__name__)

# Keys a caller may change through update(); id and createdAt are fixed.
UPDATABLE_FIELDS = frozenset(
    {
        "name", "location", "city", "type", "tenure", "price", "rent", "rentalFrequency",
        "bedrooms", "bathrooms", "amenities", "availability", "virtualTour", "images",
        "description", "status",
    }
)


def generate_property_id(city: Optional[str], property_type: Optional[str]) -> str:
    """
    Human-readable listing id: CITY-TYP-NNNN-RAND.

    >>> generate_property_id("Accra", "apartment")[:8]
    'ACC-APA-'
    """
    city_code = (city or "PRP").strip().upper()[:3] or "PRP"
    type_code = (property_type or "GEN").strip().upper()[:3] or "GEN"
    stamp = str(monotonic_millis())[-4:]
    return f"{city_code}-{type_code}-{stamp}-{short_random(4)}"


def _matches(value: Optional[str], wanted: Optional[str]) -> bool:
    if not wanted:
        return True
    return (value or "").strip().lower() == wanted.strip().lower()


class PropertyStore:
    """Listings persisted as one JSON array."""

    def __init__(self, path: Path):
        self.collection = JsonCollection(path, name="properties")

    @property
    def path(self) -> Path:
        return self.collection.path

    async def list_properties(
        self,
        status: Optional[str] = None,
        city: Optional[str] = None,
        type: Optional[str] = None,
    ) -> List[PropertyListing]:
        """Listings matching every supplied filter (case-insensitive), stored order."""
        wanted_status = normalize_status(status) if status else None
        listings = []
        for doc in await self.collection.read_all():
            listing = PropertyListing.from_dict(doc)
            if wanted_status and listing.status != wanted_status:
                continue
            if not _matches(listing.city, city) or not _matches(listing.type, type):
                continue
            listings.append(listing)
        return listings

    async def active_inventory(self) -> List[PropertyListing]:
        return [listing for listing in await self.list_properties() if listing.is_active]

    async def get(self, property_id: str) -> Optional[PropertyListing]:
        for doc in await self.collection.read_all():
            if doc.get("id") == property_id:
                return PropertyListing.from_dict(doc)
        return None

    async def add(self, payload: Mapping[str, Any]) -> PropertyListing:
        """
        Create a listing from an admin payload.

        Raises:
            ValidationError: ``name`` is missing or the id is already taken.
        """
        if not (payload.get("name") or "").strip():
            raise ValidationError("Property name is required")

        timestamp = utcnow_iso()
        listing = PropertyListing.from_dict(
            {
                **payload,
                "id": payload.get("id") or generate_property_id(payload.get("city"), payload.get("type")),
                "createdAt": timestamp,
                "updatedAt": timestamp,
            }
        )
        document = listing.to_dict()

        def _add(documents: List[Document]) -> PropertyListing:
            if any(doc.get("id") == listing.id for doc in documents):
                raise ValidationError(f"Property id already exists: {listing.id}")
            documents.append(document)
            return listing

        await self.collection.update(_add)
        LOGGER.info(f"Added property {listing.id}", extra={"extra_data": {"property_id": listing.id}})
        return listing

    async def update(self, property_id: str, updates: Mapping[str, Any]) -> Optional[PropertyListing]:
        """
        Shallow-merge ``updates`` into a listing.

        Returns:
            The updated listing, or None when ``property_id`` is unknown.
        """
        unknown = set(updates) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unsupported property fields: {sorted(unknown)}")

        def _update(documents: List[Document]) -> Optional[Dict[str, Any]]:
            for index, doc in enumerate(documents):
                if doc.get("id") != property_id:
                    continue
                merged = {**doc, **updates, "updatedAt": utcnow_iso()}
                merged["status"] = normalize_status(updates.get("status") or doc.get("status"))
                normalized = PropertyListing.from_dict(merged).to_dict()
                documents[index] = normalized
                return normalized
            return None

        updated = await self.collection.update(_update)
        if updated is None:
            return None
        LOGGER.info(f"Updated property {property_id}", extra={"extra_data": {"property_id": property_id}})
        return PropertyListing.from_dict(updated)

    async def archive(self, property_id: str) -> Optional[PropertyListing]:
        return await self.update(property_id, {"status": PROPERTY_ARCHIVED})

    async def import_many(self, payloads: List[Mapping[str, Any]]) -> List[PropertyListing]:
        """Add each payload in order; stops at the first invalid one."""
        return [await self.add(payload) for payload in payloads]


__all__ = ["PropertyStore", "generate_property_id", "UPDATABLE_FIELDS"]
