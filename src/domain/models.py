"""Domain records for listings, leads and conversation turns.

Records are persisted as camelCase JSON documents; each dataclass converts
to and from that shape with ``to_dict`` / ``from_dict``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

LEAD_SOURCE = "WhatsApp"

TENURE_PURCHASE = "purchase"
TENURE_RENT = "rent"

PROPERTY_ACTIVE = "active"
PROPERTY_ARCHIVED = "archived"


class LeadStatus(str, Enum):
    """CRM synchronization status of a lead."""

    PENDING_SYNC = "pending_sync"
    SYNCED = "synced"
    SYNC_FAILED = "sync_failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({LeadStatus.SYNCED, LeadStatus.SYNC_FAILED})


class Role(str, Enum):
    """Author of a conversation turn."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


@dataclass(frozen=True)
class Turn:
    """A single message in a conversation session."""

    role: Role
    content: str

    def to_dict(self) -> Dict[str, str]:
        return {"role": self.role.value, "content": self.content}


def _optional_number(value: Any) -> Optional[float]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _optional_int(value: Any) -> Optional[int]:
    number = _optional_number(value)
    return int(number) if number is not None else None


def normalize_status(status: Optional[str]) -> str:
    """Listing status, lower-cased; missing status means active."""
    return (status or PROPERTY_ACTIVE).strip().lower()


@dataclass
class PropertyListing:
    """A property in the inventory. Read-only input to matching."""

    id: str
    name: str
    location: str = ""
    city: str = ""
    type: str = ""
    tenure: str = TENURE_PURCHASE
    price: Optional[float] = None
    rent: Optional[float] = None
    rental_frequency: Optional[str] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    amenities: List[str] = field(default_factory=list)
    availability: str = "TBD"
    virtual_tour: Optional[str] = None
    images: List[str] = field(default_factory=list)
    description: str = ""
    status: str = PROPERTY_ACTIVE
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return normalize_status(self.status) == PROPERTY_ACTIVE

    @property
    def is_rental(self) -> bool:
        return (self.tenure or "").strip().lower() == TENURE_RENT

    @property
    def governing_price(self) -> Optional[float]:
        """Rent for rentals, sale price otherwise. None means unknown."""
        return self.rent if self.is_rental else self.price

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "location": self.location,
            "city": self.city,
            "type": self.type,
            "tenure": self.tenure,
            "price": self.price,
            "rent": self.rent,
            "rentalFrequency": self.rental_frequency,
            "bedrooms": self.bedrooms,
            "bathrooms": self.bathrooms,
            "amenities": list(self.amenities),
            "availability": self.availability,
            "virtualTour": self.virtual_tour,
            "images": list(self.images),
            "description": self.description,
            "status": self.status,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PropertyListing":
        """Build a listing from a stored document, tolerating missing fields."""
        return cls(
            id=str(data.get("id", "")),
            name=data.get("name") or "",
            location=data.get("location") or "",
            city=data.get("city") or "",
            type=data.get("type") or "",
            tenure=(data.get("tenure") or TENURE_PURCHASE).lower(),
            price=_optional_number(data.get("price")),
            rent=_optional_number(data.get("rent")),
            rental_frequency=data.get("rentalFrequency"),
            bedrooms=_optional_int(data.get("bedrooms")),
            bathrooms=_optional_int(data.get("bathrooms")),
            amenities=list(data.get("amenities") or []),
            availability=data.get("availability") or "TBD",
            virtual_tour=data.get("virtualTour"),
            images=list(data.get("images") or []),
            description=data.get("description") or "",
            status=normalize_status(data.get("status")),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass
class LeadDetails:
    """Qualification fields captured for a lead."""

    name: Optional[str] = None
    budget: Optional[str] = None
    location: Optional[str] = None
    type: Optional[str] = None
    timeline: Optional[str] = None

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {
            "name": self.name,
            "budget": self.budget,
            "location": self.location,
            "type": self.type,
            "timeline": self.timeline,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "LeadDetails":
        data = data or {}
        return cls(
            name=data.get("name"),
            budget=data.get("budget"),
            location=data.get("location"),
            type=data.get("type"),
            timeline=data.get("timeline"),
        )


@dataclass
class LeadRecord:
    """A qualified, persisted lead."""

    id: str
    phone: str
    details: LeadDetails
    score: int
    summary: str
    created_at: str
    updated_at: str
    source: str = LEAD_SOURCE
    status: LeadStatus = LeadStatus.PENDING_SYNC
    last_sync_error: Optional[str] = None
    notes: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "phone": self.phone,
            "details": self.details.to_dict(),
            "score": self.score,
            "summary": self.summary,
            "source": self.source,
            "status": self.status.value,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "lastSyncError": self.last_sync_error,
        }
        if self.notes is not None:
            data["notes"] = self.notes
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LeadRecord":
        return cls(
            id=str(data["id"]),
            phone=str(data.get("phone", "")),
            details=LeadDetails.from_dict(data.get("details")),
            score=int(data.get("score") or 0),
            summary=data.get("summary") or "",
            source=data.get("source") or LEAD_SOURCE,
            status=LeadStatus(data.get("status") or LeadStatus.PENDING_SYNC.value),
            created_at=str(data.get("createdAt") or ""),
            updated_at=str(data.get("updatedAt") or data.get("createdAt") or ""),
            last_sync_error=data.get("lastSyncError"),
            notes=data.get("notes"),
        )


__all__ = [
    "LEAD_SOURCE",
    "TENURE_PURCHASE",
    "TENURE_RENT",
    "PROPERTY_ACTIVE",
    "PROPERTY_ARCHIVED",
    "LeadStatus",
    "TERMINAL_STATUSES",
    "Role",
    "Turn",
    "normalize_status",
    "PropertyListing",
    "LeadDetails",
    "LeadRecord",
]
