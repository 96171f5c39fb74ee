"""Admin property catalog routes."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, Field

from api.deps import get_property_store
from core.logging_config import get_logger
from services.property_store import PropertyStore

router = APIRouter()
LOGGER = get_logger(__name__)


# =============================================================================
# Pydantic Models
# =============================================================================


class PropertyCreate(BaseModel):
    """Request body for adding a listing. Keys use the stored camelCase names."""

    model_config = ConfigDict(populate_by_name=True)

    id: Optional[str] = None
    name: str = Field(..., min_length=1)
    location: str = ""
    city: str = ""
    type: str = ""
    tenure: str = Field("purchase", pattern="^(purchase|rent)$")
    price: Optional[float] = Field(None, ge=0)
    rent: Optional[float] = Field(None, ge=0)
    rental_frequency: Optional[str] = Field(None, alias="rentalFrequency")
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    amenities: List[str] = Field(default_factory=list)
    availability: str = "TBD"
    virtual_tour: Optional[str] = Field(None, alias="virtualTour")
    images: List[str] = Field(default_factory=list)
    description: str = ""
    status: Optional[str] = None


class PropertyUpdate(BaseModel):
    """Partial update; only supplied keys change."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    name: Optional[str] = None
    location: Optional[str] = None
    city: Optional[str] = None
    type: Optional[str] = None
    tenure: Optional[str] = Field(None, pattern="^(purchase|rent)$")
    price: Optional[float] = Field(None, ge=0)
    rent: Optional[float] = Field(None, ge=0)
    rental_frequency: Optional[str] = Field(None, alias="rentalFrequency")
    bedrooms: Optional[int] = Field(None, ge=0)
    bathrooms: Optional[int] = Field(None, ge=0)
    amenities: Optional[List[str]] = None
    availability: Optional[str] = None
    virtual_tour: Optional[str] = Field(None, alias="virtualTour")
    images: Optional[List[str]] = None
    description: Optional[str] = None
    status: Optional[str] = None


# =============================================================================
# Routes
# =============================================================================


@router.get("")
async def list_properties(
    status: Optional[str] = Query(None, description="active or archived"),
    city: Optional[str] = Query(None),
    type: Optional[str] = Query(None),
    store: PropertyStore = Depends(get_property_store),
) -> Dict[str, Any]:
    listings = await store.list_properties(status=status, city=city, type=type)
    return {"items": [listing.to_dict() for listing in listings], "total": len(listings)}


@router.get("/{property_id}")
async def get_property(property_id: str, store: PropertyStore = Depends(get_property_store)) -> Dict[str, Any]:
    listing = await store.get(property_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Property {property_id} not found")
    return listing.to_dict()


@router.post("", status_code=201)
async def create_property(
    body: PropertyCreate,
    store: PropertyStore = Depends(get_property_store),
) -> Dict[str, Any]:
    listing = await store.add(body.model_dump(by_alias=True, exclude_none=True))
    return listing.to_dict()


@router.patch("/{property_id}")
async def update_property(
    property_id: str,
    body: PropertyUpdate,
    store: PropertyStore = Depends(get_property_store),
) -> Dict[str, Any]:
    listing = await store.update(property_id, body.model_dump(by_alias=True, exclude_unset=True))
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Property {property_id} not found")
    return listing.to_dict()


@router.delete("/{property_id}")
async def archive_property(property_id: str, store: PropertyStore = Depends(get_property_store)) -> Dict[str, Any]:
    """Archive rather than delete; archived listings never match."""
    listing = await store.archive(property_id)
    if listing is None:
        raise HTTPException(status_code=404, detail=f"Property {property_id} not found")
    return listing.to_dict()
