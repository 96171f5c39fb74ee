"""Tests for property inventory persistence."""
from __future__ import annotations

import asyncio
import json
import re

import pytest

from core.exceptions import ValidationError
from services.property_store import generate_property_id


def _add_all(store, payloads):
    return asyncio.run(store.import_many(payloads))


PAYLOADS = [
    {"name": "Osu Flat", "city": "Accra", "type": "apartment", "price": 300000},
    {"name": "Tema Villa", "city": "Tema", "type": "house", "price": 1200000},
    {"name": "Ahodwo Studio", "city": "Kumasi", "type": "Apartment", "tenure": "rent", "rent": 2000},
]


def test_generated_id_shape():
    assert re.fullmatch(r"ACC-APA-\d{4}-[A-Z0-9]{4}", generate_property_id("Accra", "apartment"))
    assert generate_property_id(None, None).startswith("PRP-GEN-")


def test_add_assigns_id_and_timestamps(property_store):
    listing = asyncio.run(property_store.add(PAYLOADS[0]))

    assert listing.id.startswith("ACC-APA-")
    assert listing.status == "active"
    assert listing.created_at == listing.updated_at

    stored = json.loads(property_store.path.read_text())
    assert stored[0]["id"] == listing.id
    assert stored[0]["createdAt"] == listing.created_at


def test_add_requires_name(property_store):
    with pytest.raises(ValidationError):
        asyncio.run(property_store.add({"city": "Accra"}))


def test_add_rejects_duplicate_id(property_store):
    async def scenario():
        await property_store.add({"id": "X-1", "name": "One"})
        await property_store.add({"id": "X-1", "name": "Two"})

    with pytest.raises(ValidationError):
        asyncio.run(scenario())


def test_filters_are_case_insensitive(property_store):
    _add_all(property_store, PAYLOADS)

    by_type = asyncio.run(property_store.list_properties(type="APARTMENT"))
    by_city = asyncio.run(property_store.list_properties(city="tema"))

    assert [listing.name for listing in by_type] == ["Osu Flat", "Ahodwo Studio"]
    assert [listing.name for listing in by_city] == ["Tema Villa"]


def test_update_merges_and_refreshes_timestamp(property_store):
    listing = asyncio.run(property_store.add(PAYLOADS[0]))

    updated = asyncio.run(property_store.update(listing.id, {"price": 280000, "status": "ACTIVE"}))

    assert updated.price == 280000
    assert updated.name == "Osu Flat"
    assert updated.status == "active"
    assert updated.created_at == listing.created_at
    assert updated.updated_at >= listing.updated_at


def test_update_unknown_field_or_id(property_store):
    listing = asyncio.run(property_store.add(PAYLOADS[0]))

    with pytest.raises(ValidationError):
        asyncio.run(property_store.update(listing.id, {"id": "other"}))
    assert asyncio.run(property_store.update("missing", {"price": 1})) is None


def test_archive_removes_from_active_inventory(property_store):
    listings = _add_all(property_store, PAYLOADS)

    archived = asyncio.run(property_store.archive(listings[1].id))
    active = asyncio.run(property_store.active_inventory())

    assert archived.status == "archived"
    assert listings[1].id not in [listing.id for listing in active]
    assert len(asyncio.run(property_store.list_properties(status="archived"))) == 1
    assert asyncio.run(property_store.get(listings[1].id)) is not None
