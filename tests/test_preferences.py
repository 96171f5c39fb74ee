"""Tests for keyword-based preference extraction."""
from __future__ import annotations

import pytest

from domain.preferences import (
    INTENT_AVAILABILITY,
    INTENT_PRICING,
    INTENT_PROPERTY_SEARCH,
    INTENT_VIEWING,
    INTENT_VIRTUAL_TOUR,
    build_location_vocabulary,
    extract_preferences,
    parse_budget,
)
from conftest import make_listing


class TestExtractPreferences:
    """Tests for extract_preferences."""

    def test_reference_enquiry(self):
        prefs = extract_preferences("Looking for a 2 bed apartment in Accra under 500k for rent")

        assert prefs.property_type == "apartment"
        assert prefs.location == "accra"
        assert prefs.budget_max == 500000
        assert INTENT_PROPERTY_SEARCH in prefs.intents
        assert INTENT_PRICING in prefs.intents

    @pytest.mark.parametrize("text", ["hello there", "good morning!", "thanks, bye", "", "   ", None])
    def test_no_signals_yields_empty_preferences(self, text):
        prefs = extract_preferences(text)

        assert prefs.location is None
        assert prefs.property_type is None
        assert prefs.budget_max is None
        assert prefs.timeline is None
        assert prefs.intents == frozenset()
        assert not prefs.escalate_request

    def test_neighbourhood_wins_over_city(self):
        prefs = extract_preferences("Show me houses in East Legon, Accra, budget 1.2 million, move in next month")

        assert prefs.location == "east legon"
        assert prefs.property_type == "house"
        assert prefs.budget_max == 1_200_000
        assert prefs.timeline == "next month"
        assert INTENT_AVAILABILITY in prefs.intents

    def test_inventory_extends_location_vocabulary(self):
        inventory = [make_listing(location="Ahodwo, Kumasi")]

        assert extract_preferences("anything in ahodwo?", inventory).location == "ahodwo"
        assert extract_preferences("anything in ahodwo?").location is None

    def test_inventory_type_names_are_recognized(self):
        inventory = [make_listing(type="Hostel")]

        assert extract_preferences("do you have a hostel room", inventory).property_type == "hostel"

    def test_type_aliases(self):
        assert extract_preferences("a 3 bedroom flat").property_type == "apartment"
        assert extract_preferences("a plot of land in Tema").property_type == "land"

    def test_last_timeline_rule_wins(self):
        assert extract_preferences("I need it immediately").timeline == "immediate"
        assert extract_preferences("asap, or next week at the latest").timeline == "next week"
        assert extract_preferences("next week or next month").timeline == "next week"

    def test_flags(self):
        prefs = extract_preferences("Can I speak to an agent? Please send photos, it's urgent")

        assert prefs.escalate_request
        assert prefs.wants_image
        assert prefs.urgent_request

    def test_viewing_and_tour_intents(self):
        viewing = extract_preferences("Can I schedule a viewing on Saturday?")
        tour = extract_preferences("Is there a virtual tour?")

        assert viewing.wants_viewing and INTENT_VIEWING in viewing.intents
        assert tour.wants_virtual_tour and INTENT_VIRTUAL_TOUR in tour.intents

    def test_deterministic(self):
        text = "2 bed apartment in Osu under GHS 300,000 asap"
        assert extract_preferences(text) == extract_preferences(text)


class TestParseBudget:
    """Tests for parse_budget."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("under 500k", 500_000),
            ("about 1.5 million", 1_500_000),
            ("budget: 750 thousand", 750_000),
            ("GHS 400,000", 400_000),
            ("3500 cedis a month", 3_500),
            ("$250k max", 250_000),
            ("2m", 2_000_000),
        ],
    )
    def test_amounts(self, text, expected):
        assert parse_budget(text) == expected

    def test_bare_numbers_are_not_budgets(self):
        assert parse_budget("2 bed, 3 bath") is None

    def test_first_amount_wins(self):
        assert parse_budget("under 300k, at most 400k") == 300_000


def test_location_vocabulary_splits_listing_locations():
    inventory = [make_listing(location="Spintex Road / Baatsona, Accra")]
    vocabulary = build_location_vocabulary(inventory)

    assert "spintex road" in vocabulary
    assert "baatsona" in vocabulary
    assert vocabulary.count("accra") == 1
