"""Tests for lead field merging, scoring and synthesis."""
from __future__ import annotations

import pytest

from domain.leads import (
    MAX_SCORE,
    PartialLead,
    generate_lead_id,
    is_qualified,
    score_lead,
    summarize_conversation,
    synthesize_lead,
)
from domain.models import LeadStatus, Role, Turn
from domain.preferences import PreferenceSet


class TestPartialLead:
    """Tests for PartialLead."""

    def test_blank_strings_count_as_absent(self):
        partial = PartialLead(name="  ", budget="", location="Osu")

        assert partial.name is None
        assert partial.budget is None
        assert partial.present_fields() == ("location",)

    def test_merge_is_right_biased(self):
        left = PartialLead(name="Ama", location="accra", type="apartment")
        right = PartialLead(location="East Legon", timeline="next month")

        merged = left.merge(right)

        assert merged == PartialLead(
            name="Ama", location="East Legon", type="apartment", timeline="next month"
        )

    def test_from_mapping_ignores_unknown_keys(self):
        partial = PartialLead.from_mapping({"name": "Kofi", "colour": "blue"})
        assert partial.to_dict() == {
            "name": "Kofi",
            "budget": None,
            "location": None,
            "type": None,
            "timeline": None,
        }

    def test_from_preferences_formats_budget(self):
        prefs = PreferenceSet(location="osu", property_type="apartment", budget_max=500_000)
        partial = PartialLead.from_preferences(prefs, "GHS")

        assert partial.budget == "GHS 500,000"
        assert partial.location == "osu"
        assert partial.type == "apartment"


class TestScoring:
    """Tests for score_lead and is_qualified."""

    @pytest.mark.parametrize(
        "partial,expected",
        [
            (PartialLead(), 0),
            (PartialLead(name="Ama"), 20),
            (PartialLead(name="Ama", budget="1m", location="Osu"), 60),
            (PartialLead(name="Ama", budget="1m", location="Osu", type="house"), 80),
            (
                PartialLead(name="Ama", budget="1m", location="Osu", type="house", timeline="asap"),
                MAX_SCORE,
            ),
        ],
    )
    def test_score_counts_present_fields(self, partial, expected):
        assert score_lead(partial) == expected

    def test_threshold(self):
        assert not is_qualified(60)
        assert not is_qualified(79)
        assert is_qualified(80)
        assert is_qualified(100)


class TestSynthesizeLead:
    """Tests for synthesize_lead."""

    def test_below_threshold_returns_none(self):
        prefs = PreferenceSet(location="osu", property_type="apartment")
        assert synthesize_lead(prefs, None, "summary", "233200000001") is None

    def test_model_fields_complete_heuristics(self):
        prefs = PreferenceSet(location="accra", property_type="apartment", budget_max=500_000)
        model = PartialLead(name="Ama Mensah")

        lead = synthesize_lead(prefs, model, "Looking for a flat", "233200000001")

        assert lead is not None
        assert lead.score == 80
        assert lead.status == LeadStatus.PENDING_SYNC
        assert lead.phone == "233200000001"
        assert lead.details.name == "Ama Mensah"
        assert lead.details.budget == "GHS 500,000"
        assert lead.details.timeline is None
        assert lead.created_at == lead.updated_at
        assert lead.created_at.endswith("Z")

    def test_model_values_override_heuristics(self):
        prefs = PreferenceSet(location="accra", property_type="apartment", budget_max=500_000, timeline="asap")
        model = PartialLead(name="Kofi", location="East Legon", budget="GHS 600,000")

        lead = synthesize_lead(prefs, model, "", "233200000002")

        assert lead.score == MAX_SCORE
        assert lead.details.location == "East Legon"
        assert lead.details.budget == "GHS 600,000"
        assert lead.details.type == "apartment"

    def test_ids_are_unique_per_sender(self):
        ids = {generate_lead_id("233200000001") for _ in range(50)}

        assert len(ids) == 50
        assert all(lead_id.startswith("233200000001-") for lead_id in ids)


class TestSummarizeConversation:
    """Tests for summarize_conversation."""

    def test_only_user_turns_are_included(self):
        turns = [
            Turn(Role.SYSTEM, "prompt"),
            Turn(Role.USER, "Hi"),
            Turn(Role.ASSISTANT, "Hello!"),
            Turn(Role.USER, "2 bed in Osu"),
        ]
        assert summarize_conversation(turns) == "Hi | 2 bed in Osu"

    def test_long_summary_is_clipped(self):
        turns = [Turn(Role.USER, "x" * 80) for _ in range(3)]
        summary = summarize_conversation(turns, max_chars=100)

        assert len(summary) <= 100
        assert summary.endswith("...")


def test_reference_fields_qualify():
    model = PartialLead(
        name="Ama", budget="GHS 400,000", location="accra", type="apartment", timeline="next month"
    )
    lead = synthesize_lead(PreferenceSet(), model, "", "233200000003")

    assert lead is not None
    assert lead.score >= 80
    assert lead.details.timeline == "next month"
