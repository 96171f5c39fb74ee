"""End-to-end tests for the inbound message pipeline."""
from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from core.exceptions import LeadExtractionError, LLMAPIError, StorageError
from domain.leads import PartialLead
from domain.models import LeadStatus, Role
from outreach.inbound import InboundMessage
from outreach.whatsapp_client import WhatsAppClient
from services.crm_client import CRMClient
from conftest import FakeAssistant, FakeMessenger, build_pipeline, no_sleep

SENDER = "233200000001"
SEARCH_TEXT = "Looking for a 2 bed apartment in Accra under 500k for rent"


@pytest.fixture
def stocked_properties(property_store, sample_inventory):
    asyncio.run(property_store.collection.replace_all([listing.to_dict() for listing in sample_inventory]))
    return property_store


def run(pipeline, *texts, sender=SENDER):
    async def scenario():
        return [await pipeline.handle_message(InboundMessage(sender=sender, text=text)) for text in texts]

    return asyncio.run(scenario())


def test_search_gets_reply_shortlist_and_lead(session_store, stocked_properties, lead_store, fake_messenger):
    assistant = FakeAssistant(fields=PartialLead(name="Ama Mensah"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.reply == "Here is what we have."
    assert result.match_count == 2
    assert result.sent == ["reply", "shortlist", "shortlist_image"]
    assert result.failed == []
    assert "ACC-APA-0001-TEST" in assistant.contexts[0]
    assert "KUM-APA-0005-TEST" not in assistant.contexts[0]

    shortlist = fake_messenger.sent[1]
    assert "Airport Residential Apartment" in shortlist.body
    assert "GHS 3,500 / month" in shortlist.body
    assert fake_messenger.sent[2].image_url == "https://example.com/img/acc-apa-0001.jpg"

    assert result.lead_persisted
    assert result.lead.score == 80
    assert result.lead.status == LeadStatus.PENDING_SYNC
    stored = json.loads(lead_store.path.read_text())
    assert stored[0]["details"]["name"] == "Ama Mensah"
    assert stored[0]["summary"] == SEARCH_TEXT


def test_history_is_recorded_in_order(session_store, stocked_properties, lead_store, fake_messenger):
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, FakeAssistant(), fake_messenger)

    run(pipeline, "hello", "any flats in Osu?")

    turns = session_store.get(SENDER).turns
    assert [turn.role for turn in turns] == [Role.SYSTEM, Role.USER, Role.ASSISTANT, Role.USER, Role.ASSISTANT]
    assert turns[3].content == "any flats in Osu?"


def test_no_inventory_notice_and_no_lead(session_store, stocked_properties, lead_store, fake_messenger):
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, FakeAssistant(), fake_messenger)

    [result] = run(pipeline, "Any land in Tema?")

    assert result.match_count == 0
    assert result.sent == ["reply", "no_inventory"]
    assert "land in Tema" in fake_messenger.sent[1].body
    assert result.lead is None
    assert json.loads(lead_store.path.read_text()) == []


def test_viewing_and_escalation_followups(session_store, stocked_properties, lead_store, fake_messenger):
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, FakeAssistant(), fake_messenger)

    [result] = run(pipeline, "Can I schedule a viewing? Please have an agent call me")

    assert "viewing_prompt" in result.sent
    assert "escalation" in result.sent
    assert "Test Realty" in fake_messenger.sent[-1].body


def test_reply_failure_uses_fallback(session_store, stocked_properties, lead_store, fake_messenger):
    assistant = FakeAssistant(reply_error=LLMAPIError("provider down"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger)

    [result] = run(pipeline, "hello")

    assert result.reply == "Fallback reply"
    assert fake_messenger.sent[0].body == "Fallback reply"
    assert session_store.get(SENDER).turns[-1].content == "Fallback reply"


def test_extraction_failure_skips_lead_but_replies(session_store, stocked_properties, lead_store, fake_messenger):
    assistant = FakeAssistant(extract_error=LeadExtractionError("not json"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.sent[0] == "reply"
    assert result.lead is None
    assert json.loads(lead_store.path.read_text()) == []


def test_send_failure_does_not_stop_other_messages(session_store, stocked_properties, lead_store):
    messenger = FakeMessenger(fail_tags=["shortlist"])
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.failed == ["shortlist"]
    assert result.sent == ["reply", "shortlist_image"]
    assert result.lead_persisted


def test_unreadable_send_response_keeps_lead(session_store, stocked_properties, lead_store):
    messenger = WhatsAppClient(
        access_token="token",
        phone_number_id="123",
        dry_run=False,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text="OK")),
    )
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.sent == []
    assert result.failed == ["reply", "shortlist", "shortlist_image"]
    assert result.lead_persisted
    assert len(json.loads(lead_store.path.read_text())) == 1


def test_storage_failure_keeps_reply(session_store, stocked_properties, lead_store, fake_messenger, monkeypatch):
    async def broken_append(lead):
        raise StorageError("disk full")

    monkeypatch.setattr(lead_store, "append", broken_append)
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.sent[0] == "reply"
    assert result.lead is not None
    assert not result.lead_persisted


def test_inventory_failure_degrades_to_empty(session_store, property_store, lead_store, fake_messenger, monkeypatch):
    async def broken_inventory():
        raise StorageError("unreadable")

    monkeypatch.setattr(property_store, "active_inventory", broken_inventory)
    assistant = FakeAssistant()
    pipeline = build_pipeline(session_store, property_store, lead_store, assistant, fake_messenger)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.match_count == 0
    assert assistant.contexts == ["No properties are currently listed."]


def test_one_lead_per_sender(session_store, stocked_properties, lead_store, fake_messenger):
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger)

    first, second = run(pipeline, SEARCH_TEXT, SEARCH_TEXT)

    assert first.lead_persisted and not first.duplicate_lead
    assert second.duplicate_lead and not second.lead_persisted
    assert len(json.loads(lead_store.path.read_text())) == 1


def test_dedupe_can_be_disabled(session_store, stocked_properties, lead_store, fake_messenger):
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(
        session_store, stocked_properties, lead_store, assistant, fake_messenger, dedupe_by_sender=False
    )

    run(pipeline, SEARCH_TEXT, SEARCH_TEXT)

    assert len(json.loads(lead_store.path.read_text())) == 2


def test_qualified_lead_is_synced(session_store, stocked_properties, lead_store, fake_messenger):
    requests = []

    def handler(request):
        requests.append(json.loads(request.content))
        return httpx.Response(200, json={"ok": True})

    crm = CRMClient(sync_url="https://crm.example.com/leads", transport=httpx.MockTransport(handler), sleep=no_sleep)
    assistant = FakeAssistant(fields=PartialLead(name="Ama"))
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, assistant, fake_messenger, crm=crm)

    [result] = run(pipeline, SEARCH_TEXT)

    assert result.lead.status == LeadStatus.SYNCED
    assert requests[0]["fullName"] == "Ama"
    assert json.loads(lead_store.path.read_text())[0]["status"] == "synced"


class SlowAssistant(FakeAssistant):
    async def generate_reply(self, turns, inventory_context):
        await asyncio.sleep(0.01)
        return f"reply to {turns[-1].content}"


def test_same_sender_messages_are_serialized(session_store, stocked_properties, lead_store, fake_messenger):
    pipeline = build_pipeline(session_store, stocked_properties, lead_store, SlowAssistant(), fake_messenger)

    async def scenario():
        await asyncio.gather(
            pipeline.handle_message(InboundMessage(sender=SENDER, text="first")),
            pipeline.handle_message(InboundMessage(sender=SENDER, text="second")),
        )

    asyncio.run(scenario())

    contents = [turn.content for turn in session_store.get(SENDER).turns[1:]]
    assert contents == ["first", "reply to first", "second", "reply to second"]
