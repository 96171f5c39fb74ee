"""Pytest configuration and fixtures."""
from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / "src"
if str(src_path) not in sys.path:
    sys.path.insert(0, str(src_path))

# Set test environment
os.environ.setdefault("DRY_RUN", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DATA_DIR", tempfile.mkdtemp(prefix="lead-engine-tests-"))
for _key in (
    "OPENAI_API_KEY",
    "ANTHROPIC_API_KEY",
    "CRM_SYNC_URL",
    "CRM_API_KEY",
    "WHATSAPP_ACCESS_TOKEN",
    "WHATSAPP_PHONE_NUMBER_ID",
    "WHATSAPP_APP_SECRET",
    "ADMIN_TOKEN",
):
    os.environ.pop(_key, None)

from core.exceptions import MessagingError
from domain.leads import PartialLead
from domain.models import PropertyListing, Turn
from outreach.messages import OutboundMessage
from services.crm_client import CRMClient
from services.lead_store import LeadStore
from services.lead_sync import LeadSyncService
from services.pipeline import MessagePipeline
from services.property_store import PropertyStore
from services.session_store import SessionStore

SYSTEM_PROMPT = "You are a test assistant."


# =============================================================================
# Sample inventory
# =============================================================================


def make_listing(**overrides) -> PropertyListing:
    data = {
        "id": "ACC-APA-0001-TEST",
        "name": "Airport Residential Apartment",
        "location": "Airport Residential, Accra",
        "city": "Accra",
        "type": "apartment",
        "tenure": "purchase",
        "price": 450000,
        "bedrooms": 2,
        "bathrooms": 2,
        "images": ["https://example.com/img/acc-apa-0001.jpg"],
        "virtualTour": "https://example.com/tour/acc-apa-0001",
    }
    data.update(overrides)
    return PropertyListing.from_dict(data)


@pytest.fixture
def sample_inventory() -> List[PropertyListing]:
    return [
        make_listing(),
        make_listing(
            id="ACC-APA-0002-TEST",
            name="East Legon Penthouse",
            location="East Legon, Accra",
            price=900000,
            images=[],
            virtualTour=None,
        ),
        make_listing(
            id="ACC-HOU-0003-TEST",
            name="Cantonments Family House",
            location="Cantonments, Accra",
            type="house",
            price=None,
        ),
        make_listing(
            id="ACC-APA-0004-TEST",
            name="Osu Rental Flat",
            location="Osu, Accra",
            tenure="rent",
            price=None,
            rent=3500,
            rentalFrequency="month",
        ),
        make_listing(
            id="KUM-APA-0005-TEST",
            name="Archived Kumasi Flat",
            location="Ahodwo, Kumasi",
            city="Kumasi",
            price=200000,
            status="archived",
        ),
    ]


# =============================================================================
# Stores
# =============================================================================


@pytest.fixture
def lead_store(tmp_path: Path) -> LeadStore:
    return LeadStore(tmp_path / "leads.json")


@pytest.fixture
def property_store(tmp_path: Path) -> PropertyStore:
    return PropertyStore(tmp_path / "properties.json")


@pytest.fixture
def session_store() -> SessionStore:
    return SessionStore(system_prompt=SYSTEM_PROMPT, ttl_seconds=3600, max_entries=100)


# =============================================================================
# Collaborator fakes
# =============================================================================


class FakeAssistant:
    """Stands in for ConversationAssistant."""

    def __init__(
        self,
        reply: str = "Here is what we have.",
        fields: Optional[PartialLead] = None,
        reply_error: Optional[Exception] = None,
        extract_error: Optional[Exception] = None,
    ):
        self.reply = reply
        self.fields = fields
        self.reply_error = reply_error
        self.extract_error = extract_error
        self.reply_calls: List[Sequence[Turn]] = []
        self.contexts: List[str] = []

    def fallback_reply(self) -> str:
        return "Fallback reply"

    async def generate_reply(self, turns: Sequence[Turn], inventory_context: str) -> str:
        self.reply_calls.append(list(turns))
        self.contexts.append(inventory_context)
        if self.reply_error:
            raise self.reply_error
        return self.reply

    async def extract_fields(self, turns: Sequence[Turn]) -> Optional[PartialLead]:
        if self.extract_error:
            raise self.extract_error
        return self.fields


class FakeMessenger:
    """Stands in for WhatsAppClient; records every message."""

    def __init__(self, fail_tags: Sequence[str] = ()):
        self.sent: List[OutboundMessage] = []
        self.fail_tags = set(fail_tags)

    async def send(self, message: OutboundMessage):
        if message.tag in self.fail_tags:
            raise MessagingError(f"cannot send {message.tag}")
        self.sent.append(message)
        return None


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def fake_messenger() -> FakeMessenger:
    return FakeMessenger()


def build_pipeline(
    sessions: SessionStore,
    properties: PropertyStore,
    leads: LeadStore,
    assistant: FakeAssistant,
    messenger: FakeMessenger,
    crm: Optional[CRMClient] = None,
    dedupe_by_sender: bool = True,
) -> MessagePipeline:
    return MessagePipeline(
        sessions=sessions,
        properties=properties,
        leads=leads,
        lead_sync=LeadSyncService(leads, crm or CRMClient()),
        assistant=assistant,
        messenger=messenger,
        currency_code="GHS",
        business_name="Test Realty",
        dedupe_by_sender=dedupe_by_sender,
        max_history_turns=10,
    )
