"""Per-message control flow for inbound WhatsApp messages.

For one message from one sender:
    1. load the active inventory (failure -> empty inventory)
    2. extract preferences and match the inventory
    3. record the user turn and generate a grounded reply
       (failure -> canned fallback reply)
    4. send the reply and any gated follow-ups (failures logged per message)
    5. extract structured fields, synthesize and score a lead
    6. persist a qualifying lead and sync it to the CRM

Nothing after the message is recognized as well-formed is allowed to raise
out of ``handle_message``: backend failures degrade the outcome, they never
fail the webhook acknowledgment.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import LeadEngineError, LLMError, StorageError
from core.logging_config import get_context_logger, get_logger
from domain.leads import summarize_conversation, synthesize_lead
from domain.matching import build_inventory_context, match_inventory, select_grounding_listings
from domain.models import LeadRecord, PropertyListing, Role
from domain.preferences import PreferenceSet, extract_preferences
from llm.assistant import ConversationAssistant
from outreach.inbound import InboundMessage
from outreach.messages import OutboundMessage, build_reply, plan_followups
from outreach.whatsapp_client import WhatsAppClient
from services.lead_store import LeadStore
from services.lead_sync import LeadSyncService
from services.property_store import PropertyStore
from services.session_store import SessionStore

LOGGER = get_logger(__name__)


@dataclass
class PipelineResult:
    """What happened while handling one inbound message."""

    sender: str
    reply: str
    preferences: PreferenceSet
    match_count: int = 0
    sent: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    lead: Optional[LeadRecord] = None
    lead_persisted: bool = False
    duplicate_lead: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender,
            "reply": self.reply,
            "preferences": self.preferences.to_dict(),
            "matchCount": self.match_count,
            "sent": list(self.sent),
            "failed": list(self.failed),
            "lead": self.lead.to_dict() if self.lead else None,
            "leadPersisted": self.lead_persisted,
            "duplicateLead": self.duplicate_lead,
        }


class MessagePipeline:
    """Wires the stores and collaborators together for one message at a time per sender."""

    def __init__(
        self,
        sessions: SessionStore,
        properties: PropertyStore,
        leads: LeadStore,
        lead_sync: LeadSyncService,
        assistant: ConversationAssistant,
        messenger: WhatsAppClient,
        currency_code: str = "GHS",
        business_name: str = "",
        dedupe_by_sender: bool = True,
        max_history_turns: Optional[int] = None,
    ):
        self.sessions = sessions
        self.properties = properties
        self.leads = leads
        self.lead_sync = lead_sync
        self.assistant = assistant
        self.messenger = messenger
        self.currency_code = currency_code
        self.business_name = business_name
        self.dedupe_by_sender = dedupe_by_sender
        self.max_history_turns = max_history_turns

    async def handle_message(self, message: InboundMessage) -> PipelineResult:
        """Process one inbound message; messages from one sender run one at a time."""
        async with self.sessions.lock(message.sender):
            return await self._process(message)

    # -------------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------------

    async def _load_inventory(self) -> List[PropertyListing]:
        try:
            return await self.properties.active_inventory()
        except LeadEngineError as e:
            LOGGER.error(f"Inventory unavailable, continuing without it: {e}")
            return []

    async def _generate_reply(self, sender: str, inventory_context: str) -> str:
        history = self.sessions.history(sender, self.max_history_turns)
        try:
            return await self.assistant.generate_reply(history, inventory_context)
        except LLMError as e:
            LOGGER.error(f"Reply generation failed for {sender}, using fallback: {e}")
            return self.assistant.fallback_reply()

    async def _deliver(self, outbound: List[OutboundMessage], result: PipelineResult) -> None:
        for message in outbound:
            try:
                await self.messenger.send(message)
                result.sent.append(message.tag)
            except LeadEngineError as e:
                LOGGER.error(
                    f"Failed to send {message.tag} to {message.to}: {e}",
                    extra={"extra_data": {"sender": message.to, "tag": message.tag}},
                )
                result.failed.append(message.tag)

    async def _process(self, message: InboundMessage) -> PipelineResult:
        sender = message.sender
        log = get_context_logger(__name__, sender=sender)

        inventory = await self._load_inventory()
        preferences = extract_preferences(message.text, inventory)
        matches = match_inventory(inventory, preferences)
        grounding = select_grounding_listings(inventory, matches)
        log.info(
            f"Inbound message: {len(matches)} matches, intents={sorted(preferences.intents)}",
        )

        self.sessions.append(sender, Role.USER, message.text)
        reply = await self._generate_reply(sender, build_inventory_context(grounding, self.currency_code))
        self.sessions.append(sender, Role.ASSISTANT, reply)

        result = PipelineResult(
            sender=sender,
            reply=reply,
            preferences=preferences,
            match_count=len(matches),
        )

        outbound = [build_reply(sender, reply)]
        outbound.extend(
            plan_followups(sender, preferences, matches, self.currency_code, self.business_name)
        )
        await self._deliver(outbound, result)

        await self._capture_lead(sender, preferences, result)
        return result

    async def _capture_lead(self, sender: str, preferences: PreferenceSet, result: PipelineResult) -> None:
        turns = self.sessions.get_or_create(sender).turns
        try:
            model_fields = await self.assistant.extract_fields(turns)
        except LLMError as e:
            LOGGER.warning(f"Structured extraction failed for {sender}; no lead this message: {e}")
            return

        lead = synthesize_lead(
            preferences,
            model_fields,
            summarize_conversation(turns),
            sender,
            currency=self.currency_code,
        )
        if lead is None:
            return
        result.lead = lead

        if self.dedupe_by_sender and await self._has_stored_lead(sender):
            LOGGER.info(f"Sender {sender} already has a stored lead; not storing another")
            result.duplicate_lead = True
            return

        try:
            await self.leads.append(lead)
        except StorageError as e:
            LOGGER.error(
                f"Qualified lead {lead.id} could not be persisted: {e}",
                extra={"extra_data": {"lead_id": lead.id, "sender": sender}},
            )
            return
        result.lead_persisted = True

        try:
            synced = await self.lead_sync.sync_lead(lead)
        except LeadEngineError as e:
            LOGGER.error(f"Recording CRM outcome for lead {lead.id} failed: {e}")
            return
        if synced is not None:
            result.lead = synced

    async def _has_stored_lead(self, sender: str) -> bool:
        try:
            return bool(await self.leads.find_by_phone(sender))
        except StorageError as e:
            LOGGER.error(f"Duplicate check failed for {sender}: {e}")
            return False


__all__ = ["MessagePipeline", "PipelineResult"]
