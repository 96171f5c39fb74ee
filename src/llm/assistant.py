"""Conversation assistant: grounded replies and structured lead extraction."""
from __future__ import annotations

from typing import List, Optional, Sequence

from core.exceptions import LeadExtractionError
from core.logging_config import get_logger
from domain.leads import PartialLead
from domain.models import Role, Turn
from llm.client import ChatMessage, LLMClient, get_llm_client
from llm.extraction import parse_structured_fields
from llm.prompts import (
    EXTRACTION_INSTRUCTION,
    build_extraction_prompt,
    build_fallback_reply,
    build_reply_context,
)

LOGGER = get_logger(__name__)


class ConversationAssistant:
    """
    Language-model collaborator for the message pipeline.

    ``generate_reply`` may return an empty string when no provider is
    configured; the pipeline substitutes ``fallback_reply`` then.
    """

    def __init__(self, client: Optional[LLMClient] = None, business_name: str = ""):
        self.client = client or get_llm_client()
        self.business_name = business_name

    def fallback_reply(self) -> str:
        return build_fallback_reply(self.business_name)

    async def generate_reply(self, turns: Sequence[Turn], inventory_context: str) -> str:
        """
        Next assistant message for a conversation.

        The inventory context is injected as a second system message right
        after the fixed system instruction.
        """
        messages: List[ChatMessage] = [turn.to_dict() for turn in turns]
        grounding = {"role": Role.SYSTEM.value, "content": build_reply_context(inventory_context)}
        messages.insert(1, grounding)
        reply = await self.client.generate_chat(messages, max_tokens=400)
        return reply or self.fallback_reply()

    async def extract_fields(self, turns: Sequence[Turn]) -> Optional[PartialLead]:
        """
        Structured lead fields for the conversation.

        Returns:
            PartialLead, or None when no provider is configured.

        Raises:
            LeadExtractionError: The model answered outside the contract.
            LLMError: The model call failed.
        """
        if not self.client.is_available():
            return None

        raw = await self.client.generate_chat(
            [
                {"role": Role.SYSTEM.value, "content": EXTRACTION_INSTRUCTION},
                {"role": Role.USER.value, "content": build_extraction_prompt(turns)},
            ],
            temperature=0.0,
            max_tokens=200,
        )
        try:
            return parse_structured_fields(raw)
        except LeadExtractionError:
            LOGGER.debug(f"Raw extraction output: {raw!r}")
            raise


__all__ = ["ConversationAssistant"]
