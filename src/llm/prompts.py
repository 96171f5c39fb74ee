"""Prompt templates for the WhatsApp property assistant."""
from __future__ import annotations

from typing import Sequence

from domain.models import Role, Turn


def build_system_instruction(business_name: str) -> str:
    """Fixed first turn of every conversation session."""
    return (
        f"You are the WhatsApp assistant for {business_name}, a real estate agency in Ghana. "
        "Help prospects find properties to buy or rent. Be warm, brief and concrete: "
        "WhatsApp messages should stay under 120 words. Only recommend properties from the "
        "inventory you are given, never invent listings, prices or availability. "
        "Ask for whatever is still missing among the prospect's name, budget, preferred "
        "location, property type and move-in timeline, one or two questions at a time. "
        "If the prospect asks for a person, tell them an agent will reach out."
    )


REPLY_CONTEXT_TEMPLATE = """Current inventory relevant to the conversation:
{inventory}

Reply to the prospect's latest message using only this inventory."""


def build_reply_context(inventory_context: str) -> str:
    return REPLY_CONTEXT_TEMPLATE.format(inventory=inventory_context)


EXTRACTION_INSTRUCTION = """Read the conversation between a real estate assistant and a prospect.
Extract what the prospect has stated about themselves.

Respond with ONLY a JSON object with exactly these keys:
{"name": ..., "budget": ..., "location": ..., "type": ..., "timeline": ...}

Each value is a string, or null when the prospect has not said it.
- budget: the amount with its currency as written, e.g. "GHS 400,000"
- type: one of apartment, house, townhouse, land, commercial
- timeline: when they want to buy or move, e.g. "next month"
Do not guess. Do not add other keys."""


def format_transcript(turns: Sequence[Turn]) -> str:
    """Plain transcript of the user and assistant turns."""
    labels = {Role.USER: "Prospect", Role.ASSISTANT: "Assistant"}
    return "\n".join(
        f"{labels[turn.role]}: {turn.content}" for turn in turns if turn.role in labels
    )


def build_extraction_prompt(turns: Sequence[Turn]) -> str:
    return f"Conversation:\n{format_transcript(turns)}"


FALLBACK_REPLY_TEMPLATE = (
    "Hello \U0001F44B Welcome to {business_name}. How can I help you today? "
    "Tell me the area, property type and budget you have in mind."
)


def build_fallback_reply(business_name: str) -> str:
    return FALLBACK_REPLY_TEMPLATE.format(business_name=business_name)


__all__ = [
    "build_system_instruction",
    "build_reply_context",
    "EXTRACTION_INSTRUCTION",
    "format_transcript",
    "build_extraction_prompt",
    "build_fallback_reply",
]
