"""Parsing of inbound WhatsApp Cloud API webhook payloads."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional

from core.logging_config import get_logger

LOGGER = get_logger(__name__)


@dataclass(frozen=True)
class InboundMessage:
    """A text message received from a WhatsApp user."""

    sender: str
    text: str
    message_id: Optional[str] = None
    timestamp: Optional[str] = None
    profile_name: Optional[str] = None


def _as_list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def parse_inbound_messages(payload: Any) -> List[InboundMessage]:
    """
    Text messages contained in a webhook payload.

    Walks ``entry[].changes[].value.messages[]``. Status callbacks, media and
    other message types are skipped. A malformed payload yields an empty list.
    """
    if not isinstance(payload, dict):
        return []

    messages: List[InboundMessage] = []
    for entry in _as_list(payload.get("entry")):
        if not isinstance(entry, dict):
            continue
        for change in _as_list(entry.get("changes")):
            value = change.get("value") if isinstance(change, dict) else None
            if not isinstance(value, dict):
                continue

            names = {}
            for contact in _as_list(value.get("contacts")):
                if isinstance(contact, dict) and contact.get("wa_id"):
                    names[contact["wa_id"]] = (contact.get("profile") or {}).get("name")

            for message in _as_list(value.get("messages")):
                if not isinstance(message, dict) or message.get("type", "text") != "text":
                    continue
                sender = message.get("from")
                text = (message.get("text") or {}).get("body")
                if not sender or not isinstance(text, str) or not text.strip():
                    LOGGER.debug("Skipping inbound message without sender or text")
                    continue
                messages.append(
                    InboundMessage(
                        sender=str(sender),
                        text=text,
                        message_id=message.get("id"),
                        timestamp=message.get("timestamp"),
                        profile_name=names.get(sender),
                    )
                )
    return messages


__all__ = ["InboundMessage", "parse_inbound_messages"]
