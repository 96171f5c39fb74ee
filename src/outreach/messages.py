"""Outbound WhatsApp message payloads and follow-up planning."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from domain.matching import describe_listing
from domain.models import PropertyListing
from domain.preferences import INTENT_PROPERTY_SEARCH, PreferenceSet

KIND_TEXT = "text"
KIND_IMAGE = "image"

TAG_REPLY = "reply"
TAG_SHORTLIST = "shortlist"
TAG_SHORTLIST_IMAGE = "shortlist_image"
TAG_NO_INVENTORY = "no_inventory"
TAG_VIEWING = "viewing_prompt"
TAG_ESCALATION = "escalation"

SHORTLIST_SIZE = 3
# WhatsApp caps text bodies at 4096 characters.
MAX_TEXT_LENGTH = 4096


@dataclass(frozen=True)
class OutboundMessage:
    """One message to deliver to a WhatsApp user."""

    to: str
    kind: str
    tag: str
    body: Optional[str] = None
    image_url: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Cloud API ``/messages`` request body."""
        payload: Dict[str, Any] = {
            "messaging_product": "whatsapp",
            "recipient_type": "individual",
            "to": self.to,
            "type": self.kind,
        }
        if self.kind == KIND_IMAGE:
            image: Dict[str, Any] = {"link": self.image_url}
            if self.body:
                image["caption"] = self.body
            payload["image"] = image
        else:
            payload["text"] = {"preview_url": True, "body": (self.body or "")[:MAX_TEXT_LENGTH]}
        return payload

    def to_dict(self) -> Dict[str, Any]:
        return {"to": self.to, "kind": self.kind, "tag": self.tag, "body": self.body, "imageUrl": self.image_url}


# =============================================================================
# Builders
# =============================================================================


def build_reply(to: str, text: str) -> OutboundMessage:
    return OutboundMessage(to=to, kind=KIND_TEXT, tag=TAG_REPLY, body=text)


def build_shortlist(to: str, matches: Sequence[PropertyListing], currency: str) -> List[OutboundMessage]:
    """Text summary of the top matches, plus one image when any match has one."""
    top = list(matches[:SHORTLIST_SIZE])
    lines = ["Here are properties that match what you asked for:"]
    for index, listing in enumerate(top, start=1):
        line = f"{index}. {describe_listing(listing, currency)}"
        if listing.virtual_tour:
            line += f"\n   Virtual tour: {listing.virtual_tour}"
        lines.append(line)
    lines.append("Reply with the number of any property you would like to know more about.")

    messages = [OutboundMessage(to=to, kind=KIND_TEXT, tag=TAG_SHORTLIST, body="\n".join(lines))]

    featured = next((listing for listing in top if listing.images), None)
    if featured is not None:
        messages.append(
            OutboundMessage(
                to=to,
                kind=KIND_IMAGE,
                tag=TAG_SHORTLIST_IMAGE,
                body=featured.name,
                image_url=featured.images[0],
            )
        )
    return messages


def build_no_inventory_notice(to: str, preferences: PreferenceSet) -> OutboundMessage:
    subject = preferences.property_type or "property"
    where = f" in {preferences.location.title()}" if preferences.location else ""
    body = (
        f"We don't have a matching {subject}{where} listed right now. "
        "I've noted your preferences and an agent will let you know as soon as something fits."
    )
    return OutboundMessage(to=to, kind=KIND_TEXT, tag=TAG_NO_INVENTORY, body=body)


def build_viewing_prompt(to: str) -> OutboundMessage:
    body = (
        "Happy to arrange a viewing. Which day and time work best for you? "
        "Please also share your full name so we can confirm the appointment."
    )
    return OutboundMessage(to=to, kind=KIND_TEXT, tag=TAG_VIEWING, body=body)


def build_escalation_notice(to: str, business_name: str, urgent: bool = False) -> OutboundMessage:
    when = "shortly" if urgent else "soon"
    body = f"Thanks. A member of the {business_name} team will contact you {when} on this number."
    return OutboundMessage(to=to, kind=KIND_TEXT, tag=TAG_ESCALATION, body=body)


# =============================================================================
# Planning
# =============================================================================


def plan_followups(
    to: str,
    preferences: PreferenceSet,
    matches: Sequence[PropertyListing],
    currency: str,
    business_name: str,
) -> List[OutboundMessage]:
    """
    Messages that follow the conversational reply, each gated independently.

    The shortlist only uses true matches; the grounding fallback never
    reaches it.
    """
    messages: List[OutboundMessage] = []
    searching = preferences.has_intent(INTENT_PROPERTY_SEARCH)

    if matches and (searching or preferences.wants_image or preferences.wants_virtual_tour):
        messages.extend(build_shortlist(to, matches, currency))
    elif searching and not matches:
        messages.append(build_no_inventory_notice(to, preferences))

    if preferences.wants_viewing:
        messages.append(build_viewing_prompt(to))

    if preferences.escalate_request or preferences.urgent_request:
        messages.append(build_escalation_notice(to, business_name, urgent=preferences.urgent_request))

    return messages


__all__ = [
    "KIND_TEXT",
    "KIND_IMAGE",
    "TAG_REPLY",
    "TAG_SHORTLIST",
    "TAG_SHORTLIST_IMAGE",
    "TAG_NO_INVENTORY",
    "TAG_VIEWING",
    "TAG_ESCALATION",
    "OutboundMessage",
    "build_reply",
    "build_shortlist",
    "build_no_inventory_notice",
    "build_viewing_prompt",
    "build_escalation_notice",
    "plan_followups",
]
