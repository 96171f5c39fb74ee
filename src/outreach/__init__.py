"""Outreach: inbound webhook parsing and outbound WhatsApp delivery."""
from .inbound import InboundMessage, parse_inbound_messages
from .messages import OutboundMessage, build_reply, plan_followups
from .whatsapp_client import SendResult, WhatsAppClient

__all__ = [
    "InboundMessage",
    "parse_inbound_messages",
    "OutboundMessage",
    "build_reply",
    "plan_followups",
    "SendResult",
    "WhatsAppClient",
]
