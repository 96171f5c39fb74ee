"""WhatsApp Cloud API webhook: verification handshake and inbound messages."""
from __future__ import annotations

import json
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import PlainTextResponse

from api.deps import get_pipeline
from core.config import Settings, get_settings
from core.logging_config import get_logger
from outreach.inbound import parse_inbound_messages
from services.pipeline import MessagePipeline
from services.webhook_security import verify_whatsapp_signature

router = APIRouter()
LOGGER = get_logger(__name__)


@router.get("", response_class=PlainTextResponse)
async def verify_webhook(
    mode: Optional[str] = Query(default=None, alias="hub.mode"),
    token: Optional[str] = Query(default=None, alias="hub.verify_token"),
    challenge: Optional[str] = Query(default=None, alias="hub.challenge"),
    settings: Settings = Depends(get_settings),
) -> str:
    """Echo ``hub.challenge`` when the verify token matches."""
    if mode and settings.whatsapp_verify_token and token == settings.whatsapp_verify_token:
        LOGGER.info("Webhook verified")
        return challenge or ""
    LOGGER.warning("Webhook verification rejected")
    raise HTTPException(status_code=403, detail="Verification failed")


@router.post("")
async def receive_webhook(
    body: bytes = Depends(verify_whatsapp_signature),
    pipeline: MessagePipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    """
    Handle inbound messages.

    Always answers 200 once the signature passes: a payload without text
    messages is acknowledged as ``ignored``; recognized messages are
    acknowledged as ``received`` whatever happens downstream, so the channel
    does not redeliver.
    """
    try:
        payload = json.loads(body) if body else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        LOGGER.warning("Webhook body is not JSON; ignoring")
        return {"status": "ignored"}

    messages = parse_inbound_messages(payload)
    if not messages:
        return {"status": "ignored"}

    for message in messages:
        try:
            await pipeline.handle_message(message)
        except Exception:
            LOGGER.exception(f"Unhandled error processing message from {message.sender}")

    return {"status": "received", "messages": len(messages)}
