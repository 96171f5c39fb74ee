"""Dependency providers for FastAPI routes.

Stores and the pipeline are process-wide singletons; tests replace them via
``app.dependency_overrides`` or ``reset_dependencies()``.
"""
from __future__ import annotations

import hmac
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.config import Settings, get_settings
from llm.assistant import ConversationAssistant
from llm.client import get_llm_client
from llm.prompts import build_system_instruction
from outreach.whatsapp_client import WhatsAppClient
from services.crm_client import CRMClient
from services.lead_store import LeadStore
from services.lead_sync import LeadSyncService
from services.pipeline import MessagePipeline
from services.property_store import PropertyStore
from services.session_store import SessionStore

security = HTTPBearer(auto_error=False)


@lru_cache
def get_lead_store() -> LeadStore:
    return LeadStore(get_settings().leads_path)


@lru_cache
def get_property_store() -> PropertyStore:
    return PropertyStore(get_settings().properties_path)


@lru_cache
def get_session_store() -> SessionStore:
    settings = get_settings()
    return SessionStore(
        system_prompt=build_system_instruction(settings.business_name),
        ttl_seconds=settings.session_ttl_hours * 3600,
        max_entries=settings.session_max_entries,
    )


@lru_cache
def get_pipeline() -> MessagePipeline:
    settings = get_settings()
    leads = get_lead_store()
    return MessagePipeline(
        sessions=get_session_store(),
        properties=get_property_store(),
        leads=leads,
        lead_sync=LeadSyncService(leads, CRMClient.from_settings(settings)),
        assistant=ConversationAssistant(get_llm_client(), business_name=settings.business_name),
        messenger=WhatsAppClient.from_settings(settings),
        currency_code=settings.currency_code,
        business_name=settings.business_name,
        dedupe_by_sender=settings.lead_dedupe_by_sender,
        max_history_turns=settings.session_max_turns,
    )


def reset_dependencies() -> None:
    """Drop cached singletons (useful for testing)."""
    for provider in (get_lead_store, get_property_store, get_session_store, get_pipeline):
        provider.cache_clear()


def require_admin(
    x_admin_token: Optional[str] = Header(default=None, alias="X-Admin-Token"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Gate admin routes on the shared static token.

    The token may arrive as ``X-Admin-Token`` or ``Authorization: Bearer``.
    With no ADMIN_TOKEN configured every request is rejected.
    """
    if not settings.admin_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Admin access is not configured",
        )

    supplied = x_admin_token or (credentials.credentials if credentials else None)
    if not supplied or not hmac.compare_digest(supplied.encode(), settings.admin_token.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin token",
            headers={"WWW-Authenticate": "Bearer"},
        )


__all__ = [
    "get_lead_store",
    "get_property_store",
    "get_session_store",
    "get_pipeline",
    "reset_dependencies",
    "require_admin",
]
