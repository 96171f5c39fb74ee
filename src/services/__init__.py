"""Services for the WhatsApp property lead engine.

This package provides:
- File-backed collections for leads and properties
- Per-sender conversation sessions
- CRM delivery with bounded retry
- The inbound message pipeline

Storage writes are serialized per collection and external calls are logged
with timing via ``log_external_call``.
"""
from __future__ import annotations

from .json_store import JsonCollection
from .lead_store import LeadStore
from .property_store import PropertyStore, generate_property_id
from .session_store import ConversationSession, SessionStore
from .retry import RetryPolicy, linear_backoff
from .crm_client import CRMClient, SyncOutcome, SyncStatus
from .lead_sync import LeadSyncService
from .webhook_security import verify_meta_signature
from .pipeline import MessagePipeline, PipelineResult

__all__ = [
    "JsonCollection",
    "LeadStore",
    "PropertyStore",
    "generate_property_id",
    "ConversationSession",
    "SessionStore",
    "RetryPolicy",
    "linear_backoff",
    "CRMClient",
    "SyncOutcome",
    "SyncStatus",
    "LeadSyncService",
    "verify_meta_signature",
    "MessagePipeline",
    "PipelineResult",
]
