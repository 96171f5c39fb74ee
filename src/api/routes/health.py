"""Health check routes with storage and integration status."""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends

from api.deps import get_lead_store, get_property_store, get_session_store
from core.config import Settings, get_settings
from core.exceptions import StorageError
from core.logging_config import get_logger
from core.utils import utcnow
from services.lead_store import LeadStore
from services.property_store import PropertyStore
from services.session_store import SessionStore

router = APIRouter()
LOGGER = get_logger(__name__)


@router.get("")
async def health_check(settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
    """Basic health check - always returns OK."""
    return {
        "status": "healthy",
        "timestamp": utcnow().isoformat(),
        "dry_run": settings.dry_run,
        "environment": settings.environment,
    }


@router.get("/detailed")
async def detailed_health_check(
    settings: Settings = Depends(get_settings),
    leads: LeadStore = Depends(get_lead_store),
    properties: PropertyStore = Depends(get_property_store),
    sessions: SessionStore = Depends(get_session_store),
) -> Dict[str, Any]:
    """Detailed health check including storage and external services."""
    status = "healthy"
    checks: Dict[str, Any] = {}

    for name, store in (("leads", leads), ("properties", properties)):
        try:
            count = len(await store.collection.read_all())
            checks[name] = {"status": "healthy", "records": count, "path": str(store.path)}
        except StorageError as e:
            LOGGER.error(f"{name} store health check failed: {e}")
            status = "unhealthy"
            checks[name] = {"status": "unhealthy", "error": str(e)}

    checks["sessions"] = {"active": sessions.size(), "max_entries": sessions.max_entries}
    checks["whatsapp"] = {
        "configured": settings.is_whatsapp_enabled(),
        "signature_check": bool(settings.whatsapp_app_secret),
        "dry_run": settings.dry_run,
    }
    checks["crm"] = {"configured": settings.is_crm_enabled()}
    checks["llm"] = {
        "openai": settings.is_openai_enabled(),
        "anthropic": settings.is_anthropic_enabled(),
    }

    return {
        "status": status,
        "timestamp": utcnow().isoformat(),
        "environment": settings.environment,
        "enabled_services": settings.get_enabled_services(),
        "checks": checks,
    }
