"""Admin lead listing routes."""
from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from api.deps import get_lead_store
from core.logging_config import get_logger
from domain.models import LeadStatus
from services.lead_store import LeadStore, summarize_status_counts

router = APIRouter()
LOGGER = get_logger(__name__)


@router.get("")
async def list_leads(
    status: Optional[LeadStatus] = Query(None, description="pending_sync, synced or sync_failed"),
    min_score: Optional[int] = Query(None, ge=0, le=100, description="Minimum score, inclusive"),
    start_date: Optional[str] = Query(None, description="ISO date/time; createdAt >= start_date"),
    end_date: Optional[str] = Query(None, description="ISO date/time; createdAt <= end_date"),
    store: LeadStore = Depends(get_lead_store),
) -> Dict[str, Any]:
    """List stored leads, optionally filtered."""
    leads = await store.list_leads(
        status=status,
        min_score=min_score,
        start_date=start_date,
        end_date=end_date,
    )
    return {
        "items": [lead.to_dict() for lead in leads],
        "total": len(leads),
        "by_status": summarize_status_counts(leads),
    }


@router.get("/{lead_id}")
async def get_lead(lead_id: str, store: LeadStore = Depends(get_lead_store)) -> Dict[str, Any]:
    lead = await store.get(lead_id)
    if lead is None:
        raise HTTPException(status_code=404, detail=f"Lead {lead_id} not found")
    return lead.to_dict()
