"""Ingestion router: trigger discovery and batch processing, inspect batches."""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from src.core.schemas import StandardResponse
from src.ingestion.programs.discovery import DiscoveryOrchestrator
from src.ingestion.programs.processing import BatchLifecycleManager
from src.ingestion.store import IngestionStore
from src.web.dependencies import get_manager, get_orchestrator, get_store

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/ingestion",
    tags=["Ingestion"]
)


# --- Schemas ---

class DiscoveryRequest(BaseModel):
    organization_ids: Optional[List[int]] = None
    timeframe_days: int = Field(default=90, ge=1, le=3650)


class ProcessBatchesRequest(BaseModel):
    batch_ids: Optional[List[int]] = None


# --- Endpoints ---

@router.post("/discovery", response_model=StandardResponse[dict], summary="Run Discovery")
async def run_discovery(
    request: DiscoveryRequest,
    orchestrator: DiscoveryOrchestrator = Depends(get_orchestrator),
):
    """Discover candidate URLs for the given organizations (default: all)."""
    try:
        result = await orchestrator.discover_bulk(request.organization_ids, request.timeframe_days)
    except Exception as e:
        logger.exception("Bulk discovery failed")
        raise HTTPException(status_code=500, detail=str(e))

    summary = result["summary"]
    return StandardResponse(
        data=result,
        message=(
            f"Discovered {summary['total_new_urls']} new URLs across "
            f"{summary['successful']}/{summary['organizations_processed']} organizations"
        ),
    )


@router.post("/batches/process", response_model=StandardResponse[dict], summary="Process Ready Batches")
async def process_batches(
    request: ProcessBatchesRequest,
    manager: BatchLifecycleManager = Depends(get_manager),
):
    """Process ready discovery batches (the given ids, or the oldest ready ones)."""
    try:
        result = await manager.process_ready_batches(request.batch_ids)
    except Exception as e:
        logger.exception("Batch processing failed")
        raise HTTPException(status_code=500, detail=str(e))

    summary = result["summary"]
    if not summary["batches_processed"]:
        return StandardResponse(data=result, message="No batches ready for processing")
    return StandardResponse(
        data=result,
        message=(
            f"Processed {summary['batches_processed']} batches: {summary['total_successful']} successful, "
            f"{summary['total_duplicates']} duplicates, {summary['total_failed']} failed"
        ),
    )


@router.get("/batches/ready", response_model=StandardResponse[dict], summary="Ready Batches")
async def get_ready_batches(store: IngestionStore = Depends(get_store)):
    batches = await store.list_ready_batches()
    organizations = {org.id: org.name for org in await store.list_organizations(
        sorted({b.organization_id for b in batches})
    )} if batches else {}

    data = [
        {
            "id": b.id,
            "organization_id": b.organization_id,
            "organization_name": organizations.get(b.organization_id),
            "total_urls": b.total_urls,
            "discovered_urls": b.discovered_urls or [],
            "adapter_counts": b.adapter_counts or {},
            "discovered_at": b.discovered_at.isoformat() if b.discovered_at else None,
        }
        for b in batches
    ]
    return StandardResponse(
        data={"batches": data, "total": len(data), "total_urls": sum(b["total_urls"] for b in data)}
    )


@router.get("/batches/stats", response_model=StandardResponse[dict], summary="Batch Statistics")
async def get_batch_stats(limit: int = 50, store: IngestionStore = Depends(get_store)):
    recent = await store.list_recent_batches(limit=limit)
    totals = await store.batch_totals()
    return StandardResponse(data={"batches": [b.to_dict() for b in recent], "stats": totals})


@router.get("/batches/{batch_id}", response_model=StandardResponse[dict], summary="Batch Detail")
async def get_batch(batch_id: int, store: IngestionStore = Depends(get_store)):
    batch = await store.get_discovery_batch(batch_id)
    if batch is None:
        raise HTTPException(status_code=404, detail=f"Discovery batch {batch_id} not found")
    return StandardResponse(data=batch.to_dict())
