"""Shared dependencies for the ingestion API routers.

Routers receive the store and the pipeline programs through these providers,
so tests can swap them with app.dependency_overrides.
"""
import logging

from fastapi import Depends

from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.programs.discovery import DiscoveryOrchestrator
from src.ingestion.programs.processing import BatchLifecycleManager
from src.ingestion.service import build_manager, build_orchestrator
from src.ingestion.store import IngestionStore

logger = logging.getLogger(__name__)

# One request budget for the whole process, shared by every request
rate_limiter = RateLimiter()


def get_store() -> IngestionStore:
    return IngestionStore()


def get_orchestrator(store: IngestionStore = Depends(get_store)) -> DiscoveryOrchestrator:
    return build_orchestrator(store, rate_limiter=rate_limiter)


def get_manager(store: IngestionStore = Depends(get_store)) -> BatchLifecycleManager:
    return build_manager(store, rate_limiter=rate_limiter)
