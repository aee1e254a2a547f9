"""
Ingestion pipeline: multi-source URL discovery, discovery batches, rate-limited
extraction and content validation.
"""
from src.ingestion.programs import ArticleProcessor, BatchLifecycleManager, DiscoveryOrchestrator
from src.ingestion.store import IngestionStore

__all__ = ["ArticleProcessor", "BatchLifecycleManager", "DiscoveryOrchestrator", "IngestionStore"]
