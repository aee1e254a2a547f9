"""Public service interface for the ingestion module.

Wires the real collaborators (Firecrawl, Google search, OpenAI, the async
store) from settings. Tests build the programs directly with fakes instead.
"""
from typing import List, Optional

from src.ingestion.extraction.client import ExtractionJobClient, FirecrawlExtractService
from src.ingestion.ops.batch_executor import RateLimitedExecutor
from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.programs.discovery import DiscoveryOrchestrator
from src.ingestion.programs.processing import ArticleProcessor, BatchLifecycleManager
from src.ingestion.sources import DiscoverySource, GoogleSearchSource, NewsFeedSource, SiteMapSource
from src.ingestion.store import IngestionStore
from src.ingestion.validation import ContentValidator, LLMContentClassifier


def build_sources(rate_limiter: Optional[RateLimiter] = None) -> List[DiscoverySource]:
    rate_limiter = rate_limiter or RateLimiter()
    return [
        GoogleSearchSource(rate_limiter=rate_limiter),
        NewsFeedSource(rate_limiter=rate_limiter),
        SiteMapSource(rate_limiter=rate_limiter),
    ]


def build_orchestrator(store: Optional[IngestionStore] = None,
                       rate_limiter: Optional[RateLimiter] = None) -> DiscoveryOrchestrator:
    return DiscoveryOrchestrator(store or IngestionStore(), build_sources(rate_limiter))


def build_manager(
    store: Optional[IngestionStore] = None,
    rate_limiter: Optional[RateLimiter] = None,
    concurrency: Optional[int] = None,
    batch_delay: Optional[float] = None,
) -> BatchLifecycleManager:
    store = store or IngestionStore()
    extraction = ExtractionJobClient(FirecrawlExtractService(rate_limiter=rate_limiter or RateLimiter()))
    validator = ContentValidator(LLMContentClassifier())
    processor = ArticleProcessor(store, extraction, validator)
    executor = RateLimitedExecutor(concurrency=concurrency, batch_delay=batch_delay)
    return BatchLifecycleManager(store, processor, executor)
