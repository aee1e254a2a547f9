"""
Discovery program: fan out to the discovery sources per organization, union
and dedupe their URLs, drop URLs already ingested and record a discovery batch.
"""
import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from src.core.config import settings
from src.core.data_types import CandidateUrl, OrganizationDiscoveryResult, SourceRun
from src.core.exceptions import FailureSeverity, classify_source_error
from src.core.models import BatchStatus
from src.core.utils import is_http_url
from src.ingestion.database import OrganizationModel
from src.ingestion.ops.url_filters import dedupe_preserving_order
from src.ingestion.sources.base import DiscoverySource
from src.ingestion.store import IngestionStore

logger = logging.getLogger(__name__)


def union_candidates(runs: Sequence[SourceRun]) -> List[CandidateUrl]:
    """Flatten source runs into tagged candidates, first occurrence wins."""
    seen = set()
    candidates = []
    for run in runs:
        for url in run.urls:
            url = url.strip()
            if not url or url in seen:
                continue
            seen.add(url)
            candidates.append(CandidateUrl(url=url, source=run.source))
    return candidates


def summarize_discovery(results: Sequence[OrganizationDiscoveryResult]) -> Dict[str, int]:
    return {
        "organizations_processed": len(results),
        "successful": sum(1 for r in results if r.status == BatchStatus.READY_FOR_PROCESSING.value),
        "failed": sum(1 for r in results if r.status == BatchStatus.FAILED.value),
        "total_urls_found": sum(r.total_found for r in results),
        "total_new_urls": sum(r.new_urls for r in results),
        "total_duplicates": sum(r.duplicate_urls for r in results),
    }


class DiscoveryOrchestrator:
    def __init__(
        self,
        store: IngestionStore,
        sources: Sequence[DiscoverySource],
        organization_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.sources = list(sources)
        self.organization_delay = settings.organization_delay if organization_delay is None else organization_delay
        self._sleep = sleep

    async def _run_source(self, source: DiscoverySource, organization: OrganizationModel,
                          timeframe_days: int) -> SourceRun:
        try:
            urls = await source.discover(organization, timeframe_days)
        except Exception as e:
            severity = classify_source_error(e)
            if severity == FailureSeverity.SOFT:
                logger.warning(f"[{source.name}] soft failure for {organization.name}, continuing without it: {e}")
            else:
                logger.error(f"[{source.name}] failed for {organization.name}: {e}")
            return SourceRun(source=source.name, error=str(e), soft_failure=severity == FailureSeverity.SOFT)

        urls = [url.strip() for url in urls if isinstance(url, str) and is_http_url(url.strip())]
        return SourceRun(source=source.name, urls=dedupe_preserving_order(urls))

    async def run_sources(self, organization: OrganizationModel, timeframe_days: int) -> List[SourceRun]:
        """Run every applicable source concurrently; one failing source never blocks the others."""
        applicable = [source for source in self.sources if source.applies_to(organization)]
        if not applicable:
            logger.warning(f"No discovery sources apply to {organization.name}")
            return []
        return list(await asyncio.gather(
            *(self._run_source(source, organization, timeframe_days) for source in applicable)
        ))

    async def discover_for_organization(self, organization: OrganizationModel,
                                        timeframe_days: int = 90) -> OrganizationDiscoveryResult:
        """
        Run discovery for one organization.

        Failing to create the batch record propagates. Anything after that is
        recorded on the batch (status failed) and on the returned result.
        """
        logger.info(f"Discovering URLs for {organization.name} (last {timeframe_days} days)")
        batch = await self.store.create_discovery_batch(organization.id, timeframe_days)

        result = OrganizationDiscoveryResult(
            organization_id=organization.id,
            organization_name=organization.name,
            batch_id=batch.id,
            status=BatchStatus.DISCOVERING.value,
        )

        try:
            runs = await self.run_sources(organization, timeframe_days)
            result.adapter_counts = {run.source: len(run.urls) for run in runs}
            result.adapter_errors = {
                run.source: f"[soft] {run.error}" if run.soft_failure else run.error
                for run in runs if run.error
            }

            candidates = union_candidates(runs)
            unique_urls = [candidate.url for candidate in candidates]
            existing = await self.store.find_existing_urls(organization.id, unique_urls)
            new_urls = [url for url in unique_urls if url not in existing]

            result.total_found = len(unique_urls)
            result.new_urls = len(new_urls)
            result.duplicate_urls = len(unique_urls) - len(new_urls)

            await self.store.update_discovery_batch(
                batch.id,
                status=BatchStatus.READY_FOR_PROCESSING,
                discovered_urls=new_urls,
                total_urls=len(new_urls),
                adapter_counts=result.adapter_counts,
                adapter_errors=result.adapter_errors,
                discovered_at=datetime.now(timezone.utc),
            )
            result.status = BatchStatus.READY_FOR_PROCESSING.value
            logger.info(
                f"{organization.name}: {result.total_found} unique URLs, "
                f"{result.new_urls} new, {result.duplicate_urls} already ingested "
                f"(by source: {result.adapter_counts})"
            )
        except Exception as e:
            logger.error(f"Discovery failed for {organization.name}: {e}")
            result.status = BatchStatus.FAILED.value
            result.error = str(e)
            try:
                await self.store.update_discovery_batch(
                    batch.id,
                    status=BatchStatus.FAILED,
                    error_message=str(e),
                    adapter_errors=result.adapter_errors,
                    completed_at=datetime.now(timezone.utc),
                )
            except Exception as update_error:
                logger.error(f"Could not mark batch {batch.id} failed: {update_error}")

        return result

    async def discover_bulk(self, organization_ids: Optional[Sequence[int]] = None,
                            timeframe_days: int = 90) -> Dict[str, Any]:
        """
        Discover URLs for many organizations, strictly one after another with a
        courtesy delay in between.
        """
        organizations = await self.store.list_organizations(organization_ids)
        logger.info(f"Starting bulk discovery for {len(organizations)} organizations")

        results: List[OrganizationDiscoveryResult] = []
        for index, organization in enumerate(organizations):
            if index > 0 and self.organization_delay > 0:
                await self._sleep(self.organization_delay)
            try:
                results.append(await self.discover_for_organization(organization, timeframe_days))
            except Exception as e:
                logger.error(f"Could not start discovery for {organization.name}: {e}")
                results.append(OrganizationDiscoveryResult(
                    organization_id=organization.id,
                    organization_name=organization.name,
                    batch_id=None,
                    status=BatchStatus.FAILED.value,
                    error=str(e),
                ))

        summary = summarize_discovery(results)
        logger.info(
            f"Bulk discovery done: {summary['successful']}/{summary['organizations_processed']} organizations, "
            f"{summary['total_new_urls']} new URLs"
        )
        return {"summary": summary, "results": [asdict(r) for r in results]}
