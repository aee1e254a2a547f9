"""
Processing program: drive a ready discovery batch through extraction,
validation and persistence, one URL per executor item.
"""
import asyncio
import logging
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

from src.core.config import settings
from src.core.data_types import ArticleCandidate, BatchProcessingResult, ItemOutcome, ProcessedItem
from src.core.exceptions import ExtractionFailed, MalformedUrl, PersistenceConflict
from src.core.models import ArticleStatus, BatchStatus, ItemStatus
from src.core.utils import is_http_url, sanitize_text
from src.ingestion.database import OrganizationModel
from src.ingestion.extraction.client import ExtractionJobClient
from src.ingestion.ops.batch_executor import RateLimitedExecutor
from src.ingestion.store import IngestionStore
from src.ingestion.validation.heuristics import parse_publish_datetime
from src.ingestion.validation.validator import ContentValidator

logger = logging.getLogger(__name__)


class ArticleProcessor:
    """Turns one URL into one stored article (accepted or rejected) or a typed error."""

    def __init__(self, store: IngestionStore, extraction: ExtractionJobClient, validator: ContentValidator):
        self.store = store
        self.extraction = extraction
        self.validator = validator

    async def process_url(self, url: str, organization: OrganizationModel) -> ProcessedItem:
        url = (url or "").strip()
        if not is_http_url(url):
            raise MalformedUrl(url)

        if await self.store.exists_by_url(organization.id, url):
            return ProcessedItem(url=url, status=ItemStatus.DUPLICATE, message="Article already exists")

        extracted = (await self.extraction.extract([url], hint=organization.name)).get(url)
        if extracted is None:
            raise ExtractionFailed(f"No content extracted for {url}")

        title = sanitize_text(extracted.title)
        if not title:
            raise ExtractionFailed(f"Extracted record for {url} has no title")

        candidate = ArticleCandidate(
            url=url,
            title=title,
            summary=sanitize_text(extracted.summary),
            content=sanitize_text(extracted.content),
            organization_name=organization.name,
            published_at=extracted.publish_date,
        )
        validation = await self.validator.validate(candidate)

        try:
            article = await self.store.create_article(
                organization.id,
                url,
                title=title[:500],
                summary=candidate.summary,
                content=candidate.content,
                author=sanitize_text(extracted.author) or None,
                published_at=parse_publish_datetime(extracted.publish_date),
                image_url=extracted.main_image,
                keywords=[sanitize_text(k) for k in extracted.keywords if sanitize_text(k)],
                sentiment=validation.sentiment,
                sentiment_score=validation.sentiment_score,
                content_type=validation.content_type,
                relevance=validation.relevance,
                validation_reasons=validation.reasons,
                status=ArticleStatus.DRAFT if validation.is_valid else ArticleStatus.REJECTED,
            )
        except PersistenceConflict:
            logger.debug(f"Article stored concurrently, treating as duplicate: {url}")
            return ProcessedItem(url=url, status=ItemStatus.DUPLICATE, message="Article already exists")

        if validation.is_valid:
            return ProcessedItem(url=url, status=ItemStatus.SUCCESS, message="Article created", article_id=article.id)

        reason = validation.reasons[0] if validation.reasons else "rejected"
        return ProcessedItem(
            url=url,
            status=ItemStatus.SUCCESS,
            message=f"Article rejected: {reason}",
            article_id=article.id,
            rejected=True,
        )


def outcome_to_item(outcome: ItemOutcome[str, ProcessedItem]) -> ProcessedItem:
    if outcome.ok and outcome.result is not None:
        return outcome.result
    error = outcome.error
    message = str(error) if error is not None and str(error) else type(error).__name__
    return ProcessedItem(url=outcome.item, status=ItemStatus.ERROR, message=message)


def summarize_processing(results: Sequence[BatchProcessingResult]) -> Dict[str, int]:
    return {
        "batches_processed": len(results),
        "successful_batches": sum(1 for r in results if r.status == BatchStatus.COMPLETED),
        "failed_batches": sum(1 for r in results if r.status == BatchStatus.FAILED),
        "total_urls_processed": sum(r.processed for r in results),
        "total_successful": sum(r.successful for r in results),
        "total_duplicates": sum(r.duplicates for r in results),
        "total_failed": sum(r.failed for r in results),
        "total_rejected": sum(r.rejected for r in results),
    }


def result_to_dict(result: BatchProcessingResult) -> Dict[str, Any]:
    data = asdict(result)
    data["status"] = result.status.value
    data["items"] = [item.to_dict() for item in result.items]
    data["finished_at"] = result.finished_at.isoformat()
    return data


class BatchLifecycleManager:
    """
    Owns batch status transitions once discovery is done:
    ready_for_processing -> processing -> completed | failed.

    Callers check the batch status before re-processing; the manager does not.
    """

    def __init__(
        self,
        store: IngestionStore,
        processor: ArticleProcessor,
        executor: RateLimitedExecutor,
        batch_delay: Optional[float] = None,
        max_ready_batches: Optional[int] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.processor = processor
        self.executor = executor
        self.batch_delay = settings.batch_delay_between_batches if batch_delay is None else batch_delay
        self.max_ready_batches = max_ready_batches or settings.max_ready_batches
        self._sleep = sleep

    async def process_batch(self, batch_id: int) -> BatchProcessingResult:
        batch = await self.store.get_discovery_batch(batch_id)
        if batch is None:
            raise ValueError(f"Discovery batch {batch_id} not found")

        urls: List[str] = list(batch.discovered_urls or [])
        await self.store.update_discovery_batch(
            batch_id,
            status=BatchStatus.PROCESSING,
            processing_started_at=datetime.now(timezone.utc),
        )

        organization_name = ""
        try:
            organization = await self.store.get_organization(batch.organization_id)
            if organization is None:
                raise ValueError(f"Organization {batch.organization_id} not found")
            organization_name = organization.name
            logger.info(f"Processing batch {batch_id} for {organization.name}: {len(urls)} URLs")

            async def process(url: str) -> ProcessedItem:
                return await self.processor.process_url(url, organization)

            outcomes = await self.executor.run(urls, process)
            items = [outcome_to_item(outcome) for outcome in outcomes]

            result = BatchProcessingResult(
                batch_id=batch_id,
                organization_name=organization_name,
                status=BatchStatus.COMPLETED,
                processed=len(items),
                successful=sum(1 for i in items if i.status == ItemStatus.SUCCESS),
                duplicates=sum(1 for i in items if i.status == ItemStatus.DUPLICATE),
                failed=sum(1 for i in items if i.status == ItemStatus.ERROR),
                rejected=sum(1 for i in items if i.rejected),
                items=items,
            )
            result.message = (
                f"Processed {result.processed} URLs: {result.successful} successful "
                f"({result.rejected} rejected), {result.duplicates} duplicates, {result.failed} failed"
            )

            await self.store.update_discovery_batch(
                batch_id,
                status=BatchStatus.COMPLETED,
                processed_urls=result.processed,
                successful_urls=result.successful,
                duplicate_urls=result.duplicates,
                failed_urls=result.failed,
                processing_results=[item.to_dict() for item in items],
                completed_at=result.finished_at,
            )
            logger.info(f"Batch {batch_id} completed. {result.message}")
            return result

        except Exception as e:
            logger.error(f"Batch {batch_id} failed: {e}")
            await self.store.update_discovery_batch(
                batch_id,
                status=BatchStatus.FAILED,
                error_message=str(e),
                completed_at=datetime.now(timezone.utc),
            )
            return BatchProcessingResult(
                batch_id=batch_id,
                organization_name=organization_name,
                status=BatchStatus.FAILED,
                message=str(e),
            )

    async def process_ready_batches(self, batch_ids: Optional[Sequence[int]] = None) -> Dict[str, Any]:
        """
        Process ready batches one after another: the given ids, or the oldest
        ready batches up to max_ready_batches.
        """
        limit = None if batch_ids else self.max_ready_batches
        batches = await self.store.list_ready_batches(batch_ids, limit=limit)
        if not batches:
            logger.info("No batches ready for processing")

        results: List[BatchProcessingResult] = []
        for index, batch in enumerate(batches):
            if index > 0 and self.batch_delay > 0:
                await self._sleep(self.batch_delay)
            results.append(await self.process_batch(batch.id))

        summary = summarize_processing(results)
        logger.info(
            f"Processed {summary['batches_processed']} batches: "
            f"{summary['total_successful']} successful, {summary['total_duplicates']} duplicates, "
            f"{summary['total_failed']} failed"
        )
        return {"summary": summary, "results": [result_to_dict(r) for r in results]}
