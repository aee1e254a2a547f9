"""
Structured-extraction client.

FirecrawlExtractService speaks the wire protocol (submit / poll).
ExtractionJobClient drives one job to completion: immediate results are
returned as-is, queued jobs are polled until done, failed or out of time.
"""
import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import aiohttp

from src.core.config import settings
from src.core.data_types import (
    ExtractedArticle,
    ExtractionJob,
    ExtractionSubmission,
    ImmediateResults,
    QueuedJob,
)
from src.core.exceptions import ExtractionFailed, ExtractionTimeout
from src.core.models import JobStatus
from src.ingestion.ops.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

ARTICLE_SCHEMA = {
    "type": "object",
    "properties": {
        "title": {"type": "string", "description": "The main title/headline of the article"},
        "summary": {"type": "string", "description": "A concise 2-3 sentence summary of the article's main points"},
        "author": {"type": "string", "description": "The article author's name, if available"},
        "publish_date": {"type": "string", "description": "Publication date in any recognizable format"},
        "main_image": {"type": "string", "description": "The main article image URL"},
        "content": {
            "type": "string",
            "description": "The full article content in clean text format, focusing on the main body text",
        },
        "keywords": {
            "type": "array",
            "items": {"type": "string"},
            "description": "5-10 relevant keywords or topics from the article",
        },
    },
    "required": ["title", "summary", "content"],
}

_PENDING_STATUSES = ("processing", "pending", "queued", "scraping")
_FAILED_STATUSES = ("failed", "cancelled")


def build_prompt(hint: Optional[str]) -> str:
    if hint:
        return f'Extract article information with special attention to mentions of "{hint}"'
    return "Extract article information focusing on news, stories, and organizational updates"


def map_results_to_urls(urls: Sequence[str], results: Sequence[Any]) -> Dict[str, ExtractedArticle]:
    """
    Attach extracted records to their source URLs.

    Records carrying a `url` that was submitted are matched on it; the rest are
    matched by position, and only while the index is inside the URL list.
    """
    urls = list(urls)
    mapped: Dict[str, ExtractedArticle] = {}
    for index, record in enumerate(results):
        if not isinstance(record, dict):
            continue
        record_url = record.get("url")
        if isinstance(record_url, str) and record_url in urls:
            url = record_url
        elif index < len(urls):
            url = urls[index]
        else:
            logger.warning(f"Dropping extraction result #{index}: no URL at that position ({len(urls)} submitted)")
            continue
        if url not in mapped:
            mapped[url] = ExtractedArticle.from_payload(url, record)
    return mapped


def _as_list(data: Any) -> List[Any]:
    if data is None:
        return []
    return data if isinstance(data, list) else [data]


class FirecrawlExtractService:
    """Wire client for Firecrawl's /extract endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: Optional[float] = None,
    ):
        self.api_key = api_key or settings.firecrawl_api_key
        self.api_base = (api_base or settings.firecrawl_api_base).rstrip("/")
        self._session = session
        self.rate_limiter = rate_limiter
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.http_timeout)

        if not self.api_key:
            logger.warning("FIRECRAWL_API_KEY not set. Extraction calls will fail.")

    async def _request(self, method: str, url: str, json: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        if not self.api_key:
            raise ExtractionFailed("FIRECRAWL_API_KEY not configured")
        if self.rate_limiter is not None:
            await self.rate_limiter.acquire("firecrawl")

        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession(timeout=self.timeout)
        try:
            async with session.request(
                method,
                url,
                json=json,
                headers={"Authorization": f"Bearer {self.api_key}"},
            ) as response:
                if response.status < 200 or response.status >= 300:
                    text = await response.text()
                    raise ExtractionFailed(f"Firecrawl {method} {url} -> {response.status}: {text[:300]}")
                data = await response.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExtractionFailed(f"Firecrawl {method} {url} failed: {e}") from e
        finally:
            if owns_session:
                await session.close()

        if not isinstance(data, dict):
            raise ExtractionFailed(f"Unexpected response from Firecrawl: {type(data).__name__}")
        return data

    async def submit(self, urls: Sequence[str], hint: Optional[str] = None) -> ExtractionSubmission:
        urls = list(urls)
        result = await self._request("POST", f"{self.api_base}/extract", {
            "urls": urls,
            "schema": ARTICLE_SCHEMA,
            "prompt": build_prompt(hint),
            "enableWebSearch": False,
        })

        if result.get("success") and result.get("data"):
            return ImmediateResults(articles=map_results_to_urls(urls, _as_list(result["data"])))
        if result.get("id"):
            logger.debug(f"Extract job queued with id {result['id']}")
            return QueuedJob(job_id=str(result["id"]))
        if result.get("success") is False:
            raise ExtractionFailed(f"Extract submission rejected: {result.get('error') or 'unknown error'}")
        raise ExtractionFailed("Unexpected response format from Firecrawl Extract")

    async def poll(self, job_id: str, urls: Sequence[str]) -> ExtractionJob:
        result = await self._request("GET", f"{self.api_base}/extract/{job_id}")
        status = str(result.get("status") or "").lower()
        job = ExtractionJob(job_id=job_id, urls=list(urls))

        if status == "completed":
            job.status = JobStatus.COMPLETED
            job.raw_result = _as_list(result.get("data"))
        elif status in _PENDING_STATUSES:
            job.status = JobStatus.PROCESSING
        elif status in _FAILED_STATUSES:
            job.status = JobStatus.FAILED
            job.error = result.get("error") or "Unknown error"
        else:
            raise ExtractionFailed(f"Unexpected job status: {status or '<missing>'}", job_id=job_id)
        return job


class ExtractionJobClient:
    def __init__(
        self,
        service: FirecrawlExtractService,
        poll_interval: Optional[float] = None,
        max_wait: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.service = service
        self.poll_interval = settings.extraction_poll_interval if poll_interval is None else poll_interval
        self.max_wait = settings.extraction_max_wait if max_wait is None else max_wait
        self._sleep = sleep
        self._clock = clock

    async def extract(self, urls: Sequence[str], hint: Optional[str] = None) -> Dict[str, ExtractedArticle]:
        """
        Extract structured articles for `urls`.

        Returns a url -> article map that may be missing URLs the service could
        not extract. Raises ExtractionFailed or ExtractionTimeout for the job.
        """
        urls = list(urls)
        submission = await self.service.submit(urls, hint)

        if isinstance(submission, ImmediateResults):
            logger.debug(f"Immediate extraction: {len(submission.articles)}/{len(urls)} URLs")
            return submission.articles

        return await self.wait_for(submission.job_id, urls)

    async def wait_for(self, job_id: str, urls: List[str]) -> Dict[str, ExtractedArticle]:
        deadline = self._clock() + self.max_wait
        attempts = 0
        while True:
            attempts += 1
            job = await self.service.poll(job_id, urls)

            if job.status == JobStatus.COMPLETED:
                logger.debug(f"Extract job {job_id} completed after {attempts} polls")
                return map_results_to_urls(urls, job.raw_result or [])
            if job.status == JobStatus.FAILED:
                raise ExtractionFailed(f"Extract job failed: {job.error}", job_id=job_id)

            if self._clock() + self.poll_interval > deadline:
                raise ExtractionTimeout(
                    f"Extract job {job_id} did not finish within {self.max_wait:.0f}s",
                    job_id=job_id,
                )
            await self._sleep(self.poll_interval)
