"""
Query-expansion search source backed by Google Custom Search (news results).
"""
import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Tuple

import aiohttp

from src.core.config import settings
from src.core.exceptions import QuotaExhausted, SourceUnavailable
from src.core.utils import is_http_url
from src.ingestion.database import OrganizationModel
from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.ops.url_filters import dedupe_preserving_order
from src.ingestion.sources.base import HttpSource

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.googleapis.com/customsearch/v1"

TOPICS = (
    "recent news developments",
    "impact stories achievements",
    "partnerships collaborations",
    "awards recognition",
)

RECENCY_WINDOWS = ("y1", "y3")

_QUOTA_REASONS = ("rateLimitExceeded", "dailyLimitExceeded", "quotaExceeded", "userRateLimitExceeded")


def build_queries(organization_name: str, topics: Sequence[str] = TOPICS) -> List[str]:
    return [f'"{organization_name}" {topic}' for topic in topics]


class GoogleSearchSource(HttpSource):
    name = "search"
    rate_limit_key = "google_search"

    def __init__(
        self,
        api_key: Optional[str] = None,
        engine_id: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
        query_delay: float = 0.1,
        results_per_query: int = 10,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        super().__init__(session=session, rate_limiter=rate_limiter)
        self.api_key = api_key or settings.google_search_api_key
        self.engine_id = engine_id or settings.google_search_engine_id
        self.query_delay = query_delay
        self.results_per_query = results_per_query
        self._sleep = sleep

        if not self.configured:
            logger.warning("Google search credentials not set. Search discovery will be skipped.")

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.engine_id)

    def _raise_for_status(self, status: int, url: str, body: str) -> None:
        # CSE reports exhausted quota as 403 with a reason in the body
        if status == 403 and any(reason in body for reason in _QUOTA_REASONS):
            raise QuotaExhausted("search quota exceeded: HTTP 403", source=self.name, status_code=status)
        super()._raise_for_status(status, url, body)

    async def query(self, text: str, recency_window: str) -> List[str]:
        """Run one news search and return result links."""
        params = {
            "key": self.api_key,
            "cx": self.engine_id,
            "q": text,
            "tbm": "nws",
            "dateRestrict": recency_window,
            "num": self.results_per_query,
        }
        data = await self._get_json(SEARCH_URL, params=params)
        if not isinstance(data, dict):
            return []

        error = data.get("error")
        if isinstance(error, dict):
            reasons = [item.get("reason") for item in error.get("errors") or [] if isinstance(item, dict)]
            message = error.get("message") or "search error"
            if error.get("code") == 429 or any(reason in _QUOTA_REASONS for reason in reasons):
                raise QuotaExhausted(f"search quota exceeded: {message}", source=self.name, status_code=429)
            raise SourceUnavailable(f"search failed: {message}", source=self.name, status_code=error.get("code"))

        links = []
        for item in data.get("items") or []:
            link = item.get("link") if isinstance(item, dict) else None
            if is_http_url(link):
                links.append(link)
        return links

    def plan(self, organization_name: str) -> List[Tuple[str, str]]:
        return [(query, window) for query in build_queries(organization_name) for window in RECENCY_WINDOWS]

    async def discover(self, organization: OrganizationModel, timeframe_days: int) -> List[str]:
        if not self.configured:
            raise SourceUnavailable("Google search API key or engine id not configured", source=self.name)

        plan = self.plan(organization.name)
        urls: List[str] = []
        failures = 0

        for index, (text, window) in enumerate(plan):
            if index > 0 and self.query_delay > 0:
                await self._sleep(self.query_delay)
            try:
                urls.extend(await self.query(text, window))
            except QuotaExhausted:
                if not urls:
                    raise
                logger.warning(f"Search quota exhausted for {organization.name}, keeping {len(urls)} URLs found so far")
                break
            except SourceUnavailable as e:
                failures += 1
                logger.warning(f"Search query failed ({text!r}, {window}): {e}")

        if failures == len(plan):
            raise SourceUnavailable(f"All {failures} search queries failed for {organization.name}", source=self.name)

        urls = dedupe_preserving_order(urls)
        logger.info(f"Search found {len(urls)} URLs for {organization.name}")
        return urls
