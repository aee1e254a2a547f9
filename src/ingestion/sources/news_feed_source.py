"""
Curated-feed source: scrape article links from an organization's news index page.
"""
import logging
from typing import List, Optional
from urllib.parse import urljoin

import aiohttp
from bs4 import BeautifulSoup

from src.core.config import settings
from src.core.exceptions import SourceUnavailable
from src.ingestion.database import OrganizationModel
from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.ops.url_filters import dedupe_preserving_order, is_candidate_article_url, strip_fragment
from src.ingestion.sources.base import HttpSource

logger = logging.getLogger(__name__)

USER_AGENT = "Mozilla/5.0 (compatible; ArticleBot/1.0; +https://example.com/bot)"


def extract_article_links(html: str, page_url: str, max_links: int = 50) -> List[str]:
    """
    Pull candidate article links out of a news index page, in document order.
    """
    soup = BeautifulSoup(html, "html.parser")
    links = []
    for anchor in soup.find_all("a", href=True):
        href = anchor["href"].strip()
        if not href or href.startswith(("mailto:", "tel:", "javascript:")):
            continue
        url = strip_fragment(urljoin(page_url, href))
        if is_candidate_article_url(url, page_url=page_url):
            links.append(url)
    return dedupe_preserving_order(links)[:max_links]


class NewsFeedSource(HttpSource):
    name = "news_feed"
    rate_limit_key = "news_feed"

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
        max_links: Optional[int] = None,
    ):
        super().__init__(session=session, rate_limiter=rate_limiter)
        self.max_links = max_links or settings.feed_max_links

    def applies_to(self, organization: OrganizationModel) -> bool:
        return bool(organization.news_url)

    async def fetch(self, url: str) -> str:
        return await self._get_text(url, headers={
            "User-Agent": USER_AGENT,
            "Accept": "text/html,application/xhtml+xml",
        })

    async def discover(self, organization: OrganizationModel, timeframe_days: int) -> List[str]:
        if not organization.news_url:
            raise SourceUnavailable(f"No news URL configured for {organization.name}", source=self.name)

        html = await self.fetch(organization.news_url)
        links = extract_article_links(html, organization.news_url, self.max_links)
        logger.info(f"News feed {organization.news_url} yielded {len(links)} article links")
        return links
