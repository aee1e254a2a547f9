"""
Site-discovery source: ask Firecrawl's map endpoint for URLs on the organization's site.
"""
import logging
from typing import List, Optional

import aiohttp

from src.core.config import settings
from src.core.exceptions import SourceUnavailable
from src.ingestion.database import OrganizationModel
from src.ingestion.ops.rate_limiter import RateLimiter
from src.ingestion.ops.url_filters import filter_site_map_links
from src.ingestion.sources.base import HttpSource

logger = logging.getLogger(__name__)


class SiteMapSource(HttpSource):
    name = "site_map"
    rate_limit_key = "firecrawl"

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
        limit: Optional[int] = None,
    ):
        super().__init__(session=session, rate_limiter=rate_limiter)
        self.api_key = api_key or settings.firecrawl_api_key
        self.api_base = (api_base or settings.firecrawl_api_base).rstrip("/")
        self.limit = limit or settings.site_map_limit

        if not self.api_key:
            logger.warning("FIRECRAWL_API_KEY not set. Site-map discovery will be skipped.")

    def applies_to(self, organization: OrganizationModel) -> bool:
        return bool(organization.website)

    async def map_site(self, root_url: str, organization_name: str) -> List[str]:
        data = await self._post_json(
            f"{self.api_base}/map",
            {
                "url": root_url,
                "search": f"news articles blog press releases media {organization_name}",
                "ignoreSitemap": False,
                "limit": self.limit,
            },
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        if not isinstance(data, dict):
            return []
        if data.get("success") is False:
            raise SourceUnavailable(f"map failed: {data.get('error') or 'unknown error'}", source=self.name)
        return [link for link in data.get("links") or [] if isinstance(link, str)]

    async def discover(self, organization: OrganizationModel, timeframe_days: int) -> List[str]:
        if not self.api_key:
            raise SourceUnavailable("Firecrawl API key not configured", source=self.name)
        if not organization.website:
            raise SourceUnavailable(f"No website configured for {organization.name}", source=self.name)

        links = await self.map_site(organization.website, organization.name)
        urls = filter_site_map_links(links, organization.name, limit=self.limit)
        logger.info(f"Site map returned {len(links)} links for {organization.name}, kept {len(urls)}")
        return urls
