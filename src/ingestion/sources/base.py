"""
Discovery source interface and the shared aiohttp helper.
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import aiohttp

from src.core.config import settings
from src.core.exceptions import QuotaExhausted, SourceUnavailable
from src.ingestion.database import OrganizationModel
from src.ingestion.ops.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


class DiscoverySource(ABC):
    """
    A strategy that turns one organization into raw candidate URLs.

    Implementations raise SourceUnavailable / SourceExhausted on error. They never
    dedupe against the store; that is the orchestrator's job.
    """

    name: str = ""

    def applies_to(self, organization: OrganizationModel) -> bool:
        """Whether this source has enough to work with for the organization."""
        return True

    @abstractmethod
    async def discover(self, organization: OrganizationModel, timeframe_days: int) -> List[str]:
        """Return candidate article URLs for the organization."""
        pass


class HttpSource(DiscoverySource):
    """
    Base for sources that talk HTTP. Opens one aiohttp session per discover()
    call unless a session is injected.
    """

    rate_limit_key: Optional[str] = None

    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        rate_limiter: Optional[RateLimiter] = None,
        timeout: Optional[float] = None,
    ):
        self._session = session
        self.rate_limiter = rate_limiter
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.http_timeout)

    async def _acquire(self) -> None:
        if self.rate_limiter is not None and self.rate_limit_key:
            await self.rate_limiter.acquire(self.rate_limit_key)

    def _raise_for_status(self, status: int, url: str, body: str) -> None:
        if status in (402, 429):
            raise QuotaExhausted(
                f"{self.name}: HTTP {status} from {url}: {body[:200]}",
                source=self.name,
                status_code=status,
            )
        if status < 200 or status >= 300:
            raise SourceUnavailable(
                f"{self.name}: HTTP {status} from {url}: {body[:200]}",
                source=self.name,
                status_code=status,
            )

    async def _request(self, method: str, url: str, *, as_json: bool, **kwargs: Any) -> Any:
        await self._acquire()
        owns_session = self._session is None
        session = self._session or aiohttp.ClientSession(timeout=self.timeout)
        try:
            async with session.request(method, url, **kwargs) as response:
                if response.status < 200 or response.status >= 300:
                    body = await response.text()
                    self._raise_for_status(response.status, url, body)
                if as_json:
                    return await response.json(content_type=None)
                return await response.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise SourceUnavailable(f"{self.name}: {method} {url} failed: {e}", source=self.name) from e
        finally:
            if owns_session:
                await session.close()

    async def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None,
                        headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._request("GET", url, as_json=True, params=params, headers=headers)

    async def _get_text(self, url: str, headers: Optional[Dict[str, str]] = None) -> str:
        return await self._request("GET", url, as_json=False, headers=headers)

    async def _post_json(self, url: str, payload: Dict[str, Any],
                         headers: Optional[Dict[str, str]] = None) -> Any:
        return await self._request("POST", url, as_json=True, json=payload, headers=headers)
