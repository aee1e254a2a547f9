"""
Sliding-window rate limiter for external API sources.
"""
import asyncio
import logging
import time
from collections import defaultdict
from typing import Awaitable, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Manages request budgets for the external services the pipeline calls.
    """

    LIMITS = {
        "google_search": {"limit": 100, "period": 60},   # CSE: 100 queries/min
        "firecrawl":     {"limit": 20,  "period": 60},   # free/hobby tier
        "news_feed":     {"limit": 60,  "period": 60},   # 1/sec average
    }

    def __init__(
        self,
        limits: Optional[Dict[str, Dict[str, int]]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.limits = limits if limits is not None else dict(self.LIMITS)
        self.usage: Dict[str, List[float]] = defaultdict(list)
        self._lock = asyncio.Lock()
        self._clock = clock
        self._sleep = sleep

    async def acquire(self, source: str) -> None:
        """Wait until the rate limit allows a request."""
        if source not in self.limits:
            return

        config = self.limits[source]

        async with self._lock:
            while True:
                now = self._clock()
                self.usage[source] = [
                    t for t in self.usage[source]
                    if t > now - config["period"]
                ]

                if len(self.usage[source]) < config["limit"]:
                    self.usage[source].append(now)
                    return

                oldest = min(self.usage[source])
                wait_time = oldest + config["period"] - now + 0.1
                logger.debug(f"Rate limited on {source}, waiting {wait_time:.1f}s")
                await self._sleep(min(wait_time, 5))

    def get_usage(self, source: str) -> Dict[str, int]:
        """Return current usage stats for a source."""
        if source not in self.limits:
            return {"used": 0, "limit": 0}

        config = self.limits[source]
        now = self._clock()
        recent = [t for t in self.usage[source] if t > now - config["period"]]
        return {
            "used": len(recent),
            "limit": config["limit"],
            "period": config["period"],
        }
