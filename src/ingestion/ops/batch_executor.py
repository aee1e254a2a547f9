"""
Rate-limited batch executor.

Runs an async processor over a list of items in chunks of `concurrency`.
Chunks run strictly one after another with `batch_delay` seconds between them;
items inside a chunk run concurrently and are settled independently, so one
item's exception never cancels its siblings. Every item yields exactly one
ItemOutcome. Retries are the processor's business, not the executor's.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Generic, List, Optional, Sequence, TypeVar

from src.core.config import settings
from src.core.data_types import ItemOutcome

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

# (completed, total, current_item_or_None)
ProgressCallback = Callable[[int, int, Optional[T]], None]


def log_progress(completed: int, total: int, current=None) -> None:
    if current is not None:
        logger.debug(f"Progress: {completed}/{total} - processing: {current}")
    else:
        logger.debug(f"Progress: {completed}/{total} completed")


class RateLimitedExecutor(Generic[T, R]):
    def __init__(
        self,
        concurrency: Optional[int] = None,
        batch_delay: Optional[float] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.concurrency = settings.processing_concurrency if concurrency is None else concurrency
        self.batch_delay = settings.processing_batch_delay if batch_delay is None else batch_delay
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be a positive integer, got {self.concurrency}")
        if self.batch_delay < 0:
            raise ValueError(f"batch_delay must be non-negative, got {self.batch_delay}")
        self._sleep = sleep

    async def run(
        self,
        items: Sequence[T],
        processor: Callable[[T], Awaitable[R]],
        on_progress: Optional[ProgressCallback] = log_progress,
    ) -> List[ItemOutcome[T, R]]:
        items = list(items)
        total = len(items)
        completed = 0
        outcomes: List[ItemOutcome[T, R]] = []

        def notify(current: Optional[T] = None) -> None:
            if on_progress is not None:
                on_progress(completed, total, current)

        async def settle(item: T) -> ItemOutcome[T, R]:
            nonlocal completed
            try:
                notify(item)
                result = await processor(item)
            except Exception as e:
                completed += 1
                notify()
                logger.debug(f"Item failed: {item}: {e}")
                return ItemOutcome(item=item, error=e)
            completed += 1
            notify()
            return ItemOutcome(item=item, result=result)

        for chunk_index, start in enumerate(range(0, total, self.concurrency)):
            if start > 0 and self.batch_delay > 0:
                logger.debug(f"Waiting {self.batch_delay}s before next chunk...")
                await self._sleep(self.batch_delay)

            chunk = items[start:start + self.concurrency]
            logger.info(f"Processing chunk {chunk_index + 1}: {len(chunk)} items")

            settled = await asyncio.gather(*(settle(item) for item in chunk), return_exceptions=True)
            for item, outcome in zip(chunk, settled):
                if isinstance(outcome, BaseException):
                    # settle() only lets BaseException subclasses such as CancelledError escape
                    outcomes.append(ItemOutcome(item=item, error=outcome))
                else:
                    outcomes.append(outcome)

        return outcomes
