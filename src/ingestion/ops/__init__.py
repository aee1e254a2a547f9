from src.ingestion.ops.batch_executor import RateLimitedExecutor
from src.ingestion.ops.rate_limiter import RateLimiter

__all__ = ["RateLimitedExecutor", "RateLimiter"]
