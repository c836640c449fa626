"""Rate limiting for outbound sink calls.

Uses pyrate-limiter with an in-memory bucket.
"""

from logbatch.core.config import RateLimitSettings
from logbatch.core.rate_limit.limiter import NoOpLimiter, RateLimiter


def create_limiter(settings: RateLimitSettings) -> RateLimiter | NoOpLimiter:
    """Build the limiter described by settings (NoOpLimiter when interval_ms is 0)."""
    if settings.interval_ms == 0:
        return NoOpLimiter()
    return RateLimiter(settings.name, interval_ms=settings.interval_ms)


__all__ = ["NoOpLimiter", "RateLimiter", "create_limiter"]
