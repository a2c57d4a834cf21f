"""
Shorten Rate Limiter

Fixed-window admission control per client key, built on the `limits`
library (the same library slowapi uses under the hood).

Design Decisions:
- Window state lives in a limits storage backend, never in process memory
  shared between requests: async+memory:// for a single instance and tests,
  async+redis:// when several instances must share counters
- The window counter is incremented and compared in one atomic storage
  operation (INCR with expiry), so two requests racing at a window boundary
  cannot both start a fresh count
- Expired windows reset implicitly through the key's expiry
- A denial is advisory: no penalty beyond the natural end of the window
- Admission is decided by the single atomic hit; remaining and reset_at are
  read back in a second call, so under concurrency remaining may already
  include other requests' hits and is advisory only
- If the counter backend is unreachable the request is admitted and the
  failure logged, so an outage of the counter store does not take down shortening
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from limits import RateLimitItemPerSecond
from limits.aio.storage import Storage
from limits.aio.strategies import FixedWindowRateLimiter
from limits.errors import StorageError
from limits.storage import storage_from_string

from shortener.core.setting import settings

logger = logging.getLogger(__name__)

NAMESPACE = "shorten"


@dataclass(frozen=True)
class RateDecision:
    """Outcome of one admission check; remaining is a best-effort snapshot."""
    allowed: bool
    limit: int
    remaining: int
    reset_at: datetime


class RateLimiter:
    """
    Counts requests per client key in fixed windows of window_seconds.

    Example:
        limiter = RateLimiter(limit=10, window_seconds=60)
        decision = await limiter.admit("203.0.113.7")
        if not decision.allowed:
            ...  # reject until decision.reset_at
    """

    def __init__(
        self,
        limit: Optional[int] = None,
        window_seconds: Optional[int] = None,
        storage: Optional[Storage] = None,
    ):
        self.limit = limit or settings.SHORTEN_RATE_LIMIT
        self.window_seconds = window_seconds or settings.SHORTEN_RATE_WINDOW_SECONDS
        if storage is None:
            storage = storage_from_string(settings.RATE_LIMIT_STORAGE_URI, wrap_exceptions=True)
        self.storage = storage
        self.item = RateLimitItemPerSecond(self.limit, self.window_seconds)
        self.strategy = FixedWindowRateLimiter(self.storage)

    def _fallback_reset(self) -> datetime:
        return datetime.now(timezone.utc) + timedelta(seconds=self.window_seconds)

    async def admit(self, client_key: str) -> RateDecision:
        """
        Count one request for client_key and decide whether it may proceed.

        Returns:
            RateDecision with remaining quota (allowed) or the window reset time (denied)
        """
        try:
            allowed = await self.strategy.hit(self.item, NAMESPACE, client_key)
            stats = await self.strategy.get_window_stats(self.item, NAMESPACE, client_key)
        except StorageError as e:
            logger.error(f"Rate limit storage unavailable, admitting request: {e}", exc_info=True)
            return RateDecision(
                allowed=True,
                limit=self.limit,
                remaining=self.limit - 1,
                reset_at=self._fallback_reset(),
            )

        reset_at = datetime.fromtimestamp(stats.reset_time, tz=timezone.utc)
        decision = RateDecision(
            allowed=allowed,
            limit=self.limit,
            remaining=max(0, stats.remaining),
            reset_at=reset_at,
        )

        if not allowed:
            logger.info(f"Rate limit exceeded for {client_key}, window resets at {reset_at.isoformat()}")
        return decision

    async def reset(self, client_key: str) -> None:
        """Forget the current window for client_key."""
        await self.strategy.clear(self.item, NAMESPACE, client_key)


_rate_limiter: Optional[RateLimiter] = None


def get_rate_limiter() -> RateLimiter:
    """FastAPI dependency returning the process-wide limiter (state lives in its storage)."""
    global _rate_limiter
    if _rate_limiter is None:
        _rate_limiter = RateLimiter()
    return _rate_limiter
