"""
URL Shortening Service

This service handles the core business logic for URL shortening:
- Validating the target URL (absolute, http/https only)
- Admission control through the shorten rate limiter
- Allocating a random short code and writing the mapping
- Building the canonical short URL

Design Decisions:
- Validation happens before the rate limiter so malformed input does not
  consume the caller's quota
- The allocator's existence check and the insert are not atomic together;
  if the insert loses a race (DuplicateCodeError) allocation is retried once
- Every call creates a new link, even for a URL shortened before, so each
  owner gets independent click counts and expiry
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from shortener.core.exceptions import (
    DuplicateCodeError,
    InvalidURLError,
    RateLimitedError,
)
from shortener.core.setting import settings
from shortener.core.validators import url_rejection_reason
from shortener.db.models import ShortLink, utcnow
from shortener.services.code_allocator import CodeAllocator
from shortener.services.link_store import LinkStore
from shortener.services.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

# One extra allocation after the store reports a duplicate code
DUPLICATE_CODE_RETRIES = 1


def build_short_url(base_url: str, short_code: str) -> str:
    """Join the public base URL and a short code."""
    return f"{base_url.rstrip('/')}/{short_code}"


@dataclass(frozen=True)
class ShortenResult:
    """A freshly created link plus what the caller needs to present it."""
    link: ShortLink
    short_url: str
    rate_limit_remaining: int
    rate_limit: int


class ShortenService:
    """
    Core business logic for URL shortening.

    Separated from API layer for testability and maintainability.
    """

    def __init__(
        self,
        store: LinkStore,
        rate_limiter: RateLimiter,
        allocator: Optional[CodeAllocator] = None,
        base_url: Optional[str] = None,
        default_ttl_seconds: Optional[int] = None,
    ):
        self.store = store
        self.rate_limiter = rate_limiter
        self.allocator = allocator or CodeAllocator(store)
        self.base_url = base_url or settings.BASE_URL
        if default_ttl_seconds is None:
            default_ttl_seconds = settings.DEFAULT_LINK_TTL_SECONDS
        self.default_ttl_seconds = default_ttl_seconds

    def _expiry(self, created_at: datetime, expires_in_seconds: Optional[int]) -> Optional[datetime]:
        ttl = expires_in_seconds if expires_in_seconds is not None else self.default_ttl_seconds
        if ttl is None:
            return None
        return created_at + timedelta(seconds=ttl)

    async def shorten(
        self,
        target_url: str,
        client_key: str,
        owner_id: Optional[str] = None,
        expires_in_seconds: Optional[int] = None,
    ) -> ShortenResult:
        """
        Create a new short link for target_url.

        Args:
            target_url: The long URL to shorten
            client_key: Identity the rate limit is counted against
            owner_id: Authenticated principal creating the link, if any
            expires_in_seconds: Lifetime of the link (None = default policy)

        Returns:
            ShortenResult with the stored link and its canonical short URL

        Raises:
            InvalidURLError: If URL is malformed or not http/https
            RateLimitedError: If client_key has no quota left in this window
            AllocationExhaustedError: If no free code could be found
            DatabaseError: If the write fails after its retry
        """
        reason = url_rejection_reason(target_url)
        if reason:
            raise InvalidURLError(target_url, reason=reason)

        if expires_in_seconds is not None and expires_in_seconds <= 0:
            raise InvalidURLError(target_url, reason="Expiry must be in the future")

        decision = await self.rate_limiter.admit(client_key)
        if not decision.allowed:
            raise RateLimitedError(client_key, decision.reset_at)

        link = await self._create_link(target_url, owner_id, expires_in_seconds)
        logger.info(f"Created short code {link.code} (owner={'yes' if owner_id else 'anonymous'})")

        return ShortenResult(
            link=link,
            short_url=build_short_url(self.base_url, link.code),
            rate_limit_remaining=decision.remaining,
            rate_limit=decision.limit,
        )

    async def _create_link(
        self,
        target_url: str,
        owner_id: Optional[str],
        expires_in_seconds: Optional[int],
    ) -> ShortLink:
        attempts_left = 1 + DUPLICATE_CODE_RETRIES
        while True:
            attempts_left -= 1
            code = await self.allocator.allocate()
            created_at = utcnow()
            link = ShortLink(
                code=code,
                target_url=target_url,
                owner_id=owner_id,
                created_at=created_at,
                expires_at=self._expiry(created_at, expires_in_seconds),
                click_count=0,
            )
            try:
                return await self.store.create(link)
            except DuplicateCodeError:
                if attempts_left <= 0:
                    raise
                logger.warning(f"Short code {code} was claimed concurrently, allocating a new one")
