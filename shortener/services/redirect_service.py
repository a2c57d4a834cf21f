"""
Redirect Service

This service resolves short codes to their destination.

Design Decisions:
- Separate service for redirect operations
- Unknown and expired codes are distinct outcomes so the API can answer 404 vs 410
- Click counting is not done here: the endpoint schedules it as a background
  task so analytics never delay or fail a redirect
"""

from datetime import datetime
from typing import Optional

from shortener.core.exceptions import LinkExpiredError
from shortener.db.models import ShortLink, as_utc, utcnow
from shortener.services.link_store import LinkStore


class RedirectService:
    """
    Service for handling URL redirections.

    This service encapsulates redirect logic, making it easy to
    move to a separate microservice if needed.
    """

    def __init__(self, store: LinkStore):
        """
        Initialize the redirect service.

        Args:
            store: Link store the codes are resolved against
        """
        self.store = store

    async def resolve(self, short_code: str, now: Optional[datetime] = None) -> ShortLink:
        """
        Find the active link for a short code.

        Raises:
            ShortCodeNotFoundError: If the code was never issued or was deleted
            LinkExpiredError: If the link exists but its expiry has passed
        """
        link = await self.store.get(short_code)
        if link.is_expired(now or utcnow()):
            raise LinkExpiredError(short_code, as_utc(link.expires_at))
        return link
