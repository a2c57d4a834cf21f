"""
Statistics Service

This service handles retrieving statistics for short links on the owner's dashboard.

Design Decisions:
- Only the owner may see a link's statistics
- click_count is read from the link row (kept current by atomic increments)
"""


from shortener.core.exceptions import ForbiddenError
from shortener.db.models import as_utc, utcnow
from shortener.services.link_store import LinkStore
from shortener.services.shorten_service import build_short_url


class StatsService:
    """Service for retrieving link statistics."""

    def __init__(self, store: LinkStore, base_url: str):
        self.store = store
        self.base_url = base_url

    async def get_stats(self, short_code: str, owner_id: str) -> dict:
        """
        Get statistics for one of the owner's links.

        Returns:
            Dictionary with code, short_url, target_url, click_count,
            created_at, expires_at and is_expired

        Raises:
            ShortCodeNotFoundError: If the code does not exist
            ForbiddenError: If owner_id does not own the link
        """
        link = await self.store.get(short_code)
        if link.owner_id is None or link.owner_id != owner_id:
            raise ForbiddenError(short_code)

        return {
            "code": link.code,
            "short_url": build_short_url(self.base_url, link.code),
            "target_url": link.target_url,
            "click_count": link.click_count,
            "created_at": as_utc(link.created_at),
            "expires_at": as_utc(link.expires_at),
            "is_expired": link.is_expired(utcnow()),
        }
