"""
Background Task Helpers

Provides helper functions for background tasks that create their own database sessions.
Background tasks cannot use the endpoint's session as it's closed after the endpoint returns.
"""

import asyncio
import logging
from typing import Optional

from sqlalchemy.ext.asyncio import async_sessionmaker

from shortener.core.exceptions import ShortCodeNotFoundError
from shortener.core.setting import settings
from shortener.db.session import async_session_maker
from shortener.services.link_store import SQLLinkStore

logger = logging.getLogger(__name__)


async def _increment(session_maker: async_sessionmaker, short_code: str) -> None:
    async with session_maker() as session:
        # Fire-and-forget: no write retry, a lost click is acceptable
        store = SQLLinkStore(session, write_retry_backoff=0)
        await store.increment_clicks(short_code)


async def increment_click_count_background(
    short_code: str,
    session_maker: Optional[async_sessionmaker] = None,
    timeout: Optional[float] = None
) -> bool:
    """
    Background task to increment the click count of a short link.

    Uses a database-level increment for atomicity. The attempt is bounded
    by a sub-second timeout and never raises: failures are logged and the
    click is dropped.

    Args:
        short_code: The short code that was visited
        session_maker: Session factory (defaults to the application's)
        timeout: Seconds before the attempt is abandoned

    Returns:
        True if the click was recorded
    """
    session_maker = session_maker or async_session_maker
    if timeout is None:
        timeout = settings.CLICK_INCREMENT_TIMEOUT_SECONDS

    try:
        await asyncio.wait_for(_increment(session_maker, short_code), timeout=timeout)
        return True
    except asyncio.TimeoutError:
        logger.warning(f"Click increment for {short_code} timed out after {timeout}s, dropping it")
    except ShortCodeNotFoundError:
        logger.warning(f"Click increment for {short_code} skipped: link no longer exists")
    except Exception as e:
        logger.error(
            f"Failed to increment click count for {short_code}: {str(e)}",
            exc_info=True
        )
    return False
