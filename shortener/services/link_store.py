"""
Link Store

Persistence contract for short links and its SQLAlchemy implementation.

Design Decisions:
- Uniqueness of codes is enforced by the unique index on short_links.code;
  create() maps the resulting IntegrityError to DuplicateCodeError
- Click counts are incremented with a single UPDATE ... SET click_count = click_count + 1
  (no read-modify-write in Python, so concurrent redirects never lose updates)
- get() returns expired links too; callers decide between active and expired
- delete() leaves a tombstone so a deleted code is never handed out again
- Writes are retried once after a short backoff on transient OperationalError;
  reads are not retried
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Optional, Sequence, TypeVar

from sqlalchemy import exists, select, update
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from shortener.core.exceptions import (
    DatabaseError,
    DuplicateCodeError,
    ForbiddenError,
    ShortCodeNotFoundError,
)
from shortener.core.setting import settings
from shortener.db.models import ShortLink, utcnow

logger = logging.getLogger(__name__)

T = TypeVar("T")


class LinkStore(ABC):
    """Storage contract used by the allocator and the shorten/redirect services."""

    @abstractmethod
    async def create(self, link: ShortLink) -> ShortLink:
        """Insert a new link; raises DuplicateCodeError if the code is taken."""

    @abstractmethod
    async def exists(self, short_code: str) -> bool:
        """True if the code was ever issued (deleted codes included)."""

    @abstractmethod
    async def get(self, short_code: str) -> ShortLink:
        """Return the link regardless of expiry; raises ShortCodeNotFoundError."""

    @abstractmethod
    async def increment_clicks(self, short_code: str) -> None:
        """Atomically add one to click_count; raises ShortCodeNotFoundError."""

    @abstractmethod
    async def list_by_owner(self, owner_id: str) -> Sequence[ShortLink]:
        """Links owned by owner_id, newest first."""

    @abstractmethod
    async def delete(self, short_code: str, owner_id: Optional[str]) -> None:
        """Delete an owned link; raises ShortCodeNotFoundError or ForbiddenError."""


class SQLLinkStore(LinkStore):
    """
    LinkStore backed by the short_links table.

    Every mutating method commits its own transaction, so each operation
    is a single atomic request against the database.
    """

    def __init__(self, session: AsyncSession, write_retry_backoff: Optional[float] = None):
        """
        Args:
            session: Async database session for database operations
            write_retry_backoff: Seconds to wait before retrying a failed write
        """
        self.session = session
        if write_retry_backoff is None:
            write_retry_backoff = settings.STORAGE_WRITE_RETRY_BACKOFF_SECONDS
        self.write_retry_backoff = write_retry_backoff

    async def _write(self, operation: Callable[[], Awaitable[T]], description: str) -> T:
        """Run a write, retrying once after a backoff on OperationalError."""
        try:
            return await operation()
        except OperationalError as e:
            await self.session.rollback()
            logger.warning(f"Transient storage error during {description}, retrying: {e}")

        await asyncio.sleep(self.write_retry_backoff)
        try:
            return await operation()
        except OperationalError as e:
            await self.session.rollback()
            raise DatabaseError(f"Failed to {description}", original_error=e)

    async def create(self, link: ShortLink) -> ShortLink:
        async def insert() -> ShortLink:
            self.session.add(link)
            await self.session.flush()
            await self.session.commit()
            return link

        try:
            return await self._write(insert, f"create short link '{link.code}'")
        except IntegrityError:
            await self.session.rollback()
            raise DuplicateCodeError(link.code)

    async def exists(self, short_code: str) -> bool:
        statement = select(exists().where(ShortLink.code == short_code))
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to look up short code '{short_code}'", original_error=e)
        return bool(result.scalar())

    async def _find(self, short_code: str) -> Optional[ShortLink]:
        statement = select(ShortLink).where(
            ShortLink.code == short_code,
            ShortLink.deleted_at.is_(None),
        ).execution_options(populate_existing=True)
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseError(f"Failed to read short code '{short_code}'", original_error=e)
        return result.scalar_one_or_none()

    async def get(self, short_code: str) -> ShortLink:
        link = await self._find(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)
        return link

    async def increment_clicks(self, short_code: str) -> None:
        statement = (
            update(ShortLink)
            .where(ShortLink.code == short_code, ShortLink.deleted_at.is_(None))
            .values(click_count=ShortLink.click_count + 1)
            .execution_options(synchronize_session=False)
        )

        async def increment() -> int:
            result = await self.session.execute(statement)
            await self.session.commit()
            return result.rowcount

        updated = await self._write(increment, f"increment clicks for '{short_code}'")
        if not updated:
            raise ShortCodeNotFoundError(short_code)

    async def list_by_owner(self, owner_id: str) -> Sequence[ShortLink]:
        statement = (
            select(ShortLink)
            .where(ShortLink.owner_id == owner_id, ShortLink.deleted_at.is_(None))
            .order_by(ShortLink.created_at.desc(), ShortLink.id.desc())
            .execution_options(populate_existing=True)
        )
        try:
            result = await self.session.execute(statement)
        except SQLAlchemyError as e:
            raise DatabaseError("Failed to list links for owner", original_error=e)
        return list(result.scalars().all())

    async def delete(self, short_code: str, owner_id: Optional[str]) -> None:
        link = await self._find(short_code)
        if link is None:
            raise ShortCodeNotFoundError(short_code)

        # Anonymous links have no owner who could ever delete them
        if link.owner_id is None or owner_id is None or link.owner_id != owner_id:
            raise ForbiddenError(short_code)

        statement = (
            update(ShortLink)
            .where(
                ShortLink.code == short_code,
                ShortLink.owner_id == owner_id,
                ShortLink.deleted_at.is_(None),
            )
            .values(deleted_at=utcnow())
            .execution_options(synchronize_session=False)
        )

        async def tombstone() -> int:
            result = await self.session.execute(statement)
            await self.session.commit()
            return result.rowcount

        deleted = await self._write(tombstone, f"delete short code '{short_code}'")
        if not deleted:
            # Lost a race with a concurrent delete
            raise ShortCodeNotFoundError(short_code)

        logger.info(f"Short code {short_code} deleted by owner")
