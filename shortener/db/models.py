"""
Database Models for URL Shortener Service

This module defines the SQLModel database schema for:
- ShortLink: Maps a short code to its target URL, owner, expiry and click count

Design Decisions:
- Unique index on code: the database, not the application, guarantees
  that two concurrent inserts cannot claim the same code
- Index on owner_id for the dashboard listing (ordered by created_at)
- click_count is only ever changed with an in-database UPDATE ... + 1
- Deleted links keep their row as a tombstone (deleted_at) so a code is never reissued
"""

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlmodel import Column, Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; treat them as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class ShortLink(SQLModel, table=True):
    """
    Main table storing URL shortening mappings.

    Fields:
    - id: Auto-incrementing surrogate key
    - code: Unique short code, immutable once created
    - target_url: The long URL that was shortened, immutable
    - owner_id: Opaque principal that created the link (None for anonymous)
    - created_at: Timestamp when URL was shortened
    - expires_at: Optional expiry; past it the link no longer redirects
    - click_count: Number of successful redirects (best-effort)
    - deleted_at: Set when the owner deletes the link
    """
    __tablename__ = "short_links"
    __table_args__ = (
        Index("ix_short_links_owner_created", "owner_id", "created_at"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    code: str = Field(
        sa_column=Column(String(32), nullable=False, unique=True, index=True),
        max_length=32
    )
    target_url: str = Field(sa_column=Column(Text, nullable=False))
    owner_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True)
    )
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True)
    )
    expires_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )
    click_count: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))
    deleted_at: Optional[datetime] = Field(
        default=None,
        sa_column=Column(DateTime(timezone=True), nullable=True)
    )

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        expires_at = as_utc(self.expires_at)
        if expires_at is None:
            return False
        return expires_at <= (now or utcnow())

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
