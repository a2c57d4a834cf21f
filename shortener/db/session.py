"""
Database Session Management with Connection Pooling

This module handles async database connections using SQLAlchemy's async engine.
The adapter returned for DATABASE_URL supplies all backend-specific options.

Key Features:
- Async session management: Proper async context management
- Error handling: Automatic rollback on exceptions
- Session factory dependency so background tasks can open their own sessions
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession as SQLModelAsyncSession

from shortener.core.setting import settings
from shortener.db.adapters import get_database_adapter

db_adapter = get_database_adapter(settings.DATABASE_URL)

engine = db_adapter.create_engine(settings.DATABASE_URL)


def make_session_maker(bind: AsyncEngine) -> async_sessionmaker:
    """Build a session factory configured the way the service expects."""
    return async_sessionmaker(
        bind,
        class_=SQLModelAsyncSession,
        expire_on_commit=False,  # Prevents SQLAlchemy from expiring objects after commit
        autoflush=False,
    )


async_session_maker = make_session_maker(engine)


async def init_models(bind: AsyncEngine = engine) -> None:
    """Create any missing tables (migrations remain the source of truth in production)."""
    # Import registers the table models on SQLModel.metadata
    from shortener.db import models  # noqa: F401

    async with bind.begin() as connection:
        await connection.run_sync(SQLModel.metadata.create_all)


def get_session_maker() -> async_sessionmaker:
    """
    Dependency returning the session factory.

    Background tasks outlive the request session, so they receive the
    factory and open a session of their own.
    """
    return async_session_maker


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency function for FastAPI to get database session.

    This function:
    - Creates a new async session from the pool
    - Yields it to the endpoint
    - Automatically commits on success
    - Rolls back on exception
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
