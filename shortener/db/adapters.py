"""
Database Adapters

Concrete DatabaseAdapter implementations:

- SQLiteAdapter: file-based, used for local development, tests and
  single-instance deployments
- PostgreSQLAdapter: server-based with a real connection pool, used
  when several service instances share one database
"""

from typing import Any, Optional

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool, Pool

from shortener.db.interface import DatabaseAdapter


class SQLiteAdapter(DatabaseAdapter):
    """
    SQLite database adapter implementation.

    SQLite serializes writers with a file lock. The busy timeout makes a
    concurrent writer wait for the lock instead of failing immediately,
    which keeps concurrent inserts and click increments correct.
    """

    def __init__(self, busy_timeout: float = 30.0):
        self.busy_timeout = busy_timeout

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            poolclass=self.get_pool_class(),
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> type[NullPool]:
        # File-based database doesn't benefit from connection pooling
        return NullPool

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "check_same_thread": False,
            "timeout": self.busy_timeout,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False  # Set to True only for SQL debugging in development
        }

    def get_dialect_name(self) -> str:
        return "sqlite"


class PostgreSQLAdapter(DatabaseAdapter):
    """
    PostgreSQL database adapter implementation (asyncpg driver).

    Uses SQLAlchemy's default async queue pool with pre-ping so that
    connections dropped by the server are replaced transparently.
    """

    def __init__(self, pool_size: int = 10, max_overflow: int = 20, command_timeout: float = 5.0):
        self.pool_size = pool_size
        self.max_overflow = max_overflow
        self.command_timeout = command_timeout

    def create_engine(self, database_url: str, **kwargs) -> AsyncEngine:
        engine_kwargs = self.get_engine_kwargs()
        engine_kwargs.update(kwargs)

        return create_async_engine(
            database_url,
            connect_args=self.get_connect_args(),
            **engine_kwargs
        )

    def get_pool_class(self) -> Optional[type[Pool]]:
        return None

    def get_connect_args(self) -> dict[str, Any]:
        return {
            "command_timeout": self.command_timeout,
        }

    def get_engine_kwargs(self) -> dict[str, Any]:
        return {
            "echo": False,
            "pool_size": self.pool_size,
            "max_overflow": self.max_overflow,
            "pool_pre_ping": True,
        }

    def get_dialect_name(self) -> str:
        return "postgresql"


ADAPTERS: dict[str, type[DatabaseAdapter]] = {
    "sqlite": SQLiteAdapter,
    "postgresql": PostgreSQLAdapter,
}


def get_database_adapter(database_url: str) -> DatabaseAdapter:
    """
    Factory function to get the database adapter for a connection string.

    Raises:
        ValueError: If the URL names an unsupported database
    """
    dialect = make_url(database_url).get_backend_name()
    try:
        adapter_class = ADAPTERS[dialect]
    except KeyError:
        raise ValueError(f"Unsupported database backend: {dialect}") from None
    return adapter_class()
