"""
Database module with abstraction layer.

This module provides:
- DatabaseAdapter interface: Abstract base class for database implementations
- SQLiteAdapter / PostgreSQLAdapter: Backend-specific engine configuration
- Session management: Database session creation and management
"""

from shortener.db.interface import DatabaseAdapter
from shortener.db.session import (
    async_session_maker,
    engine,
    get_session,
    get_session_maker,
    init_models,
)

__all__ = [
    "DatabaseAdapter",
    "async_session_maker",
    "engine",
    "get_session",
    "get_session_maker",
    "init_models",
]
