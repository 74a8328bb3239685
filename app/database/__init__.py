"""
Database package - async engine and session helpers
"""

from .async_db import (
    create_async_database_engine,
    create_session_factory,
    get_async_database_url,
    get_async_db_context,
)

__all__ = [
    "create_async_database_engine",
    "create_session_factory",
    "get_async_database_url",
    "get_async_db_context",
]
