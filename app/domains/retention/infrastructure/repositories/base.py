"""
Shared plumbing for the SQLAlchemy repositories.

Each operation runs in its own session from the factory, so repositories can
be shared by long-lived services and background loops.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.domain.exceptions import DataAccessError
from app.database.async_db import get_async_db_context

logger = logging.getLogger(__name__)


def parse_uuid(value: str | uuid.UUID | None) -> uuid.UUID | None:
    """UUID for an id string, None when it is not a valid UUID."""
    if value is None or isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value))
    except ValueError:
        return None


class SQLAlchemyRepository:
    """Base class translating database failures into DataAccessError."""

    resource = "document_store"

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncIterator[AsyncSession]:
        try:
            async with get_async_db_context(self.session_factory) as session:
                yield session
        except (SQLAlchemyError, OSError) as e:
            logger.error(f"{self.resource} failed during {operation}: {e}")
            raise DataAccessError(self.resource, operation, f"{self.resource} {operation} failed: {e}") from e
