"""Async database engine and session management."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from ..config import get_settings

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Owns the async engine and the session factory."""

    def __init__(self):
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def initialize(self, database_url: Optional[str] = None):
        """Create the engine. ``database_url`` defaults to the configured one."""
        url = database_url or get_settings().database_url

        kwargs = {"echo": False}
        if url.startswith("sqlite"):
            # In-memory SQLite is per-connection; share one connection.
            if ":memory:" in url:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs["pool_pre_ping"] = True
            kwargs["pool_size"] = 10
            kwargs["max_overflow"] = 20

        self.engine = create_async_engine(url, **kwargs)
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )
        logger.info("Database engine initialized (%s)", self.engine.url.get_backend_name())

    async def close(self):
        if self.engine is not None:
            await self.engine.dispose()
        self.engine = None
        self.session_factory = None

    def session(self) -> AsyncSession:
        if self.session_factory is None:
            self.initialize()
        return self.session_factory()


db_manager = DatabaseManager()


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding a session."""
    async with db_manager.session() as session:
        yield session


@asynccontextmanager
async def get_db_context(manager: Optional[DatabaseManager] = None):
    """Session context that rolls back on error."""
    manager = manager or db_manager
    async with manager.session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
