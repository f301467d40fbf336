"""Database migration utilities."""

import logging

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncEngine

from ..models.base import Base
from ..models.submission import Submission
from .connection import db_manager

logger = logging.getLogger(__name__)


def _resolve_engine(engine: AsyncEngine = None) -> AsyncEngine:
    if engine is None:
        if not db_manager.engine:
            db_manager.initialize()
        engine = db_manager.engine
    return engine


async def create_tables(engine: AsyncEngine = None):
    """Create all database tables."""
    engine = _resolve_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def drop_tables(engine: AsyncEngine = None):
    """Drop all database tables."""
    engine = _resolve_engine(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


async def upgrade_backfill_submission_source(engine: AsyncEngine = None) -> int:
    """Migration: mark legacy submissions without a source as OAuth.

    Submissions recorded before the CLI existed have no ``source``. Readers
    already treat a missing source as ``oauth``; this makes it explicit.
    Safe to run repeatedly.

    Returns:
        Number of rows updated.
    """
    engine = _resolve_engine(engine)
    async with engine.begin() as conn:
        result = await conn.execute(
            update(Submission)
            .where(Submission.source.is_(None))
            .values(source="oauth")
        )
        count = result.rowcount or 0

    if count:
        logger.info("Backfilled source='oauth' on %d legacy submissions", count)
    else:
        logger.info("No legacy submissions without a source")
    return count
