"""SQLAlchemy-backed storage (PostgreSQL in production, SQLite for dev/tests)."""

import logging
import uuid
from typing import Any, Dict, List, Optional, Type

from sqlalchemy import inspect, select, text
from sqlalchemy.exc import SQLAlchemyError

from ..database.connection import DatabaseManager, db_manager, get_db_context
from ..exceptions import NotFoundError, StorageError
from ..models import Base, Profile, Submission
from .base import PROFILES, SUBMISSIONS, Document, StorageBackend

logger = logging.getLogger(__name__)

MODELS: Dict[str, Type[Base]] = {
    SUBMISSIONS: Submission,
    PROFILES: Profile,
}

# Bookkeeping columns not exposed in documents
_HIDDEN_COLUMNS = {"updated_at"}


def _parse_id(record_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(record_id))
    except ValueError:
        return None


def _to_document(row: Base) -> Document:
    document = {}
    for attr in inspect(row).mapper.column_attrs:
        if attr.key in _HIDDEN_COLUMNS:
            continue
        document[attr.key] = getattr(row, attr.key)
    document["id"] = str(row.id)
    return document


class SQLStorage(StorageBackend):
    """Maps the document interface onto the ``submissions`` and ``profiles`` tables."""

    def __init__(self, manager: Optional[DatabaseManager] = None):
        self.manager = manager or db_manager

    def _model(self, collection: str) -> Type[Base]:
        try:
            return MODELS[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    def _column(self, model: Type[Base], field: str):
        column = getattr(model, field, None)
        if column is None:
            raise ValueError(f"Unknown field for {model.__tablename__}: {field}")
        return column

    def _failure(self, operation: str, collection: str, error: Exception) -> StorageError:
        logger.error("Storage %s on %s failed: %s", operation, collection, error)
        return StorageError(f"Failed to {operation} {collection}", operation=operation)

    async def insert(self, collection: str, document: Document) -> str:
        model = self._model(collection)
        values = dict(document)
        if "id" in values:
            values["id"] = _parse_id(values["id"])
        try:
            async with get_db_context(self.manager) as session:
                row = model(**values)
                session.add(row)
                await session.commit()
                return str(row.id)
        except SQLAlchemyError as e:
            raise self._failure("create", collection, e)

    async def patch(self, collection: str, record_id: str, fields: Document) -> None:
        model = self._model(collection)
        key = _parse_id(record_id)
        if key is None:
            raise NotFoundError(f"{collection} record {record_id} not found")
        try:
            async with get_db_context(self.manager) as session:
                row = await session.get(model, key)
                if row is None:
                    raise NotFoundError(f"{collection} record {record_id} not found")
                for name, value in fields.items():
                    self._column(model, name)
                    setattr(row, name, value)
                await session.commit()
        except SQLAlchemyError as e:
            raise self._failure("update", collection, e)

    async def get(self, collection: str, record_id: str) -> Optional[Document]:
        model = self._model(collection)
        key = _parse_id(record_id)
        if key is None:
            return None
        try:
            async with get_db_context(self.manager) as session:
                row = await session.get(model, key)
                return _to_document(row) if row is not None else None
        except SQLAlchemyError as e:
            raise self._failure("query", collection, e)

    async def query_eq(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        model = self._model(collection)
        stmt = select(model).where(self._column(model, field) == value)
        if order_by is not None:
            column = self._column(model, order_by)
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        stmt = stmt.order_by(model.created_at.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch(collection, stmt)

    async def query_top(self, collection: str, field: str, limit: int) -> List[Document]:
        model = self._model(collection)
        stmt = (
            select(model)
            .order_by(self._column(model, field).desc(), model.created_at.asc())
            .limit(limit)
        )
        return await self._fetch(collection, stmt)

    async def scan(self, collection: str, limit: Optional[int] = None) -> List[Document]:
        model = self._model(collection)
        stmt = select(model).order_by(model.created_at.asc())
        if limit is not None:
            stmt = stmt.limit(limit)
        return await self._fetch(collection, stmt)

    async def delete(self, collection: str, record_id: str) -> bool:
        model = self._model(collection)
        key = _parse_id(record_id)
        if key is None:
            return False
        try:
            async with get_db_context(self.manager) as session:
                row = await session.get(model, key)
                if row is None:
                    return False
                await session.delete(row)
                await session.commit()
                return True
        except SQLAlchemyError as e:
            raise self._failure("delete", collection, e)

    async def ping(self) -> None:
        try:
            async with get_db_context(self.manager) as session:
                await session.execute(text("SELECT 1"))
        except SQLAlchemyError as e:
            raise self._failure("query", "database", e)

    async def close(self) -> None:
        await self.manager.close()

    async def _fetch(self, collection: str, stmt) -> List[Document]:
        try:
            async with get_db_context(self.manager) as session:
                result = await session.execute(stmt)
                return [_to_document(row) for row in result.scalars().all()]
        except SQLAlchemyError as e:
            raise self._failure("query", collection, e)
