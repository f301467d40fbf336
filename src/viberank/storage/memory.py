"""In-process document store.

Used for local development and tests. State lives in the process and is
lost on restart.
"""

import copy
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from ..exceptions import NotFoundError
from .base import COLLECTIONS, Document, StorageBackend


class MemoryStorage(StorageBackend):
    """Dict-backed storage. Dicts preserve insertion order."""

    def __init__(self):
        self._collections: Dict[str, Dict[str, Document]] = {
            name: {} for name in COLLECTIONS
        }

    def _collection(self, collection: str) -> Dict[str, Document]:
        try:
            return self._collections[collection]
        except KeyError:
            raise ValueError(f"Unknown collection: {collection}")

    async def insert(self, collection: str, document: Document) -> str:
        records = self._collection(collection)
        record = copy.deepcopy(document)
        record_id = str(record.get("id") or uuid.uuid4())
        record["id"] = record_id
        record.setdefault("created_at", datetime.now(timezone.utc))
        records[record_id] = record
        return record_id

    async def patch(self, collection: str, record_id: str, fields: Document) -> None:
        records = self._collection(collection)
        if record_id not in records:
            raise NotFoundError(f"{collection} record {record_id} not found")
        records[record_id].update(copy.deepcopy(fields))

    async def get(self, collection: str, record_id: str) -> Optional[Document]:
        record = self._collection(collection).get(record_id)
        return copy.deepcopy(record) if record is not None else None

    async def query_eq(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        matches = [
            r for r in self._collection(collection).values() if r.get(field) == value
        ]
        if order_by is not None:
            matches = sorted(matches, key=lambda r: r[order_by], reverse=descending)
        if limit is not None:
            matches = matches[:limit]
        return copy.deepcopy(matches)

    async def query_top(self, collection: str, field: str, limit: int) -> List[Document]:
        records = list(self._collection(collection).values())
        # sorted() is stable with reverse=True, so ties keep insertion order
        ordered = sorted(records, key=lambda r: r.get(field) or 0, reverse=True)
        return copy.deepcopy(ordered[:limit])

    async def scan(self, collection: str, limit: Optional[int] = None) -> List[Document]:
        records = list(self._collection(collection).values())
        if limit is not None:
            records = records[:limit]
        return copy.deepcopy(records)

    async def delete(self, collection: str, record_id: str) -> bool:
        return self._collection(collection).pop(record_id, None) is not None

    async def ping(self) -> None:
        return None
