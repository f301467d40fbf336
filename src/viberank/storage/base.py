"""Storage backend interface.

Records are plain dicts keyed by snake_case field names. The store assigns
``id`` (a string) and ``created_at`` on insert. Two collections exist:
``submissions`` and ``profiles``.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

SUBMISSIONS = "submissions"
PROFILES = "profiles"
COLLECTIONS = (SUBMISSIONS, PROFILES)

Document = Dict[str, Any]


class StorageBackend(ABC):
    """Abstract document store used by the service layer."""

    @abstractmethod
    async def insert(self, collection: str, document: Document) -> str:
        """Insert a record and return its new id."""
        pass

    @abstractmethod
    async def patch(self, collection: str, record_id: str, fields: Document) -> None:
        """Overwrite the given fields of an existing record.

        Raises:
            NotFoundError: If no record has ``record_id``.
        """
        pass

    @abstractmethod
    async def get(self, collection: str, record_id: str) -> Optional[Document]:
        pass

    @abstractmethod
    async def query_eq(
        self,
        collection: str,
        field: str,
        value: Any,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Document]:
        """Records whose ``field`` equals ``value``.

        Without ``order_by`` records come back in insertion order.
        """
        pass

    @abstractmethod
    async def query_top(self, collection: str, field: str, limit: int) -> List[Document]:
        """Up to ``limit`` records, ``field`` descending. Ties keep insertion order."""
        pass

    @abstractmethod
    async def scan(self, collection: str, limit: Optional[int] = None) -> List[Document]:
        """Records in insertion order, optionally capped."""
        pass

    @abstractmethod
    async def delete(self, collection: str, record_id: str) -> bool:
        """Delete a record. Returns False if it did not exist."""
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Raise StorageError if the store is unreachable."""
        pass

    async def close(self) -> None:
        pass
