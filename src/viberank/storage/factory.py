"""Storage backend factory."""

import logging
from typing import Optional

from ..config import get_settings
from .base import StorageBackend
from .memory import MemoryStorage
from .sql import SQLStorage

logger = logging.getLogger(__name__)


class StorageFactory:
    """Creates and caches the process-wide storage backend."""

    _instance: Optional[StorageBackend] = None
    _backend: Optional[str] = None

    @classmethod
    def create(cls, backend: Optional[str] = None) -> StorageBackend:
        """Create a storage backend.

        Args:
            backend: "sql" or "memory". Defaults to ``settings.storage_backend``.

        Raises:
            ValueError: If backend is unknown
        """
        if backend is None:
            backend = get_settings().storage_backend

        if backend == "sql":
            logger.info("Creating SQL storage backend")
            return SQLStorage()
        elif backend == "memory":
            logger.info("Creating in-memory storage backend")
            return MemoryStorage()
        else:
            raise ValueError(
                f"Invalid storage backend: {backend}. Must be 'sql' or 'memory'"
            )

    @classmethod
    def get_instance(cls, backend: Optional[str] = None) -> StorageBackend:
        if backend is None:
            backend = get_settings().storage_backend

        if cls._instance is not None and cls._backend == backend:
            return cls._instance

        cls._instance = cls.create(backend)
        cls._backend = backend
        return cls._instance

    @classmethod
    def reset(cls):
        """Drop the cached instance (used by tests)."""
        cls._instance = None
        cls._backend = None


def get_storage() -> StorageBackend:
    """FastAPI dependency returning the configured storage backend."""
    return StorageFactory.get_instance()
