"""Storage backends for submissions and profiles."""

from .base import PROFILES, SUBMISSIONS, StorageBackend
from .factory import StorageFactory, get_storage
from .memory import MemoryStorage
from .sql import SQLStorage

__all__ = [
    "PROFILES",
    "SUBMISSIONS",
    "MemoryStorage",
    "SQLStorage",
    "StorageBackend",
    "StorageFactory",
    "get_storage",
]
