"""Database connection and migrations."""

from .connection import DatabaseManager, db_manager, get_db_context, get_db_session

__all__ = ["DatabaseManager", "db_manager", "get_db_context", "get_db_session"]
