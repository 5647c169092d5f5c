"""SQLite persistence for the metadata index."""

from .db_manager import DatabaseManager

__all__ = ["DatabaseManager"]
