"""
Database Layer - Execution history persistence on MongoDB.

Usage:
    from hubflow.db import Database

    db = Database(connection_string, database_name)
    records = db.history_repo.list_records(workflow_id="daily-notes")
"""

from .base import BaseRepository
from .database import Database
from .history_repository import HistoryRepository

__all__ = [
    "BaseRepository",
    "Database",
    "HistoryRepository",
]
