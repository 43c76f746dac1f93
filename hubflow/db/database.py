"""
Database - MongoDB connection manager with repository access.
"""

import logging

from pymongo import MongoClient

from .history_repository import HistoryRepository

logger = logging.getLogger('workflow.db')


class Database:
    """
    Owns the MongoClient and exposes the repositories.

    Usage:
        db = Database(connection_string, database_name)
        db.history_repo.save_record(record)
    """

    def __init__(self, connection_string: str, database_name: str = "hubflow", client: MongoClient = None):
        self.client = client or MongoClient(connection_string)
        self.db = self.client[database_name]
        self.history_repo = HistoryRepository(self.db)
        logger.info(f"[DB] Connected to database '{database_name}'")

    def close(self) -> None:
        self.client.close()
