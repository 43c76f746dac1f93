"""
Base Repository - Common database connection handling.
"""

from pymongo.collection import Collection
from pymongo.database import Database


class BaseRepository:
    """
    Base class for all repositories.

    Repositories are initialized with a MongoDB database instance
    and provide access to specific collections.
    """

    def __init__(self, db: Database):
        self.db = db

    def _get_collection(self, name: str) -> Collection:
        """Get a collection by name."""
        return self.db[name]
