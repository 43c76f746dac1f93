"""
History Repository - Persisted records of finished executions.

Schema: one document per execution keyed by execution_id, holding the
ExecutionRecord fields (steps included) as stored by model_dump().
"""

from typing import List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.database import Database

from hubflow.models import ExecutionRecord

from .base import BaseRepository


class HistoryRepository(BaseRepository):
    """
    Collections:
    - execution_history: Finished executions
    """

    def __init__(self, db: Database):
        super().__init__(db)
        self.history: Collection = self._get_collection("execution_history")
        self.history.create_index([("execution_id", ASCENDING)], unique=True)
        self.history.create_index([("workflow_id", ASCENDING), ("started_at", DESCENDING)])

    def save_record(self, record: ExecutionRecord) -> None:
        """Insert or replace the record for record.execution_id."""
        document = record.model_dump(mode="json")
        # Keep datetimes native so sorting by started_at is chronological
        document["started_at"] = record.started_at
        document["finished_at"] = record.finished_at
        self.history.replace_one({"execution_id": record.execution_id}, document, upsert=True)

    def get_record(self, execution_id: str) -> Optional[ExecutionRecord]:
        document = self.history.find_one({"execution_id": execution_id}, {"_id": 0})
        return ExecutionRecord.model_validate(document) if document else None

    def list_records(
        self,
        workflow_id: Optional[str] = None,
        owner: Optional[str] = None,
        limit: int = 50
    ) -> List[ExecutionRecord]:
        """Newest first, optionally filtered by workflow and owner."""
        query = {}
        if workflow_id:
            query["workflow_id"] = workflow_id
        if owner:
            query["owner"] = owner
        cursor = self.history.find(query, {"_id": 0}).sort("started_at", DESCENDING).limit(limit)
        return [ExecutionRecord.model_validate(doc) for doc in cursor]

    def delete_record(self, execution_id: str) -> bool:
        result = self.history.delete_one({"execution_id": execution_id})
        return result.deleted_count > 0
