"""
Tests for execution history persistence, backed by mongomock.
"""

from datetime import datetime, timedelta

import mongomock
import pytest

from hubflow.db import Database
from hubflow.models import ExecutionRecord, ExecutionStatus, ExecutionStep, StepStatus


@pytest.fixture
def database():
    db = Database("mongodb://localhost:27017", database_name="hubflow_test", client=mongomock.MongoClient())
    yield db
    db.close()


@pytest.fixture
def repo(database):
    return database.history_repo


def make_record(execution_id: str, workflow_id: str = "wf-1", owner: str = "alice", minutes_ago: int = 0, **kwargs):
    started = datetime(2026, 5, 1, 12, 0, 0) - timedelta(minutes=minutes_ago)
    return ExecutionRecord(
        execution_id=execution_id,
        workflow_id=workflow_id,
        owner=owner,
        status=kwargs.pop("status", ExecutionStatus.COMPLETED),
        started_at=started,
        finished_at=started + timedelta(seconds=3),
        **kwargs,
    )


class TestHistoryRepository:

    def test_save_and_get_round_trip_with_steps(self, repo):
        record = make_record(
            "exec-1",
            workflow_name="Daily digest",
            steps=[
                ExecutionStep(node_id="n1", node_type="set", message="x = 1", output=1),
                ExecutionStep(node_id="n2", node_type="http", error="HTTP 500", status=StepStatus.ERROR),
            ],
            status=ExecutionStatus.ERROR,
            error="HTTP 500",
        )

        repo.save_record(record)
        loaded = repo.get_record("exec-1")

        assert loaded.workflow_name == "Daily digest"
        assert loaded.status == ExecutionStatus.ERROR
        assert loaded.started_at == record.started_at
        assert [s.node_id for s in loaded.steps] == ["n1", "n2"]
        assert loaded.steps[1].status == StepStatus.ERROR

    def test_save_replaces_existing(self, repo):
        repo.save_record(make_record("exec-1", status=ExecutionStatus.CANCELLED))
        repo.save_record(make_record("exec-1", status=ExecutionStatus.COMPLETED))

        assert len(repo.list_records()) == 1
        assert repo.get_record("exec-1").status == ExecutionStatus.COMPLETED

    def test_get_missing(self, repo):
        assert repo.get_record("nope") is None

    def test_list_newest_first(self, repo):
        repo.save_record(make_record("old", minutes_ago=30))
        repo.save_record(make_record("new", minutes_ago=1))
        repo.save_record(make_record("middle", minutes_ago=10))

        assert [r.execution_id for r in repo.list_records()] == ["new", "middle", "old"]

    def test_list_filters_and_limit(self, repo):
        repo.save_record(make_record("a", workflow_id="wf-1", owner="alice", minutes_ago=3))
        repo.save_record(make_record("b", workflow_id="wf-1", owner="bob", minutes_ago=2))
        repo.save_record(make_record("c", workflow_id="wf-2", owner="alice", minutes_ago=1))

        assert [r.execution_id for r in repo.list_records(workflow_id="wf-1")] == ["b", "a"]
        assert [r.execution_id for r in repo.list_records(owner="alice")] == ["c", "a"]
        assert [r.execution_id for r in repo.list_records(limit=1)] == ["c"]

    def test_delete(self, repo):
        repo.save_record(make_record("exec-1"))

        assert repo.delete_record("exec-1")
        assert not repo.delete_record("exec-1")
        assert repo.get_record("exec-1") is None
