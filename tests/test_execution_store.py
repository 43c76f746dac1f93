"""
Tests for the execution store and per-execution state.
"""

from datetime import datetime, timedelta

from hubflow.engine import ExecutionStore
from hubflow.engine.parser import parse_workflow
from hubflow.models import ExecutionStatus


WORKFLOW = parse_workflow("nodes:\n  a: {type: variable, name: x, value: 1}")


class TestCreateAndLookup:

    def test_create_registers_execution(self):
        store = ExecutionStore()
        execution_id = store.create("wf-1", WORKFLOW, owner="alice", variables={"seed": 1})

        execution = store.get(execution_id)
        assert execution_id in store
        assert len(store) == 1
        assert execution.workflow_id == "wf-1"
        assert execution.status == ExecutionStatus.IDLE
        assert execution.cursor == "a"
        assert execution.variables["seed"] == 1

    def test_ids_are_unique(self):
        store = ExecutionStore()
        ids = {store.create("wf", WORKFLOW) for _ in range(20)}
        assert len(ids) == 20

    def test_unknown_id(self):
        assert ExecutionStore().get("nope") is None


class TestOwnership:

    def test_owner_can_access(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW, owner="alice")
        assert store.get_owned(execution_id, "alice") is not None
        assert store.is_owned_by(execution_id, "alice")

    def test_other_principal_cannot_access(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW, owner="alice")
        assert store.get_owned(execution_id, "mallory") is None

    def test_workflow_mismatch(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW, owner="alice")
        assert store.get_owned(execution_id, "alice", workflow_id="other") is None
        assert store.get_owned(execution_id, "alice", workflow_id="wf") is not None


class TestCancel:

    def test_cancel_sets_signal_and_runs_hooks_once(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW)
        execution = store.get(execution_id)
        reasons = []
        execution.add_cancel_hook(reasons.append)

        assert store.cancel(execution_id, "stop please")
        assert store.cancel(execution_id, "again")

        assert execution.cancel_event.is_set()
        assert execution.cancel_reason == "stop please"
        assert reasons == ["stop please"]

    def test_cancel_finished_execution(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW)
        store.get(execution_id).status = ExecutionStatus.COMPLETED
        assert not store.cancel(execution_id)

    def test_cancel_unknown(self):
        assert not ExecutionStore().cancel("missing")


class TestCleanup:

    def test_sweeps_old_executions_and_cancels_running_ones(self):
        store = ExecutionStore()
        old_id = store.create("wf", WORKFLOW)
        fresh_id = store.create("wf", WORKFLOW)
        old = store.get(old_id)
        old.status = ExecutionStatus.RUNNING
        old.created_at = datetime.utcnow() - timedelta(hours=1)

        removed = store.cleanup(max_age_seconds=60)

        assert removed == 1
        assert old_id not in store
        assert fresh_id in store
        assert old.cancel_event.is_set()
        assert old.cancel_reason == "Execution expired"

    def test_remove(self):
        store = ExecutionStore()
        execution_id = store.create("wf", WORKFLOW)
        assert store.remove(execution_id) is not None
        assert store.remove(execution_id) is None
