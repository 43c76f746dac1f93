"""
Execution Store - registry of live executions.

Shared by the API routes (start, stream, stop, prompt-response) and the
interpreter. All access to the map goes through one lock; the objects it
hands out are only mutated by the interpreter task that owns them, apart
from the cancel signal.
"""

import asyncio
import logging
import threading
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Optional

from hubflow.models import ExecutionStatus, ExecutionStep, Workflow
from hubflow.utils import uuid7_str

from .context import VariableScope
from .event_stream import EventStream

logger = logging.getLogger('workflow.store')


class ExecutionContext:
    """
    State of one execution.

    Lives in the store from start until its terminal event has been
    delivered to the observer (or until swept by cleanup).
    """

    def __init__(
        self,
        execution_id: str,
        workflow_id: str,
        workflow: Optional[Workflow] = None,
        owner: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None,
        event_buffer_size: int = 1000
    ):
        self.execution_id = execution_id
        self.workflow_id = workflow_id
        self.workflow = workflow
        self.owner = owner
        self.variables = VariableScope(variables)
        self.cursor: Optional[str] = workflow.start if workflow else None
        self.status = ExecutionStatus.IDLE
        self.created_at = datetime.utcnow()
        self.finished_at: Optional[datetime] = None
        self.steps: List[ExecutionStep] = []
        # Node visits across all frames, bounded by the step limit
        self.visit_count = 0
        self.error: Optional[str] = None
        self.cancel_event = threading.Event()
        self.cancel_reason: Optional[str] = None
        self.events = EventStream(execution_id, max_buffer=event_buffer_size)
        self.task: Optional[asyncio.Task] = None
        self._cancel_hooks: List[Callable[[str], None]] = []

    def is_owned_by(self, principal: Optional[str]) -> bool:
        return self.owner is None or self.owner == principal

    def add_cancel_hook(self, hook: Callable[[str], None]) -> None:
        """Called with the reason when cancellation is requested."""
        self._cancel_hooks.append(hook)

    def request_cancel(self, reason: str = "Execution cancelled by user") -> bool:
        """Signal cooperative cancellation. Returns False if already finished."""
        if self.status.is_terminal:
            return False
        if not self.cancel_event.is_set():
            self.cancel_reason = reason
            self.cancel_event.set()
            for hook in list(self._cancel_hooks):
                hook(reason)
        return True

    def to_summary(self) -> Dict[str, Any]:
        return {
            "executionId": self.execution_id,
            "workflowId": self.workflow_id,
            "status": self.status.value,
            "cursor": self.cursor,
            "createdAt": self.created_at.isoformat(),
            "stepCount": len(self.steps),
        }


class ExecutionStore:
    """
    Concurrency-safe map of execution id -> ExecutionContext.
    """

    def __init__(self, event_buffer_size: int = 1000):
        self._executions: Dict[str, ExecutionContext] = {}
        self._lock = threading.RLock()
        self._event_buffer_size = event_buffer_size

    def create(
        self,
        workflow_id: str,
        workflow: Optional[Workflow] = None,
        owner: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Register a new execution.

        Returns:
            The new execution id (uuid7 hex)
        """
        execution_id = uuid7_str()
        execution = ExecutionContext(
            execution_id=execution_id,
            workflow_id=workflow_id,
            workflow=workflow,
            owner=owner,
            variables=variables,
            event_buffer_size=self._event_buffer_size,
        )
        with self._lock:
            self._executions[execution_id] = execution
        logger.info(f"[STORE] Created execution {execution_id[:8]} for workflow {workflow_id}")
        return execution_id

    def get(self, execution_id: str) -> Optional[ExecutionContext]:
        with self._lock:
            return self._executions.get(execution_id)

    def get_owned(
        self,
        execution_id: str,
        principal: Optional[str],
        workflow_id: Optional[str] = None
    ) -> Optional[ExecutionContext]:
        """
        Ownership-scoped lookup.

        Returns None when the execution is unknown, belongs to someone else
        or (if given) belongs to a different workflow.
        """
        execution = self.get(execution_id)
        if execution is None or not execution.is_owned_by(principal):
            return None
        if workflow_id is not None and execution.workflow_id != workflow_id:
            return None
        return execution

    def is_owned_by(self, execution_id: str, principal: Optional[str]) -> bool:
        return self.get_owned(execution_id, principal) is not None

    def cancel(self, execution_id: str, reason: str = "Execution cancelled by user") -> bool:
        """
        Request cooperative cancellation.

        Returns:
            True if the execution exists and was still running
        """
        execution = self.get(execution_id)
        if execution is None:
            return False
        accepted = execution.request_cancel(reason)
        if accepted:
            logger.info(f"[STORE] Cancellation requested for {execution_id[:8]}")
        return accepted

    def remove(self, execution_id: str) -> Optional[ExecutionContext]:
        with self._lock:
            execution = self._executions.pop(execution_id, None)
        if execution is not None:
            logger.info(f"[STORE] Removed execution {execution_id[:8]} ({execution.status.value})")
        return execution

    def cleanup(self, max_age_seconds: float) -> int:
        """
        Sweep executions older than max_age_seconds.

        Executions still running are cancelled before being dropped.

        Returns:
            Number of executions removed
        """
        cutoff = datetime.utcnow() - timedelta(seconds=max_age_seconds)
        with self._lock:
            expired = [e for e in self._executions.values() if e.created_at < cutoff]
            for execution in expired:
                del self._executions[execution.execution_id]

        for execution in expired:
            if not execution.status.is_terminal:
                execution.request_cancel("Execution expired")
            logger.warning(
                f"[STORE] Swept execution {execution.execution_id[:8]} "
                f"(status={execution.status.value}, created={execution.created_at.isoformat()})"
            )
        return len(expired)

    def list_executions(self) -> List[ExecutionContext]:
        with self._lock:
            return list(self._executions.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._executions)

    def __contains__(self, execution_id: str) -> bool:
        with self._lock:
            return execution_id in self._executions
