"""
Workflow Processor

Main orchestrator used by the API routes. Loads and parses the workflow,
registers the execution, runs the interpreter as a background task and
hands the event stream to the observer.
"""

import asyncio
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from hubflow.db.history_repository import HistoryRepository
from hubflow.engine.errors import ParseError
from hubflow.engine.execution_store import ExecutionContext, ExecutionStore
from hubflow.engine.node_registry import NodeRegistry
from hubflow.engine.parser import parse_workflow
from hubflow.engine.prompt_broker import PromptBroker
from hubflow.models import (
    ExecutionRecord,
    ExecutionStatus,
    SSEEvent,
    SSEEventType,
)
from hubflow.providers.drive.loader import WorkflowLoader

from .interpreter import WorkflowInterpreter


class WorkflowProcessor:
    """
    Coordinates executions across the store, interpreter and prompt broker.

    Collaborators (drive, AI providers, MCP, workflow loader) are passed in
    the services dict and reach node handlers through their context.
    """

    def __init__(
        self,
        store: ExecutionStore,
        broker: PromptBroker,
        registry: NodeRegistry,
        services: Optional[Dict[str, Any]] = None,
        history_repo: Optional[HistoryRepository] = None,
        interpreter: Optional[WorkflowInterpreter] = None
    ):
        self.store = store
        self.broker = broker
        self.registry = registry
        self.services = services or {}
        self.history_repo = history_repo
        self.interpreter = interpreter or WorkflowInterpreter(registry, broker, self.services)
        self.logger = logging.getLogger('workflow.processor')

    @property
    def loader(self) -> Optional[WorkflowLoader]:
        return self.services.get("workflow_loader")

    async def start_execution(
        self,
        workflow_id: str,
        owner: Optional[str] = None,
        content: Optional[str] = None,
        variables: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Parse the workflow and start running it in the background.

        Args:
            workflow_id: Document id; loaded through the workflow loader
                unless content is given
            owner: Principal allowed to observe and control the run
            content: Workflow YAML text
            variables: Initial variables

        Returns:
            execution id

        Raises:
            ParseError: Document missing or malformed
            ValidationError: Property validation failed
        """
        if content is None:
            if self.loader is None:
                raise ParseError("No workflow content given and no workflow loader configured")
            content = await asyncio.to_thread(self.loader.load, workflow_id)

        # Parsed fresh for every execution
        workflow = parse_workflow(content)

        execution_id = self.store.create(
            workflow_id=workflow_id,
            workflow=workflow,
            owner=owner,
            variables=variables,
        )
        execution = self.store.get(execution_id)
        execution.add_cancel_hook(lambda reason: self.broker.cancel(execution_id, reason))
        execution.events.on_terminal_flushed(lambda: self.store.remove(execution_id))
        execution.task = asyncio.create_task(self._run(execution))

        self.logger.info(
            f"[EXEC] Started {execution_id[:8]} for workflow {workflow_id} "
            f"({len(workflow.nodes)} nodes, owner={owner})"
        )
        return execution_id

    async def _run(self, execution: ExecutionContext) -> None:
        await self.interpreter.run(execution)
        if self.history_repo is not None:
            await self._save_history(execution)

    async def _save_history(self, execution: ExecutionContext) -> None:
        record = ExecutionRecord(
            execution_id=execution.execution_id,
            workflow_id=execution.workflow_id,
            workflow_name=execution.workflow.name if execution.workflow else None,
            owner=execution.owner,
            status=execution.status,
            started_at=execution.created_at,
            finished_at=execution.finished_at,
            steps=list(execution.steps),
            error=execution.error,
        )
        try:
            await asyncio.to_thread(self.history_repo.save_record, record)
        except Exception as e:
            # History is best effort; the run itself already finished
            self.logger.error(f"[HISTORY] Failed to save {execution.execution_id[:8]}: {e}")

    def get_execution(
        self,
        execution_id: str,
        owner: Optional[str],
        workflow_id: Optional[str] = None
    ) -> Optional[ExecutionContext]:
        return self.store.get_owned(execution_id, owner, workflow_id)

    def stream(self, execution: ExecutionContext) -> AsyncIterator[SSEEvent]:
        """
        Subscribe to an execution's live events.

        A reattaching observer first gets the current status and, if the
        run is suspended, the prompt it is waiting on.
        """
        preamble: List[SSEEvent] = []
        if not execution.status.is_terminal and execution.status != ExecutionStatus.IDLE:
            preamble.append(SSEEvent(type=SSEEventType.STATUS, data={"status": execution.status.value}))

        pending = self.broker.get_pending(execution.execution_id)
        buffered = any(e.type == SSEEventType.PROMPT_REQUEST for e in execution.events.pending())
        if pending is not None and not buffered:
            preamble.append(SSEEvent(type=SSEEventType.PROMPT_REQUEST, data=pending.to_payload()))

        return execution.events.subscribe(preamble)

    def submit_prompt_response(self, execution: ExecutionContext, value: Any) -> bool:
        """
        Resume an execution suspended on a prompt.

        Returns:
            False when the execution is not waiting on a prompt
        """
        return self.broker.resolve(execution.execution_id, value)

    def stop(self, execution: ExecutionContext, reason: str = "Execution cancelled by user") -> bool:
        """Request cooperative cancellation; False if already finished."""
        return self.store.cancel(execution.execution_id, reason)

    def list_history(
        self,
        workflow_id: Optional[str] = None,
        owner: Optional[str] = None,
        limit: int = 50
    ) -> List[ExecutionRecord]:
        if self.history_repo is None:
            return []
        return self.history_repo.list_records(workflow_id=workflow_id, owner=owner, limit=limit)

    def cleanup(self, max_age_seconds: float) -> int:
        return self.store.cleanup(max_age_seconds)

    async def run_gc_loop(self, interval: float, max_age_seconds: float) -> None:
        """Periodically sweep abandoned executions until cancelled."""
        while True:
            await asyncio.sleep(interval)
            removed = self.cleanup(max_age_seconds)
            if removed:
                self.logger.info(f"[GC] Removed {removed} expired executions")

    async def shutdown(self) -> None:
        """Cancel every live execution and wait for its task to end."""
        tasks = []
        for execution in self.store.list_executions():
            execution.request_cancel("Server shutting down")
            if execution.task is not None and not execution.task.done():
                tasks.append(execution.task)
        if tasks:
            await asyncio.wait(tasks, timeout=5)
