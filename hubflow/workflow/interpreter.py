"""
Workflow Interpreter - the execution state machine.

Walks a parsed workflow graph from its start node, dispatching each visited
node to its handler and following the successor edge the node selects:

    idle -> running <-> waiting-prompt -> completed | cancelled | error

Nodes run strictly one after another. Cancellation is checked at every node
boundary and while a prompt is pending. Every node visit produces one
ExecutionStep, published as a ``log`` event.
"""

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from hubflow import config
from hubflow.engine.context import NodeExecutionContext, VariableScope
from hubflow.engine.errors import (
    ExecutionCancelled,
    LoopLimitExceeded,
    PromptDismissed,
    RecursionLimitExceeded,
    ValidationError,
    WorkflowError,
)
from hubflow.engine.execution_store import ExecutionContext
from hubflow.engine.node_interface import ExecutableNode, InteractiveNode, NodeResult
from hubflow.engine.node_registry import NodeRegistry
from hubflow.engine.prompt_broker import PromptBroker
from hubflow.models import (
    ExecutionStatus,
    ExecutionStep,
    NodeType,
    PromptRequest,
    SSEEvent,
    SSEEventType,
    StepStatus,
    Workflow,
    WorkflowNode,
)
from hubflow.utils import make_json_serializable, sanitize_error_message


class WorkflowInterpreter:
    """
    Runs executions to a terminal state.

    One interpreter is shared by all executions; everything run-specific
    lives on the ExecutionContext, so concurrent runs never share state.
    """

    def __init__(
        self,
        registry: NodeRegistry,
        broker: PromptBroker,
        services: Optional[Dict[str, Any]] = None,
        max_loop_iterations: Optional[int] = None,
        max_steps: Optional[int] = None,
        max_depth: Optional[int] = None,
        logger: logging.Logger = None
    ):
        self.registry = registry
        self.broker = broker
        self.services = services or {}
        self.max_loop_iterations = max_loop_iterations or config.get_max_loop_iterations()
        self.max_steps = max_steps or config.get_max_steps()
        self.max_depth = max_depth or config.get_max_depth()
        self.logger = logger or logging.getLogger('workflow.interpreter')

    async def run(self, execution: ExecutionContext) -> ExecutionStatus:
        """
        Run an execution until it completes, is cancelled or fails.

        Emits exactly one terminal event (complete, cancelled or error).

        Returns:
            The terminal status
        """
        exec_short = execution.execution_id[:8]
        self.logger.info(f"[EXEC] Starting {exec_short} (workflow={execution.workflow_id})")
        self._set_status(execution, ExecutionStatus.RUNNING)

        try:
            await self.run_workflow(execution.workflow, execution.variables, execution, depth=0)

        except ExecutionCancelled as e:
            self.logger.info(f"[EXEC] Cancelled {exec_short}: {e.message}")
            self._finish(execution, ExecutionStatus.CANCELLED, SSEEvent(
                type=SSEEventType.CANCELLED,
                data={"reason": e.message}
            ))

        except WorkflowError as e:
            message = sanitize_error_message(e.message)
            self.logger.warning(f"[EXEC] Failed {exec_short} at {e.node_id}: {message}")
            self._fail(execution, message, e.node_id)

        except asyncio.CancelledError:
            # Task torn down (server shutdown); still close the stream
            self._finish(execution, ExecutionStatus.CANCELLED, SSEEvent(
                type=SSEEventType.CANCELLED,
                data={"reason": "Execution aborted"}
            ))
            raise

        except Exception as e:
            self.logger.exception(f"[EXEC] Unexpected failure in {exec_short}")
            self._fail(execution, sanitize_error_message(e), None)

        else:
            self.logger.info(f"[EXEC] Completed {exec_short} after {len(execution.steps)} steps")
            self._finish(execution, ExecutionStatus.COMPLETED, SSEEvent(
                type=SSEEventType.COMPLETE,
                data={"variables": make_json_serializable(execution.variables.snapshot())}
            ))

        return execution.status

    async def run_workflow(
        self,
        workflow: Workflow,
        variables: VariableScope,
        execution: ExecutionContext,
        depth: int = 0
    ) -> VariableScope:
        """
        Walk one workflow frame from its start node until no successor is left.

        Args:
            workflow: Parsed graph for this frame
            variables: The frame's variable scope (mutated in place)
            execution: Owning execution (cancel signal, events, steps)
            depth: 0 for the top-level workflow, +1 per sub-workflow

        Raises:
            WorkflowError: First node failure, ends the frame
        """
        # True-branch count per while node in this frame
        loop_counts: Dict[str, int] = {}
        node_id: Optional[str] = workflow.start

        while node_id is not None:
            if execution.cancel_event.is_set():
                raise ExecutionCancelled(execution.cancel_reason or "Execution cancelled", node_id=node_id)

            execution.visit_count += 1
            if execution.visit_count > self.max_steps:
                raise LoopLimitExceeded(
                    f"Execution exceeded the maximum of {self.max_steps} node visits",
                    node_id=node_id
                )

            node = workflow.get_node(node_id)
            if depth == 0:
                execution.cursor = node_id

            result = await self._visit(node, variables, execution, depth)
            node_id = self._select_successor(workflow, node, result, loop_counts)

        return variables

    async def _visit(
        self,
        node: WorkflowNode,
        variables: VariableScope,
        execution: ExecutionContext,
        depth: int
    ) -> NodeResult:
        """Dispatch one node and record its step."""
        context = NodeExecutionContext(
            execution=execution,
            node=node,
            variables=variables,
            services=self.services,
            prompt_callback=lambda n, request: self._request_prompt(execution, n, request),
            subworkflow_runner=self._run_subworkflow,
            depth=depth,
            logger=logging.getLogger(f'workflow.nodes.{node.type.value}'),
        )
        step_input: Any = None

        try:
            handler = self.registry.get_handler(node.type)
            properties = context.resolver.resolve_properties(node.properties)
            step_input = properties.model_dump(mode="json", by_alias=True, exclude_none=True)

            if isinstance(handler, InteractiveNode):
                request = handler.build_prompt(properties, context)
                response = None
                if request is not None:
                    response = await context.request_prompt(request)
                    if response is None:
                        raise PromptDismissed(node_id=node.id)
                result = await handler.execute_with_response(properties, context, response)
            elif isinstance(handler, ExecutableNode):
                result = await handler.execute(properties, context)
            else:
                raise ValidationError(f"Handler for '{node.type.value}' cannot be executed", node_id=node.id)

        except ExecutionCancelled:
            raise

        except WorkflowError as e:
            if e.node_id is None:
                e.node_id = node.id
            self._record_step(execution, node, ExecutionStep(
                node_id=node.id,
                node_type=node.type.value,
                message=f"{node.type.value} failed",
                input=step_input,
                error=sanitize_error_message(e.message),
                status=StepStatus.ERROR,
            ))
            raise

        except Exception as e:
            self.logger.exception(f"[EXEC] Unexpected error in node {node.id} ({node.type.value})")
            message = sanitize_error_message(e)
            self._record_step(execution, node, ExecutionStep(
                node_id=node.id,
                node_type=node.type.value,
                message=f"{node.type.value} failed",
                input=step_input,
                error=message,
                status=StepStatus.ERROR,
            ))
            raise WorkflowError(message, node_id=node.id) from e

        self._record_step(execution, node, ExecutionStep(
            node_id=node.id,
            node_type=node.type.value,
            message=result.message or node.type.value,
            input=step_input,
            output=make_json_serializable(result.output),
            status=result.status,
        ))
        return result

    def _select_successor(
        self,
        workflow: Workflow,
        node: WorkflowNode,
        result: NodeResult,
        loop_counts: Dict[str, int]
    ) -> Optional[str]:
        """
        Pick the next node id, or None to end the frame.

        Raises:
            ValidationError: Branch taken without a matching labeled edge
            LoopLimitExceeded: A while node took its true branch too often
        """
        if not node.type.is_branching:
            return workflow.successor(node.id)

        label = "true" if result.branch else "false"
        if node.type == NodeType.WHILE and result.branch:
            loop_counts[node.id] = loop_counts.get(node.id, 0) + 1
            if loop_counts[node.id] > self.max_loop_iterations:
                raise LoopLimitExceeded(
                    f"While loop exceeded the maximum of {self.max_loop_iterations} iterations",
                    node_id=node.id
                )

        target = workflow.successor(node.id, label)
        if target is None:
            raise ValidationError(f"No '{label}' edge from {node.type.value} node '{node.id}'", node_id=node.id)
        return target

    async def _request_prompt(
        self,
        execution: ExecutionContext,
        node: WorkflowNode,
        request: PromptRequest
    ) -> Any:
        """
        Publish a prompt and suspend until the broker delivers a response.

        Event order is prompt-request, then status waiting-prompt; status
        running follows once the response arrives.
        """
        if execution.cancel_event.is_set():
            raise ExecutionCancelled(execution.cancel_reason or "Execution cancelled", node_id=node.id)

        request = request.model_copy(update={"node_id": node.id})
        execution.events.emit(SSEEvent(type=SSEEventType.PROMPT_REQUEST, data=request.to_payload()))
        self._set_status(execution, ExecutionStatus.WAITING_PROMPT)

        value = await self.broker.await_response(execution.execution_id, request)

        self._set_status(execution, ExecutionStatus.RUNNING)
        return value

    async def _run_subworkflow(
        self,
        workflow: Workflow,
        variables: Dict[str, Any],
        context: NodeExecutionContext
    ) -> VariableScope:
        """Run a nested frame sharing the parent's execution."""
        depth = context.depth + 1
        if depth > self.max_depth:
            raise RecursionLimitExceeded(
                f"Sub-workflow nesting exceeded the maximum depth of {self.max_depth}",
                node_id=context.node.id
            )
        self.logger.info(
            f"[EXEC] Entering sub-workflow '{workflow.name or workflow.start}' "
            f"at depth {depth} for {context.execution_id[:8]}"
        )
        scope = VariableScope(variables)
        await self.run_workflow(workflow, scope, context.execution, depth)
        return scope

    def _record_step(self, execution: ExecutionContext, node: WorkflowNode, step: ExecutionStep) -> None:
        execution.steps.append(step)
        execution.events.emit(SSEEvent(
            type=SSEEventType.LOG,
            data={"step": step.model_dump(mode="json", by_alias=True)}
        ))
        self.logger.debug(f"[EXEC] {node.id} ({node.type.value}) -> {step.status.value}")

    def _set_status(self, execution: ExecutionContext, status: ExecutionStatus) -> None:
        execution.status = status
        execution.events.emit(SSEEvent(type=SSEEventType.STATUS, data={"status": status.value}))

    def _fail(self, execution: ExecutionContext, message: str, node_id: Optional[str]) -> None:
        execution.error = message
        data: Dict[str, Any] = {"message": message}
        if node_id:
            data["nodeId"] = node_id
        self._finish(execution, ExecutionStatus.ERROR, SSEEvent(type=SSEEventType.ERROR, data=data))

    def _finish(self, execution: ExecutionContext, status: ExecutionStatus, event: SSEEvent) -> None:
        # Terminal states are signalled by the terminal event alone
        execution.status = status
        execution.finished_at = datetime.utcnow()
        execution.events.emit(event)
