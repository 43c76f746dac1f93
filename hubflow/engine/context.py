"""
Node Execution Context and Variable Scope

Contains the context objects handed to node handlers.
"""

import copy
import logging
import threading
from typing import Any, Awaitable, Callable, Dict, Iterator, Mapping, Optional, TYPE_CHECKING

from hubflow.models import PromptRequest, SSEEvent, SSEEventType, WorkflowNode

from .errors import ExecutionCancelled
from .template_resolver import TemplateResolver

if TYPE_CHECKING:
    from hubflow.models import Workflow
    from .execution_store import ExecutionContext


PromptCallback = Callable[[WorkflowNode, PromptRequest], Awaitable[Any]]
SubWorkflowRunner = Callable[["Workflow", Dict[str, Any], "NodeExecutionContext"], Awaitable["VariableScope"]]


class VariableScope(Mapping[str, Any]):
    """
    Variables of one workflow frame.

    Reads go through the Mapping interface (the template resolver renders
    against it directly). Writes go through set(), which only node handlers
    call, via NodeExecutionContext.save().
    """

    def __init__(self, initial: Optional[Mapping[str, Any]] = None):
        self._values: Dict[str, Any] = dict(initial or {})

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"VariableScope({self._values!r})"

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value

    def has(self, key: str) -> bool:
        return key in self._values

    def delete(self, key: str) -> None:
        self._values.pop(key, None)

    def snapshot(self) -> Dict[str, Any]:
        """Deep copy of all variables"""
        return copy.deepcopy(self._values)


class NodeExecutionContext:
    """
    Everything a node handler may touch while running one node.

    Handlers read variables through ``variables`` or ``resolve()``, write
    their output binding through ``save()``, reach collaborators through
    ``get_service()`` and suspend for input through ``request_prompt()``.
    """

    def __init__(
        self,
        execution: "ExecutionContext",
        node: WorkflowNode,
        variables: VariableScope,
        services: Dict[str, Any],
        prompt_callback: PromptCallback,
        subworkflow_runner: SubWorkflowRunner,
        depth: int = 0,
        logger: logging.Logger = None
    ):
        self.execution = execution
        self.node = node
        self.variables = variables
        self.services = services
        self.depth = depth
        self.logger = logger or logging.getLogger('workflow.nodes')
        self.resolver = TemplateResolver(variables)
        self.details: Dict[str, Any] = {}
        self._prompt_callback = prompt_callback
        self._subworkflow_runner = subworkflow_runner

    @property
    def execution_id(self) -> str:
        return self.execution.execution_id

    @property
    def cancel_event(self) -> threading.Event:
        return self.execution.cancel_event

    def get_service(self, name: str) -> Any:
        if name not in self.services:
            raise KeyError(f"Service '{name}' not found")
        return self.services[name]

    def has_service(self, name: str) -> bool:
        return name in self.services

    def resolve(self, template: Optional[str]) -> str:
        if template is None:
            return ""
        return self.resolver.resolve(template)

    def save(self, name: Optional[str], value: Any) -> None:
        """Bind a handler output to a variable; no-op when name is empty."""
        if name:
            self.variables.set(name, value)

    def check_cancelled(self) -> None:
        if self.cancel_event.is_set():
            raise ExecutionCancelled(self.execution.cancel_reason or "Execution cancelled", node_id=self.node.id)

    async def request_prompt(self, request: PromptRequest) -> Any:
        """Suspend until the observer answers request; returns the raw value."""
        return await self._prompt_callback(self.node, request)

    async def run_subworkflow(self, workflow: "Workflow", variables: Dict[str, Any]) -> VariableScope:
        """Run workflow as a nested frame and return its final variables."""
        return await self._subworkflow_runner(workflow, variables, self)

    def notify_drive_change(
        self,
        event_type: SSEEventType,
        file_id: str,
        file_name: str,
        content: Optional[str] = None
    ) -> None:
        """Emit an out-of-band Drive change notification for the sync layer."""
        data: Dict[str, Any] = {"fileId": file_id, "fileName": file_name}
        if content is not None:
            data["content"] = content
        self.execution.events.emit(SSEEvent(type=event_type, data=data))
