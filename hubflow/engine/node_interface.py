"""
Node Interface - Base classes for node handlers

This module contains:
1. NodeResult, the value a handler hands back to the interpreter
2. Handler base classes (NodeBase, ExecutableNode, InteractiveNode)

Handlers are stateless. The registry creates a fresh instance for every
dispatch, and everything run-specific arrives through the properties and
the NodeExecutionContext.

Every handler receives its node's typed properties with template fields
already resolved. The raw properties stay available on ``context.node``
for handlers that need the unresolved text (a companion ``_fileId``
lookup, per-operand condition resolution).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional, Type

from hubflow.models import NODE_PROPERTY_MODELS, NodeProperties, NodeType, PromptRequest, StepStatus

from .context import NodeExecutionContext


@dataclass
class NodeResult:
    """Outcome of one node visit"""
    output: Any = None
    message: str = ""
    # Selected branch for if/while nodes
    branch: Optional[bool] = None
    status: StepStatus = StepStatus.SUCCESS


class NodeBase(ABC):
    """
    Base class for all node handlers.

    Subclasses:
    - ExecutableNode: runs to completion without user input
    - InteractiveNode: asks the observer for input first
    """

    category: str = "general"

    @property
    @abstractmethod
    def node_type(self) -> NodeType:
        """Node kind handled by this class"""
        pass

    @property
    def properties_model(self) -> Type[NodeProperties]:
        return NODE_PROPERTY_MODELS[self.node_type]


class ExecutableNode(NodeBase):
    """
    Base class for non-interactive handlers.

    Subclasses must implement execute().
    """

    @abstractmethod
    async def execute(self, properties: NodeProperties, context: NodeExecutionContext) -> NodeResult:
        """
        Execute the node.

        Args:
            properties: Typed properties with template fields resolved
            context: Execution context (variables, services, prompts)

        Returns:
            NodeResult for the step record

        Raises:
            WorkflowError: Any engine error; ends the run with status error
        """
        pass


class InteractiveNode(NodeBase):
    """
    Base class for handlers that need observer input.

    The interpreter calls build_prompt(), suspends on the prompt broker
    until a response arrives, then calls execute_with_response().
    A null response ends the run before execute_with_response() is called.
    """

    @abstractmethod
    def build_prompt(
        self,
        properties: NodeProperties,
        context: NodeExecutionContext
    ) -> Optional[PromptRequest]:
        """
        Describe the input to request.

        Returns:
            PromptRequest, or None to skip the prompt (execute_with_response
            is then called with response None)
        """
        pass

    @abstractmethod
    async def execute_with_response(
        self,
        properties: NodeProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        """
        Finish the node with the observer's response.

        Args:
            properties: Typed properties with template fields resolved
            context: Execution context
            response: Value delivered through the prompt broker
        """
        pass
