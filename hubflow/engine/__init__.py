"""
Workflow Engine Module

Parser, template resolver, node handler framework and the runtime
primitives (execution store, event stream, prompt broker).
"""

from .errors import (
    WorkflowError,
    ParseError,
    UnknownNodeType,
    ValidationError,
    LoopLimitExceeded,
    RecursionLimitExceeded,
    TemplateError,
    ExternalCallError,
    ExecutionCancelled,
    PromptDismissed,
)
from .parser import parse_workflow, parse_workflow_data
from .template_resolver import TemplateResolver
from .context import NodeExecutionContext, VariableScope
from .node_interface import NodeResult, NodeBase, ExecutableNode, InteractiveNode
from .node_registry import NodeRegistry, get_default_registry
from .execution_store import ExecutionContext, ExecutionStore
from .event_stream import EventStream
from .prompt_broker import PromptBroker

__all__ = [
    'WorkflowError',
    'ParseError',
    'UnknownNodeType',
    'ValidationError',
    'LoopLimitExceeded',
    'RecursionLimitExceeded',
    'TemplateError',
    'ExternalCallError',
    'ExecutionCancelled',
    'PromptDismissed',
    'parse_workflow',
    'parse_workflow_data',
    'TemplateResolver',
    'NodeExecutionContext',
    'VariableScope',
    'NodeResult',
    'NodeBase',
    'ExecutableNode',
    'InteractiveNode',
    'NodeRegistry',
    'get_default_registry',
    'ExecutionContext',
    'ExecutionStore',
    'EventStream',
    'PromptBroker',
]
