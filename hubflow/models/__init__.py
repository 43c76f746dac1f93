"""
Pydantic models for workflow graphs, executions, events and API requests.
"""

from .nodes import (
    NodeType,
    NodeProperties,
    NODE_PROPERTY_MODELS,
    VariableProperties,
    SetProperties,
    ConditionProperties,
    SleepProperties,
    CommandProperties,
    DriveFileProperties,
    DriveReadProperties,
    DriveSearchProperties,
    DriveListProperties,
    DriveFolderListProperties,
    DriveFilePickerProperties,
    DriveSaveProperties,
    DriveDeleteProperties,
    PromptValueProperties,
    PromptFileProperties,
    PromptSelectionProperties,
    DialogProperties,
    WorkflowCallProperties,
    JsonProperties,
    HttpProperties,
    McpProperties,
    RagSyncProperties,
    GemihubCommandProperties,
)
from .workflow import WorkflowNode, Edge, Workflow
from .execution import ExecutionStatus, StepStatus, ExecutionStep, ExecutionRecord
from .events import SSEEventType, SSEEvent, PromptType, PromptRequest
from .requests import (
    StartExecutionRequest,
    StartExecutionResponse,
    StopExecutionRequest,
    PromptResponseRequest,
)

__all__ = [
    # Graph
    "NodeType",
    "NodeProperties",
    "NODE_PROPERTY_MODELS",
    "WorkflowNode",
    "Edge",
    "Workflow",
    # Properties
    "VariableProperties",
    "SetProperties",
    "ConditionProperties",
    "SleepProperties",
    "CommandProperties",
    "DriveFileProperties",
    "DriveReadProperties",
    "DriveSearchProperties",
    "DriveListProperties",
    "DriveFolderListProperties",
    "DriveFilePickerProperties",
    "DriveSaveProperties",
    "DriveDeleteProperties",
    "PromptValueProperties",
    "PromptFileProperties",
    "PromptSelectionProperties",
    "DialogProperties",
    "WorkflowCallProperties",
    "JsonProperties",
    "HttpProperties",
    "McpProperties",
    "RagSyncProperties",
    "GemihubCommandProperties",
    # Execution
    "ExecutionStatus",
    "StepStatus",
    "ExecutionStep",
    "ExecutionRecord",
    # Events
    "SSEEventType",
    "SSEEvent",
    "PromptType",
    "PromptRequest",
    # Requests
    "StartExecutionRequest",
    "StartExecutionResponse",
    "StopExecutionRequest",
    "PromptResponseRequest",
]
