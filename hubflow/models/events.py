"""
SSE Streaming Models

Models for Server-Sent Events delivered to the live execution observer.
"""

import json
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SSEEventType(str, Enum):
    """Types of SSE events for workflow execution streaming"""
    LOG = "log"                        # One ExecutionStep
    STATUS = "status"                  # Execution status changed
    PROMPT_REQUEST = "prompt-request"  # User input needed
    COMPLETE = "complete"              # Terminal: finished normally
    CANCELLED = "cancelled"            # Terminal: stop requested
    ERROR = "error"                    # Terminal: node failure
    # Drive change notifications for the cache/sync collaborator
    DRIVE_FILE_UPDATED = "drive-file-updated"
    DRIVE_FILE_CREATED = "drive-file-created"
    DRIVE_FILE_DELETED = "drive-file-deleted"

    @property
    def is_terminal(self) -> bool:
        return self in (SSEEventType.COMPLETE, SSEEventType.CANCELLED, SSEEventType.ERROR)


class SSEEvent(BaseModel):
    """Server-Sent Event data"""
    type: SSEEventType
    data: Dict[str, Any] = Field(default_factory=dict)

    def to_message(self) -> Dict[str, str]:
        """Format for sse_starlette's EventSourceResponse"""
        return {"event": self.type.value, "data": json.dumps(self.data, default=str)}


class PromptType(str, Enum):
    VALUE = "value"
    DIALOG = "dialog"
    DRIVE_FILE = "drive-file"
    DIFF = "diff"


class PromptRequest(BaseModel):
    """
    Description of the input an interactive node is waiting for.

    Only the fields relevant to the prompt type are set; unset fields are
    omitted from the event payload.
    """
    model_config = ConfigDict(populate_by_name=True)

    type: PromptType
    title: str
    node_id: Optional[str] = Field(None, alias="nodeId")
    default_value: Optional[str] = Field(None, alias="defaultValue")
    multiline: Optional[bool] = None
    message: Optional[str] = None
    options: Optional[List[str]] = None
    multi_select: Optional[bool] = Field(None, alias="multiSelect")
    markdown: Optional[bool] = None
    button1: Optional[str] = None
    button2: Optional[str] = None
    input_title: Optional[str] = Field(None, alias="inputTitle")
    defaults: Optional[Dict[str, Any]] = None
    mode: Optional[str] = None
    extensions: Optional[List[str]] = None
    file_name: Optional[str] = Field(None, alias="fileName")
    old_content: Optional[str] = Field(None, alias="oldContent")
    new_content: Optional[str] = Field(None, alias="newContent")

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
