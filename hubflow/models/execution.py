"""
Execution Models

Status values, per-visit step records and the persisted history record.
"""

from datetime import datetime
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ExecutionStatus(str, Enum):
    """Lifecycle of one execution"""
    IDLE = "idle"
    RUNNING = "running"
    WAITING_PROMPT = "waiting-prompt"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (ExecutionStatus.COMPLETED, ExecutionStatus.CANCELLED, ExecutionStatus.ERROR)


class StepStatus(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    ERROR = "error"


class ExecutionStep(BaseModel):
    """Record of a single node visit"""
    model_config = ConfigDict(populate_by_name=True)

    node_id: str = Field(alias="nodeId")
    node_type: str = Field(alias="nodeType")
    message: str = ""
    input: Optional[Any] = None
    output: Optional[Any] = None
    error: Optional[str] = None
    status: StepStatus = StepStatus.SUCCESS
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class ExecutionRecord(BaseModel):
    """Finished execution as persisted in execution history"""
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str
    workflow_id: str
    workflow_name: Optional[str] = None
    owner: Optional[str] = None
    status: ExecutionStatus
    started_at: datetime
    finished_at: Optional[datetime] = None
    steps: List[ExecutionStep] = Field(default_factory=list)
    error: Optional[str] = None
