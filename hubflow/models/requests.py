"""
API Request / Response Models
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StartExecutionRequest(BaseModel):
    """Start a workflow; content overrides loading the document by id"""
    content: Optional[str] = Field(None, description="Workflow YAML text")
    variables: Dict[str, Any] = Field(default_factory=dict, description="Initial variables")


class StartExecutionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(alias="executionId")


class StopExecutionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(alias="executionId")


class PromptResponseRequest(BaseModel):
    """Answer to a pending prompt; value null means the prompt was dismissed"""
    model_config = ConfigDict(populate_by_name=True)

    execution_id: str = Field(alias="executionId")
    value: Any = None
