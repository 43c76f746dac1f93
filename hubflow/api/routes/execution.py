"""
Workflow Execution API routes.

Provides endpoints for starting and stopping executions, answering
prompts and reading execution history.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from hubflow.engine.errors import ParseError, ValidationError
from hubflow.models import (
    PromptResponseRequest,
    StartExecutionRequest,
    StartExecutionResponse,
    StopExecutionRequest,
)
from hubflow.utils import sanitize_error_message

from ..dependencies import get_current_user_id, get_processor

logger = logging.getLogger('workflow.api')

router = APIRouter(prefix="/api", tags=["execution"])


@router.get("/workflow/history")
async def list_history(
    workflow_id: Optional[str] = Query(None, alias="workflowId"),
    limit: int = Query(50, ge=1, le=500),
    processor = Depends(get_processor),
    user_id: str = Depends(get_current_user_id)
):
    """Finished executions of the caller, most recent first."""
    records = processor.list_history(workflow_id=workflow_id, owner=user_id, limit=limit)
    return [record.model_dump(mode="json", by_alias=True) for record in records]


@router.post("/workflow/{workflow_id}/execute", response_model=StartExecutionResponse, response_model_by_alias=True)
async def start_execution(
    workflow_id: str,
    request: StartExecutionRequest,
    processor = Depends(get_processor),
    user_id: str = Depends(get_current_user_id)
):
    """
    Start a workflow run in the background.

    The document is taken from `content` when given, otherwise loaded by
    `workflow_id` through the workflow loader. Progress is observed on the
    stream endpoint.
    """
    logger.info(f"[API REQUEST] POST /api/workflow/{workflow_id}/execute - user_id={user_id}, inline={request.content is not None}")
    try:
        execution_id = await processor.start_execution(
            workflow_id=workflow_id,
            owner=user_id,
            content=request.content,
            variables=request.variables,
        )
    except (ParseError, ValidationError) as e:
        raise HTTPException(status_code=400, detail=sanitize_error_message(e.message))

    return StartExecutionResponse(execution_id=execution_id)


@router.post("/workflow/{workflow_id}/stop")
async def stop_execution(
    workflow_id: str,
    request: StopExecutionRequest,
    processor = Depends(get_processor),
    user_id: str = Depends(get_current_user_id)
):
    """Request cooperative cancellation of a running execution."""
    execution = processor.get_execution(request.execution_id, user_id, workflow_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")

    if not processor.stop(execution):
        return {"status": execution.status.value}
    logger.info(f"[API] Stop requested for {request.execution_id[:8]} by {user_id}")
    return {"status": "cancelling"}


@router.post("/prompt-response")
async def prompt_response(
    request: PromptResponseRequest,
    processor = Depends(get_processor),
    user_id: str = Depends(get_current_user_id)
):
    """Answer the prompt an execution is suspended on (null dismisses it)."""
    execution = processor.get_execution(request.execution_id, user_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")

    if not processor.submit_prompt_response(execution, request.value):
        raise HTTPException(status_code=409, detail="No prompt pending for this execution")
    return {"status": "ok"}
