"""
SSE Streaming API routes.

One live event stream per execution. The stream ends after the terminal
event; an observer that disconnects early may reattach with the same
execution id.
"""

import asyncio
import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sse_starlette.sse import EventSourceResponse

from hubflow import config
from hubflow.utils import sanitize_error_message

from ..dependencies import get_current_user_id, get_processor

logger = logging.getLogger('workflow.api')

router = APIRouter(prefix="/api", tags=["streaming"])


@router.get("/workflow/{workflow_id}/execute/stream")
async def stream_execution(
    workflow_id: str,
    execution_id: str = Query(..., alias="executionId"),
    processor = Depends(get_processor),
    user_id: str = Depends(get_current_user_id)
):
    """
    Stream execution events via Server-Sent Events (SSE).

    Events:
    - log: One node visit (ExecutionStep)
    - status: Execution status changed
    - prompt-request: User input needed
    - complete / cancelled / error: Terminal, the stream closes after it
    - drive-file-created / drive-file-updated / drive-file-deleted
    """
    execution = processor.get_execution(execution_id, user_id, workflow_id)
    if execution is None:
        raise HTTPException(status_code=404, detail="Execution not found")

    logger.info(f"[SSE] Client connected for execution {execution_id[:8]}...")

    async def event_generator():
        try:
            async for event in processor.stream(execution):
                yield event.to_message()
        except asyncio.CancelledError:
            # The execution keeps running; the observer may reattach
            logger.info(f"[SSE] Client disconnected for execution {execution_id[:8]}...")
            raise
        except Exception as e:
            logger.error(f"[SSE] Error in stream for execution {execution_id[:8]}: {e}")
            yield {"event": "error", "data": json.dumps({"message": sanitize_error_message(str(e))})}

    return EventSourceResponse(
        event_generator(),
        ping=config.get_sse_ping_interval(),
        send_timeout=5
    )
