"""
Prompt Broker - pairs a suspended interactive node with the response that
arrives later through the API.

At most one prompt is outstanding per execution. The interpreter awaits a
future keyed by execution id; the prompt-response route resolves it, the
stop route cancels it.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Any, Dict, Optional

from hubflow.models import PromptRequest

from .errors import ExecutionCancelled, ValidationError

logger = logging.getLogger('workflow.prompt')


@dataclass
class PendingPrompt:
    request: PromptRequest
    future: asyncio.Future
    loop: asyncio.AbstractEventLoop
    settled: bool = False


def _settle(future: asyncio.Future, value: Any = None, error: Optional[BaseException] = None) -> None:
    if future.done():
        return
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(value)


class PromptBroker:
    """Registry of outstanding prompts, keyed by execution id"""

    def __init__(self):
        self._pending: Dict[str, PendingPrompt] = {}
        self._lock = threading.Lock()

    async def await_response(self, execution_id: str, request: PromptRequest) -> Any:
        """
        Register request and suspend until it is resolved or cancelled.

        Raises:
            ValidationError: Another prompt is already pending for the execution
            ExecutionCancelled: The execution was stopped while waiting
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        pending = PendingPrompt(request=request, future=future, loop=loop)

        with self._lock:
            if execution_id in self._pending:
                raise ValidationError("A prompt is already pending for this execution")
            self._pending[execution_id] = pending

        logger.info(f"[PROMPT] Waiting for {request.type.value} response on {execution_id[:8]}")
        try:
            return await future
        finally:
            with self._lock:
                if self._pending.get(execution_id) is pending:
                    del self._pending[execution_id]

    def resolve(self, execution_id: str, value: Any) -> bool:
        """
        Deliver a response.

        Returns:
            True if a pending prompt was resolved, False if none was waiting
        """
        with self._lock:
            pending = self._pending.get(execution_id)
            if pending is None or pending.settled:
                return False
            pending.settled = True

        logger.info(f"[PROMPT] Response received for {execution_id[:8]}")
        pending.loop.call_soon_threadsafe(_settle, pending.future, value)
        return True

    def cancel(self, execution_id: str, reason: str = "Execution cancelled") -> bool:
        """Fail a pending prompt with ExecutionCancelled."""
        with self._lock:
            pending = self._pending.get(execution_id)
            if pending is None or pending.settled:
                return False
            pending.settled = True

        logger.info(f"[PROMPT] Cancelling pending prompt for {execution_id[:8]}")
        pending.loop.call_soon_threadsafe(_settle, pending.future, None, ExecutionCancelled(reason))
        return True

    def get_pending(self, execution_id: str) -> Optional[PromptRequest]:
        """The unanswered prompt for an execution, if any"""
        with self._lock:
            pending = self._pending.get(execution_id)
            if pending is None or pending.settled:
                return None
            return pending.request

    def has_pending(self, execution_id: str) -> bool:
        return self.get_pending(execution_id) is not None
