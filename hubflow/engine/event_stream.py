"""
Event Stream - per-execution channel from the interpreter to the observer.

One producer (the interpreter running the execution) and at most one live
consumer (the SSE connection). Events are buffered while nobody listens so
the producer never blocks. When the buffer is full the oldest event is
dropped; the terminal event is always the last one emitted and is never
dropped. A new subscriber replaces the previous one.
"""

import asyncio
import logging
import threading
from collections import deque
from typing import AsyncIterator, Callable, Deque, Iterable, List, Optional

from hubflow.models import SSEEvent

logger = logging.getLogger('workflow.events')


class EventStream:
    """Bounded buffer-and-continue event channel for one execution"""

    def __init__(self, execution_id: str, max_buffer: int = 1000):
        self.execution_id = execution_id
        self.max_buffer = max_buffer
        self.dropped_count = 0
        self._buffer: Deque[SSEEvent] = deque()
        self._lock = threading.Lock()
        self._generation = 0
        self._waiter: Optional[asyncio.Event] = None
        self._waiter_loop: Optional[asyncio.AbstractEventLoop] = None
        self._terminal_emitted = False
        self._terminal_flushed = False
        self._flush_callbacks: List[Callable[[], None]] = []

    @property
    def terminal_emitted(self) -> bool:
        return self._terminal_emitted

    @property
    def terminal_flushed(self) -> bool:
        return self._terminal_flushed

    def on_terminal_flushed(self, callback: Callable[[], None]) -> None:
        """Run callback once the terminal event has been handed to a consumer."""
        self._flush_callbacks.append(callback)

    def emit(self, event: SSEEvent) -> None:
        """
        Queue an event without blocking.

        Safe to call from any thread. Events after the terminal event are
        ignored.
        """
        with self._lock:
            if self._terminal_emitted:
                logger.debug(f"[EVENTS] Ignoring {event.type.value} after terminal event for {self.execution_id[:8]}")
                return
            if len(self._buffer) >= self.max_buffer:
                dropped = self._buffer.popleft()
                self.dropped_count += 1
                logger.warning(
                    f"[EVENTS] Buffer full for {self.execution_id[:8]}, dropped oldest {dropped.type.value} event"
                )
            self._buffer.append(event)
            if event.type.is_terminal:
                self._terminal_emitted = True
            waiter, loop = self._waiter, self._waiter_loop
        self._wake(waiter, loop)

    def pending(self) -> List[SSEEvent]:
        """Events buffered and not yet consumed"""
        with self._lock:
            return list(self._buffer)

    async def subscribe(self, preamble: Iterable[SSEEvent] = ()) -> AsyncIterator[SSEEvent]:
        """
        Consume events until the terminal event.

        Args:
            preamble: Events yielded first to this subscriber only, e.g. a
                status snapshot on reattach

        The generator ends early if another subscriber takes over.
        """
        loop = asyncio.get_running_loop()
        waiter = asyncio.Event()
        with self._lock:
            self._generation += 1
            generation = self._generation
            previous, previous_loop = self._waiter, self._waiter_loop
            self._waiter, self._waiter_loop = waiter, loop
        # Kick the replaced subscriber so it notices and exits
        self._wake(previous, previous_loop)

        for event in preamble:
            yield event

        while True:
            with self._lock:
                if generation != self._generation:
                    logger.info(f"[EVENTS] Subscriber replaced for {self.execution_id[:8]}")
                    return
                event = self._buffer.popleft() if self._buffer else None
                if event is None:
                    waiter.clear()

            if event is None:
                await waiter.wait()
                continue

            yield event

            if event.type.is_terminal:
                self._mark_flushed()
                return

    def _mark_flushed(self) -> None:
        with self._lock:
            if self._terminal_flushed:
                return
            self._terminal_flushed = True
            callbacks = list(self._flush_callbacks)
        for callback in callbacks:
            callback()

    @staticmethod
    def _wake(waiter: Optional[asyncio.Event], loop: Optional[asyncio.AbstractEventLoop]) -> None:
        if waiter is None or loop is None or loop.is_closed():
            return
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None
        if running is loop:
            waiter.set()
        else:
            loop.call_soon_threadsafe(waiter.set)
