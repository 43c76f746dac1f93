"""
Tests for pairing suspended prompts with their responses.
"""

import asyncio

import pytest

from hubflow.engine import PromptBroker
from hubflow.engine.errors import ExecutionCancelled, ValidationError
from hubflow.models import PromptRequest, PromptType

from conftest import wait_for_prompt


def value_prompt(title: str = "Name?") -> PromptRequest:
    return PromptRequest(type=PromptType.VALUE, title=title)


class TestPromptBroker:

    async def test_resolve_delivers_value(self):
        broker = PromptBroker()
        waiter = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        pending = await wait_for_prompt(broker, "exec-1")

        assert pending.title == "Name?"
        assert broker.resolve("exec-1", "Ada")
        assert await waiter == "Ada"
        assert not broker.has_pending("exec-1")

    async def test_resolve_without_pending_prompt(self):
        assert not PromptBroker().resolve("exec-1", "late")

    async def test_second_resolve_is_rejected(self):
        broker = PromptBroker()
        waiter = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        await wait_for_prompt(broker, "exec-1")

        assert broker.resolve("exec-1", "first")
        assert not broker.resolve("exec-1", "second")
        assert await waiter == "first"

    async def test_null_response_is_delivered(self):
        broker = PromptBroker()
        waiter = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        await wait_for_prompt(broker, "exec-1")

        broker.resolve("exec-1", None)
        assert await waiter is None

    async def test_cancel_raises_in_waiter(self):
        broker = PromptBroker()
        waiter = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        await wait_for_prompt(broker, "exec-1")

        assert broker.cancel("exec-1", "Stopped")
        with pytest.raises(ExecutionCancelled, match="Stopped"):
            await waiter

    async def test_one_prompt_per_execution(self):
        broker = PromptBroker()
        waiter = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        await wait_for_prompt(broker, "exec-1")

        with pytest.raises(ValidationError):
            await broker.await_response("exec-1", value_prompt("Again?"))

        broker.resolve("exec-1", "ok")
        await waiter

    async def test_executions_are_independent(self):
        broker = PromptBroker()
        first = asyncio.create_task(broker.await_response("exec-1", value_prompt()))
        second = asyncio.create_task(broker.await_response("exec-2", value_prompt()))
        await wait_for_prompt(broker, "exec-1")
        await wait_for_prompt(broker, "exec-2")

        broker.resolve("exec-2", "two")
        broker.resolve("exec-1", "one")

        assert await first == "one"
        assert await second == "two"
