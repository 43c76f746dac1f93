"""
Sleep Node - Pause the run for a number of milliseconds
"""

import asyncio

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import NodeType, SleepProperties
from hubflow.utils import parse_number

# Cancellation is polled at this interval while sleeping
POLL_INTERVAL = 0.1


class SleepNode(ExecutableNode):

    category = "control"

    @property
    def node_type(self) -> NodeType:
        return NodeType.SLEEP

    async def execute(self, properties: SleepProperties, context: NodeExecutionContext) -> NodeResult:
        duration = parse_number(properties.duration)
        if duration is None or duration < 0:
            raise ValidationError(f"Invalid sleep duration: '{properties.duration}'")

        remaining = duration / 1000
        while remaining > 0:
            context.check_cancelled()
            interval = min(POLL_INTERVAL, remaining)
            await asyncio.sleep(interval)
            remaining -= interval

        return NodeResult(output=duration, message=f"Slept {duration}ms")
