"""
While Node - Loop head

The loop body leaves through the "true" edge and eventually leads back to
this node; the "false" edge exits the loop. The interpreter counts the
true branches against the iteration limit.
"""

from hubflow.engine.conditions import dump_condition_operands, evaluate_condition
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import ConditionProperties, NodeType


class WhileNode(ExecutableNode):

    category = "control"

    @property
    def node_type(self) -> NodeType:
        return NodeType.WHILE

    async def execute(self, properties: ConditionProperties, context: NodeExecutionContext) -> NodeResult:
        result = evaluate_condition(properties.condition, context.resolver)
        resolved = dump_condition_operands(properties.condition, context.resolver)
        message = "continue" if result else "exit"
        return NodeResult(output=result, message=f"{resolved} -> {message}", branch=result)
