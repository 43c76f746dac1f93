"""
If Node - Two-way branch on a condition
"""

from hubflow.engine.conditions import dump_condition_operands, evaluate_condition
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import ConditionProperties, NodeType


class IfNode(ExecutableNode):
    """Follows the "true" edge when the condition holds, else "false"."""

    category = "control"

    @property
    def node_type(self) -> NodeType:
        return NodeType.IF

    async def execute(self, properties: ConditionProperties, context: NodeExecutionContext) -> NodeResult:
        result = evaluate_condition(properties.condition, context.resolver)
        resolved = dump_condition_operands(properties.condition, context.resolver)
        return NodeResult(
            output=result,
            message=f"{resolved} -> {str(result).lower()}",
            branch=result,
        )
