"""
Set Node - Evaluate a simple expression into one variable
"""

from hubflow.engine.conditions import evaluate_expression
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import NodeType, SetProperties


class SetNode(ExecutableNode):
    """
    Writes exactly one variable.

    The value is resolved first, so "{{count}} + 1" becomes "3 + 1" and is
    then computed. Text that is not arithmetic is stored as-is.
    """

    category = "control"

    @property
    def node_type(self) -> NodeType:
        return NodeType.SET

    async def execute(self, properties: SetProperties, context: NodeExecutionContext) -> NodeResult:
        result = evaluate_expression(properties.value)
        context.save(properties.name, result)
        return NodeResult(output=result, message=f"{properties.name} = {result}")
