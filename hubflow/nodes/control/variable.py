"""
Variable Node - Declare or overwrite a variable
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import NodeType, VariableProperties
from hubflow.utils import coerce_number


class VariableNode(ExecutableNode):
    """
    Binds `name` to the resolved `value`.

    Text that reads back identically as a number ("42", "1.5") is stored
    as a number; "02134" or "1.50" stay text.
    """

    category = "control"

    @property
    def node_type(self) -> NodeType:
        return NodeType.VARIABLE

    async def execute(self, properties: VariableProperties, context: NodeExecutionContext) -> NodeResult:
        value = coerce_number(properties.value)
        context.save(properties.name, value)
        return NodeResult(output=value, message=f"{properties.name} = {value}")
