"""
JSON Node - Parse JSON text from a variable
"""

import json

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import JsonProperties, NodeType
from hubflow.utils import strip_code_fence


class JsonNode(ExecutableNode):
    """Parses `source` (a markdown code fence is stripped) into `saveTo`."""

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.JSON

    async def execute(self, properties: JsonProperties, context: NodeExecutionContext) -> NodeResult:
        if not context.variables.has(properties.source):
            raise ValidationError(f"Variable '{properties.source}' not found")
        value = context.variables[properties.source]

        if isinstance(value, (dict, list)):
            parsed = value
        else:
            text = strip_code_fence(str(value)).strip()
            try:
                parsed = json.loads(text)
            except ValueError as e:
                raise ValidationError(f"Failed to parse JSON from '{properties.source}': {e}")

        context.save(properties.save_to, parsed)
        return NodeResult(output=parsed, message=f"Parsed {properties.source} into {properties.save_to}")
