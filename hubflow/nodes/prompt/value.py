"""
Prompt Value Node - Ask the observer for a single value
"""

from typing import Any, Optional

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import InteractiveNode, NodeResult
from hubflow.models import NodeType, PromptRequest, PromptType, PromptValueProperties


class PromptValueNode(InteractiveNode):

    category = "prompt"

    @property
    def node_type(self) -> NodeType:
        return NodeType.PROMPT_VALUE

    def build_prompt(
        self,
        properties: PromptValueProperties,
        context: NodeExecutionContext
    ) -> Optional[PromptRequest]:
        return PromptRequest(
            type=PromptType.VALUE,
            title=properties.title,
            default_value=properties.default,
            multiline=properties.multiline,
        )

    async def execute_with_response(
        self,
        properties: PromptValueProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        context.save(properties.save_to, response)
        return NodeResult(output=response, message=f"{properties.save_to} = {response}")
