"""
Prompt Selection Node - Ask the observer for a block of text
"""

from typing import Any, Optional

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import InteractiveNode, NodeResult
from hubflow.models import NodeType, PromptRequest, PromptSelectionProperties, PromptType


class PromptSelectionNode(InteractiveNode):
    """Multiline variant of prompt-value with an empty default."""

    category = "prompt"

    @property
    def node_type(self) -> NodeType:
        return NodeType.PROMPT_SELECTION

    def build_prompt(
        self,
        properties: PromptSelectionProperties,
        context: NodeExecutionContext
    ) -> Optional[PromptRequest]:
        return PromptRequest(
            type=PromptType.VALUE,
            title=properties.title,
            default_value="",
            multiline=True,
        )

    async def execute_with_response(
        self,
        properties: PromptSelectionProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        context.save(properties.save_to, response)
        length = len(response) if isinstance(response, str) else 0
        return NodeResult(output=response, message=f"Received {length} characters")
