"""
Dialog Node - Message box with buttons, optional choices and text input
"""

from typing import Any, Dict, Optional

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import InteractiveNode, NodeResult
from hubflow.models import DialogProperties, NodeType, PromptRequest, PromptType
from hubflow.utils import parse_json_lenient


class DialogNode(InteractiveNode):
    """
    The observer answers with {button, selected, input}, as an object or
    JSON text; any other text is taken as the input and button1 as the
    button. The answer is stored in saveTo.
    """

    category = "prompt"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DIALOG

    def build_prompt(self, properties: DialogProperties, context: NodeExecutionContext) -> Optional[PromptRequest]:
        options = []
        if properties.options:
            options = [o.strip() for o in properties.options.split(",") if o.strip()]

        defaults: Optional[Dict[str, Any]] = None
        if properties.defaults:
            parsed = parse_json_lenient(properties.defaults)
            if isinstance(parsed, dict):
                defaults = {}
                if "input" in parsed:
                    defaults["input"] = parsed["input"]
                if isinstance(parsed.get("selected"), list):
                    defaults["selected"] = parsed["selected"]
            else:
                context.logger.warning(f"[DIALOG] Ignoring malformed defaults: {properties.defaults!r}")

        return PromptRequest(
            type=PromptType.DIALOG,
            title=properties.title,
            message=properties.message,
            options=options,
            multi_select=properties.multi_select,
            markdown=properties.markdown,
            button1=properties.button1,
            button2=properties.button2,
            input_title=properties.input_title,
            multiline=properties.multiline,
            defaults=defaults,
        )

    async def execute_with_response(
        self,
        properties: DialogProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        if isinstance(response, str):
            parsed = parse_json_lenient(response)
            # Plain text is what was typed into the input field
            response = parsed if isinstance(parsed, dict) else {"input": response}
        if not isinstance(response, dict):
            response = {}
        result = {
            "button": response.get("button", properties.button1),
            "selected": response.get("selected", []),
            "input": response.get("input"),
        }
        context.save(properties.save_to, result)
        return NodeResult(output=result, message=f"Pressed {result['button']}")
