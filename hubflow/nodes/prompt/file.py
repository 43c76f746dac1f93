"""
Prompt File Node - Ask the observer for a Drive file and load its content
"""

from typing import Any, Optional

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import InteractiveNode, NodeResult
from hubflow.models import NodeType, PromptFileProperties, PromptRequest, PromptType
from hubflow.nodes.drive.utils import drive_call, get_drive, read_file_value, resolve_existing_file


class PromptFileNode(InteractiveNode):
    """
    saveTo receives the file content (text or file-data), saveFileTo the
    path parts {path, basename, name, extension}.
    """

    category = "prompt"

    @property
    def node_type(self) -> NodeType:
        return NodeType.PROMPT_FILE

    def build_prompt(
        self,
        properties: PromptFileProperties,
        context: NodeExecutionContext
    ) -> Optional[PromptRequest]:
        if not properties.save_to and not properties.save_file_to:
            raise ValidationError("prompt-file needs 'saveTo' or 'saveFileTo'")
        return PromptRequest(type=PromptType.DRIVE_FILE, title=properties.title, mode="select")

    async def execute_with_response(
        self,
        properties: PromptFileProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        if isinstance(response, dict) and (response.get("fileId") or response.get("id")):
            file_id = response.get("fileId") or response.get("id")
            file = await drive_call(context, get_drive(context).get_file, file_id)
        else:
            path = response.get("path", "") if isinstance(response, dict) else str(response)
            file = await resolve_existing_file(context, path.strip())

        if properties.save_to:
            context.save(properties.save_to, await read_file_value(context, file))
        if properties.save_file_to:
            stem, dot, extension = file.name.rpartition(".")
            context.save(properties.save_file_to, {
                "path": file.name,
                "basename": file.name,
                "name": stem if dot and stem else file.name,
                "extension": extension if dot and stem else "",
            })

        return NodeResult(output={"path": file.name, "fileId": file.id}, message=f"Loaded {file.name}")
