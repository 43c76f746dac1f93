"""
Drive File Picker Node - Let the observer choose (or name) a Drive file
"""

from typing import Any, Dict, Optional

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import InteractiveNode, NodeResult
from hubflow.models import DriveFilePickerProperties, NodeType, PromptRequest, PromptType

from .utils import drive_call, get_drive, read_file_value, resolve_existing_file


def _path_placeholder(path: str) -> Dict[str, Any]:
    """File-data without content, for a path that may not exist yet."""
    basename = path.rsplit("/", 1)[-1]
    stem, dot, extension = basename.rpartition(".")
    return {
        "id": "",
        "path": path,
        "basename": basename,
        "name": stem if dot and stem else basename,
        "extension": extension if dot and stem else "",
        "mimeType": "application/octet-stream",
        "contentType": "text",
        "data": "",
    }


class DriveFilePickerNode(InteractiveNode):
    """
    Modes:
        - select: pick an existing file; saveTo receives its content
        - create: enter a new path; saveTo receives a placeholder

    A `path` property skips the prompt entirely.
    savePathTo also records <var>_fileId for later drive-read lookups.
    """

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_FILE_PICKER

    def build_prompt(
        self,
        properties: DriveFilePickerProperties,
        context: NodeExecutionContext
    ) -> Optional[PromptRequest]:
        if not properties.save_to and not properties.save_path_to:
            raise ValidationError("drive-file-picker needs 'saveTo' or 'savePathTo'")
        if properties.path:
            return None
        if properties.mode == "create":
            return PromptRequest(
                type=PromptType.VALUE,
                title=properties.title,
                default_value=properties.default,
            )
        extensions = None
        if properties.extensions:
            extensions = [e.strip() for e in properties.extensions.split(",") if e.strip()]
        return PromptRequest(
            type=PromptType.DRIVE_FILE,
            title=properties.title,
            mode=properties.mode,
            extensions=extensions,
        )

    async def execute_with_response(
        self,
        properties: DriveFilePickerProperties,
        context: NodeExecutionContext,
        response: Any
    ) -> NodeResult:
        if properties.path or properties.mode == "create":
            path = properties.path or str(response).strip()
            if not path:
                raise ValidationError("No file path given")
            context.save(properties.save_path_to, path)
            context.save(properties.save_to, _path_placeholder(path))
            return NodeResult(output={"path": path}, message=f"Selected {path}")

        file = await self._resolve_selection(context, response)
        if properties.save_path_to:
            context.save(properties.save_path_to, file.name)
            context.save(f"{properties.save_path_to}_fileId", file.id)
        if properties.save_to:
            context.save(properties.save_to, await read_file_value(context, file))

        return NodeResult(
            output={"path": file.name, "fileId": file.id, "mimeType": file.mime_type},
            message=f"Selected {file.name}",
        )

    async def _resolve_selection(self, context: NodeExecutionContext, response: Any):
        # Response is either a path string or {path, fileId}
        if isinstance(response, dict):
            file_id = response.get("fileId") or response.get("id")
            if file_id:
                return await drive_call(context, get_drive(context).get_file, file_id)
            response = response.get("path") or response.get("name") or ""
        return await resolve_existing_file(context, str(response).strip())
