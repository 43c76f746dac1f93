"""
Drive Read Node - Load a Drive file into a variable
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveReadProperties, NodeType

from .utils import read_file_value, resolve_existing_file


class DriveReadNode(ExecutableNode):
    """Text files are stored as a string, binary files as file-data."""

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_READ

    async def execute(self, properties: DriveReadProperties, context: NodeExecutionContext) -> NodeResult:
        file = await resolve_existing_file(
            context,
            properties.path,
            raw_path=context.node.properties.path,
            try_md_extension=True,
        )
        value = await read_file_value(context, file)
        context.save(properties.save_to, value)
        size = len(value) if isinstance(value, str) else len(value.get("data", ""))
        return NodeResult(
            output={"fileId": file.id, "fileName": file.name, "mimeType": file.mime_type, "size": size},
            message=f"Read {file.name}",
        )
