"""
Drive Delete Node - Soft delete by moving the file into trash/
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveDeleteProperties, NodeType, SSEEventType

from .utils import drive_call, get_drive, resolve_existing_file

TRASH_FOLDER = "trash"


class DriveDeleteNode(ExecutableNode):

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_DELETE

    async def execute(self, properties: DriveDeleteProperties, context: NodeExecutionContext) -> NodeResult:
        file = await resolve_existing_file(
            context,
            properties.path,
            raw_path=context.node.properties.path,
            try_md_extension=True,
        )
        drive = get_drive(context)
        trash_id = await drive_call(context, drive.ensure_subfolder, TRASH_FOLDER)
        await drive_call(context, drive.move_file, file.id, trash_id)
        context.notify_drive_change(SSEEventType.DRIVE_FILE_DELETED, file.id, file.name)
        return NodeResult(output={"fileId": file.id, "fileName": file.name}, message=f"Moved {file.name} to trash")
