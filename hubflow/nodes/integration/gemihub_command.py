"""
GemiHub Command Node - File management commands on a Drive file

    rename      text is the new name
    duplicate   text is the copy's name (default "<stem> (copy)<ext>")
    publish     share by link, returns the web view link
    unpublish   revoke link sharing, returns "ok"
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import GemihubCommandProperties, NodeType, SSEEventType
from hubflow.nodes.drive.utils import drive_call, get_drive, resolve_existing_file

SUPPORTED_COMMANDS = ("rename", "duplicate", "publish", "unpublish")


def copy_name(file_name: str) -> str:
    stem, dot, extension = file_name.rpartition(".")
    if dot and stem:
        return f"{stem} (copy).{extension}"
    return f"{file_name} (copy)"


class GemihubCommandNode(ExecutableNode):

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.GEMIHUB_COMMAND

    async def execute(self, properties: GemihubCommandProperties, context: NodeExecutionContext) -> NodeResult:
        command = properties.command.strip().lower()
        if command not in SUPPORTED_COMMANDS:
            raise ValidationError(f"Unsupported gemihub command: {properties.command}")

        file = await resolve_existing_file(
            context,
            properties.path.strip(),
            raw_path=context.node.properties.path,
            try_md_extension=True,
        )
        drive = get_drive(context)
        text = (properties.text or "").strip()

        if command == "rename":
            if not text:
                raise ValidationError("rename needs the new name in 'text'")
            renamed = await drive_call(context, drive.rename_file, file.id, text)
            context.notify_drive_change(SSEEventType.DRIVE_FILE_UPDATED, renamed.id, renamed.name)
            result = renamed.name
        elif command == "duplicate":
            copied = await drive_call(context, drive.copy_file, file.id, text or copy_name(file.name))
            context.notify_drive_change(SSEEventType.DRIVE_FILE_CREATED, copied.id, copied.name)
            result = copied.name
        elif command == "publish":
            result = await drive_call(context, drive.publish, file.id)
            context.notify_drive_change(SSEEventType.DRIVE_FILE_UPDATED, file.id, file.name)
        else:
            await drive_call(context, drive.unpublish, file.id)
            context.notify_drive_change(SSEEventType.DRIVE_FILE_UPDATED, file.id, file.name)
            result = "ok"

        context.save(properties.save_to, result)
        return NodeResult(output={"command": command, "fileId": file.id, "result": result}, message=f"{command} {file.name}")
