"""
Drive Save Node - Store file-data (or plain text) from a variable on Drive
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveSaveProperties, NodeType, SSEEventType
from hubflow.utils import stringify_value

from .utils import drive_call, file_data_bytes, get_drive, guess_mime_type, parse_file_data


class DriveSaveNode(ExecutableNode):
    """
    `source` names a variable (or is a template) holding file-data from
    drive-read, http or prompt-file. A missing extension on `path` is taken
    from the file-data.
    """

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_SAVE

    async def execute(self, properties: DriveSaveProperties, context: NodeExecutionContext) -> NodeResult:
        source = properties.source.strip()
        if context.variables.has(source):
            value = context.variables[source]
        else:
            value = context.resolver.resolve_value(source)
        if value is None or value == "":
            raise ValidationError(f"Variable '{source}' not found or empty")

        file_data = parse_file_data(value)
        file_name = properties.path
        if file_data is not None:
            extension = file_data.get("extension")
            if extension and "." not in file_name.rsplit("/", 1)[-1]:
                file_name = f"{file_name}.{extension}"
            data = file_data_bytes(file_data)
            mime_type = file_data.get("mimeType") or guess_mime_type(file_name)
        else:
            data = stringify_value(value).encode("utf-8")
            mime_type = guess_mime_type(file_name)

        drive = get_drive(context)
        created = await drive_call(context, drive.create_file, file_name, data, mime_type)
        context.notify_drive_change(SSEEventType.DRIVE_FILE_CREATED, created.id, created.name)
        context.save(properties.save_path_to, created.name)

        return NodeResult(
            output={"fileId": created.id, "fileName": created.name, "mimeType": mime_type, "bytes": len(data)},
            message=f"Saved {created.name}",
        )
