"""
Drive File Node - Write text content to a Drive file
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveFileProperties, NodeType, PromptRequest, PromptType, SSEEventType, StepStatus

from .utils import drive_call, get_drive, guess_mime_type, picker_file_id, with_md_extension


class DriveFileNode(ExecutableNode):
    """
    Writes `content` to `path`.

    Modes:
        - overwrite: replace the file, creating it when missing
        - append: add content on a new line after the existing text
        - create: only create; an existing file is left untouched

    With confirm=true, changing an existing file first asks the observer to
    approve a diff. A declined diff skips the write.
    """

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_FILE

    async def execute(self, properties: DriveFileProperties, context: NodeExecutionContext) -> NodeResult:
        drive = get_drive(context)
        file_name = with_md_extension(properties.path)
        content = properties.content

        existing = None
        file_id = picker_file_id(context, context.node.properties.path)
        if file_id:
            existing = await drive_call(context, drive.get_file, file_id)
        if existing is None:
            existing = await drive_call(context, drive.find_file_by_name, file_name)

        if properties.mode == "create" and existing is not None:
            return NodeResult(
                output={"fileId": existing.id, "fileName": existing.name, "written": False},
                message=f"{existing.name} already exists, skipped",
                status=StepStatus.INFO,
            )

        old_content = ""
        if existing is not None and (properties.mode == "append" or properties.confirm):
            old_content = await drive_call(context, drive.read_text, existing.id)

        new_content = content
        if existing is not None and properties.mode == "append":
            new_content = f"{old_content}\n{content}" if old_content else content

        if existing is not None and properties.confirm and new_content != old_content:
            approved = await context.request_prompt(PromptRequest(
                type=PromptType.DIFF,
                title="Confirm Write",
                file_name=existing.name,
                old_content=old_content,
                new_content=new_content,
            ))
            if not approved:
                context.logger.info(f"[DRIVE] Write to {existing.name} declined")
                return NodeResult(
                    output={"fileId": existing.id, "fileName": existing.name, "written": False},
                    message=f"Write to {existing.name} declined",
                    status=StepStatus.INFO,
                )

        if existing is not None:
            result_file = await drive_call(context, drive.update_file, existing.id, new_content, guess_mime_type(existing.name))
            context.notify_drive_change(SSEEventType.DRIVE_FILE_UPDATED, result_file.id, result_file.name, new_content)
            action = "Updated"
        else:
            result_file = await drive_call(context, drive.create_file, file_name, new_content, guess_mime_type(file_name))
            context.notify_drive_change(SSEEventType.DRIVE_FILE_CREATED, result_file.id, result_file.name, new_content)
            action = "Created"

        if properties.open:
            context.save("__openFile", {
                "fileId": result_file.id,
                "fileName": result_file.name,
                "mimeType": result_file.mime_type,
            })

        return NodeResult(
            output={"fileId": result_file.id, "fileName": result_file.name, "written": True},
            message=f"{action} {result_file.name}",
        )
