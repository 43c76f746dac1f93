"""
Drive Search Node - Find files by name or content
"""

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveSearchProperties, NodeType

from .utils import drive_call, get_drive


class DriveSearchNode(ExecutableNode):

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_SEARCH

    async def execute(self, properties: DriveSearchProperties, context: NodeExecutionContext) -> NodeResult:
        if not properties.query:
            raise ValidationError("drive-search query resolved to an empty string")
        drive = get_drive(context)
        files = await drive_call(context, drive.search, properties.query, properties.search_content, properties.limit)
        results = [
            {"id": f.id, "name": f.name, "modifiedTime": f.modified_time}
            for f in files
        ]
        context.save(properties.save_to, results)
        return NodeResult(output=results, message=f"Found {len(results)} files for '{properties.query}'")
