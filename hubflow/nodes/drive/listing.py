"""
Drive Listing Nodes - drive-list and drive-folder-list

Storage is flat, so folders are the path prefixes of file names.
"""

from typing import List, Set

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import DriveFolderListProperties, DriveListProperties, NodeType
from hubflow.providers.drive import DriveFile

from .utils import drive_call, get_drive


def _folder_prefix(folder: str) -> str:
    folder = folder.strip().strip("/")
    return f"{folder}/" if folder else ""


class DriveListNode(ExecutableNode):
    """Files under a folder prefix, newest first."""

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_LIST

    async def execute(self, properties: DriveListProperties, context: NodeExecutionContext) -> NodeResult:
        drive = get_drive(context)
        files: List[DriveFile] = await drive_call(context, drive.list_files)

        prefix = _folder_prefix(properties.folder)
        matching = [f for f in files if f.name.startswith(prefix)] if prefix else list(files)
        matching.sort(key=lambda f: f.modified_time or "", reverse=True)
        limited = matching[:properties.limit]

        result = {
            "notes": [
                {
                    "id": f.id,
                    "name": f.name,
                    "modifiedTime": f.modified_time,
                    "createdTime": f.created_time,
                }
                for f in limited
            ],
            "count": len(limited),
            "totalCount": len(matching),
            "hasMore": len(matching) > properties.limit,
        }
        context.save(properties.save_to, result)
        return NodeResult(output=result, message=f"Listed {len(limited)} of {len(matching)} files")


class DriveFolderListNode(ExecutableNode):
    """Immediate virtual subfolders of a folder prefix, sorted by name."""

    category = "drive"

    @property
    def node_type(self) -> NodeType:
        return NodeType.DRIVE_FOLDER_LIST

    async def execute(self, properties: DriveFolderListProperties, context: NodeExecutionContext) -> NodeResult:
        drive = get_drive(context)
        files: List[DriveFile] = await drive_call(context, drive.list_files)

        prefix = _folder_prefix(properties.folder)
        names: Set[str] = set()
        for f in files:
            if not f.name.startswith(prefix):
                continue
            relative = f.name[len(prefix):]
            if "/" in relative:
                names.add(relative.split("/", 1)[0])

        folders = sorted(names)
        result = {"folders": [{"name": name} for name in folders], "count": len(folders)}
        context.save(properties.save_to, result)
        return NodeResult(output=result, message=f"Found {len(folders)} folders")
