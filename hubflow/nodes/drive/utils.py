"""
Shared helpers for the Drive operation nodes: collaborator lookup, blocking
call wrapping, file resolution and the file-data shape used for binary
content.
"""

import asyncio
import base64
import json
import mimetypes
import re
from typing import Any, Callable, Dict, Optional

import requests

from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ExternalCallError, ValidationError
from hubflow.providers.drive import DriveError, DriveFile, looks_like_file_id

BINARY_MIME_PREFIXES = ("image/", "audio/", "video/")
BINARY_MIME_TYPES = {"application/pdf", "application/zip", "application/octet-stream"}

_VARIABLE_REF_RE = re.compile(r'^\{\{\s*(\w+)\s*\}\}$')


def is_binary_mime_type(mime_type: str) -> bool:
    return mime_type.startswith(BINARY_MIME_PREFIXES) or mime_type in BINARY_MIME_TYPES


def guess_mime_type(file_name: str) -> str:
    if file_name.endswith(".md"):
        return "text/markdown"
    mime_type, _ = mimetypes.guess_type(file_name)
    return mime_type or "text/plain"


def with_md_extension(path: str) -> str:
    """Append .md when the last path segment has no extension."""
    base_name = path.rsplit("/", 1)[-1]
    return path if "." in base_name else f"{path}.md"


def get_drive(context: NodeExecutionContext):
    if not context.has_service("drive"):
        raise ExternalCallError("drive", "Drive client not configured", node_id=context.node.id)
    return context.get_service("drive")


async def drive_call(context: NodeExecutionContext, func: Callable, *args, **kwargs) -> Any:
    """Run a blocking Drive call off the event loop, wrapping its failures."""
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except (DriveError, requests.RequestException) as e:
        raise ExternalCallError("drive", str(e), original_error=e, node_id=context.node.id)


def picker_file_id(context: NodeExecutionContext, raw_path: Optional[str]) -> Optional[str]:
    """File id stored by drive-file-picker when raw_path is exactly {{var}}."""
    match = _VARIABLE_REF_RE.match((raw_path or "").strip())
    if not match:
        return None
    file_id = context.variables.get(f"{match.group(1)}_fileId")
    return file_id if isinstance(file_id, str) and file_id else None


async def resolve_existing_file(
    context: NodeExecutionContext,
    path: str,
    raw_path: Optional[str] = None,
    try_md_extension: bool = False
) -> DriveFile:
    """
    Find an existing Drive file.

    Tries a direct file id, then the companion <var>_fileId variable, then
    an exact name match (optionally with .md appended).

    Raises:
        ValidationError: Empty path or file not found
    """
    if not path:
        raise ValidationError("Missing 'path' property", node_id=context.node.id)
    drive = get_drive(context)

    if looks_like_file_id(path):
        return await drive_call(context, drive.get_file, path)

    file_id = picker_file_id(context, raw_path)
    if file_id:
        return await drive_call(context, drive.get_file, file_id)

    found = await drive_call(context, drive.find_file_by_name, path)
    if found is None and try_md_extension and not path.endswith(".md"):
        found = await drive_call(context, drive.find_file_by_name, f"{path}.md")
    if found is None:
        raise ValidationError(f"File not found: {path}", node_id=context.node.id)
    return found


def build_file_data(file_name: str, mime_type: str, data: bytes, file_id: Optional[str] = None) -> Dict[str, Any]:
    """File-data object for binary content (base64 payload)."""
    stem, dot, extension = file_name.rpartition(".")
    file_data: Dict[str, Any] = {
        "path": file_name,
        "basename": file_name,
        "name": stem if dot else file_name,
        "extension": extension if dot else "",
        "mimeType": mime_type,
        "contentType": "binary",
        "data": base64.b64encode(data).decode("ascii"),
    }
    if file_id:
        file_data["id"] = file_id
    return file_data


def parse_file_data(value: Any) -> Optional[Dict[str, Any]]:
    """Return value as a file-data dict when it is one (dict or JSON text)."""
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except ValueError:
            return None
    if isinstance(value, dict) and "data" in value and ("mimeType" in value or "contentType" in value):
        return value
    return None


def file_data_bytes(file_data: Dict[str, Any]) -> bytes:
    if file_data.get("contentType") == "binary":
        return base64.b64decode(file_data.get("data", ""))
    return str(file_data.get("data", "")).encode("utf-8")


async def read_file_value(context: NodeExecutionContext, file: DriveFile) -> Any:
    """Text content for text files, file-data for binary ones."""
    drive = get_drive(context)
    if is_binary_mime_type(file.mime_type):
        data = await drive_call(context, drive.read_bytes, file.id)
        return build_file_data(file.name, file.mime_type, data, file.id)
    return await drive_call(context, drive.read_text, file.id)
