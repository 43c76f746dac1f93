"""
Google Drive Client - REST v3 calls used by the Drive node handlers

Storage is flat: every workflow file lives in one root folder and "folders"
are name prefixes ("notes/today.md"). Only the trash folder used by
drive-delete is a real Drive folder.

All methods are blocking; node handlers call them through asyncio.to_thread.
"""

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

import requests

from hubflow import config

logger = logging.getLogger('workflow.providers.drive')

API_URL = "https://www.googleapis.com/drive/v3"
UPLOAD_URL = "https://www.googleapis.com/upload/drive/v3"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"
FILE_FIELDS = "id,name,mimeType,modifiedTime,createdTime,webViewLink,parents"
DEFAULT_TIMEOUT = 30


class DriveError(RuntimeError):
    """Drive API call failed"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


@dataclass
class DriveFile:
    id: str
    name: str
    mime_type: str = "text/plain"
    modified_time: Optional[str] = None
    created_time: Optional[str] = None
    web_view_link: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "DriveFile":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            mime_type=data.get("mimeType", "application/octet-stream"),
            modified_time=data.get("modifiedTime"),
            created_time=data.get("createdTime"),
            web_view_link=data.get("webViewLink"),
        )


def _escape_query(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveClient:
    """
    Thin wrapper over the Drive v3 REST API.

    Args:
        access_token: OAuth access token (defaults to GOOGLE_DRIVE_ACCESS_TOKEN)
        root_folder_id: Folder holding the workspace files
            (defaults to GOOGLE_DRIVE_ROOT_FOLDER_ID)
    """

    def __init__(
        self,
        access_token: Optional[str] = None,
        root_folder_id: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT
    ):
        self.access_token = access_token or config.get_drive_access_token()
        self.root_folder_id = root_folder_id or config.get_drive_root_folder_id()
        self.timeout = timeout
        self._session = requests.Session()

    # =========================================================================
    # Low level
    # =========================================================================

    def _request(self, method: str, url: str, **kwargs) -> requests.Response:
        if not self.access_token:
            raise DriveError("Drive access token not configured (GOOGLE_DRIVE_ACCESS_TOKEN)")
        headers = kwargs.pop("headers", {})
        headers["Authorization"] = f"Bearer {self.access_token}"
        try:
            response = self._session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise DriveError(f"{method} {url} failed: {e}")
        if response.status_code >= 400:
            try:
                detail = response.json().get("error", {}).get("message", response.text[:200])
            except ValueError:
                detail = response.text[:200]
            raise DriveError(f"Drive API error ({response.status_code}): {detail}", response.status_code)
        return response

    def _list(self, query: str, limit: Optional[int] = None, order_by: str = "modifiedTime desc") -> List[DriveFile]:
        files: List[DriveFile] = []
        page_token = None
        while True:
            params = {
                "q": query,
                "fields": f"nextPageToken,files({FILE_FIELDS})",
                "orderBy": order_by,
                "pageSize": min(limit or 1000, 1000),
            }
            if page_token:
                params["pageToken"] = page_token
            data = self._request("GET", f"{API_URL}/files", params=params).json()
            files.extend(DriveFile.from_api(item) for item in data.get("files", []))
            page_token = data.get("nextPageToken")
            if not page_token or (limit is not None and len(files) >= limit):
                break
        return files[:limit] if limit is not None else files

    def _scope_query(self, extra: str = "") -> str:
        clauses = ["trashed = false", f"mimeType != '{FOLDER_MIME_TYPE}'"]
        if self.root_folder_id:
            clauses.append(f"'{self.root_folder_id}' in parents")
        if extra:
            clauses.append(extra)
        return " and ".join(clauses)

    # =========================================================================
    # Lookup
    # =========================================================================

    def get_file(self, file_id: str) -> DriveFile:
        response = self._request("GET", f"{API_URL}/files/{file_id}", params={"fields": FILE_FIELDS})
        return DriveFile.from_api(response.json())

    def find_file_by_name(self, name: str) -> Optional[DriveFile]:
        files = self._list(self._scope_query(f"name = '{_escape_query(name)}'"), limit=1)
        return files[0] if files else None

    def search(self, query: str, search_content: bool = False, limit: int = 10) -> List[DriveFile]:
        """Files whose name (or, with search_content, body) contains query."""
        escaped = _escape_query(query)
        if search_content:
            clause = f"(name contains '{escaped}' or fullText contains '{escaped}')"
        else:
            clause = f"name contains '{escaped}'"
        return self._list(self._scope_query(clause), limit=limit)

    def list_files(self, limit: Optional[int] = None) -> List[DriveFile]:
        """Workspace files, newest first."""
        return self._list(self._scope_query(), limit=limit)

    # =========================================================================
    # Content
    # =========================================================================

    def read_bytes(self, file_id: str) -> bytes:
        return self._request("GET", f"{API_URL}/files/{file_id}", params={"alt": "media"}).content

    def read_text(self, file_id: str) -> str:
        return self.read_bytes(file_id).decode("utf-8", errors="replace")

    def create_file(
        self,
        name: str,
        content: Union[str, bytes],
        mime_type: str = "text/plain",
        parent_id: Optional[str] = None
    ) -> DriveFile:
        metadata: Dict[str, Any] = {"name": name, "mimeType": mime_type}
        parent = parent_id or self.root_folder_id
        if parent:
            metadata["parents"] = [parent]
        data = content.encode("utf-8") if isinstance(content, str) else content

        boundary = "hubflow_boundary"
        body = (
            f"--{boundary}\r\nContent-Type: application/json; charset=UTF-8\r\n\r\n"
            f"{json.dumps(metadata)}\r\n"
            f"--{boundary}\r\nContent-Type: {mime_type}\r\n\r\n"
        ).encode("utf-8") + data + f"\r\n--{boundary}--".encode("utf-8")

        response = self._request(
            "POST",
            f"{UPLOAD_URL}/files",
            params={"uploadType": "multipart", "fields": FILE_FIELDS},
            headers={"Content-Type": f"multipart/related; boundary={boundary}"},
            data=body,
        )
        created = DriveFile.from_api(response.json())
        logger.info(f"[DRIVE] Created {created.name} ({created.id})")
        return created

    def update_file(self, file_id: str, content: Union[str, bytes], mime_type: str = "text/plain") -> DriveFile:
        data = content.encode("utf-8") if isinstance(content, str) else content
        response = self._request(
            "PATCH",
            f"{UPLOAD_URL}/files/{file_id}",
            params={"uploadType": "media", "fields": FILE_FIELDS},
            headers={"Content-Type": mime_type},
            data=data,
        )
        return DriveFile.from_api(response.json())

    # =========================================================================
    # File management
    # =========================================================================

    def rename_file(self, file_id: str, new_name: str) -> DriveFile:
        response = self._request(
            "PATCH",
            f"{API_URL}/files/{file_id}",
            params={"fields": FILE_FIELDS},
            json={"name": new_name},
        )
        return DriveFile.from_api(response.json())

    def copy_file(self, file_id: str, new_name: str) -> DriveFile:
        body: Dict[str, Any] = {"name": new_name}
        if self.root_folder_id:
            body["parents"] = [self.root_folder_id]
        response = self._request(
            "POST",
            f"{API_URL}/files/{file_id}/copy",
            params={"fields": FILE_FIELDS},
            json=body,
        )
        return DriveFile.from_api(response.json())

    def ensure_subfolder(self, name: str) -> str:
        """Id of the real Drive folder `name` under the root, created if missing."""
        clauses = [f"name = '{_escape_query(name)}'", f"mimeType = '{FOLDER_MIME_TYPE}'", "trashed = false"]
        if self.root_folder_id:
            clauses.append(f"'{self.root_folder_id}' in parents")
        data = self._request(
            "GET",
            f"{API_URL}/files",
            params={"q": " and ".join(clauses), "fields": "files(id)", "pageSize": 1},
        ).json()
        if data.get("files"):
            return data["files"][0]["id"]

        metadata: Dict[str, Any] = {"name": name, "mimeType": FOLDER_MIME_TYPE}
        if self.root_folder_id:
            metadata["parents"] = [self.root_folder_id]
        created = self._request("POST", f"{API_URL}/files", params={"fields": "id"}, json=metadata).json()
        logger.info(f"[DRIVE] Created folder {name}")
        return created["id"]

    def move_file(self, file_id: str, folder_id: str) -> DriveFile:
        current = self._request("GET", f"{API_URL}/files/{file_id}", params={"fields": "parents"}).json()
        params = {"addParents": folder_id, "fields": FILE_FIELDS}
        if current.get("parents"):
            params["removeParents"] = ",".join(current["parents"])
        response = self._request("PATCH", f"{API_URL}/files/{file_id}", params=params, json={})
        return DriveFile.from_api(response.json())

    def publish(self, file_id: str) -> str:
        """Share with anyone holding the link; returns the web view link."""
        self._request(
            "POST",
            f"{API_URL}/files/{file_id}/permissions",
            json={"role": "reader", "type": "anyone"},
        )
        link = self.get_file(file_id).web_view_link
        return link or f"https://drive.google.com/file/d/{file_id}/view"

    def unpublish(self, file_id: str) -> None:
        try:
            self._request("DELETE", f"{API_URL}/files/{file_id}/permissions/anyoneWithLink")
        except DriveError as e:
            # Not published
            if e.status_code != 404:
                raise


_FILE_ID_RE = re.compile(r'^[A-Za-z0-9_-]{20,}$')


def looks_like_file_id(value: str) -> bool:
    return bool(_FILE_ID_RE.match(value or ""))
