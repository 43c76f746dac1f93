"""
HTTP Node - Make an HTTP request and store the response

Body encodings (contentType):
    - json:      resolved body sent as application/json
    - text:      resolved body sent as text/plain
    - form-data: body is a JSON object; file-data values are uploaded as
                 files, "field:filename" keys override the upload name
"""

import asyncio
import json
import os
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlparse

import requests

from hubflow import config
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ExternalCallError, ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import HttpProperties, NodeType
from hubflow.nodes.drive.utils import build_file_data, file_data_bytes, parse_file_data
from hubflow.utils import stringify_value

BODY_METHODS = {"POST", "PUT", "PATCH"}

_TEXT_MIME_TYPES = ("application/json", "application/xml", "application/javascript", "application/x-www-form-urlencoded")


def _is_binary_response(mime_type: str) -> bool:
    if not mime_type or mime_type.startswith("text/") or mime_type.endswith("+json") or mime_type.endswith("+xml"):
        return False
    return mime_type not in _TEXT_MIME_TYPES


def parse_headers(text: Optional[str]) -> Dict[str, str]:
    """Headers as a JSON object, else one "Key: Value" per line."""
    if not text or not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return {str(k): stringify_value(v) for k, v in parsed.items()}

    headers = {}
    for line in text.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers


def _download_name(url: str, mime_type: str) -> str:
    name = os.path.basename(urlparse(url).path)
    if name and "." in name:
        return name
    subtype = mime_type.split("/", 1)[-1] if "/" in mime_type else "bin"
    return f"download.{subtype}"


class HttpNode(ExecutableNode):

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.HTTP

    async def execute(self, properties: HttpProperties, context: NodeExecutionContext) -> NodeResult:
        url = properties.url.strip()
        if not url:
            raise ValidationError("Missing 'url' property")
        method = (properties.method or "GET").strip().upper()
        headers = parse_headers(properties.headers)

        kwargs: Dict[str, Any] = {"headers": headers, "timeout": config.get_http_timeout()}
        if method in BODY_METHODS and properties.body:
            kwargs.update(self._build_body(properties, context, headers))

        context.logger.info(f"[HTTP] {method} {url}")
        try:
            response = await asyncio.to_thread(requests.request, method, url, **kwargs)
        except requests.RequestException as e:
            raise ExternalCallError("http", str(e), original_error=e)

        context.save(properties.save_status, response.status_code)
        if response.status_code >= 400 and properties.throw_on_error:
            raise ExternalCallError("http", f"HTTP {response.status_code}: {response.text[:500]}")

        mime_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if _is_binary_response(mime_type):
            value: Any = build_file_data(_download_name(url, mime_type), mime_type, response.content)
        else:
            try:
                value = response.json()
            except ValueError:
                value = response.text
        context.save(properties.save_to, value)

        return NodeResult(
            output={"status": response.status_code, "contentType": mime_type, "bytes": len(response.content)},
            message=f"{method} {url} -> {response.status_code}",
        )

    def _build_body(
        self,
        properties: HttpProperties,
        context: NodeExecutionContext,
        headers: Dict[str, str]
    ) -> Dict[str, Any]:
        has_content_type = any(k.lower() == "content-type" for k in headers)

        if properties.content_type == "form-data":
            # Values are resolved one by one so file-data stays structured
            raw_body = context.node.properties.body or ""
            try:
                fields = json.loads(raw_body)
            except ValueError as e:
                raise ValidationError(f"form-data body must be a JSON object: {e}")
            if not isinstance(fields, dict):
                raise ValidationError("form-data body must be a JSON object")

            data: Dict[str, str] = {}
            files: Dict[str, Tuple[str, bytes, str]] = {}
            for raw_key, raw_value in fields.items():
                key = context.resolve(raw_key)
                value = context.resolver.resolve_value(raw_value) if isinstance(raw_value, str) else raw_value
                field, _, file_name = key.partition(":")
                file_data = parse_file_data(value)
                if file_data is not None:
                    files[field] = (
                        file_name or file_data.get("basename") or field,
                        file_data_bytes(file_data),
                        file_data.get("mimeType") or "application/octet-stream",
                    )
                else:
                    data[field] = stringify_value(value)
            # requests sets the multipart boundary itself
            for key in [k for k in headers if k.lower() == "content-type"]:
                del headers[key]
            return {"data": data, "files": files or None}

        if not has_content_type:
            headers["Content-Type"] = "text/plain" if properties.content_type == "text" else "application/json"
        return {"data": properties.body.encode("utf-8")}
