"""
MCP Client - Model Context Protocol over streamable HTTP

Speaks JSON-RPC 2.0 by POSTing to the server URL. Replies may be plain JSON
or a text/event-stream body whose last data line carries the response.
The server-assigned Mcp-Session-Id is echoed on subsequent requests.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger('workflow.providers.mcp')

PROTOCOL_VERSION = "2025-03-26"
CLIENT_INFO = {"name": "hubflow", "version": "1.0.0"}


class McpError(RuntimeError):
    """Transport failure or JSON-RPC error reply"""


class McpClient:
    """
    One session with one MCP server.

    Usage:
        client = McpClient(url, headers)
        client.initialize()
        result = client.call_tool("search", {"q": "x"})
        client.close()
    """

    def __init__(self, url: str, headers: Optional[Dict[str, str]] = None, timeout: float = 60):
        self.url = url
        self.headers = dict(headers or {})
        self.timeout = timeout
        self.session_id: Optional[str] = None
        self._request_id = 0
        self._initialized = False
        self._session = requests.Session()

    def __enter__(self) -> "McpClient":
        self.initialize()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _headers(self, accept_stream: bool = True) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if accept_stream:
            headers["Accept"] = "application/json, text/event-stream"
        headers.update(self.headers)
        if self.session_id:
            headers["Mcp-Session-Id"] = self.session_id
        return headers

    def _send_request(self, method: str, params: Optional[Dict[str, Any]] = None) -> Any:
        self._request_id += 1
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "id": self._request_id, "method": method}
        if params is not None:
            payload["params"] = params

        try:
            response = self._session.post(self.url, headers=self._headers(), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise McpError(f"MCP request '{method}' failed: {e}")

        if response.status_code >= 400:
            raise McpError(f"MCP request failed ({response.status_code}): {response.text[:200]}")

        session_id = response.headers.get("mcp-session-id")
        if session_id:
            self.session_id = session_id

        content_type = response.headers.get("content-type", "")
        if "text/event-stream" in content_type:
            message = self._parse_sse(response.text)
        else:
            try:
                message = response.json()
            except ValueError:
                raise McpError(f"MCP server returned non-JSON reply to '{method}'")

        if message.get("error"):
            error = message["error"]
            raise McpError(f"MCP Error {error.get('code')}: {error.get('message')}")
        return message.get("result")

    @staticmethod
    def _parse_sse(text: str) -> Dict[str, Any]:
        last_data = ""
        for line in text.splitlines():
            if line.startswith("data:"):
                last_data = line[5:].strip()
        if not last_data:
            raise McpError("No data received in SSE response")
        try:
            return json.loads(last_data)
        except ValueError:
            raise McpError("Malformed JSON in SSE response")

    def _send_notification(self, method: str, params: Optional[Dict[str, Any]] = None) -> None:
        payload: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            payload["params"] = params
        try:
            self._session.post(self.url, headers=self._headers(), json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            # Notifications have no reply to wait for
            logger.debug(f"[MCP] Notification {method} failed: {e}")

    def initialize(self) -> Dict[str, Any]:
        if self._initialized:
            return {}
        result = self._send_request("initialize", {
            "protocolVersion": PROTOCOL_VERSION,
            "capabilities": {},
            "clientInfo": CLIENT_INFO,
        })
        self._send_notification("notifications/initialized")
        self._initialized = True
        server = (result or {}).get("serverInfo", {})
        logger.info(f"[MCP] Connected to {server.get('name', self.url)}")
        return result or {}

    def list_tools(self) -> List[Dict[str, Any]]:
        self.initialize()
        result = self._send_request("tools/list", {})
        return (result or {}).get("tools", [])

    def call_tool(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Invoke a tool.

        Returns:
            Raw result: {content: [...], isError?, _meta?}
        """
        self.initialize()
        logger.info(f"[MCP] Calling tool {name} on {self.url}")
        result = self._send_request("tools/call", {"name": name, "arguments": arguments or {}})
        return result or {"content": []}

    def read_resource(self, uri: str) -> Optional[Dict[str, Any]]:
        """First content entry of a resource: {uri, mimeType?, text?, blob?}"""
        self.initialize()
        result = self._send_request("resources/read", {"uri": uri})
        contents = (result or {}).get("contents", [])
        return contents[0] if contents else None

    def close(self) -> None:
        if self.session_id:
            try:
                self._session.delete(self.url, headers=self._headers(accept_stream=False), timeout=self.timeout)
            except requests.RequestException as e:
                logger.debug(f"[MCP] Session close failed: {e}")
        self.session_id = None
        self._initialized = False
        self._session.close()


def result_text(result: Dict[str, Any]) -> str:
    """Join the text parts of a tool result, or JSON-encode its content."""
    content = result.get("content") or []
    texts = [item.get("text") for item in content if item.get("type") == "text" and item.get("text")]
    if texts:
        return "\n".join(texts)
    return json.dumps(content)
