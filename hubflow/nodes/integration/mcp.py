"""
MCP Node - Call a tool on a remote MCP server
"""

import asyncio
import json
from typing import Any, Dict, Optional

import requests

from hubflow import config
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ExternalCallError, ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import McpProperties, NodeType
from hubflow.providers.mcp import McpClient, McpError, result_text


def _parse_json_object(text: Optional[str], field_name: str) -> Dict[str, Any]:
    if not text or not text.strip():
        return {}
    try:
        parsed = json.loads(text)
    except ValueError as e:
        raise ValidationError(f"Invalid JSON in '{field_name}': {e}")
    if not isinstance(parsed, dict):
        raise ValidationError(f"'{field_name}' must be a JSON object")
    return parsed


class McpNode(ExecutableNode):
    """
    Runs one tools/call. The joined text content goes to saveTo; an
    advertised UI resource (_meta.ui.resourceUri) is fetched into saveUiTo
    on a best-effort basis.
    """

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.MCP

    async def execute(self, properties: McpProperties, context: NodeExecutionContext) -> NodeResult:
        url = properties.url.strip()
        tool = properties.tool.strip()
        if not url or not tool:
            raise ValidationError("mcp needs both 'url' and 'tool'")
        args = _parse_json_object(properties.args, "args")
        headers = {k: str(v) for k, v in _parse_json_object(properties.headers, "headers").items()}

        if context.has_service("mcp_client_factory"):
            client = context.get_service("mcp_client_factory")(url, headers)
        else:
            client = McpClient(url, headers=headers, timeout=config.get_mcp_timeout())

        context.logger.info(f"[MCP] {tool} @ {url}")
        try:
            result, ui = await asyncio.to_thread(self._call, client, tool, args, properties.save_ui_to is not None, context)
        except (McpError, requests.RequestException) as e:
            raise ExternalCallError("mcp", str(e), original_error=e)

        text = result_text(result)
        if result.get("isError"):
            raise ExternalCallError("mcp", f"Tool '{tool}' failed: {text}")

        context.save(properties.save_to, text)
        if ui is not None:
            context.save(properties.save_ui_to, ui)

        output: Dict[str, Any] = {"tool": tool, "text": text}
        if ui is not None:
            output["resourceUri"] = ui["resourceUri"]
        return NodeResult(output=output, message=f"Called {tool}")

    def _call(self, client, tool: str, args: Dict[str, Any], want_ui: bool, context: NodeExecutionContext):
        """Blocking: call the tool and optionally read its UI resource."""
        try:
            result = client.call_tool(tool, args)
            ui = None
            resource_uri = ((result.get("_meta") or {}).get("ui") or {}).get("resourceUri")
            if want_ui and resource_uri:
                try:
                    resource = client.read_resource(resource_uri) or {}
                    ui = {
                        "serverUrl": client.url,
                        "resourceUri": resource_uri,
                        "mimeType": resource.get("mimeType"),
                        "content": resource.get("text") if "text" in resource else resource.get("blob"),
                    }
                except (McpError, requests.RequestException) as e:
                    context.logger.warning(f"[MCP] Failed to read UI resource {resource_uri}: {e}")
            return result, ui
        finally:
            client.close()
