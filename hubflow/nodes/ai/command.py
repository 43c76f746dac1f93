"""
Command Node - Call a generation model

The prompt, system prompt and attachments go to the selected provider.
Tools from the listed MCP servers are offered to the model for function
calling; each call the model makes is executed against its server and
recorded in the step output.
"""

import asyncio
from typing import Any, Dict, List, Tuple

from hubflow import config
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ExternalCallError, ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import CommandProperties, NodeType
from hubflow.nodes.drive.utils import file_data_bytes, parse_file_data
from hubflow.providers.ai import (
    Attachment,
    GenerationProviderRegistry,
    GenerationRequest,
    GenerationResult,
    ToolDeclaration,
)
from hubflow.providers.mcp import McpClient, result_text
from hubflow.utils import stringify_value


def _split_list(value: str) -> List[str]:
    return [item.strip() for item in (value or "").split(",") if item.strip()]


class CommandNode(ExecutableNode):

    category = "ai"

    @property
    def node_type(self) -> NodeType:
        return NodeType.COMMAND

    async def execute(self, properties: CommandProperties, context: NodeExecutionContext) -> NodeResult:
        if not properties.prompt.strip():
            raise ValidationError("command prompt resolved to an empty string")

        provider_id = properties.provider or config.DEFAULT_PROVIDER
        model = properties.model or config.DEFAULT_MODEL
        registry = context.get_service("ai_providers") if context.has_service("ai_providers") else GenerationProviderRegistry
        try:
            provider = registry.get(provider_id)
        except ValueError as e:
            raise ValidationError(str(e))

        request = GenerationRequest(
            model=model,
            prompt=properties.prompt,
            system_prompt=properties.system_prompt or None,
            attachments=self._collect_attachments(properties, context),
        )
        servers = _split_list(properties.mcp_servers)

        context.logger.info(f"[COMMAND] {provider_id}/{model} (attachments={len(request.attachments)}, mcp={len(servers)})")
        try:
            result = await asyncio.to_thread(self._generate, provider, request, servers, context)
        except ExternalCallError:
            raise
        except Exception as e:
            raise ExternalCallError(provider_id, str(e), original_error=e)

        context.save(properties.save_to, result.text)
        output: Dict[str, Any] = {"usedModel": result.model, "text": result.text}
        if result.tool_calls:
            output["toolCalls"] = [
                {"name": call.name, "args": call.args, "result": call.result}
                for call in result.tool_calls
            ]
        if result.usage:
            output["usage"] = result.usage
        return NodeResult(output=output, message=f"{model} responded ({len(result.text)} chars)")

    def _collect_attachments(self, properties: CommandProperties, context: NodeExecutionContext) -> List[Attachment]:
        attachments = []
        for name in _split_list(properties.attachments):
            if not context.variables.has(name):
                raise ValidationError(f"Attachment variable '{name}' not found")
            value = context.variables[name]
            file_data = parse_file_data(value)
            if file_data is not None:
                attachments.append(Attachment(
                    name=file_data.get("basename") or name,
                    mime_type=file_data.get("mimeType") or "application/octet-stream",
                    data=file_data_bytes(file_data),
                ))
            else:
                attachments.append(Attachment(
                    name=name,
                    mime_type="text/plain",
                    data=stringify_value(value).encode("utf-8"),
                ))
        return attachments

    def _generate(
        self,
        provider,
        request: GenerationRequest,
        servers: List[str],
        context: NodeExecutionContext
    ) -> GenerationResult:
        """Blocking: open MCP sessions, run the generation, close sessions."""
        if not servers:
            return provider.generate(request)

        factory = context.get_service("mcp_client_factory") if context.has_service("mcp_client_factory") else None
        clients: List[McpClient] = []
        tool_owners: Dict[str, McpClient] = {}
        try:
            for url in servers:
                client = factory(url, {}) if factory else McpClient(url, timeout=config.get_mcp_timeout())
                clients.append(client)
                for declaration, owner in self._declare_tools(client):
                    if declaration.name in tool_owners:
                        context.logger.warning(f"[COMMAND] Duplicate MCP tool '{declaration.name}' from {url} ignored")
                        continue
                    tool_owners[declaration.name] = owner
                    request.tools.append(declaration)

            def run_tool(name: str, args: Dict[str, Any]) -> Any:
                owner = tool_owners.get(name)
                if owner is None:
                    return f"Unknown tool: {name}"
                return result_text(owner.call_tool(name, args))

            return provider.generate(request, tool_executor=run_tool)
        finally:
            for client in clients:
                client.close()

    @staticmethod
    def _declare_tools(client: McpClient) -> List[Tuple[ToolDeclaration, McpClient]]:
        declarations = []
        for tool in client.list_tools():
            declarations.append((
                ToolDeclaration(
                    name=tool["name"],
                    description=tool.get("description", ""),
                    parameters=tool.get("inputSchema") or {"type": "object", "properties": {}},
                ),
                client,
            ))
        return declarations
