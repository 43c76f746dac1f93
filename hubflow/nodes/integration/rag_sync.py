"""
RAG Sync Node - Upload a Drive file to a retrieval store
"""

import asyncio

from hubflow import config
from hubflow.engine.context import NodeExecutionContext
from hubflow.engine.errors import ExternalCallError, ValidationError
from hubflow.engine.node_interface import ExecutableNode, NodeResult
from hubflow.models import NodeType, RagSyncProperties
from hubflow.nodes.drive.utils import drive_call, get_drive, resolve_existing_file
from hubflow.providers.ai import GenerationProviderRegistry


class RagSyncNode(ExecutableNode):

    category = "integration"

    @property
    def node_type(self) -> NodeType:
        return NodeType.RAG_SYNC

    async def execute(self, properties: RagSyncProperties, context: NodeExecutionContext) -> NodeResult:
        store_name = properties.rag_setting.strip()
        if not store_name:
            raise ValidationError("Missing 'ragSetting' property")

        file = await resolve_existing_file(
            context,
            properties.path.strip(),
            raw_path=context.node.properties.path,
            try_md_extension=True,
        )
        data = await drive_call(context, get_drive(context).read_bytes, file.id)

        registry = context.get_service("ai_providers") if context.has_service("ai_providers") else GenerationProviderRegistry
        provider = registry.get(config.DEFAULT_PROVIDER)

        context.logger.info(f"[RAG] Uploading {file.name} to store {store_name}")
        try:
            document_name = await asyncio.to_thread(
                provider.upload_document, store_name, file.name, data, file.mime_type
            )
        except NotImplementedError as e:
            raise ValidationError(str(e))
        except Exception as e:
            raise ExternalCallError(provider.provider_id, str(e), original_error=e)

        result = {"path": file.name, "ragSetting": store_name, "documentName": document_name}
        context.save(properties.save_to, result)
        return NodeResult(output=result, message=f"Synced {file.name} to {store_name}")
