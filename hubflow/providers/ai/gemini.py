"""
Gemini Provider - Google Gen AI SDK implementation

Handles:
- Prompt, system instruction and inline file attachments
- Function calling against caller-supplied tools (automatic calling off)
- Uploads into File Search stores for rag-sync
"""

import io
import json
import logging
import time
from typing import Any, Dict, List, Optional

from hubflow import config

from .base import (
    MAX_TOOL_ROUNDS,
    GenerationProviderBase,
    GenerationRequest,
    GenerationResult,
    ToolCall,
    ToolExecutor,
)
from .registry import register

logger = logging.getLogger('workflow.providers.gemini')

UPLOAD_POLL_INTERVAL = 2.0
UPLOAD_TIMEOUT = 300.0


def _load_sdk():
    try:
        from google import genai
        from google.genai import types
    except ImportError:
        raise RuntimeError(
            "google-genai library not installed. Install with: pip install google-genai"
        )
    return genai, types


@register("gemini")
class GeminiProvider(GenerationProviderBase):
    """Gemini models through the google-genai client"""

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    @property
    def provider_id(self) -> str:
        return "gemini"

    def _client(self):
        genai, _ = _load_sdk()
        api_key = self._api_key or config.get_gemini_api_key()
        if not api_key:
            raise RuntimeError("Gemini API key not provided and GEMINI_API_KEY env var not set")
        return genai.Client(api_key=api_key)

    def generate(
        self,
        request: GenerationRequest,
        tool_executor: Optional[ToolExecutor] = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS
    ) -> GenerationResult:
        _, types = _load_sdk()
        client = self._client()

        parts = [types.Part.from_text(text=request.prompt)]
        for attachment in request.attachments:
            parts.append(types.Part.from_bytes(data=attachment.data, mime_type=attachment.mime_type))
        contents: List[Any] = [types.Content(role="user", parts=parts)]

        config_kwargs: Dict[str, Any] = {}
        if request.system_prompt:
            config_kwargs["system_instruction"] = request.system_prompt
        if request.tools:
            config_kwargs["tools"] = [types.Tool(function_declarations=[
                types.FunctionDeclaration(
                    name=tool.name,
                    description=tool.description,
                    parameters_json_schema=tool.parameters,
                )
                for tool in request.tools
            ])]
            config_kwargs["automatic_function_calling"] = types.AutomaticFunctionCallingConfig(disable=True)
        generate_config = types.GenerateContentConfig(**config_kwargs)

        logger.info(
            f"[AI REQUEST] Gemini - model={request.model}, attachments={len(request.attachments)}, "
            f"tools={len(request.tools)}"
        )

        tool_calls: List[ToolCall] = []
        response = None
        for round_index in range(max_tool_rounds + 1):
            response = client.models.generate_content(
                model=request.model,
                contents=contents,
                config=generate_config,
            )
            function_calls = response.function_calls or []
            if not function_calls or tool_executor is None:
                break
            if round_index == max_tool_rounds:
                logger.warning(f"[AI] Tool round limit ({max_tool_rounds}) reached, returning last answer")
                break

            contents.append(response.candidates[0].content)
            response_parts = []
            for function_call in function_calls:
                args = dict(function_call.args or {})
                result = tool_executor(function_call.name, args)
                tool_calls.append(ToolCall(name=function_call.name, args=args, result=result))
                response_parts.append(types.Part.from_function_response(
                    name=function_call.name,
                    response={"result": result},
                ))
            contents.append(types.Content(role="user", parts=response_parts))

        usage: Dict[str, Any] = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "input_tokens": metadata.prompt_token_count,
                "output_tokens": metadata.candidates_token_count,
                "total_tokens": metadata.total_token_count,
            }

        return GenerationResult(
            text=response.text or "",
            model=request.model,
            tool_calls=tool_calls,
            usage=usage,
        )

    def upload_document(self, store_name: str, file_name: str, data: bytes, mime_type: str) -> str:
        """Upload into the File Search store whose display name is store_name."""
        _, types = _load_sdk()
        client = self._client()

        store = self._find_or_create_store(client, store_name)
        operation = client.file_search_stores.upload_to_file_search_store(
            file=io.BytesIO(data),
            file_search_store_name=store.name,
            config=types.UploadToFileSearchStoreConfig(display_name=file_name, mime_type=mime_type),
        )

        deadline = time.monotonic() + UPLOAD_TIMEOUT
        while not operation.done:
            if time.monotonic() > deadline:
                raise RuntimeError(f"Upload of '{file_name}' to '{store_name}' timed out")
            time.sleep(UPLOAD_POLL_INTERVAL)
            operation = client.operations.get(operation)

        if operation.error:
            raise RuntimeError(f"Upload of '{file_name}' failed: {json.dumps(operation.error, default=str)}")

        document_name = None
        if operation.response is not None:
            document_name = getattr(operation.response, "document_name", None)
        logger.info(f"[RAG] Uploaded {file_name} to {store.name}")
        return document_name or f"{store.name}/{file_name}"

    def _find_or_create_store(self, client, store_name: str):
        for store in client.file_search_stores.list():
            if store.display_name == store_name or store.name == store_name:
                return store
        logger.info(f"[RAG] Creating file search store '{store_name}'")
        return client.file_search_stores.create(config={"display_name": store_name})
