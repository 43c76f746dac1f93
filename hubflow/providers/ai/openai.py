"""
OpenAI Provider - Chat Completions implementation

Supports system prompts, image attachments (as data URLs) and function
calling through the tools parameter.
"""

import base64
import json
import logging
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

logger = logging.getLogger('workflow.providers.openai')


@register("openai")
class OpenAIProvider(GenerationProviderBase):
    """OpenAI chat models"""

    def __init__(self, api_key: Optional[str] = None):
        self._api_key = api_key

    @property
    def provider_id(self) -> str:
        return "openai"

    def generate(
        self,
        request: GenerationRequest,
        tool_executor: Optional[ToolExecutor] = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS
    ) -> GenerationResult:
        try:
            from openai import OpenAI
        except ImportError:
            raise RuntimeError(
                "openai library not installed. Install with: pip install openai"
            )

        api_key = self._api_key or config.get_openai_api_key()
        if not api_key:
            raise RuntimeError(
                "OpenAI API key not provided and OPENAI_API_KEY env var not set"
            )
        client = OpenAI(api_key=api_key)

        messages: List[Dict[str, Any]] = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.append({"role": "user", "content": self._build_user_content(request)})

        params: Dict[str, Any] = {"model": request.model, "messages": messages}
        if request.tools:
            params["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in request.tools
            ]

        logger.info(f"[AI REQUEST] OpenAI chat - model={request.model}, tools={len(request.tools)}")

        tool_calls: List[ToolCall] = []
        response = None
        for round_index in range(max_tool_rounds + 1):
            response = client.chat.completions.create(**params)
            message = response.choices[0].message
            if not message.tool_calls or tool_executor is None or round_index == max_tool_rounds:
                break

            messages.append(message.model_dump(exclude_none=True))
            for call in message.tool_calls:
                try:
                    args = json.loads(call.function.arguments or "{}")
                except ValueError:
                    args = {}
                result = tool_executor(call.function.name, args)
                tool_calls.append(ToolCall(name=call.function.name, args=args, result=result))
                messages.append({
                    "role": "tool",
                    "tool_call_id": call.id,
                    "content": result if isinstance(result, str) else json.dumps(result, default=str),
                })

        usage: Dict[str, Any] = {}
        if response.usage is not None:
            usage = {
                "input_tokens": response.usage.prompt_tokens,
                "output_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }

        return GenerationResult(
            text=response.choices[0].message.content or "",
            model=request.model,
            tool_calls=tool_calls,
            usage=usage,
        )

    def _build_user_content(self, request: GenerationRequest) -> Any:
        if not request.attachments:
            return request.prompt
        content: List[Dict[str, Any]] = [{"type": "text", "text": request.prompt}]
        for attachment in request.attachments:
            if not attachment.mime_type.startswith("image/"):
                logger.warning(f"[AI] Skipping non-image attachment {attachment.name} for OpenAI")
                continue
            encoded = base64.b64encode(attachment.data).decode("ascii")
            content.append({
                "type": "image_url",
                "image_url": {"url": f"data:{attachment.mime_type};base64,{encoded}"},
            })
        return content
