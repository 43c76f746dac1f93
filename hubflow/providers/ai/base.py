"""
Generation Provider Base Class - Abstraction for text generation services

Each provider turns a GenerationRequest (prompt, system prompt, attached
files, callable tools) into a GenerationResult. Tool calling is run by the
provider itself because the conversation format is provider-specific; the
actual tool execution is delegated to the caller's tool executor.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


# (tool_name, arguments) -> tool result
ToolExecutor = Callable[[str, Dict[str, Any]], Any]

MAX_TOOL_ROUNDS = 10


@dataclass
class Attachment:
    """A file passed to the model alongside the prompt"""
    name: str
    mime_type: str
    data: bytes


@dataclass
class ToolDeclaration:
    """
    A function the model may call.

    Attributes:
        name: Function name exposed to the model
        description: What the tool does
        parameters: JSON schema of the arguments object
    """
    name: str
    description: str = ""
    parameters: Dict[str, Any] = field(default_factory=lambda: {"type": "object", "properties": {}})


@dataclass
class ToolCall:
    name: str
    args: Dict[str, Any]
    result: Any = None


@dataclass
class GenerationRequest:
    model: str
    prompt: str
    system_prompt: Optional[str] = None
    attachments: List[Attachment] = field(default_factory=list)
    tools: List[ToolDeclaration] = field(default_factory=list)


@dataclass
class GenerationResult:
    """
    Result from a generation call.

    Attributes:
        text: Final text answer
        model: Model that produced it
        tool_calls: Every tool call made, in order, with its result
        usage: Token counts as reported by the provider
    """
    text: str
    model: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    usage: Dict[str, Any] = field(default_factory=dict)


class GenerationProviderBase(ABC):
    """
    Base class for generation providers.

    Methods are blocking; node handlers call them through asyncio.to_thread.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        pass

    @abstractmethod
    def generate(
        self,
        request: GenerationRequest,
        tool_executor: Optional[ToolExecutor] = None,
        max_tool_rounds: int = MAX_TOOL_ROUNDS
    ) -> GenerationResult:
        """
        Generate a response.

        Args:
            request: Prompt, system prompt, attachments and tools
            tool_executor: Runs a tool call; required when request.tools is set
            max_tool_rounds: Upper bound on model/tool round trips

        Raises:
            RuntimeError: SDK missing, credentials missing or the call failed
        """
        pass

    def upload_document(self, store_name: str, file_name: str, data: bytes, mime_type: str) -> str:
        """
        Add a document to the provider's retrieval store.

        Returns:
            Provider-side document name
        """
        raise NotImplementedError(f"Provider '{self.provider_id}' has no document store")
