"""
Shared fixtures: in-memory collaborators and helpers to run workflows.
"""

import asyncio
import itertools
from typing import Any, Dict, List, Optional

import pytest

from hubflow.engine import ExecutionStore, PromptBroker, get_default_registry
from hubflow.engine.errors import ParseError
from hubflow.models import SSEEvent, SSEEventType
from hubflow.providers.ai import GenerationResult, ToolCall
from hubflow.providers.drive import DriveError, DriveFile
from hubflow.providers.drive.loader import WorkflowLoader
from hubflow.workflow import WorkflowInterpreter, WorkflowProcessor


# =============================================================================
# Fake collaborators
# =============================================================================

class FakeDrive:
    """Flat in-memory Drive: names carry the folder prefix."""

    def __init__(self):
        self.files: Dict[str, DriveFile] = {}
        self.contents: Dict[str, bytes] = {}
        self.parents: Dict[str, str] = {}
        self.folders: Dict[str, str] = {}
        self.published: Dict[str, bool] = {}
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def _new_id(self) -> str:
        return f"fakefileid{next(self._ids):015d}"

    def _timestamp(self) -> str:
        return f"2026-01-01T00:00:{next(self._clock):02d}Z"

    def add_file(self, name: str, content, mime_type: str = "text/markdown") -> DriveFile:
        return self.create_file(name, content, mime_type)

    def _live(self) -> List[DriveFile]:
        return [f for f in self.files.values() if f.id not in self.parents]

    def get_file(self, file_id: str) -> DriveFile:
        if file_id not in self.files:
            raise DriveError(f"File not found: {file_id}", status_code=404)
        return self.files[file_id]

    def find_file_by_name(self, name: str) -> Optional[DriveFile]:
        for f in self._live():
            if f.name == name:
                return f
        return None

    def search(self, query: str, search_content: bool = False, limit: int = 10) -> List[DriveFile]:
        results = []
        for f in self._live():
            text = self.contents[f.id].decode("utf-8", errors="ignore")
            if query in f.name or (search_content and query in text):
                results.append(f)
        return results[:limit]

    def list_files(self, limit: Optional[int] = None) -> List[DriveFile]:
        files = sorted(self._live(), key=lambda f: f.modified_time, reverse=True)
        return files[:limit] if limit else files

    def read_bytes(self, file_id: str) -> bytes:
        self.get_file(file_id)
        return self.contents[file_id]

    def read_text(self, file_id: str) -> str:
        return self.read_bytes(file_id).decode("utf-8")

    def create_file(self, name: str, content, mime_type: str = "text/plain", parent_id: Optional[str] = None) -> DriveFile:
        file_id = self._new_id()
        now = self._timestamp()
        file = DriveFile(id=file_id, name=name, mime_type=mime_type, modified_time=now, created_time=now)
        self.files[file_id] = file
        self.contents[file_id] = content.encode("utf-8") if isinstance(content, str) else content
        return file

    def update_file(self, file_id: str, content, mime_type: str = "text/plain") -> DriveFile:
        file = self.get_file(file_id)
        file.modified_time = self._timestamp()
        self.contents[file_id] = content.encode("utf-8") if isinstance(content, str) else content
        return file

    def rename_file(self, file_id: str, new_name: str) -> DriveFile:
        file = self.get_file(file_id)
        file.name = new_name
        return file

    def copy_file(self, file_id: str, new_name: str) -> DriveFile:
        source = self.get_file(file_id)
        return self.create_file(new_name, self.contents[file_id], source.mime_type)

    def ensure_subfolder(self, name: str) -> str:
        return self.folders.setdefault(name, f"folder-{name}")

    def move_file(self, file_id: str, folder_id: str) -> DriveFile:
        self.parents[file_id] = folder_id
        return self.get_file(file_id)

    def publish(self, file_id: str) -> str:
        self.published[file_id] = True
        return f"https://drive.example/{file_id}"

    def unpublish(self, file_id: str) -> None:
        self.published.pop(file_id, None)

    def content_of(self, name: str) -> Optional[str]:
        file = self.find_file_by_name(name)
        return self.read_text(file.id) if file else None


class FakeProvider:
    """Echoes the prompt; calls every offered tool once."""

    def __init__(self, provider_id: str = "gemini"):
        self._provider_id = provider_id
        self.requests = []
        self.uploads = []

    @property
    def provider_id(self) -> str:
        return self._provider_id

    def generate(self, request, tool_executor=None, max_tool_rounds=10):
        self.requests.append(request)
        calls = []
        if request.tools and tool_executor:
            for tool in request.tools:
                args = {"q": request.prompt}
                calls.append(ToolCall(name=tool.name, args=args, result=tool_executor(tool.name, args)))
        text = f"echo: {request.prompt}"
        if calls:
            text += " | " + "; ".join(str(c.result) for c in calls)
        return GenerationResult(text=text, model=request.model, tool_calls=calls, usage={"totalTokens": 7})

    def upload_document(self, store_name, file_name, data, mime_type):
        self.uploads.append((store_name, file_name, data, mime_type))
        return f"fileSearchStores/{store_name}/documents/doc-1"


class FakeProviderRegistry:
    def __init__(self):
        self.providers = {"gemini": FakeProvider("gemini"), "openai": FakeProvider("openai")}

    def get(self, provider_id: str):
        if provider_id not in self.providers:
            raise ValueError(f"Unknown generation provider: '{provider_id}'")
        return self.providers[provider_id]


class FakeMcpClient:
    def __init__(self, url: str, headers: Dict[str, str], tools=None, ui_resource=None):
        self.url = url
        self.headers = headers
        self.tools = tools or [{"name": "lookup", "description": "Look something up", "inputSchema": {"type": "object"}}]
        self.ui_resource = ui_resource
        self.calls = []
        self.closed = False

    def list_tools(self):
        return self.tools

    def call_tool(self, name, arguments=None):
        self.calls.append((name, arguments))
        result = {"content": [{"type": "text", "text": f"{name} result"}]}
        if self.ui_resource:
            result["_meta"] = {"ui": {"resourceUri": "ui://widget"}}
        return result

    def read_resource(self, uri):
        return {"uri": uri, "mimeType": "text/html", "text": self.ui_resource}

    def close(self):
        self.closed = True


class FakeMcpFactory:
    """Callable service creating FakeMcpClient instances and remembering them."""

    def __init__(self, ui_resource: Optional[str] = None):
        self.ui_resource = ui_resource
        self.clients: List[FakeMcpClient] = []

    def __call__(self, url: str, headers: Dict[str, str]) -> FakeMcpClient:
        client = FakeMcpClient(url, headers, ui_resource=self.ui_resource)
        self.clients.append(client)
        return client


class FakeLoader(WorkflowLoader):
    def __init__(self, documents: Optional[Dict[str, str]] = None):
        self.documents = dict(documents or {})

    def load(self, reference: str) -> str:
        if reference not in self.documents:
            raise ParseError(f"Workflow not found: {reference}")
        return self.documents[reference]


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def drive():
    return FakeDrive()


@pytest.fixture
def providers():
    return FakeProviderRegistry()


@pytest.fixture
def mcp_factory():
    return FakeMcpFactory()


@pytest.fixture
def loader():
    return FakeLoader()


@pytest.fixture
def services(drive, providers, mcp_factory, loader):
    return {
        "drive": drive,
        "ai_providers": providers,
        "mcp_client_factory": mcp_factory,
        "workflow_loader": loader,
    }


@pytest.fixture
def registry():
    return get_default_registry()


@pytest.fixture
def broker():
    return PromptBroker()


@pytest.fixture
def store():
    return ExecutionStore()


@pytest.fixture
def interpreter(registry, broker, services):
    return WorkflowInterpreter(registry, broker, services)


@pytest.fixture
def processor(store, broker, registry, services):
    return WorkflowProcessor(store=store, broker=broker, registry=registry, services=services)


@pytest.fixture
def run(store, interpreter):
    """Run a YAML workflow to completion and return its ExecutionContext."""
    from hubflow.engine.parser import parse_workflow

    async def _run(text: str, variables: Optional[Dict[str, Any]] = None, owner: str = "alice"):
        execution_id = store.create("wf", parse_workflow(text), owner=owner, variables=variables)
        execution = store.get(execution_id)
        await interpreter.run(execution)
        return execution

    return _run


@pytest.fixture
def run_interactive(store, interpreter, broker):
    """
    Run a workflow, answering each prompt in turn from `responses`.

    Returns the ExecutionContext and the prompts that were asked.
    """
    from hubflow.engine.parser import parse_workflow

    async def _run(text: str, responses: List[Any], variables: Optional[Dict[str, Any]] = None):
        execution_id = store.create("wf", parse_workflow(text), owner="alice", variables=variables)
        execution = store.get(execution_id)
        task = asyncio.create_task(interpreter.run(execution))

        prompts = []
        for response in responses:
            prompts.append(await wait_for_prompt(broker, execution_id))
            broker.resolve(execution_id, response)

        await asyncio.wait_for(task, timeout=5)
        return execution, prompts

    return _run


# =============================================================================
# Helpers
# =============================================================================

def events_of(execution, event_type: Optional[SSEEventType] = None) -> List[SSEEvent]:
    events = execution.events.pending()
    if event_type is None:
        return events
    return [e for e in events if e.type == event_type]


def terminal_event(execution) -> SSEEvent:
    return events_of(execution)[-1]


async def wait_for_prompt(broker: PromptBroker, execution_id: str, timeout: float = 2.0):
    """Poll until the execution is suspended on a prompt."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not broker.has_pending(execution_id):
        if loop.time() > deadline:
            raise AssertionError("Timed out waiting for a prompt")
        await asyncio.sleep(0.01)
    return broker.get_pending(execution_id)
