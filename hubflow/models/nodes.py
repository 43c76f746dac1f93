"""
Typed Node Properties

One pydantic model per node kind. Values that may contain {{templates}}
stay strings and are resolved at dispatch time; switches and limits are
coerced when the document is parsed. Authoring uses camelCase keys
(saveTo, throwOnError, ...), which are accepted as aliases.
"""

from enum import Enum
from typing import ClassVar, Dict, Literal, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field


class NodeType(str, Enum):
    """The 24 node kinds understood by the interpreter"""
    # Control flow
    VARIABLE = "variable"
    SET = "set"
    IF = "if"
    WHILE = "while"
    SLEEP = "sleep"
    # AI
    COMMAND = "command"
    # Drive operations
    DRIVE_FILE = "drive-file"
    DRIVE_READ = "drive-read"
    DRIVE_SEARCH = "drive-search"
    DRIVE_LIST = "drive-list"
    DRIVE_FOLDER_LIST = "drive-folder-list"
    DRIVE_FILE_PICKER = "drive-file-picker"
    DRIVE_SAVE = "drive-save"
    DRIVE_DELETE = "drive-delete"
    # Interactive prompts
    PROMPT_VALUE = "prompt-value"
    PROMPT_FILE = "prompt-file"
    PROMPT_SELECTION = "prompt-selection"
    DIALOG = "dialog"
    # Integration
    WORKFLOW = "workflow"
    JSON = "json"
    HTTP = "http"
    MCP = "mcp"
    RAG_SYNC = "rag-sync"
    GEMIHUB_COMMAND = "gemihub-command"

    @property
    def is_branching(self) -> bool:
        return self in (NodeType.IF, NodeType.WHILE)


class NodeProperties(BaseModel):
    """Base for all per-kind property models"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    # Fields resolved against the variable scope before the handler runs
    template_fields: ClassVar[Tuple[str, ...]] = ()


# =============================================================================
# Control flow
# =============================================================================

class VariableProperties(NodeProperties):
    template_fields = ("value",)

    name: str
    value: str = ""


class SetProperties(NodeProperties):
    template_fields = ("value",)

    name: str
    value: str


class ConditionProperties(NodeProperties):
    # Operands are resolved separately after the operator split
    template_fields = ()

    condition: str


class SleepProperties(NodeProperties):
    template_fields = ("duration",)

    duration: str


# =============================================================================
# AI
# =============================================================================

class CommandProperties(NodeProperties):
    template_fields = ("prompt", "model", "provider", "system_prompt")

    prompt: str
    model: Optional[str] = None
    provider: Optional[str] = None
    system_prompt: Optional[str] = Field(None, alias="systemPrompt")
    attachments: Optional[str] = None
    mcp_servers: Optional[str] = Field(None, alias="mcpServers")
    save_to: Optional[str] = Field(None, alias="saveTo")


# =============================================================================
# Drive operations
# =============================================================================

class DriveFileProperties(NodeProperties):
    template_fields = ("path", "content")

    path: str
    content: str = ""
    mode: Literal["overwrite", "append", "create"] = "overwrite"
    confirm: bool = False
    open: bool = False


class DriveReadProperties(NodeProperties):
    template_fields = ("path",)

    path: str
    save_to: str = Field(alias="saveTo")


class DriveSearchProperties(NodeProperties):
    template_fields = ("query",)

    query: str
    search_content: bool = Field(False, alias="searchContent")
    limit: int = Field(10, ge=1)
    save_to: str = Field(alias="saveTo")


class DriveListProperties(NodeProperties):
    template_fields = ("folder",)

    folder: str = ""
    limit: int = Field(50, ge=1)
    save_to: str = Field(alias="saveTo")


class DriveFolderListProperties(NodeProperties):
    template_fields = ("folder",)

    folder: str = ""
    save_to: str = Field(alias="saveTo")


class DriveFilePickerProperties(NodeProperties):
    template_fields = ("title", "default", "extensions", "path")

    title: str = "Select a file"
    mode: Literal["select", "create"] = "select"
    default: Optional[str] = None
    extensions: Optional[str] = None
    path: Optional[str] = None
    save_to: Optional[str] = Field(None, alias="saveTo")
    save_path_to: Optional[str] = Field(None, alias="savePathTo")


class DriveSaveProperties(NodeProperties):
    template_fields = ("path",)

    source: str
    path: str
    save_path_to: Optional[str] = Field(None, alias="savePathTo")


class DriveDeleteProperties(NodeProperties):
    template_fields = ("path",)

    path: str


# =============================================================================
# Interactive prompts
# =============================================================================

class PromptValueProperties(NodeProperties):
    template_fields = ("title", "default")

    title: str = "Input"
    default: Optional[str] = None
    multiline: bool = False
    save_to: str = Field(alias="saveTo")


class PromptFileProperties(NodeProperties):
    template_fields = ("title",)

    title: str = "Select a file"
    save_to: Optional[str] = Field(None, alias="saveTo")
    save_file_to: Optional[str] = Field(None, alias="saveFileTo")


class PromptSelectionProperties(NodeProperties):
    template_fields = ("title",)

    title: str = "Enter text"
    save_to: str = Field(alias="saveTo")


class DialogProperties(NodeProperties):
    template_fields = ("title", "message", "options", "button1", "button2", "input_title", "defaults")

    title: str = "Dialog"
    message: str = ""
    options: Optional[str] = None
    multi_select: bool = Field(False, alias="multiSelect")
    markdown: bool = False
    button1: str = "OK"
    button2: Optional[str] = None
    input_title: Optional[str] = Field(None, alias="inputTitle")
    multiline: bool = False
    defaults: Optional[str] = None
    save_to: Optional[str] = Field(None, alias="saveTo")


# =============================================================================
# Integration
# =============================================================================

class WorkflowCallProperties(NodeProperties):
    template_fields = ("path", "name")

    path: str
    name: Optional[str] = None
    input: Optional[str] = None
    output: Optional[str] = None
    prefix: Optional[str] = None


class JsonProperties(NodeProperties):
    source: str
    save_to: str = Field(alias="saveTo")


class HttpProperties(NodeProperties):
    template_fields = ("url", "method", "headers", "body")

    url: str
    method: str = "GET"
    content_type: Literal["json", "form-data", "text"] = Field("json", alias="contentType")
    headers: Optional[str] = None
    body: Optional[str] = None
    save_to: Optional[str] = Field(None, alias="saveTo")
    save_status: Optional[str] = Field(None, alias="saveStatus")
    throw_on_error: bool = Field(True, alias="throwOnError")


class McpProperties(NodeProperties):
    template_fields = ("url", "tool", "args", "headers")

    url: str
    tool: str
    args: Optional[str] = None
    headers: Optional[str] = None
    save_to: Optional[str] = Field(None, alias="saveTo")
    save_ui_to: Optional[str] = Field(None, alias="saveUiTo")


class RagSyncProperties(NodeProperties):
    template_fields = ("path", "rag_setting")

    path: str
    rag_setting: str = Field(alias="ragSetting")
    save_to: Optional[str] = Field(None, alias="saveTo")


class GemihubCommandProperties(NodeProperties):
    template_fields = ("command", "path", "text")

    command: str
    path: str
    text: Optional[str] = None
    save_to: Optional[str] = Field(None, alias="saveTo")


NODE_PROPERTY_MODELS: Dict[NodeType, Type[NodeProperties]] = {
    NodeType.VARIABLE: VariableProperties,
    NodeType.SET: SetProperties,
    NodeType.IF: ConditionProperties,
    NodeType.WHILE: ConditionProperties,
    NodeType.SLEEP: SleepProperties,
    NodeType.COMMAND: CommandProperties,
    NodeType.DRIVE_FILE: DriveFileProperties,
    NodeType.DRIVE_READ: DriveReadProperties,
    NodeType.DRIVE_SEARCH: DriveSearchProperties,
    NodeType.DRIVE_LIST: DriveListProperties,
    NodeType.DRIVE_FOLDER_LIST: DriveFolderListProperties,
    NodeType.DRIVE_FILE_PICKER: DriveFilePickerProperties,
    NodeType.DRIVE_SAVE: DriveSaveProperties,
    NodeType.DRIVE_DELETE: DriveDeleteProperties,
    NodeType.PROMPT_VALUE: PromptValueProperties,
    NodeType.PROMPT_FILE: PromptFileProperties,
    NodeType.PROMPT_SELECTION: PromptSelectionProperties,
    NodeType.DIALOG: DialogProperties,
    NodeType.WORKFLOW: WorkflowCallProperties,
    NodeType.JSON: JsonProperties,
    NodeType.HTTP: HttpProperties,
    NodeType.MCP: McpProperties,
    NodeType.RAG_SYNC: RagSyncProperties,
    NodeType.GEMIHUB_COMMAND: GemihubCommandProperties,
}
