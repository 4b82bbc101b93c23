"""ACP schema: method names, method table and parameter/result models.

Field names use camelCase to match the ACP protocol specification.
This is required for protocol compatibility - do not change to snake_case.

See: https://agentclientprotocol.com/protocol/schema
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field

# Protocol version
PROTOCOL_VERSION = 1


class AcpModel(BaseModel):
    """Base model for ACP types.

    Unknown fields (``_meta`` and future protocol extensions) are kept rather
    than rejected.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")


# =============================================================================
# Method names
# =============================================================================


class AgentMethods:
    """Methods the client calls on the agent."""

    INITIALIZE = "initialize"
    AUTHENTICATE = "authenticate"
    SESSION_NEW = "session/new"
    SESSION_LOAD = "session/load"
    SESSION_PROMPT = "session/prompt"
    SESSION_CANCEL = "session/cancel"


class ClientMethods:
    """Methods the agent calls on the client."""

    SESSION_UPDATE = "session/update"
    SESSION_REQUEST_PERMISSION = "session/request_permission"
    FS_READ_TEXT_FILE = "fs/read_text_file"
    FS_WRITE_TEXT_FILE = "fs/write_text_file"


# =============================================================================
# Capability Types
# =============================================================================


class FileSystemCapability(AcpModel):
    """Client file system capabilities."""

    readTextFile: bool = False
    writeTextFile: bool = False


class ClientCapabilities(AcpModel):
    """Capabilities supported by the client."""

    fs: FileSystemCapability = Field(default_factory=FileSystemCapability)
    terminal: bool = False


class PromptCapabilities(AcpModel):
    """Agent prompt capabilities."""

    audio: bool = False
    embeddedContext: bool = False
    image: bool = False


class McpCapabilities(AcpModel):
    """Agent MCP capabilities."""

    http: bool = False
    sse: bool = False


class AgentCapabilities(AcpModel):
    """Capabilities supported by the agent."""

    loadSession: bool = False
    promptCapabilities: PromptCapabilities = Field(default_factory=PromptCapabilities)
    mcpCapabilities: McpCapabilities = Field(default_factory=McpCapabilities)


class Implementation(AcpModel):
    """Name and version of a client or agent implementation."""

    name: str
    version: str
    title: str | None = None


class AuthMethod(AcpModel):
    """Authentication method."""

    id: str
    name: str
    description: str | None = None


# =============================================================================
# Initialize / Authenticate
# =============================================================================


class InitializeRequest(AcpModel):
    protocolVersion: int
    clientCapabilities: ClientCapabilities = Field(default_factory=ClientCapabilities)
    clientInfo: Implementation | None = None


class InitializeResponse(AcpModel):
    protocolVersion: int
    agentCapabilities: AgentCapabilities = Field(default_factory=AgentCapabilities)
    authMethods: list[AuthMethod] = Field(default_factory=list)
    agentInfo: Implementation | None = None


class AuthenticateRequest(AcpModel):
    methodId: str


# =============================================================================
# Sessions
# =============================================================================


class EnvVariable(AcpModel):
    name: str
    value: str


class McpServer(AcpModel):
    """MCP server the agent should connect to for a session."""

    name: str
    command: str
    args: list[str] = Field(default_factory=list)
    env: list[EnvVariable] = Field(default_factory=list)


class NewSessionRequest(AcpModel):
    cwd: str
    mcpServers: list[McpServer] = Field(default_factory=list)


class NewSessionResponse(AcpModel):
    sessionId: str


class LoadSessionRequest(AcpModel):
    sessionId: str
    cwd: str
    mcpServers: list[McpServer] = Field(default_factory=list)


class LoadSessionResponse(AcpModel):
    pass


# =============================================================================
# Content Types
# =============================================================================


class TextContentBlock(AcpModel):
    type: Literal["text"] = "text"
    text: str


class ImageContentBlock(AcpModel):
    type: Literal["image"] = "image"
    data: str  # Base64 encoded
    mimeType: str


class AudioContentBlock(AcpModel):
    type: Literal["audio"] = "audio"
    data: str  # Base64 encoded
    mimeType: str


class ResourceLinkContentBlock(AcpModel):
    """Reference to an external resource."""

    type: Literal["resource_link"] = "resource_link"
    uri: str
    name: str
    mimeType: str | None = None


class EmbeddedResourceContentBlock(AcpModel):
    """Resource contents embedded in the prompt."""

    type: Literal["resource"] = "resource"
    resource: dict[str, Any]


ContentBlock = Annotated[
    Union[
        TextContentBlock,
        ImageContentBlock,
        AudioContentBlock,
        ResourceLinkContentBlock,
        EmbeddedResourceContentBlock,
    ],
    Field(discriminator="type"),
]


# =============================================================================
# Prompt Turn
# =============================================================================


class PromptRequest(AcpModel):
    sessionId: str
    prompt: list[ContentBlock]


class StopReason(str, Enum):
    """Reason why the agent stopped processing."""

    END_TURN = "end_turn"
    MAX_TOKENS = "max_tokens"
    MAX_TURN_REQUESTS = "max_turn_requests"
    REFUSAL = "refusal"
    CANCELLED = "cancelled"


class PromptResponse(AcpModel):
    stopReason: StopReason


class CancelNotification(AcpModel):
    sessionId: str


# =============================================================================
# Session Update (agent -> client notifications)
# =============================================================================


class UserMessageChunk(AcpModel):
    sessionUpdate: Literal["user_message_chunk"] = "user_message_chunk"
    content: ContentBlock


class AgentMessageChunk(AcpModel):
    sessionUpdate: Literal["agent_message_chunk"] = "agent_message_chunk"
    content: ContentBlock


class AgentThoughtChunk(AcpModel):
    sessionUpdate: Literal["agent_thought_chunk"] = "agent_thought_chunk"
    content: ContentBlock


class ToolCallStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


class ToolCallUpdate(AcpModel):
    """Fields of a tool call that changed; only ``toolCallId`` is required."""

    toolCallId: str
    title: str | None = None
    kind: str | None = None
    status: ToolCallStatus | None = None
    content: list[dict[str, Any]] | None = None
    rawInput: Any | None = None
    rawOutput: Any | None = None


class ToolCallStart(AcpModel):
    sessionUpdate: Literal["tool_call"] = "tool_call"
    toolCallId: str
    title: str
    kind: str | None = None
    status: ToolCallStatus | None = None
    rawInput: Any | None = None


class ToolCallProgress(ToolCallUpdate):
    sessionUpdate: Literal["tool_call_update"] = "tool_call_update"


class PlanEntry(AcpModel):
    content: str
    priority: Literal["high", "medium", "low"]
    status: Literal["pending", "in_progress", "completed"]


class AgentPlanUpdate(AcpModel):
    sessionUpdate: Literal["plan"] = "plan"
    entries: list[PlanEntry]


SessionUpdate = Annotated[
    Union[
        UserMessageChunk,
        AgentMessageChunk,
        AgentThoughtChunk,
        ToolCallStart,
        ToolCallProgress,
        AgentPlanUpdate,
    ],
    Field(discriminator="sessionUpdate"),
]


class SessionNotification(AcpModel):
    sessionId: str
    update: SessionUpdate


# =============================================================================
# Permission Request (client method)
# =============================================================================


class PermissionOption(AcpModel):
    optionId: str
    name: str
    kind: Literal["allow_once", "allow_always", "reject_once", "reject_always"]


class RequestPermissionRequest(AcpModel):
    sessionId: str
    toolCall: ToolCallUpdate
    options: list[PermissionOption]


class DeniedOutcome(AcpModel):
    outcome: Literal["cancelled"] = "cancelled"


class AllowedOutcome(AcpModel):
    outcome: Literal["selected"] = "selected"
    optionId: str


class RequestPermissionResponse(AcpModel):
    outcome: Annotated[Union[DeniedOutcome, AllowedOutcome], Field(discriminator="outcome")]


# =============================================================================
# File System Operations (client methods)
# =============================================================================


class ReadTextFileRequest(AcpModel):
    sessionId: str
    path: str
    line: int | None = None  # 1-based line number
    limit: int | None = None  # Max lines to read


class ReadTextFileResponse(AcpModel):
    content: str


class WriteTextFileRequest(AcpModel):
    sessionId: str
    path: str
    content: str


# =============================================================================
# Method table
# =============================================================================


class MethodKind(str, Enum):
    REQUEST = "request"
    NOTIFICATION = "notification"


class MethodDirection(str, Enum):
    """Which side of the connection services the method."""

    AGENT = "agent"
    CLIENT = "client"


@dataclass(frozen=True)
class MethodSpec:
    """How a method name maps to a parameter model and a capability."""

    name: str
    direction: MethodDirection
    kind: MethodKind
    params_model: type[AcpModel]
    handler_name: str


def _table(*specs: MethodSpec) -> Mapping[str, MethodSpec]:
    return MappingProxyType({spec.name: spec for spec in specs})


AGENT_METHOD_TABLE: Mapping[str, MethodSpec] = _table(
    MethodSpec(
        AgentMethods.INITIALIZE,
        MethodDirection.AGENT,
        MethodKind.REQUEST,
        InitializeRequest,
        "initialize",
    ),
    MethodSpec(
        AgentMethods.AUTHENTICATE,
        MethodDirection.AGENT,
        MethodKind.REQUEST,
        AuthenticateRequest,
        "authenticate",
    ),
    MethodSpec(
        AgentMethods.SESSION_NEW,
        MethodDirection.AGENT,
        MethodKind.REQUEST,
        NewSessionRequest,
        "new_session",
    ),
    MethodSpec(
        AgentMethods.SESSION_LOAD,
        MethodDirection.AGENT,
        MethodKind.REQUEST,
        LoadSessionRequest,
        "load_session",
    ),
    MethodSpec(
        AgentMethods.SESSION_PROMPT,
        MethodDirection.AGENT,
        MethodKind.REQUEST,
        PromptRequest,
        "prompt",
    ),
    MethodSpec(
        AgentMethods.SESSION_CANCEL,
        MethodDirection.AGENT,
        MethodKind.NOTIFICATION,
        CancelNotification,
        "cancel",
    ),
)

CLIENT_METHOD_TABLE: Mapping[str, MethodSpec] = _table(
    MethodSpec(
        ClientMethods.SESSION_UPDATE,
        MethodDirection.CLIENT,
        MethodKind.NOTIFICATION,
        SessionNotification,
        "session_update",
    ),
    MethodSpec(
        ClientMethods.SESSION_REQUEST_PERMISSION,
        MethodDirection.CLIENT,
        MethodKind.REQUEST,
        RequestPermissionRequest,
        "request_permission",
    ),
    MethodSpec(
        ClientMethods.FS_READ_TEXT_FILE,
        MethodDirection.CLIENT,
        MethodKind.REQUEST,
        ReadTextFileRequest,
        "read_text_file",
    ),
    MethodSpec(
        ClientMethods.FS_WRITE_TEXT_FILE,
        MethodDirection.CLIENT,
        MethodKind.REQUEST,
        WriteTextFileRequest,
        "write_text_file",
    ),
)
