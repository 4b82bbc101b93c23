"""Agent Client Protocol (ACP) connection layer.

ACP standardizes communication between code editors and AI coding agents.
This package provides the JSON-RPC 2.0 message bus underneath it: framing
over a pair of byte streams, request/response correlation, error
normalization, and the agent-side method router.

Protocol: JSON-RPC 2.0, newline-delimited JSON over stdio (or any byte streams)
See: https://agentclientprotocol.com
"""

from .agent import AgentSideConnection
from .channel import MessageChannel
from .config import ConnectionConfig
from .connection import Connection, MethodHandler
from .errors import (
    ConnectionClosedError,
    JsonRpcErrorCode,
    RequestError,
    TransportError,
    to_request_error,
)
from .interfaces import Agent, Client
from .schema import (
    AGENT_METHOD_TABLE,
    CLIENT_METHOD_TABLE,
    PROTOCOL_VERSION,
    AgentMethods,
    ClientMethods,
    MethodKind,
    MethodSpec,
)
from .streams import memory_pipe, stdio_streams
from .types import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ParseFailure,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    # Connections
    "AgentSideConnection",
    "Connection",
    "MessageChannel",
    "MethodHandler",
    "ConnectionConfig",
    # Errors
    "ConnectionClosedError",
    "JsonRpcErrorCode",
    "RequestError",
    "TransportError",
    "to_request_error",
    # Interfaces
    "Agent",
    "Client",
    # Schema
    "AGENT_METHOD_TABLE",
    "CLIENT_METHOD_TABLE",
    "PROTOCOL_VERSION",
    "AgentMethods",
    "ClientMethods",
    "MethodKind",
    "MethodSpec",
    # Streams
    "memory_pipe",
    "stdio_streams",
    # Wire types
    "JsonRpcError",
    "JsonRpcNotification",
    "JsonRpcRequest",
    "JsonRpcResponse",
    "ParseFailure",
]
