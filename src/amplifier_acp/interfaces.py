"""Capability interfaces for the two sides of an ACP connection.

Using protocols keeps the connection layer decoupled from any concrete agent
or editor implementation; anything with matching async methods will do.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from .schema import (
    AuthenticateRequest,
    CancelNotification,
    InitializeRequest,
    InitializeResponse,
    LoadSessionRequest,
    LoadSessionResponse,
    NewSessionRequest,
    NewSessionResponse,
    PromptRequest,
    PromptResponse,
    ReadTextFileRequest,
    ReadTextFileResponse,
    RequestPermissionRequest,
    RequestPermissionResponse,
    SessionNotification,
    WriteTextFileRequest,
)


@runtime_checkable
class Agent(Protocol):
    """The coding-agent side of the protocol.

    ``load_session`` is optional; agents without it answer ``session/load``
    with Method not found. Results may be the response models or plain dicts.
    """

    async def initialize(self, params: InitializeRequest) -> InitializeResponse | dict[str, Any]:
        """Negotiate protocol version and capabilities."""
        ...

    async def authenticate(self, params: AuthenticateRequest) -> None:
        """Authenticate using one of the advertised auth methods."""
        ...

    async def new_session(self, params: NewSessionRequest) -> NewSessionResponse | dict[str, Any]:
        """Create a new conversation session."""
        ...

    async def load_session(self, params: LoadSessionRequest) -> LoadSessionResponse | dict[str, Any] | None:
        """Resume a previously created session."""
        ...

    async def prompt(self, params: PromptRequest) -> PromptResponse | dict[str, Any]:
        """Run one prompt turn; returns when the turn has ended."""
        ...

    async def cancel(self, params: CancelNotification) -> None:
        """Stop the current prompt turn of a session."""
        ...


@runtime_checkable
class Client(Protocol):
    """The editor side of the protocol, as seen from the agent."""

    async def session_update(self, params: SessionNotification | dict[str, Any]) -> None:
        """Stream a session update (message chunk, tool call, plan) to the client."""
        ...

    async def request_permission(
        self, params: RequestPermissionRequest | dict[str, Any]
    ) -> RequestPermissionResponse:
        """Ask the user to authorize a tool call."""
        ...

    async def read_text_file(self, params: ReadTextFileRequest | dict[str, Any]) -> ReadTextFileResponse:
        """Read a text file through the editor (sees unsaved buffers)."""
        ...

    async def write_text_file(self, params: WriteTextFileRequest | dict[str, Any]) -> None:
        """Write a text file through the editor."""
        ...
