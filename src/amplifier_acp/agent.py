"""Agent side of an ACP connection.

Routes the fixed set of agent methods (initialize, authenticate, session/*)
to an ``Agent`` implementation and exposes the client methods
(session/update, fs/*, session/request_permission) the agent may call back.

Only methods in ``AGENT_METHOD_TABLE`` are ever dispatched; everything else
is answered with Method not found.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from .channel import StreamWriterLike
from .config import ConnectionConfig
from .connection import Connection
from .errors import RequestError, format_validation_error
from .interfaces import Agent
from .schema import (
    AGENT_METHOD_TABLE,
    CLIENT_METHOD_TABLE,
    ClientMethods,
    MethodKind,
    ReadTextFileRequest,
    ReadTextFileResponse,
    RequestPermissionRequest,
    RequestPermissionResponse,
    SessionNotification,
    WriteTextFileRequest,
)
from .types import to_jsonable

logger = logging.getLogger(__name__)

ResponseT = TypeVar("ResponseT", bound=BaseModel)

AgentFactory = Callable[["AgentSideConnection"], Agent]


class AgentSideConnection:
    """An ACP connection as seen by the agent.

    Args:
        to_agent: Factory called once with this connection; returns the agent
            that services incoming requests. The connection is passed so the
            agent can keep it and call client methods later.
        writer: Outbound byte stream (to the client).
        reader: Inbound byte stream (from the client).
        config: Optional connection configuration.

    Example:
        writer, reader = await stdio_streams()
        conn = AgentSideConnection(lambda conn: MyAgent(conn), writer, reader)
        await conn.listen()
    """

    def __init__(
        self,
        to_agent: AgentFactory,
        writer: StreamWriterLike,
        reader: asyncio.StreamReader,
        *,
        config: ConnectionConfig | None = None,
    ) -> None:
        self._agent = to_agent(self)
        self._connection = Connection(self._handle, writer, reader, config=config)

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def agent(self) -> Agent:
        return self._agent

    async def listen(self) -> None:
        """Serve requests until the client disconnects or ``close()`` is called."""
        await self._connection.listen()

    async def close(self) -> None:
        await self._connection.close()

    async def __aenter__(self) -> AgentSideConnection:
        self._connection.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # Incoming (client -> agent)
    # =========================================================================

    async def _handle(self, method: str, params: Any) -> Any:
        """Route an incoming method call to the agent."""
        spec = AGENT_METHOD_TABLE.get(method)
        if spec is None:
            raise RequestError.method_not_found(method)

        capability = getattr(self._agent, spec.handler_name, None)
        if capability is None:
            # Optional capability (e.g. session/load) not implemented by this agent
            raise RequestError.method_not_found(method)

        request = spec.params_model.model_validate(params)
        logger.debug(f"Dispatching {method} to agent.{spec.handler_name}")

        result = capability(request)
        if inspect.isawaitable(result):
            result = await result

        if spec.kind is MethodKind.NOTIFICATION:
            return None
        return to_jsonable(result)

    # =========================================================================
    # Outgoing (agent -> client)
    # =========================================================================

    async def session_update(self, params: SessionNotification | dict[str, Any]) -> None:
        """Send a ``session/update`` notification to the client."""
        await self._connection.send_notification(
            ClientMethods.SESSION_UPDATE,
            self._prepare(ClientMethods.SESSION_UPDATE, params),
        )

    async def request_permission(
        self, params: RequestPermissionRequest | dict[str, Any]
    ) -> RequestPermissionResponse:
        """Ask the client to authorize a tool call."""
        return await self._request(
            ClientMethods.SESSION_REQUEST_PERMISSION, params, RequestPermissionResponse
        )

    async def read_text_file(self, params: ReadTextFileRequest | dict[str, Any]) -> ReadTextFileResponse:
        """Read a text file through the client."""
        return await self._request(ClientMethods.FS_READ_TEXT_FILE, params, ReadTextFileResponse)

    async def write_text_file(self, params: WriteTextFileRequest | dict[str, Any]) -> None:
        """Write a text file through the client."""
        await self._connection.send_request(
            ClientMethods.FS_WRITE_TEXT_FILE,
            self._prepare(ClientMethods.FS_WRITE_TEXT_FILE, params),
        )

    def _prepare(self, method: str, params: BaseModel | dict[str, Any]) -> dict[str, Any]:
        """Validate outgoing params against the method's model and dump to JSON."""
        model = CLIENT_METHOD_TABLE[method].params_model
        if not isinstance(params, model):
            params = model.model_validate(params)
        return to_jsonable(params)

    async def _request(
        self,
        method: str,
        params: BaseModel | dict[str, Any],
        response_model: type[ResponseT],
    ) -> ResponseT:
        result = await self._connection.send_request(method, self._prepare(method, params))
        try:
            return response_model.model_validate(result)
        except ValidationError as e:
            # The client's answer is malformed, not our params
            raise RequestError.internal_error(
                f"Invalid {method} response: {format_validation_error(e)}"
            ) from e
