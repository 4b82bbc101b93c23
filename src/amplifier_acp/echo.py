"""Minimal echo agent.

Answers every prompt by streaming the prompt's text back as agent message
chunks. Useful for checking an editor integration end to end without any
model behind it.
"""

from __future__ import annotations

import logging
import uuid

from . import __version__
from .errors import RequestError
from .interfaces import Client
from .schema import (
    PROTOCOL_VERSION,
    AgentCapabilities,
    AgentMessageChunk,
    AuthenticateRequest,
    CancelNotification,
    Implementation,
    InitializeRequest,
    InitializeResponse,
    LoadSessionRequest,
    LoadSessionResponse,
    NewSessionRequest,
    NewSessionResponse,
    PromptRequest,
    PromptResponse,
    SessionNotification,
    StopReason,
    TextContentBlock,
)

logger = logging.getLogger(__name__)


class EchoAgent:
    def __init__(self, client: Client) -> None:
        self._client = client
        self._sessions: dict[str, str] = {}  # session id -> cwd
        self._active: set[str] = set()  # sessions with a prompt turn running
        self._cancelled: set[str] = set()

    async def initialize(self, params: InitializeRequest) -> InitializeResponse:
        logger.info(f"ACP initialized with protocol version {params.protocolVersion}")
        return InitializeResponse(
            protocolVersion=PROTOCOL_VERSION,
            agentCapabilities=AgentCapabilities(loadSession=True),
            agentInfo=Implementation(name="amplifier-acp-echo", version=__version__),
        )

    async def authenticate(self, params: AuthenticateRequest) -> None:
        return None

    async def new_session(self, params: NewSessionRequest) -> NewSessionResponse:
        session_id = f"echo_{uuid.uuid4().hex[:12]}"
        self._sessions[session_id] = params.cwd
        logger.info(f"Created session: {session_id}")
        return NewSessionResponse(sessionId=session_id)

    async def load_session(self, params: LoadSessionRequest) -> LoadSessionResponse:
        self._require_session(params.sessionId)
        self._sessions[params.sessionId] = params.cwd
        return LoadSessionResponse()

    async def prompt(self, params: PromptRequest) -> PromptResponse:
        session_id = params.sessionId
        self._require_session(session_id)

        self._active.add(session_id)
        try:
            for block in params.prompt:
                if session_id in self._cancelled:
                    return PromptResponse(stopReason=StopReason.CANCELLED)
                if isinstance(block, TextContentBlock):
                    await self._client.session_update(
                        SessionNotification(
                            sessionId=session_id,
                            update=AgentMessageChunk(content=TextContentBlock(text=block.text)),
                        )
                    )
            return PromptResponse(stopReason=StopReason.END_TURN)
        finally:
            self._active.discard(session_id)
            self._cancelled.discard(session_id)

    async def cancel(self, params: CancelNotification) -> None:
        # Only a running turn can be cancelled
        if params.sessionId in self._active:
            logger.info(f"Cancelled session: {params.sessionId}")
            self._cancelled.add(params.sessionId)

    def _require_session(self, session_id: str) -> None:
        if session_id not in self._sessions:
            raise RequestError.invalid_params(f"Session not found: {session_id}")
