"""Tests for EchoAgent session and cancellation handling."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from amplifier_acp.echo import EchoAgent
from amplifier_acp.schema import (
    CancelNotification,
    NewSessionRequest,
    PromptRequest,
    StopReason,
    TextContentBlock,
)


async def new_session(agent: EchoAgent) -> str:
    response = await agent.new_session(NewSessionRequest(cwd="/work"))
    return response.sessionId


def two_block_prompt(session_id: str) -> PromptRequest:
    return PromptRequest(
        sessionId=session_id,
        prompt=[TextContentBlock(text="one"), TextContentBlock(text="two")],
    )


class TestEchoAgentCancel:
    @pytest.mark.asyncio
    async def test_cancel_during_turn(self) -> None:
        client = AsyncMock()
        agent = EchoAgent(client)
        session_id = await new_session(agent)

        async def cancel_after_first_chunk(params):
            await agent.cancel(CancelNotification(sessionId=session_id))

        client.session_update.side_effect = cancel_after_first_chunk

        response = await agent.prompt(two_block_prompt(session_id))

        assert response.stopReason == StopReason.CANCELLED
        assert client.session_update.await_count == 1

    @pytest.mark.asyncio
    async def test_cancel_state_cleared_when_turn_ends(self) -> None:
        client = AsyncMock()
        agent = EchoAgent(client)
        session_id = await new_session(agent)
        async def cancel_after_first_chunk(params):
            await agent.cancel(CancelNotification(sessionId=session_id))

        client.session_update.side_effect = cancel_after_first_chunk

        await agent.prompt(two_block_prompt(session_id))

        assert agent._cancelled == set()
        assert agent._active == set()

    @pytest.mark.asyncio
    async def test_cancel_without_running_turn_is_ignored(self) -> None:
        client = AsyncMock()
        agent = EchoAgent(client)
        session_id = await new_session(agent)

        await agent.cancel(CancelNotification(sessionId=session_id))
        await agent.cancel(CancelNotification(sessionId="never-prompted"))

        assert agent._cancelled == set()
        response = await agent.prompt(two_block_prompt(session_id))
        assert response.stopReason == StopReason.END_TURN
        assert client.session_update.await_count == 2
