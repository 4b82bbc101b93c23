"""Tests for newline-delimited JSON framing in MessageChannel."""

from __future__ import annotations

import asyncio
import json

import pytest

from amplifier_acp.channel import MessageChannel
from amplifier_acp.config import ConnectionConfig
from amplifier_acp.errors import TransportError
from amplifier_acp.streams import MemoryStreamWriter, memory_pipe
from amplifier_acp.types import (
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ParseFailure,
)

# =============================================================================
# Helpers
# =============================================================================


def make_channel(config: ConnectionConfig | None = None):
    """Channel whose inbound side is fed by the returned writer.

    Returns (channel, inbound_writer, outbound_reader).
    """
    inbound_reader, inbound_writer = memory_pipe()
    outbound_reader, outbound_writer = memory_pipe()
    return MessageChannel(outbound_writer, inbound_reader, config), inbound_writer, outbound_reader


async def collect(channel: MessageChannel) -> list:
    return [message async for message in channel.incoming()]


# =============================================================================
# Sending
# =============================================================================


class TestSend:
    @pytest.mark.anyio
    async def test_one_frame_per_message(self):
        channel, _, outbound = make_channel()

        await channel.send(JsonRpcRequest(id=0, method="ping", params="payload"))
        await channel.send(JsonRpcNotification(method="notify"))

        first = await outbound.readline()
        second = await outbound.readline()
        assert first.endswith(b"\n")
        assert json.loads(first) == {"jsonrpc": "2.0", "id": 0, "method": "ping", "params": "payload"}
        assert json.loads(second) == {"jsonrpc": "2.0", "method": "notify"}

    @pytest.mark.anyio
    async def test_non_ascii_is_utf8(self):
        channel, _, outbound = make_channel()

        await channel.send(JsonRpcNotification(method="say", params={"text": "héllo ✓"}))

        line = await outbound.readline()
        assert "héllo ✓".encode() in line

    @pytest.mark.anyio
    async def test_send_after_close_raises(self):
        channel, _, _ = make_channel()
        await channel.close()

        with pytest.raises(TransportError):
            await channel.send(JsonRpcNotification(method="notify"))

    @pytest.mark.anyio
    async def test_close_is_idempotent_and_sends_eof(self):
        channel, _, outbound = make_channel()

        await channel.close()
        await channel.close()

        assert channel.closed
        assert await outbound.read() == b""


# =============================================================================
# Receiving
# =============================================================================


class TestIncoming:
    @pytest.mark.anyio
    async def test_decodes_each_frame(self):
        channel, inbound, _ = make_channel()
        inbound.write(
            b'{"jsonrpc":"2.0","id":1,"method":"ping"}\n'
            b'{"jsonrpc":"2.0","method":"notify"}\n'
            b'{"jsonrpc":"2.0","id":0,"result":"pong"}\n'
        )
        inbound.close()

        messages = await collect(channel)

        assert [type(m) for m in messages] == [JsonRpcRequest, JsonRpcNotification, JsonRpcResponse]

    @pytest.mark.anyio
    async def test_skips_blank_lines_and_tolerates_crlf_and_bom(self):
        channel, inbound, _ = make_channel()
        inbound.write(b"\n   \n\xef\xbb\xbf" + b'{"jsonrpc":"2.0","method":"a"}\r\n' + b"\r\n")
        inbound.close()

        messages = await collect(channel)

        assert len(messages) == 1
        assert isinstance(messages[0], JsonRpcNotification)
        assert messages[0].method == "a"

    @pytest.mark.anyio
    async def test_malformed_frame_does_not_end_sequence(self):
        channel, inbound, _ = make_channel()
        inbound.write(b"not valid json\n" + b'{"jsonrpc":"2.0","method":"after"}\n')
        inbound.close()

        messages = await collect(channel)

        assert isinstance(messages[0], ParseFailure)
        assert isinstance(messages[1], JsonRpcNotification)
        assert messages[1].method == "after"

    @pytest.mark.anyio
    async def test_invalid_utf8_is_a_parse_failure(self):
        channel, inbound, _ = make_channel()
        inbound.write(b"\xff\xfe\xfd\n")
        inbound.close()

        messages = await collect(channel)

        assert len(messages) == 1
        assert isinstance(messages[0], ParseFailure)

    @pytest.mark.anyio
    async def test_trailing_frame_without_newline(self):
        channel, inbound, _ = make_channel()
        inbound.write(b'{"jsonrpc":"2.0","method":"last"}')
        inbound.close()

        messages = await collect(channel)

        assert len(messages) == 1
        assert messages[0].method == "last"

    @pytest.mark.anyio
    async def test_oversized_frame_is_skipped(self):
        channel, inbound, _ = make_channel(ConnectionConfig(max_frame_bytes=64))
        inbound.write(b'{"padding":"' + b"x" * 200 + b'"}\n' + b'{"jsonrpc":"2.0","method":"n"}\n')
        inbound.close()

        messages = await collect(channel)

        assert len(messages) == 2
        assert isinstance(messages[0], ParseFailure)
        assert "exceeds" in messages[0].reason
        assert isinstance(messages[1], JsonRpcNotification)

    @pytest.mark.anyio
    async def test_oversized_frame_arriving_in_pieces(self):
        channel, inbound, _ = make_channel(ConnectionConfig(max_frame_bytes=64))
        consumer = asyncio.create_task(collect(channel))

        inbound.write(b'{"padding":"' + b"x" * 100)
        await asyncio.sleep(0.01)
        inbound.write(b"x" * 100 + b'"}\n' + b'{"jsonrpc":"2.0","method":"n"}\n')
        inbound.close()

        messages = await asyncio.wait_for(consumer, 1.0)
        assert len(messages) == 2
        assert isinstance(messages[0], ParseFailure)
        assert messages[1].method == "n"

    @pytest.mark.anyio
    async def test_frame_larger_than_reader_limit(self):
        """The configured frame size applies even to a default-limit reader."""
        inbound_reader = asyncio.StreamReader()
        inbound = MemoryStreamWriter(inbound_reader)
        _, outbound_writer = memory_pipe()
        channel = MessageChannel(outbound_writer, inbound_reader)
        text = "x" * 100_000

        inbound.write(json.dumps({"jsonrpc": "2.0", "method": "big", "params": text}).encode() + b"\n")
        inbound.close()

        messages = await collect(channel)
        assert len(messages) == 1
        assert isinstance(messages[0], JsonRpcNotification)
        assert messages[0].params == text

    @pytest.mark.anyio
    async def test_ends_on_eof(self):
        channel, inbound, _ = make_channel()
        inbound.close()

        assert await collect(channel) == []

    @pytest.mark.anyio
    async def test_cannot_be_consumed_twice(self):
        channel, inbound, _ = make_channel()
        inbound.close()
        await collect(channel)

        with pytest.raises(RuntimeError):
            await collect(channel)
