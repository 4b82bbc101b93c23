"""Byte stream helpers for connections.

A connection endpoint needs one writable and one readable byte stream.
``stdio_streams`` binds them to the process's stdout/stdin for editor
integration; ``memory_pipe`` provides an in-process pipe so two endpoints can
talk to each other without any OS resources.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TextIO

from .config import DEFAULT_MAX_FRAME_BYTES

logger = logging.getLogger(__name__)


class MemoryStreamWriter:
    """Writer half of an in-memory pipe.

    Mirrors the parts of ``asyncio.StreamWriter`` a MessageChannel uses.
    Bytes written here become readable from the paired StreamReader;
    closing the writer delivers EOF to the reader.
    """

    def __init__(self, reader: asyncio.StreamReader) -> None:
        self._reader = reader
        self._closed = False

    def write(self, data: bytes) -> None:
        if self._closed:
            raise ConnectionResetError("memory pipe is closed")
        self._reader.feed_data(data)

    async def drain(self) -> None:
        if self._closed:
            raise ConnectionResetError("memory pipe is closed")
        # Give the reading side a chance to run
        await asyncio.sleep(0)

    def is_closing(self) -> bool:
        return self._closed

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._reader.feed_eof()

    async def wait_closed(self) -> None:
        return None


def memory_pipe(limit: int = DEFAULT_MAX_FRAME_BYTES) -> tuple[asyncio.StreamReader, MemoryStreamWriter]:
    """Create a one-way in-memory byte pipe.

    Must be called with an event loop running. Two pipes make a duplex pair:

        a_reader, a_writer = memory_pipe()
        b_reader, b_writer = memory_pipe()
        client = Connection(handler, a_writer, b_reader)
        server = Connection(handler, b_writer, a_reader)
    """
    reader = asyncio.StreamReader(limit=limit)
    return reader, MemoryStreamWriter(reader)


async def stdio_streams(
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    limit: int = DEFAULT_MAX_FRAME_BYTES,
) -> tuple[asyncio.StreamWriter, asyncio.StreamReader]:
    """Bind asyncio streams to stdout (writer) and stdin (reader).

    Returns ``(writer, reader)`` in the order Connection expects them.
    """
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=limit)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, stdin or sys.stdin)

    transport, proto = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin,
        stdout or sys.stdout,
    )
    writer = asyncio.StreamWriter(transport, proto, None, loop)

    logger.debug("stdio streams connected")
    return writer, reader
