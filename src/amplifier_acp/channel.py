"""Message channel: newline-delimited JSON framing over a pair of byte streams.

Wire format:
- One JSON-RPC message per line, UTF-8 encoded, terminated by ``\\n``
- Blank lines are skipped; a leading BOM and ``\\r\\n`` endings are tolerated
- Frames that cannot be decoded surface as ``ParseFailure`` events instead of
  ending the stream
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from typing import Protocol

from .config import ConnectionConfig
from .errors import TransportError
from .types import IncomingMessage, OutgoingMessage, ParseFailure, decode_message, encode_message

logger = logging.getLogger(__name__)

_SEPARATOR = b"\n"
_READ_CHUNK_BYTES = 64 * 1024


class StreamWriterLike(Protocol):
    """The subset of ``asyncio.StreamWriter`` used for outbound frames."""

    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...

    def is_closing(self) -> bool: ...

    def close(self) -> None: ...


class MessageChannel:
    """Owns one outbound writer and one inbound reader.

    ``send`` writes exactly one frame per message, in call order.
    ``incoming`` yields one decoded message per frame until the reader hits EOF.
    """

    def __init__(
        self,
        writer: StreamWriterLike,
        reader: asyncio.StreamReader,
        config: ConnectionConfig | None = None,
    ) -> None:
        self._writer = writer
        self._reader = reader
        self._config = config or ConnectionConfig()
        self._write_lock = asyncio.Lock()
        self._consumed = False
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed or self._writer.is_closing()

    async def send(self, message: OutgoingMessage) -> None:
        """Serialize and write one frame.

        Raises:
            TransportError: The outbound stream is closed or the write failed.
        """
        data = (encode_message(message) + "\n").encode(self._config.encoding)

        async with self._write_lock:
            if self.closed:
                raise TransportError("Outbound stream is closed")
            try:
                self._writer.write(data)
                await self._writer.drain()
            except (OSError, RuntimeError) as e:
                raise TransportError(f"Write failed: {e}") from e

        logger.debug(f"--> {data!r}")

    async def incoming(self) -> AsyncIterator[IncomingMessage]:
        """Yield decoded messages, one per inbound frame.

        The sequence can only be consumed once and ends when the inbound
        stream closes. Frames are split here rather than with
        ``readline()`` so ``max_frame_bytes`` applies regardless of the
        limit the reader was built with.
        """
        if self._consumed:
            raise RuntimeError("incoming() can only be consumed once")
        self._consumed = True

        limit = self._config.max_frame_bytes
        buffer = bytearray()
        # Inside an oversized frame; drop bytes until its newline
        discarding = False

        while True:
            chunk = await self._reader.read(_READ_CHUNK_BYTES)
            if not chunk:
                break
            buffer += chunk

            while (end := buffer.find(_SEPARATOR)) >= 0:
                raw = bytes(buffer[:end])
                del buffer[: end + 1]
                if discarding:
                    discarding = False
                    continue
                if len(raw) > limit:
                    yield self._oversized(len(raw))
                    continue
                message = self._decode(raw)
                if message is not None:
                    yield message

            if discarding:
                buffer.clear()
            elif len(buffer) > limit:
                size = len(buffer)
                buffer.clear()
                discarding = True
                yield self._oversized(size)

        # EOF; a trailing frame without newline is still delivered
        if buffer and not discarding:
            message = self._decode(bytes(buffer))
            if message is not None:
                yield message

        logger.debug("Inbound stream closed")

    def _oversized(self, size: int) -> ParseFailure:
        limit = self._config.max_frame_bytes
        logger.warning(f"Dropped frame of at least {size} bytes (limit {limit})")
        return ParseFailure(line="", reason=f"Frame exceeds {limit} bytes")

    def _decode(self, raw: bytes) -> IncomingMessage | None:
        logger.debug(f"<-- {raw!r}")
        try:
            text = raw.decode(self._config.encoding)
        except UnicodeDecodeError as e:
            return ParseFailure(line=raw.decode(self._config.encoding, "replace"), reason=str(e))

        text = text.lstrip("\ufeff").strip()
        if not text:
            return None
        return decode_message(text)

    async def close(self) -> None:
        """Close the outbound stream. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        async with self._write_lock:
            if not self._writer.is_closing():
                self._writer.close()
