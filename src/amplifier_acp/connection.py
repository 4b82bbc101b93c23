"""Bidirectional JSON-RPC connection.

A Connection sits on top of a MessageChannel and a handler function. It
correlates outgoing requests with their responses and dispatches incoming
requests and notifications to the handler. Each inbound request runs in its
own task, so a slow handler never blocks frame consumption and replies go
out in completion order rather than arrival order. ``max_concurrent_handlers``
bounds how many of those tasks run their handler at once.
"""

from __future__ import annotations

import asyncio
import contextlib
import inspect
import logging
from collections.abc import Callable, Coroutine
from typing import Any

from .channel import MessageChannel, StreamWriterLike
from .config import ConnectionConfig
from .errors import (
    ConnectionClosedError,
    JsonRpcErrorCode,
    RequestError,
    TransportError,
    to_request_error,
)
from .types import (
    IncomingMessage,
    JsonRpcId,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ParseFailure,
)

logger = logging.getLogger(__name__)

# async (method, params) -> result; plain functions are accepted too
MethodHandler = Callable[[str, Any], Any]


class Connection:
    """One endpoint of a JSON-RPC connection.

    Lifecycle is ``open -> closed``. The connection closes when the inbound
    stream ends or ``close()`` is called; pending requests then fail with
    ConnectionClosedError and further sends are refused.

    The receive loop starts as soon as the connection is created inside a
    running event loop, otherwise on the first send or ``listen()``.
    """

    def __init__(
        self,
        handler: MethodHandler,
        writer: StreamWriterLike,
        reader: asyncio.StreamReader,
        *,
        config: ConnectionConfig | None = None,
    ) -> None:
        self._config = config or ConnectionConfig()
        self._handler = handler
        self._channel = MessageChannel(writer, reader, self._config)

        self._next_request_id = 0
        self._pending: dict[JsonRpcId, asyncio.Future[Any]] = {}
        self._handler_tasks: set[asyncio.Task[None]] = set()
        self._handler_slots = (
            asyncio.Semaphore(self._config.max_concurrent_handlers)
            if self._config.max_concurrent_handlers
            else None
        )

        self._receive_task: asyncio.Task[None] | None = None
        self._closed = False
        self._closed_event = asyncio.Event()

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self.start()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_requests(self) -> int:
        """Number of outgoing requests still waiting for a response."""
        return len(self._pending)

    def start(self) -> None:
        """Start the receive loop. Does nothing if already started or closed."""
        if self._receive_task is not None or self._closed:
            return
        self._receive_task = asyncio.get_running_loop().create_task(self._receive_loop())

    async def listen(self) -> None:
        """Run until the connection is closed."""
        self.start()
        await self._closed_event.wait()

    async def wait_closed(self) -> None:
        await self._closed_event.wait()

    async def __aenter__(self) -> Connection:
        self.start()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()

    # =========================================================================
    # Outgoing
    # =========================================================================

    async def send_request(self, method: str, params: Any = None, *, timeout: float | None = None) -> Any:
        """Send a request and wait for the matching response.

        Returns the response's ``result``.

        Raises:
            RequestError: The peer answered with an error object.
            ConnectionClosedError: The connection closed before a response arrived.
            TimeoutError: ``timeout`` seconds passed without a response.
        """
        self._ensure_open()
        self.start()

        request_id = self._next_request_id
        self._next_request_id += 1

        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        self._pending[request_id] = future

        try:
            await self._channel.send(JsonRpcRequest(id=request_id, method=method, params=params))
        except TransportError:
            self._pending.pop(request_id, None)
            await self._abort("outbound stream failed")
            raise

        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout)
        finally:
            self._pending.pop(request_id, None)

    async def send_notification(self, method: str, params: Any = None) -> None:
        """Send a notification. Returns once the frame is written."""
        self._ensure_open()
        self.start()

        try:
            await self._channel.send(JsonRpcNotification(method=method, params=params))
        except TransportError:
            await self._abort("outbound stream failed")
            raise

    def _ensure_open(self) -> None:
        if self._closed:
            raise ConnectionClosedError()

    # =========================================================================
    # Incoming
    # =========================================================================

    async def _receive_loop(self) -> None:
        try:
            async for message in self._channel.incoming():
                await self._dispatch(message)
        except Exception as e:
            logger.exception(f"Error reading from inbound stream: {e}")
        finally:
            self._mark_closed("inbound stream ended")

        # Let in-flight handlers deliver their replies before closing the writer
        if self._handler_tasks:
            await asyncio.gather(*self._handler_tasks, return_exceptions=True)
        await self._channel.close()
        self._closed_event.set()
        logger.debug("Connection closed by peer")

    async def _dispatch(self, message: IncomingMessage) -> None:
        if isinstance(message, JsonRpcResponse):
            self._handle_response(message)
        elif isinstance(message, JsonRpcRequest):
            await self._spawn(self._handle_request, message)
        elif isinstance(message, JsonRpcNotification):
            await self._spawn(self._handle_notification, message)
        else:
            await self._handle_parse_failure(message)

    async def _spawn(
        self,
        func: Callable[[Any], Coroutine[Any, Any, None]],
        message: JsonRpcRequest | JsonRpcNotification,
    ) -> None:
        task = asyncio.create_task(self._run_in_slot(func, message))
        self._handler_tasks.add(task)
        task.add_done_callback(self._handler_tasks.discard)

    async def _run_in_slot(
        self,
        func: Callable[[Any], Coroutine[Any, Any, None]],
        message: JsonRpcRequest | JsonRpcNotification,
    ) -> None:
        # The slot is taken inside the task so the receive loop keeps
        # reading responses that running handlers may be waiting on
        if self._handler_slots is None:
            await func(message)
            return
        async with self._handler_slots:
            await func(message)

    async def _call_handler(self, method: str, params: Any) -> Any:
        result = self._handler(method, params)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _handle_request(self, message: JsonRpcRequest) -> None:
        try:
            result = await self._call_handler(message.method, message.params)
            response = JsonRpcResponse(id=message.id, result=result)
        except Exception as e:
            error = to_request_error(e)
            if error.code == JsonRpcErrorCode.INTERNAL_ERROR and not isinstance(e, RequestError):
                logger.exception(f"Error handling request {message.method}: {e}")
            else:
                logger.debug(f"Request {message.method} failed: {error!r}")
            response = JsonRpcResponse(id=message.id, error=error.to_error())

        await self._reply(response)

    async def _handle_notification(self, message: JsonRpcNotification) -> None:
        try:
            await self._call_handler(message.method, message.params)
        except Exception as e:
            # No reply channel for notifications; local diagnostics only
            logger.exception(f"Error handling notification {message.method}: {e}")

    def _handle_response(self, message: JsonRpcResponse) -> None:
        future = self._pending.pop(message.id, None) if message.id is not None else None
        if future is None:
            logger.warning(f"Received response for unknown request: {message.id}")
            return
        if future.done():
            return

        if message.error is not None:
            future.set_exception(RequestError.from_error_object(message.error))
        else:
            future.set_result(message.result)

    async def _handle_parse_failure(self, failure: ParseFailure) -> None:
        error = RequestError.parse_error(failure.reason)
        logger.warning(f"Dropping malformed frame ({error.details}): {failure.line[:200]!r}")

        if failure.request_id is not None:
            # Looked like a request with a usable id; tell the peer it was invalid
            await self._reply(
                JsonRpcResponse(
                    id=failure.request_id,
                    error=RequestError.invalid_request(failure.reason).to_error(),
                )
            )

    async def _reply(self, response: JsonRpcResponse) -> None:
        try:
            await self._channel.send(response)
        except TransportError as e:
            logger.warning(f"Could not send response for request {response.id}: {e}")
        except (TypeError, ValueError) as e:
            # Result or error data is not JSON serializable; the peer still gets an answer
            logger.error(f"Could not encode response for request {response.id}: {e}")
            error = RequestError.internal_error(f"Response is not JSON serializable: {e}")
            await self._reply(JsonRpcResponse(id=response.id, error=error.to_error()))

    # =========================================================================
    # Shutdown
    # =========================================================================

    def _mark_closed(self, reason: str) -> None:
        if self._closed:
            return
        self._closed = True

        for future in self._pending.values():
            if not future.done():
                future.set_exception(ConnectionClosedError(f"Connection closed: {reason}"))
        self._pending.clear()

    async def _abort(self, reason: str) -> None:
        self._mark_closed(reason)
        await self.close()

    async def close(self) -> None:
        """Close the connection, cancelling in-flight handlers."""
        self._mark_closed("closed locally")

        current = asyncio.current_task()
        for task in list(self._handler_tasks):
            if task is not current:
                task.cancel()

        receive_task = self._receive_task
        if receive_task is not None and receive_task is not current and not receive_task.done():
            receive_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await receive_task

        await self._channel.close()
        self._closed_event.set()
