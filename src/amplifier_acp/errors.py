"""ACP error taxonomy.

Every failure that happens while servicing an inbound request ends up as one
of these JSON-RPC error objects on the wire. ``to_request_error`` is the
single place where arbitrary handler failures are normalized.
"""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from .types import JsonRpcError


class JsonRpcErrorCode:
    """Standard JSON-RPC 2.0 error codes."""

    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # ACP-specific error codes
    AUTH_REQUIRED = -32000


class RequestError(Exception):
    """A protocol-level error with a JSON-RPC code, message and optional details.

    Raise it from a handler to control exactly what the remote peer sees.
    It is also what ``Connection.send_request`` raises when the peer replies
    with an error.
    """

    def __init__(
        self,
        code: int,
        message: str,
        details: str | None = None,
        *,
        data: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self._code = code
        self._message = message
        if data is None and details is not None:
            data = {"details": details}
        self.data = data

    @property
    def code(self) -> int:
        return self._code

    @property
    def message(self) -> str:
        return self._message

    @property
    def details(self) -> str | None:
        if isinstance(self.data, dict):
            return self.data.get("details")
        return None

    def __repr__(self) -> str:
        return f"RequestError(code={self._code}, message={self._message!r}, data={self.data!r})"

    @classmethod
    def parse_error(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.PARSE_ERROR, "Parse error", details)

    @classmethod
    def invalid_request(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.INVALID_REQUEST, "Invalid request", details)

    @classmethod
    def method_not_found(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.METHOD_NOT_FOUND, "Method not found", details)

    @classmethod
    def invalid_params(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.INVALID_PARAMS, "Invalid params", details)

    @classmethod
    def internal_error(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.INTERNAL_ERROR, "Internal error", details)

    @classmethod
    def auth_required(cls, details: str | None = None) -> RequestError:
        return cls(JsonRpcErrorCode.AUTH_REQUIRED, "Authentication required", details)

    @classmethod
    def from_error_object(cls, error: JsonRpcError | dict[str, Any]) -> RequestError:
        """Rebuild a RequestError from a wire error object sent by the peer."""
        if isinstance(error, JsonRpcError):
            return cls(error.code, error.message, data=error.data)
        return cls(
            error.get("code", JsonRpcErrorCode.INTERNAL_ERROR),
            error.get("message", "Unknown error"),
            data=error.get("data"),
        )

    def to_result(self) -> dict[str, Any]:
        """Project into the wire ``{"error": {...}}`` shape."""
        return {"error": {"code": self._code, "message": self._message, "data": self.data}}

    def to_error(self) -> JsonRpcError:
        return JsonRpcError(code=self._code, message=self._message, data=self.data)


class ConnectionClosedError(Exception):
    """The connection is closed; no further requests can be answered."""

    def __init__(self, message: str = "Connection closed") -> None:
        super().__init__(message)


class TransportError(ConnectionClosedError):
    """The outbound stream is closed or a write to it failed."""


def format_validation_error(error: ValidationError) -> str:
    """Render pydantic validation issues as a single human readable string."""
    issues = []
    for issue in error.errors():
        loc = ".".join(str(part) for part in issue.get("loc", ()))
        msg = issue.get("msg", "invalid value")
        issues.append(f"{loc}: {msg}" if loc else msg)
    if not issues:
        return str(error).strip() or "validation failed"
    return "; ".join(issues)


def to_request_error(exc: BaseException) -> RequestError:
    """Normalize any handler failure into a RequestError.

    Order matters: protocol errors pass through untouched (including foreign
    exceptions carrying an integer ``code`` and a string ``message``), schema
    validation failures become ``Invalid params`` and everything else becomes
    ``Internal error``.
    """
    if isinstance(exc, RequestError):
        return exc
    code = getattr(exc, "code", None)
    message = getattr(exc, "message", None)
    if isinstance(code, int) and not isinstance(code, bool) and isinstance(message, str):
        data = getattr(exc, "data", None)
        return RequestError(code, message, data=data if isinstance(data, dict) else None)
    if isinstance(exc, ValidationError):
        return RequestError.invalid_params(format_validation_error(exc))
    details = str(exc) or type(exc).__name__
    return RequestError.internal_error(details)
