"""JSON-RPC 2.0 wire types.

Incoming frames are decoded exactly once into one of the variants of
``IncomingMessage``; nothing downstream re-inspects raw dicts.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import BaseModel, ValidationError

JsonRpcId = Union[int, str]


# =============================================================================
# JSON-RPC 2.0 Base Types
# =============================================================================


class JsonRpcRequest(BaseModel):
    """JSON-RPC 2.0 request."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: JsonRpcId
    method: str
    params: Any = None


class JsonRpcNotification(BaseModel):
    """JSON-RPC 2.0 notification (no response expected)."""

    jsonrpc: Literal["2.0"] = "2.0"
    method: str
    params: Any = None


class JsonRpcError(BaseModel):
    """JSON-RPC 2.0 error object."""

    code: int
    message: str
    data: Any | None = None


class JsonRpcResponse(BaseModel):
    """JSON-RPC 2.0 response."""

    jsonrpc: Literal["2.0"] = "2.0"
    id: JsonRpcId | None
    result: Any | None = None
    error: JsonRpcError | None = None

    @property
    def is_error(self) -> bool:
        return self.error is not None


class ParseFailure(BaseModel):
    """Synthetic event for a frame that could not be decoded into a message.

    ``request_id`` is set when the frame looked like a request and carried a
    usable id, so the peer can still be told its request was invalid.
    """

    line: str
    reason: str
    request_id: JsonRpcId | None = None


OutgoingMessage = Union[JsonRpcRequest, JsonRpcNotification, JsonRpcResponse]
IncomingMessage = Union[JsonRpcRequest, JsonRpcNotification, JsonRpcResponse, ParseFailure]


# =============================================================================
# Encoding / decoding
# =============================================================================


def to_jsonable(value: Any) -> Any:
    """Convert pydantic models (possibly nested in lists/dicts) to plain JSON values."""
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def encode_message(message: OutgoingMessage) -> str:
    """Serialize a message to a single line of compact JSON (no newline)."""
    payload: dict[str, Any] = {"jsonrpc": "2.0"}

    if isinstance(message, JsonRpcResponse):
        payload["id"] = message.id
        if message.error is not None:
            payload["error"] = message.error.model_dump(exclude_none=True)
        else:
            # A success response always carries a result, even when it is null
            payload["result"] = to_jsonable(message.result)
    else:
        if isinstance(message, JsonRpcRequest):
            payload["id"] = message.id
        payload["method"] = message.method
        if message.params is not None:
            payload["params"] = to_jsonable(message.params)

    return json.dumps(payload, ensure_ascii=False, separators=(",", ":"))


def _usable_id(value: Any) -> JsonRpcId | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    return None


def decode_message(line: str) -> IncomingMessage:
    """Decode one frame into a request, notification, response or ParseFailure."""
    try:
        obj = json.loads(line)
    except json.JSONDecodeError as e:
        return ParseFailure(line=line, reason=f"Invalid JSON: {e}")

    if not isinstance(obj, dict):
        return ParseFailure(line=line, reason="Message must be a JSON object")

    has_method = "method" in obj
    has_id = obj.get("id") is not None

    try:
        if has_method and has_id:
            return JsonRpcRequest.model_validate(obj)
        if has_method:
            return JsonRpcNotification.model_validate(obj)
        if "id" in obj and ("result" in obj or "error" in obj):
            return JsonRpcResponse.model_validate(obj)
    except ValidationError as e:
        request_id = _usable_id(obj.get("id")) if has_method else None
        return ParseFailure(line=line, reason=str(e), request_id=request_id)

    return ParseFailure(line=line, reason="Not a request, notification or response")
