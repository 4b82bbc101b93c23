"""Tests for JSON-RPC wire types and frame encoding/decoding."""

from __future__ import annotations

import json

from amplifier_acp.schema import AgentMessageChunk, SessionNotification, TextContentBlock
from amplifier_acp.types import (
    JsonRpcError,
    JsonRpcNotification,
    JsonRpcRequest,
    JsonRpcResponse,
    ParseFailure,
    decode_message,
    encode_message,
    to_jsonable,
)

# =============================================================================
# Decoding
# =============================================================================


class TestDecodeMessage:
    def test_request(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":1,"method":"ping","params":"payload"}')

        assert isinstance(message, JsonRpcRequest)
        assert message.id == 1
        assert message.method == "ping"
        assert message.params == "payload"

    def test_request_with_string_id(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":"req_1","method":"ping"}')

        assert isinstance(message, JsonRpcRequest)
        assert message.id == "req_1"
        assert message.params is None

    def test_notification(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","method":"session/cancel","params":{"sessionId":"s"}}')

        assert isinstance(message, JsonRpcNotification)
        assert message.params == {"sessionId": "s"}

    def test_success_response(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":3,"result":{"ok":true}}')

        assert isinstance(message, JsonRpcResponse)
        assert message.id == 3
        assert message.result == {"ok": True}
        assert not message.is_error

    def test_null_result_is_still_a_response(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":3,"result":null}')

        assert isinstance(message, JsonRpcResponse)
        assert message.result is None

    def test_error_response(self) -> None:
        message = decode_message(
            '{"jsonrpc":"2.0","id":4,"error":{"code":-32601,"message":"Method not found"}}'
        )

        assert isinstance(message, JsonRpcResponse)
        assert message.is_error
        assert message.error == JsonRpcError(code=-32601, message="Method not found")

    def test_unknown_fields_are_ignored(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":1,"method":"ping","trace":"abc"}')

        assert isinstance(message, JsonRpcRequest)
        assert message.method == "ping"

    def test_invalid_json(self) -> None:
        message = decode_message("not valid json")

        assert isinstance(message, ParseFailure)
        assert message.line == "not valid json"
        assert message.reason.startswith("Invalid JSON")
        assert message.request_id is None

    def test_non_object(self) -> None:
        message = decode_message("[1, 2, 3]")

        assert isinstance(message, ParseFailure)

    def test_unrecognized_shape(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":1}')

        assert isinstance(message, ParseFailure)
        assert message.request_id is None

    def test_malformed_request_keeps_id(self) -> None:
        """A request with a usable id but a bad shape can still be answered."""
        message = decode_message('{"jsonrpc":"2.0","id":7,"method":123}')

        assert isinstance(message, ParseFailure)
        assert message.request_id == 7

    def test_malformed_error_response(self) -> None:
        message = decode_message('{"jsonrpc":"2.0","id":1,"error":"boom"}')

        assert isinstance(message, ParseFailure)
        assert message.request_id is None


# =============================================================================
# Encoding
# =============================================================================


class TestEncodeMessage:
    def test_request(self) -> None:
        data = json.loads(encode_message(JsonRpcRequest(id=0, method="ping", params="payload")))

        assert data == {"jsonrpc": "2.0", "id": 0, "method": "ping", "params": "payload"}

    def test_request_without_params(self) -> None:
        data = json.loads(encode_message(JsonRpcRequest(id=1, method="ping")))

        assert "params" not in data

    def test_notification_has_no_id(self) -> None:
        data = json.loads(encode_message(JsonRpcNotification(method="session/update", params={})))

        assert "id" not in data
        assert data["method"] == "session/update"

    def test_success_response_keeps_null_result(self) -> None:
        data = json.loads(encode_message(JsonRpcResponse(id=5, result=None)))

        assert data == {"jsonrpc": "2.0", "id": 5, "result": None}

    def test_error_response_has_no_result(self) -> None:
        response = JsonRpcResponse(id=5, error=JsonRpcError(code=-32603, message="Internal error"))
        data = json.loads(encode_message(response))

        assert "result" not in data
        assert data["error"] == {"code": -32603, "message": "Internal error"}

    def test_single_line(self) -> None:
        line = encode_message(JsonRpcNotification(method="n", params={"text": "a\nb"}))

        assert "\n" not in line

    def test_model_params_are_dumped(self) -> None:
        params = SessionNotification(
            sessionId="s1",
            update=AgentMessageChunk(content=TextContentBlock(text="Hello")),
        )
        data = json.loads(encode_message(JsonRpcNotification(method="session/update", params=params)))

        assert data["params"] == {
            "sessionId": "s1",
            "update": {
                "sessionUpdate": "agent_message_chunk",
                "content": {"type": "text", "text": "Hello"},
            },
        }


class TestToJsonable:
    def test_nested_models(self) -> None:
        value = {"blocks": [TextContentBlock(text="a")], "n": 1}

        assert to_jsonable(value) == {"blocks": [{"type": "text", "text": "a"}], "n": 1}

    def test_plain_values_untouched(self) -> None:
        assert to_jsonable("pong") == "pong"
        assert to_jsonable(None) is None
