import json

import pytest

from taskpilot.protocol import (
    ActorMcpConfig,
    ErrorInfo,
    McpError,
    McpResponse,
    McpServer,
    ProtocolError,
    StdPipeMcpConfig,
    add_message_request,
    generate_completion_request,
    parse_chat_state_response,
    tools_call_request,
    tools_list_request,
    user_text_message,
)


def test_mcp_error_omits_missing_data():
    err = McpError(code=-5, message="bad")
    assert err.to_dict() == {"code": -5, "message": "bad"}


def test_mcp_error_round_trip_with_data():
    err = McpError(code=3, message="oops", data={"why": [1, 2]})
    assert McpError.from_dict(err.to_dict()) == err


@pytest.mark.parametrize("code", ["1", True, 2**31])
def test_mcp_error_rejects_bad_code(code):
    with pytest.raises(ProtocolError):
        McpError.from_dict({"code": code, "message": "x"})


def test_mcp_response_skips_empty_fields():
    resp = McpResponse(jsonrpc="2.0", id="abc")
    assert resp.to_dict() == {"jsonrpc": "2.0", "id": "abc"}


def test_mcp_response_round_trip():
    resp = McpResponse(
        jsonrpc="2.0", id="7", result={"ok": True}, error=McpError(1, "m")
    )
    assert McpResponse.from_dict(resp.to_dict()) == resp


def test_mcp_response_missing_id():
    with pytest.raises(ProtocolError):
        McpResponse.from_dict({"jsonrpc": "2.0"})


def test_actor_server_flattens_config():
    server = McpServer(
        config=ActorMcpConfig(manifest_path="m.toml", init_state={"a": 1})
    )
    assert server.to_dict() == {
        "actor_id": None,
        "actor": {"manifest_path": "m.toml", "init_state": {"a": 1}},
        "tools": None,
    }


def test_stdio_server_round_trip():
    server = McpServer(
        config=StdPipeMcpConfig(command="run", args=["--x", "y"]),
        actor_id="actor-1",
        tools=[{"name": "t"}],
    )
    data = server.to_dict()
    assert data["stdio"] == {"command": "run", "args": ["--x", "y"]}
    assert McpServer.from_dict(json.loads(json.dumps(data))) == server


def test_server_optional_fields_may_be_missing():
    server = McpServer.from_dict({"actor": {"manifest_path": "p"}})
    assert server == McpServer(config=ActorMcpConfig(manifest_path="p"))


@pytest.mark.parametrize(
    "data",
    [
        {"actor_id": None},
        {"stdio": {"command": "c", "args": []}, "actor": {"manifest_path": "p"}},
        {"stdio": {"command": "c", "args": [1]}},
        {"actor": {}},
        {"actor": {"manifest_path": "p"}, "tools": "no"},
        ["not", "an", "object"],
    ],
)
def test_server_rejects_malformed(data):
    with pytest.raises(ProtocolError):
        McpServer.from_dict(data)


def test_error_info_round_trip():
    info = ErrorInfo(code="E1", message="failed", details={"k": "v"})
    assert info.to_dict()["details"] == {"k": "v"}
    assert ErrorInfo.from_dict(info.to_dict()) == info


def test_error_info_details_null_is_serialized():
    assert ErrorInfo(code="c", message="m").to_dict() == {
        "code": "c",
        "message": "m",
        "details": None,
    }


def test_error_info_rejects_non_string_details():
    with pytest.raises(ProtocolError):
        ErrorInfo.from_dict({"code": "c", "message": "m", "details": {"k": 1}})


def test_tool_requests():
    assert tools_list_request() == {"type": "ToolsList"}
    assert tools_call_request("read", {"path": "/tmp"}) == {
        "type": "ToolsCall",
        "name": "read",
        "args": {"path": "/tmp"},
    }


def test_chat_state_requests():
    message = user_text_message("hello")
    assert message["content"][0]["text"] == "hello"
    request = add_message_request(message)
    assert request["type"] == "add_message"
    assert request["message"] == message
    assert generate_completion_request() == {"type": "generate_completion"}


def test_parse_success_response_from_bytes():
    assert parse_chat_state_response(b'{"type": "success"}') is None


def test_parse_error_response():
    payload = json.dumps(
        {"type": "error", "error": {"code": "X", "message": "boom", "details": None}}
    )
    assert parse_chat_state_response(payload) == ErrorInfo(code="X", message="boom")


@pytest.mark.parametrize(
    "data", [b"not json", b'{"type": "other"}', b'{"type": "error"}', b"[]"]
)
def test_parse_rejects_bad_response(data):
    with pytest.raises(ProtocolError):
        parse_chat_state_response(data)