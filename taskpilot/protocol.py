"""Wire types exchanged with MCP servers and the chat-state actor."""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Union

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


class ProtocolError(ValueError):
    """Raised when a message or document does not have the expected shape."""


def _require_object(data: Any, what: str) -> Mapping[str, Any]:
    if not isinstance(data, Mapping):
        raise ProtocolError(f"{what} must be a JSON object")
    return data


def _get_str(data: Mapping[str, Any], key: str, what: str, *, optional: bool = False) -> str | None:
    value = data.get(key)
    if value is None:
        if optional:
            return None
        raise ProtocolError(f"{what}: missing field '{key}'")
    if not isinstance(value, str):
        raise ProtocolError(f"{what}: field '{key}' must be a string")
    return value


def _decode_json(data: Any, what: str) -> Any:
    if isinstance(data, (bytes, bytearray, str)):
        try:
            return json.loads(data)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ProtocolError(f"{what}: invalid JSON: {exc}") from exc
    return data


@dataclass
class McpError:
    """A JSON-RPC error object."""

    code: int
    message: str
    data: Any = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            result["data"] = self.data
        return result

    @classmethod
    def from_dict(cls, data: Any) -> McpError:
        obj = _require_object(data, "MCP error")
        code = obj.get("code")
        if isinstance(code, bool) or not isinstance(code, int):
            raise ProtocolError("MCP error: field 'code' must be an integer")
        if not _I32_MIN <= code <= _I32_MAX:
            raise ProtocolError("MCP error: field 'code' is out of range")
        message = _get_str(obj, "message", "MCP error")
        return cls(code=code, message=message, data=obj.get("data"))


@dataclass
class McpResponse:
    """A JSON-RPC response from an MCP server."""

    jsonrpc: str
    id: str
    result: Any = None
    error: McpError | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"jsonrpc": self.jsonrpc, "id": self.id}
        if self.result is not None:
            out["result"] = self.result
        if self.error is not None:
            out["error"] = self.error.to_dict()
        return out

    @classmethod
    def from_dict(cls, data: Any) -> McpResponse:
        obj = _require_object(data, "MCP response")
        error_data = obj.get("error")
        return cls(
            jsonrpc=_get_str(obj, "jsonrpc", "MCP response"),
            id=_get_str(obj, "id", "MCP response"),
            result=obj.get("result"),
            error=None if error_data is None else McpError.from_dict(error_data),
        )


@dataclass
class StdPipeMcpConfig:
    """An MCP server reached through a child process's standard pipes."""

    command: str
    args: list[str]


@dataclass
class ActorMcpConfig:
    """An MCP server run as an actor started from a manifest."""

    manifest_path: str
    init_state: Any = None


McpConfig = Union[StdPipeMcpConfig, ActorMcpConfig]


def _config_to_item(config: McpConfig) -> tuple[str, dict[str, Any]]:
    if isinstance(config, StdPipeMcpConfig):
        return "stdio", {"command": config.command, "args": list(config.args)}
    return "actor", {"manifest_path": config.manifest_path, "init_state": config.init_state}


def _config_from_dict(obj: Mapping[str, Any]) -> McpConfig:
    present = [key for key in ("stdio", "actor") if key in obj]
    if len(present) != 1:
        raise ProtocolError("MCP server: expected exactly one of 'stdio' or 'actor'")
    kind = present[0]
    body = _require_object(obj[kind], f"MCP server '{kind}' config")
    if kind == "stdio":
        command = _get_str(body, "command", "stdio config")
        args = body.get("args")
        if not isinstance(args, list) or not all(isinstance(arg, str) for arg in args):
            raise ProtocolError("stdio config: field 'args' must be a list of strings")
        return StdPipeMcpConfig(command=command, args=list(args))
    return ActorMcpConfig(
        manifest_path=_get_str(body, "manifest_path", "actor config"),
        init_state=body.get("init_state"),
    )


@dataclass
class McpServer:
    """An MCP server entry: how to reach it and, once known, its tools."""

    config: McpConfig
    actor_id: str | None = None
    tools: list[Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        kind, body = _config_to_item(self.config)
        return {
            "actor_id": self.actor_id,
            kind: body,
            "tools": None if self.tools is None else list(self.tools),
        }

    @classmethod
    def from_dict(cls, data: Any) -> McpServer:
        obj = _require_object(data, "MCP server")
        tools = obj.get("tools")
        if tools is not None and not isinstance(tools, list):
            raise ProtocolError("MCP server: field 'tools' must be a list")
        return cls(
            config=_config_from_dict(obj),
            actor_id=_get_str(obj, "actor_id", "MCP server", optional=True),
            tools=None if tools is None else list(tools),
        )


@dataclass
class ErrorInfo:
    """Error details reported by the chat-state actor."""

    code: str
    message: str
    details: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "details": None if self.details is None else dict(self.details),
        }

    @classmethod
    def from_dict(cls, data: Any) -> ErrorInfo:
        obj = _require_object(data, "error info")
        details = obj.get("details")
        if details is not None:
            if not isinstance(details, Mapping) or not all(
                isinstance(k, str) and isinstance(v, str) for k, v in details.items()
            ):
                raise ProtocolError("error info: field 'details' must map strings to strings")
            details = dict(details)
        return cls(
            code=_get_str(obj, "code", "error info"),
            message=_get_str(obj, "message", "error info"),
            details=details,
        )


def tools_list_request() -> dict[str, Any]:
    """Build a request asking an MCP actor for its tools."""
    return {"type": "ToolsList"}


def tools_call_request(name: str, args: Any) -> dict[str, Any]:
    """Build a request calling a tool on an MCP actor."""
    return {"type": "ToolsCall", "name": name, "args": args}


def user_text_message(text: str) -> dict[str, Any]:
    """Build a chat message from the user holding a single text block."""
    return {"role": "user", "content": [{"type": "text", "text": text}]}


def add_message_request(message: Mapping[str, Any]) -> dict[str, Any]:
    """Build a chat-state request that appends a message."""
    return {"type": "add_message", "message": dict(message)}


def generate_completion_request() -> dict[str, Any]:
    """Build a chat-state request that asks for a completion."""
    return {"type": "generate_completion"}


def parse_chat_state_response(data: Any) -> ErrorInfo | None:
    """Parse a chat-state response; None means success, ErrorInfo an error."""
    obj = _require_object(_decode_json(data, "chat-state response"), "chat-state response")
    kind = obj.get("type")
    if kind == "success":
        return None
    if kind == "error":
        if "error" not in obj:
            raise ProtocolError("chat-state response: missing field 'error'")
        return ErrorInfo.from_dict(obj["error"])
    raise ProtocolError(f"chat-state response: unknown type {kind!r}")