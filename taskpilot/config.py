"""Task configuration and the chat-state configuration built from it."""

from __future__ import annotations

import copy
import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from taskpilot.protocol import ActorMcpConfig, McpServer, ProtocolError

logger = logging.getLogger(__name__)

TASK_MONITOR_MANIFEST_PATH = (
    "https://registry.example.com/task-monitor-mcp-actor/latest/manifest.toml"
)

DEFAULT_SYSTEM_PROMPT = (
    "You are an AI assistant that helps users complete tasks efficiently. "
    "You have access to various tools and can help with a wide range of activities."
)

COMPLETION_INSTRUCTION = (
    "\n\nIMPORTANT: When you have completed your assigned task, you MUST call the "
    "'task_complete' tool to signal that the work is finished. This allows the system "
    "to properly conclude the task session."
)

DEFAULT_MODEL_CONFIG: dict[str, Any] = {
    "model": "claude-sonnet-4-20250514",
    "provider": "anthropic",
}
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 8192
DEFAULT_TITLE = "Task"

_U32_MAX = 2**32 - 1
_KNOWN_FIELDS = (
    "system_prompt",
    "initial_message",
    "model_config",
    "temperature",
    "max_tokens",
    "mcp_servers",
    "auto_exit_on_completion",
)


def _optional_str(data: Mapping[str, Any], key: str) -> str | None:
    value = data.get(key)
    if value is not None and not isinstance(value, str):
        raise ProtocolError(f"task config: field '{key}' must be a string")
    return value


@dataclass
class TaskManagerConfig:
    """What a task is, how to run the model and which tools it gets."""

    system_prompt: str | None = None
    initial_message: str | None = None
    model_config: Any = None
    temperature: float | None = None
    max_tokens: int | None = None
    mcp_servers: list[McpServer] | None = None
    auto_exit_on_completion: bool | None = None
    other: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> TaskManagerConfig:
        if not isinstance(data, Mapping):
            raise ProtocolError("task config must be a JSON object")

        temperature = data.get("temperature")
        if temperature is not None:
            if isinstance(temperature, bool) or not isinstance(temperature, (int, float)):
                raise ProtocolError("task config: field 'temperature' must be a number")
            temperature = float(temperature)

        max_tokens = data.get("max_tokens")
        if max_tokens is not None:
            if isinstance(max_tokens, bool) or not isinstance(max_tokens, int):
                raise ProtocolError("task config: field 'max_tokens' must be an integer")
            if not 0 <= max_tokens <= _U32_MAX:
                raise ProtocolError("task config: field 'max_tokens' is out of range")

        servers = data.get("mcp_servers")
        if servers is not None:
            if not isinstance(servers, list):
                raise ProtocolError("task config: field 'mcp_servers' must be a list")
            servers = [McpServer.from_dict(item) for item in servers]

        auto_exit = data.get("auto_exit_on_completion")
        if auto_exit is not None and not isinstance(auto_exit, bool):
            raise ProtocolError("task config: field 'auto_exit_on_completion' must be a boolean")

        return cls(
            system_prompt=_optional_str(data, "system_prompt"),
            initial_message=_optional_str(data, "initial_message"),
            model_config=data.get("model_config"),
            temperature=temperature,
            max_tokens=max_tokens,
            mcp_servers=servers,
            auto_exit_on_completion=auto_exit,
            other={k: v for k, v in data.items() if k not in _KNOWN_FIELDS},
        )


def create_task_config(self_id: str, config: TaskManagerConfig) -> dict[str, Any]:
    """Build the configuration handed to the chat-state actor."""
    logger.debug("Creating task configuration...")

    system_prompt = (
        config.system_prompt if config.system_prompt is not None else DEFAULT_SYSTEM_PROMPT
    ) + COMPLETION_INSTRUCTION
    model_config = copy.deepcopy(
        config.model_config if config.model_config is not None else DEFAULT_MODEL_CONFIG
    )
    temperature = (
        config.temperature if config.temperature is not None else DEFAULT_TEMPERATURE
    )
    max_tokens = config.max_tokens if config.max_tokens is not None else DEFAULT_MAX_TOKENS
    title = config.other.get("title")
    if not isinstance(title, str):
        title = DEFAULT_TITLE

    task_monitor = McpServer(
        config=ActorMcpConfig(
            manifest_path=TASK_MONITOR_MANIFEST_PATH,
            init_state={"management_actor": self_id},
        )
    )
    servers = [*(config.mcp_servers or []), task_monitor]

    logger.debug("Using MCP servers: %r", servers)
    logger.debug("Using model: %r", model_config)
    logger.debug("Using temperature: %s", temperature)
    logger.debug("Using max_tokens: %s", max_tokens)

    final_config: dict[str, Any] = {
        "config": {
            "model_config": model_config,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "system_prompt": system_prompt,
            "title": title,
            "mcp_servers": [server.to_dict() for server in servers],
        }
    }
    for key, value in config.other.items():
        final_config.setdefault(key, copy.deepcopy(value))

    logger.debug("Created final task config: %r", final_config)
    return final_config