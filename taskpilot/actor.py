"""The task-manager actor: spawns a chat-state actor and routes messages to it."""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from taskpilot.config import TaskManagerConfig, create_task_config
from taskpilot.protocol import (
    ProtocolError,
    add_message_request,
    generate_completion_request,
    user_text_message,
)

logger = logging.getLogger(__name__)

CHAT_STATE_MANIFEST_PATH = "chat-state/manifest.toml"


def _dumps(value: Any) -> bytes:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def _loads(data: bytes | bytearray | str, what: str) -> Any:
    try:
        return json.loads(data)
    except ValueError as exc:
        raise ProtocolError(f"{what}: invalid JSON: {exc}") from exc


class ActorError(Exception):
    """Raised when a handler fails and the runtime should see an error."""


class Host(ABC):
    """The runtime services an actor relies on."""

    def log(self, message: str) -> None:
        """Record a log line."""
        logger.info("%s", message)

    @abstractmethod
    def send(self, actor_id: str, data: bytes) -> None:
        """Deliver a one-way message to another actor; raise on failure."""

    @abstractmethod
    def spawn(self, manifest: str, init_bytes: bytes | None) -> str:
        """Start a child actor from a manifest and return its id; raise on failure."""

    @abstractmethod
    def shutdown(self, data: bytes | None) -> None:
        """Ask the runtime to stop this actor."""


@dataclass
class TaskManagerState:
    """The persisted state of a task manager."""

    actor_id: str
    original_config: Any
    chat_state_actor_id: str | None = None
    initial_message: str | None = None
    exit_on_completion: bool = False

    def to_bytes(self) -> bytes:
        return _dumps(
            {
                "actor_id": self.actor_id,
                "chat_state_actor_id": self.chat_state_actor_id,
                "original_config": self.original_config,
                "initial_message": self.initial_message,
                "exit_on_completion": self.exit_on_completion,
            }
        )

    @classmethod
    def from_bytes(cls, data: bytes | bytearray | str) -> TaskManagerState:
        obj = _loads(data, "task state")
        if not isinstance(obj, Mapping):
            raise ProtocolError("task state must be a JSON object")
        actor_id = obj.get("actor_id")
        if not isinstance(actor_id, str):
            raise ProtocolError("task state: field 'actor_id' must be a string")
        if "original_config" not in obj:
            raise ProtocolError("task state: missing field 'original_config'")
        for key in ("chat_state_actor_id", "initial_message"):
            value = obj.get(key)
            if value is not None and not isinstance(value, str):
                raise ProtocolError(f"task state: field '{key}' must be a string")
        exit_on_completion = obj.get("exit_on_completion")
        if not isinstance(exit_on_completion, bool):
            raise ProtocolError("task state: field 'exit_on_completion' must be a boolean")
        return cls(
            actor_id=actor_id,
            original_config=obj["original_config"],
            chat_state_actor_id=obj.get("chat_state_actor_id"),
            initial_message=obj.get("initial_message"),
            exit_on_completion=exit_on_completion,
        )

    def require_chat_state_actor_id(self) -> str:
        """Return the chat-state actor id, or raise if none was spawned."""
        if self.chat_state_actor_id is None:
            raise ActorError("Chat state actor not initialized")
        return self.chat_state_actor_id


@dataclass(frozen=True)
class ChannelAccept:
    """The answer to a channel-open request."""

    accepted: bool
    message: str | None = None


def _parse_request(data: bytes) -> tuple[str, dict[str, Any] | None]:
    obj = _loads(data, "request")
    if not isinstance(obj, Mapping):
        raise ProtocolError("request must be a JSON object")
    kind = obj.get("type")
    if kind in ("GetChatStateActorId", "StartChat"):
        return kind, None
    if kind == "AddMessage":
        message = obj.get("message")
        if not isinstance(message, Mapping):
            raise ProtocolError("request: field 'message' must be an object")
        return kind, dict(message)
    if kind is None:
        raise ProtocolError("request: missing field 'type'")
    raise ProtocolError(f"request: unknown variant {kind!r}")


def _success() -> dict[str, Any]:
    return {"type": "Success"}


def _error(message: str) -> dict[str, Any]:
    return {"type": "Error", "message": message}


def spawn_chat_state_actor(host: Host, config: Any) -> str:
    """Spawn the chat-state actor with the given configuration and return its id."""
    host.log("Spawning chat-state actor...")
    config_bytes = _dumps(config)
    try:
        actor_id = host.spawn(CHAT_STATE_MANIFEST_PATH, config_bytes)
    except Exception as exc:
        message = f"Failed to spawn chat-state actor: {exc}"
        host.log(message)
        raise ActorError(message) from exc
    host.log(f"Successfully spawned chat-state actor: {actor_id}")
    return actor_id


class TaskManager:
    """Handlers the runtime calls; each takes the stored state and returns the new one."""

    def __init__(self, host: Host) -> None:
        self.host = host

    def _log(self, message: str) -> None:
        self.host.log(message)

    def init(self, state: bytes | None, self_id: str) -> bytes:
        self._log("Task manager actor initializing...")
        self._log(f"Received parameters: {self_id!r}")
        self._log(f"Initial state: {(state or b'').decode('utf-8', errors='replace')}")

        config = TaskManagerConfig()
        if state is None:
            self._log("No initial state provided, using default configuration")
        else:
            try:
                config = TaskManagerConfig.from_dict(_loads(state, "task config"))
                self._log("Parsed initial configuration")
            except ProtocolError as exc:
                self._log(f"Failed to parse initial config, using defaults: {exc}")
                config = TaskManagerConfig()

        task_config = create_task_config(self_id, config)
        self._log(f"Using task config: {_dumps(task_config).decode('utf-8')}")

        task_state = TaskManagerState(
            actor_id=self_id,
            original_config=task_config,
            initial_message=config.initial_message,
            exit_on_completion=bool(config.auto_exit_on_completion),
        )
        try:
            chat_actor_id = spawn_chat_state_actor(self.host, task_config)
        except ActorError as exc:
            message = f"Failed to spawn chat state actor: {exc}"
            self._log(message)
            raise ActorError(message) from exc
        self._log(f"Chat state actor spawned: {chat_actor_id}")
        task_state.chat_state_actor_id = chat_actor_id

        self._log("Task manager actor initialized successfully")
        return task_state.to_bytes()

    def handle_child_error(self, state: bytes | None, child_id: str, error: Any) -> bytes | None:
        self._log("Task manager: Child actor error occurred")
        return state

    def handle_child_exit(
        self, state: bytes | None, child_id: str, exit_data: bytes | None
    ) -> bytes | None:
        self._log(f"Task manager: Child actor exited: {child_id}")
        if state is None:
            self._log("No state available for child exit handler")
            return None
        try:
            task_state = TaskManagerState.from_bytes(state)
        except ProtocolError as exc:
            self._log(f"Failed to deserialize task state: {exc}")
            return None

        if task_state.chat_state_actor_id is not None and task_state.chat_state_actor_id == child_id:
            self._log("Chat state actor exited, shutting down task manager")
            self._shutdown_quietly()
        return task_state.to_bytes()

    def handle_child_external_stop(self, state: bytes | None, child_id: str) -> bytes | None:
        self._log(f"Task manager: Child actor externally stopped: {child_id}")
        return state

    def handle_send(self, state: bytes | None, data: bytes) -> bytes:
        self._log("Task manager handling send message")
        task_state = self._load_state_or_raise(state, "No state available for send_message")

        if self._is_task_complete(data):
            self._log("Received TaskComplete message, handling completion")
            if task_state.exit_on_completion:
                self._log("Auto exit on completion is enabled, shutting down task manager")
                self._shutdown_quietly()
            else:
                self._log("Task completed, but auto exit is disabled")
        else:
            self._log("Received non-TaskComplete message, forwarding to chat state actor")

        try:
            chat_actor_id = task_state.require_chat_state_actor_id()
        except ActorError as exc:
            message = f"Chat state actor not available: {exc}"
            self._log(message)
            raise ActorError(message) from exc
        try:
            self.host.send(chat_actor_id, data)
        except Exception as exc:
            message = f"Failed to forward message: {exc}"
            self._log(message)
            raise ActorError(message) from exc
        self._log("Message forwarded to chat state actor")
        return task_state.to_bytes()

    def handle_request(
        self, state: bytes | None, request_id: str, data: bytes
    ) -> tuple[bytes | None, bytes]:
        """Answer a request; returns the new state and the response bytes."""
        self._log("Task manager handling request message")
        if state is None:
            return None, _dumps(_error("No state available"))
        try:
            task_state = TaskManagerState.from_bytes(state)
        except ProtocolError as exc:
            message = f"Failed to deserialize task state: {exc}"
            self._log(message)
            return None, _dumps(_error(message))

        try:
            kind, message_body = _parse_request(data)
        except ProtocolError as exc:
            message = f"Failed to parse request: {exc}"
            self._log(message)
            return task_state.to_bytes(), _dumps(_error(message))
        self._log(f"Parsed request: {kind}")

        if kind == "StartChat":
            response = self._start_chat(task_state)
        elif kind == "GetChatStateActorId":
            try:
                chat_actor_id = task_state.require_chat_state_actor_id()
            except ActorError as exc:
                response = _error(str(exc))
            else:
                self._log(f"Returning chat state actor ID: {chat_actor_id}")
                response = {"type": "ChatStateActorId", "actor_id": chat_actor_id}
        else:
            response = self._add_message(task_state, message_body or {})

        return task_state.to_bytes(), _dumps(response)

    def handle_channel_open(
        self, state: bytes | None, channel_id: str, data: bytes
    ) -> tuple[bytes | None, ChannelAccept]:
        self._log("Task manager: Channel open request")
        return state, ChannelAccept(accepted=True, message=None)

    def handle_channel_close(self, state: bytes | None, channel_id: str) -> bytes | None:
        self._log(f"Task manager: Channel closed: {channel_id}")
        return state

    def handle_channel_message(
        self, state: bytes | None, channel_id: str, data: bytes
    ) -> bytes | None:
        self._log(f"Task manager: Received channel message on: {channel_id}")
        return state

    def _load_state_or_raise(self, state: bytes | None, missing: str) -> TaskManagerState:
        if state is None:
            self._log(missing)
            raise ActorError(missing)
        try:
            return TaskManagerState.from_bytes(state)
        except ProtocolError as exc:
            message = f"Failed to deserialize task state: {exc}"
            self._log(message)
            raise ActorError(message) from exc

    @staticmethod
    def _is_task_complete(data: bytes) -> bool:
        try:
            return json.loads(data) is None
        except ValueError:
            return False

    def _shutdown_quietly(self) -> None:
        try:
            self.host.shutdown(None)
        except Exception as exc:
            self._log(f"Shutdown request failed: {exc}")

    def _start_chat(self, task_state: TaskManagerState) -> dict[str, Any]:
        self._log("Handling StartChat request")
        if task_state.initial_message is None:
            return _success()
        self._log("Sending initial message to chat state actor")
        try:
            chat_actor_id = task_state.require_chat_state_actor_id()
        except ActorError as exc:
            self._log(f"Chat state actor not available: {exc}")
            return _success()

        message = user_text_message(task_state.initial_message)
        try:
            self.host.send(chat_actor_id, _dumps(add_message_request(message)))
            self._log("Initial message sent successfully")
        except Exception as exc:
            self._log(f"Failed to send initial message: {exc}")
        try:
            self.host.send(chat_actor_id, _dumps(generate_completion_request()))
            self._log("Generate completion request sent to chat state actor")
        except Exception as exc:
            self._log(f"Failed to send generate request: {exc}")
        return _success()

    def _add_message(self, task_state: TaskManagerState, message: dict[str, Any]) -> dict[str, Any]:
        try:
            chat_actor_id = task_state.require_chat_state_actor_id()
        except ActorError as exc:
            return _error(str(exc))
        try:
            self.host.send(chat_actor_id, _dumps(add_message_request(message)))
        except Exception as exc:
            text = f"Failed to forward message: {exc}"
            self._log(text)
            return _error(text)
        self._log("Message forwarded to chat state actor")
        return _success()