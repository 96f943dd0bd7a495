# taskpilot

taskpilot is a task manager actor. When it is given an actor host, it does four
things. It builds a configuration for an AI chat session. It spawns a
chat-state actor with that configuration. It passes messages and requests on to
that actor. It can shut itself down once the task is reported complete.

## Installing

```
pip install .
```

The package has no runtime dependencies. To run the tests:

```
pip install .[test]
pytest
```

## Modules

### `taskpilot.protocol`

This module holds the wire types used between actors. Each of them converts to
and from plain JSON-ready dicts with `to_dict()` and `from_dict()`.

- `McpServer` describes an MCP server. Its `config` is either a
  `StdPipeMcpConfig` (`command`, `args`) or an `ActorMcpConfig`
  (`manifest_path`, `init_state`). It also has an optional `actor_id` and
  optional `tools`. The config is written under a `"stdio"` or `"actor"` key.
- `McpResponse` and `McpError` are JSON-RPC responses and errors. Fields that
  are unset are left out of `to_dict()`.
- `ErrorInfo` holds error details (`code`, `message`, `details`).
- Request builders return dicts:
  - `tools_list_request()` and `tools_call_request(name, args)` build requests
    for MCP actors.
  - `add_message_request(message)` and `generate_completion_request()` build
    requests for the chat-state actor.
  - `user_text_message(text)` builds a user message with a single text block.
- `parse_chat_state_response(data)` accepts bytes, a string or a dict. It
  returns `None` for a `"success"` response and an `ErrorInfo` for an
  `"error"` response.

Malformed input raises `ProtocolError`, which is a subclass of `ValueError`.

### `taskpilot.config`

`TaskManagerConfig.from_dict(data)` reads a task configuration. It understands
these keys:

- `system_prompt`
- `initial_message`
- `model_config`
- `temperature`
- `max_tokens`
- `mcp_servers`
- `auto_exit_on_completion`

Any other keys are kept in `other`.

`create_task_config(self_id, config)` builds the dict that is handed to the
chat-state actor, under a `"config"` key. Unset values fall back to these
defaults:

| Setting | Default |
| --- | --- |
| System prompt | A generic assistant prompt |
| Model config | `{"model": "claude-sonnet-4-20250514", "provider": "anthropic"}` |
| Temperature | 0.7 |
| Max tokens | 8192 |
| Title | `"Task"`, unless `other` holds a string `"title"` |

It also adds two things every time:

- An instruction to call the `task_complete` tool is appended to the system
  prompt.
- A task-monitor MCP server is appended to the server list. Its `init_state`
  names the task manager as `management_actor`.

Extra keys from `other` are copied to the top level of the result, unless that
key is already present there.

### `taskpilot.actor`

This module holds three things:

- `Host` is the abstract interface the actor uses. You implement `send`,
  `spawn` and `shutdown`. The default `log` writes through the standard
  `logging` module.
- `TaskManager` holds the handlers. Each one takes the stored state as bytes
  and returns the new state.
- `TaskManagerState` is the persisted state. It is stored as JSON bytes and
  handled with `to_bytes()`, `from_bytes()` and
  `require_chat_state_actor_id()`.

`spawn_chat_state_actor(host, config)` spawns the chat-state actor from the
manifest `chat-state/manifest.toml`.

When a handler fails, it raises `ActorError`.

## Using the actor

```python
from taskpilot.actor import Host, TaskManager

class MyHost(Host):
    def log(self, message):
        print(message)

    def send(self, actor_id, data):
        ...  # deliver bytes to actor_id

    def spawn(self, manifest, init_bytes):
        ...  # start an actor and return its id

    def shutdown(self, data):
        ...  # stop this actor

manager = TaskManager(MyHost())
state = manager.init(b'{"initial_message": "Summarise the report", "title": "Report"}', "manager-1")
state, response = manager.handle_request(state, "req-1", b'{"type": "StartChat"}')
```

### `init`

`init(state, self_id)` reads the configuration from `state`. If the state is
missing or cannot be parsed, it falls back to the defaults. It then spawns the
chat-state actor and returns the serialized state. If the spawn fails, it
raises `ActorError`.

### `handle_request`

`handle_request(state, request_id, data)` returns a pair: the new state and the
response bytes.

Requests are JSON objects tagged by `type`:

| Request | What it does |
| --- | --- |
| `GetChatStateActorId` | Returns the chat-state actor's id. |
| `AddMessage` (with a `message`) | Forwards the message to the chat-state actor. |
| `StartChat` | If an initial message was configured, sends it to the chat-state actor followed by a generate-completion request. |

Responses are tagged the same way:

- `ChatStateActorId` (with `actor_id`)
- `Success`
- `Error` (with `message`)

Failures are reported as `Error` responses and are not raised.

### `handle_send`

`handle_send(state, data)` forwards the raw bytes to the chat-state actor. If
the message is a task-complete message (JSON `null`) and
`auto_exit_on_completion` was set, the task manager also asks the host to shut
down. Missing or unreadable state, and failures to forward, raise `ActorError`.

### Other handlers

`handle_child_exit` shuts the task manager down when the child that exited is
the chat-state actor.

The channel handlers and the other child handlers log the event and return the
state unchanged. `handle_channel_open` always accepts, and returns a
`ChannelAccept`.

## What it does not do

taskpilot contains no actor runtime. It does not deliver messages, start
processes, or store state by itself; all of that goes through the `Host` you
provide. It has no command-line program. It does not include the chat-state
actor or the task-monitor MCP server; it only names their manifests.