# llmspell

These are building blocks for running user scripts ("spells") inside a controlled host.
The package has no dependencies beyond the standard library.

## What is included

- **Engine registry** (`llmspell.engine_registry`)
  - `EngineRegistry` maps engine names to factories and `EngineMetadata`.
    The metadata covers the description, file extensions, MIME types and version.
  - It has `register`, `get_factory`, `get_metadata`, `unregister` and `list`.
  - `discover_by_extension` and `discover_by_mime_type` match without regard to case.
  - Each of these has a module-level function that works on a global registry:
    `register_engine`, `create_engine`, `list_engines`, `unregister_engine`,
    `discover_engine_by_extension`, `discover_engine_by_mime_type` and
    `reset_global_registry`.
- **Tools** (`llmspell.tools`, `llmspell.tool_registry`)
  - `Tool` is the abstract base class.
  - `FunctionTool` wraps a plain callable.
  - `Metadata` and `Result` are records with `to_json` and `from_json`.
  - `ToolRegistry` is thread-safe. The module-level `register`, `get`,
    `list_tools` and `remove` work on `default_registry`.
- **Security** (`llmspell.security`)
  - `ContextConfig` sets the limits. Times are in seconds, and zero means unlimited.
  - `SecurityPolicy.is_path_allowed` checks a path against the blocked and allowed prefix lists.
  - `ResourceTracker` accounts for memory, concurrent tasks and elapsed time.
  - `new_secure_context` returns a `SecureContext`. The context is cancelled when
    its deadline passes or its parent is cancelled. `error()` then reports
    `TimeoutError` or `CancelledError`.
  - `start_resource_monitor` runs a background `ResourceMonitor` that records
    `ResourceViolation`s.
  - `check_resource_limits` raises `RuntimeError` when usage is over a limit.
- **Standard library** (`llmspell.stdlib`): modules installed as globals in a
  `ScriptState` (`llmspell.stdlib.state`).
  - `jsoncodec`: `encode`, `decode` and `to_plain`. A mapping with keys `1..n` becomes a JSON list.
  - `spelllog`: `Logger` writes `key=value` lines to standard error.
    `SimpleLog` prints `[INFO]` and `[ERROR]` lines.
  - `storage`: `Storage` provides an in-memory key/value store and file access.
    File access is confined to a base directory, with a size limit and an extension allow-list.
    Failures raise `StorageError`.
  - `httpclient`: `HTTPClient` offers `get`, `post` and `request`, restricted to
    the allowed schemes, with a response size cap. `SimpleHTTP` is a plain GET.
    Failures and error statuses raise `HTTPRequestError`.
  - `promise`: `Promise` has `create`, `resolved`, `rejected`, `next`, `catch`
    and `wait`. There are also `promise_all`, `promise_race` and the `PromiseModule` global.
  - `callbacks`: `CallbackManager` keeps a bounded queue of up to 100 results.
    Results are delivered only when `process_callbacks()` is called.
  - `promise_async`: `async_promise` and `await_all`.
    `register_promise_async` adds `async_` and `await_all` to the `promise` global.
  - `modules`: `register_all(state, StdlibConfig)` installs everything.
    `register_minimal(state)` installs json and the simple log and http modules.

## Installation

```
pip install .
```

For the test suite:

```
pip install ".[test]"
pytest
```

## Quick look

```python
from llmspell.tools import FunctionTool
from llmspell.tool_registry import ToolRegistry

registry = ToolRegistry()
registry.register(
    FunctionTool("add", "Adds two numbers", '{"type":"object"}',
                 lambda params: params["a"] + params["b"])
)
print(registry.get("add").execute({"a": 5, "b": 3}))  # 8
```

`StdlibConfig.default()` stores files under `~/.llmspell/storage`. That directory is created if it is missing.

```python
from llmspell.stdlib.state import ScriptState
from llmspell.stdlib.modules import StdlibConfig, register_all

state = ScriptState()
register_all(state, StdlibConfig.default())
print(state.get_global("json").encode({"name": "test"}))  # {"name":"test"}
```

```python
from llmspell.stdlib.promise import Promise, promise_all

p = Promise.resolved(1).next(lambda v: v + 1).next(lambda v: v * 2)
print(p.wait())  # 4
print(promise_all([Promise.resolved(1), Promise.resolved(2)]).wait())  # [1, 2]
```

## What it does not do

- There is no script interpreter. The engine registry stores factories that you
  supply; no engine is bundled. The standard library modules are plain Python
  objects placed in a `ScriptState`.
- There is no command-line program.
- No ready-made tools are provided. For example, there is no web fetch and no
  file read or write tool. Tools are whatever you register.
- Resource limits are bookkeeping only. `ResourceTracker` counts what callers
  report and does not stop running code. `ResourceMonitor` compares against real
  process memory only while `tracemalloc` is tracing.