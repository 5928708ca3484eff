"""Installs the standard modules into a script state."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from llmspell.stdlib.callbacks import register_async_callback
from llmspell.stdlib.httpclient import (
    HTTPClient,
    HTTPConfig,
    register_http,
    register_simple_http,
)
from llmspell.stdlib.jsoncodec import register_json
from llmspell.stdlib.promise import register_promise
from llmspell.stdlib.promise_async import register_promise_async
from llmspell.stdlib.spelllog import Logger, register_log, register_simple_log
from llmspell.stdlib.state import ScriptState
from llmspell.stdlib.storage import Storage, StorageConfig, register_storage


@dataclass
class StdlibConfig:
    """Settings for every standard module; None selects a module's defaults."""

    storage: StorageConfig | None = None
    http: HTTPConfig | None = None
    log_level: int = logging.INFO
    spell_name: str = "spell"

    @classmethod
    def default(cls) -> StdlibConfig:
        return cls(storage=StorageConfig.default(), http=HTTPConfig.default())


def register_all(state: ScriptState, config: StdlibConfig | None = None) -> None:
    """Install json, log, storage, http, promise and async modules.

    Raises StorageError if the storage directory cannot be created.
    """
    if config is None:
        config = StdlibConfig.default()

    register_json(state)
    register_log(state, Logger(config.spell_name, config.log_level))
    register_storage(state, Storage(config.storage))
    register_http(state, HTTPClient(config.http))
    register_promise(state)
    register_async_callback(state)
    register_promise_async(state)


def register_minimal(state: ScriptState) -> None:
    """Install json plus the plain log and http modules."""
    register_json(state)
    register_simple_log(state)
    register_simple_http(state)