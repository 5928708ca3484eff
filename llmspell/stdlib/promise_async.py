"""Promises driven by the async callback queue, and waiting on groups of them."""

from __future__ import annotations

import time
from typing import Any, Callable, Iterable, Mapping

from llmspell.stdlib.callbacks import get_callback_manager
from llmspell.stdlib.promise import Handler, Promise, PromiseModule, PromiseState
from llmspell.stdlib.state import ScriptState

_POLL_INTERVAL = 0.01
_CHECKS_PER_SECOND = 100


def async_promise(executor: Callable[[Handler, Handler], Any]) -> Promise:
    """Create a promise whose executor may settle it later from a callback."""
    return Promise.create(executor)


def _items(promises: Iterable[Any] | Mapping[Any, Any]) -> list[Any]:
    if isinstance(promises, Mapping):
        return list(promises.values())
    return list(promises)


def _all_settled(items: list[Any]) -> bool:
    return all(
        item.state is not PromiseState.PENDING
        for item in items
        if isinstance(item, Promise)
    )


def await_all(
    state: ScriptState,
    promises: Iterable[Any] | Mapping[Any, Any],
    timeout: float = 30,
) -> list[Any]:
    """Process queued callbacks until every promise settles or the timeout passes.

    Returns one entry per item: the resolved value, or None for a promise
    that was rejected or is still pending and for items that are not promises.
    A timeout of zero or less checks the promises once without waiting.
    """
    items = _items(promises)
    manager = get_callback_manager(state)
    seconds = int(timeout)

    if seconds > 0:
        max_iterations = seconds * _CHECKS_PER_SECOND
        iterations = 0
        while not _all_settled(items) and iterations < max_iterations:
            if manager.process_callbacks() > 0:
                continue
            iterations += 1
            time.sleep(_POLL_INTERVAL)

    results: list[Any] = []
    for item in items:
        if isinstance(item, Promise) and item.state is PromiseState.RESOLVED:
            results.append(item.value)
        else:
            results.append(None)
    return results


class _AsyncPromiseModule(PromiseModule):
    """The ``promise`` global extended with ``async_`` and ``await_all``."""

    def __init__(self, state: ScriptState) -> None:
        self._state = state

    @staticmethod
    def async_(executor: Callable[[Handler, Handler], Any]) -> Promise:
        return async_promise(executor)

    def await_all(
        self, promises: Iterable[Any] | Mapping[Any, Any], timeout: float = 30
    ) -> list[Any]:
        return await_all(self._state, promises, timeout)


def register_promise_async(state: ScriptState) -> None:
    """Add the async helpers to the already registered ``promise`` module."""
    if not isinstance(state.get_global("promise"), PromiseModule):
        raise RuntimeError("promise module is not registered")
    state.set_global("promise", _AsyncPromiseModule(state))