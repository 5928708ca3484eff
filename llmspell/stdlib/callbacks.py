"""Queue of asynchronous results delivered to script callbacks on demand."""

from __future__ import annotations

import itertools
import queue
import threading
import weakref
from dataclasses import dataclass
from typing import Any, Callable

from llmspell.stdlib.state import ScriptState

QUEUE_CAPACITY = 100

Callback = Callable[[Any], Any]


@dataclass(frozen=True)
class _Pending:
    callback: Callback | None
    errback: Callback | None


@dataclass(frozen=True)
class _Outcome:
    callback_id: int
    value: Any = None
    error: str = ""


def _check_callable(value: Any, what: str) -> None:
    if not callable(value):
        raise TypeError(f"{what} must be a function, got {type(value).__name__}")


class CallbackManager:
    """Holds registered callbacks and a bounded queue of results for them.

    Results may be queued from any thread; they are delivered only when
    ``process_callbacks`` is called, on the caller's thread.
    """

    def __init__(self, capacity: int = QUEUE_CAPACITY) -> None:
        self._lock = threading.Lock()
        self._callbacks: dict[int, _Pending] = {}
        self._results: queue.Queue[_Outcome] = queue.Queue(maxsize=capacity)
        self._ids = itertools.count(1)
        self._closed = False

    def register_callback(
        self, callback: Callback | None, errback: Callback | None = None
    ) -> int:
        """Register a callback pair and return its identifier."""
        with self._lock:
            callback_id = next(self._ids)
            self._callbacks[callback_id] = _Pending(callback, errback)
        return callback_id

    def _enqueue(self, outcome: _Outcome) -> bool:
        with self._lock:
            if self._closed:
                raise RuntimeError("callback manager is closed")
        try:
            self._results.put_nowait(outcome)
        except queue.Full:
            return False
        return True

    def queue_result(self, callback_id: int, value: Any) -> bool:
        """Queue a value for a callback; returns False if the queue was full."""
        return self._enqueue(_Outcome(callback_id, value=value))

    def queue_error(self, callback_id: int, error: Any) -> bool:
        """Queue an error message for a callback; returns False if the queue was full."""
        return self._enqueue(_Outcome(callback_id, error=str(error)))

    def process_callbacks(self) -> int:
        """Deliver every queued result and return how many reached a callback pair."""
        processed = 0
        while True:
            try:
                outcome = self._results.get_nowait()
            except queue.Empty:
                return processed
            with self._lock:
                pending = self._callbacks.pop(outcome.callback_id, None)
            if pending is None:
                continue
            if outcome.error:
                handler, argument = pending.errback, outcome.error
            else:
                handler, argument = pending.callback, outcome.value
            if handler is not None:
                try:
                    handler(argument)
                except Exception:
                    pass
            processed += 1

    def pending_count(self) -> int:
        """Return the number of callbacks still waiting for a result."""
        with self._lock:
            return len(self._callbacks)

    def create_callback(self, callback: Callback, errback: Callback | None = None) -> int:
        """Register a callback and optional errback given by a script."""
        _check_callable(callback, "callback")
        if errback is not None:
            _check_callable(errback, "errback")
        return self.register_callback(callback, errback)

    def _close(self) -> None:
        with self._lock:
            self._closed = True


_managers_lock = threading.Lock()
_managers: weakref.WeakKeyDictionary[ScriptState, CallbackManager] = (
    weakref.WeakKeyDictionary()
)


def get_callback_manager(state: ScriptState) -> CallbackManager:
    """Return the callback manager of ``state``, creating it on first use."""
    with _managers_lock:
        manager = _managers.get(state)
        if manager is None:
            manager = CallbackManager()
            _managers[state] = manager
        return manager


def has_callback_manager(state: ScriptState) -> bool:
    """Return whether ``state`` currently has a callback manager."""
    with _managers_lock:
        return state in _managers


def cleanup_callback_manager(state: ScriptState) -> None:
    """Close and forget the callback manager of ``state``, if any."""
    with _managers_lock:
        manager = _managers.pop(state, None)
    if manager is not None:
        manager._close()


def register_async_callback(state: ScriptState) -> None:
    """Install the state's callback manager as the ``async`` module."""
    state.set_global("async", get_callback_manager(state))