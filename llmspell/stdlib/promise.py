"""Promises for spells: settle synchronously, wait with a timeout, combine."""

from __future__ import annotations

import enum
import threading
from typing import Any, Callable, Iterable, Mapping

from llmspell.stdlib.state import ScriptState

Handler = Callable[[Any], Any]


class PromiseState(enum.Enum):
    """Lifecycle of a promise."""

    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class PromiseRejected(Exception):
    """Raised when waiting on a promise that was rejected."""

    def __init__(self, reason: Any) -> None:
        super().__init__(reason)
        self.reason = reason

    def __str__(self) -> str:
        return str(self.reason)


def _check_handler(value: Any, what: str, optional: bool) -> None:
    if value is None and optional:
        return
    if not callable(value):
        raise TypeError(f"{what} must be a function, got {type(value).__name__}")


def _quietly(fn: Handler, value: Any) -> None:
    try:
        fn(value)
    except Exception:
        pass


class Promise:
    """A value that becomes available later, or a reason it never will."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.RLock())
        self._state = PromiseState.PENDING
        self._value: Any = None
        self._listeners: list[Callable[[PromiseState, Any], None]] = []

    @classmethod
    def create(cls, executor: Callable[[Handler, Handler], Any]) -> Promise:
        """Run ``executor(resolve, reject)``; an exception from it rejects the promise."""
        _check_handler(executor, "executor", optional=False)
        promise = cls()
        try:
            executor(promise.resolve, promise.reject)
        except Exception as exc:
            promise.reject(str(exc))
        return promise

    @classmethod
    def resolved(cls, value: Any) -> Promise:
        """Return a promise already resolved with ``value``."""
        promise = cls()
        promise.resolve(value)
        return promise

    @classmethod
    def rejected(cls, reason: Any) -> Promise:
        """Return a promise already rejected with ``reason``."""
        promise = cls()
        promise.reject(reason)
        return promise

    @property
    def state(self) -> PromiseState:
        with self._cond:
            return self._state

    @property
    def value(self) -> Any:
        with self._cond:
            return self._value

    def _snapshot(self) -> tuple[PromiseState, Any]:
        with self._cond:
            return self._state, self._value

    def _settle(self, state: PromiseState, value: Any) -> bool:
        with self._cond:
            if self._state is not PromiseState.PENDING:
                return False
            self._state = state
            self._value = value
            listeners, self._listeners = self._listeners, []
            self._cond.notify_all()
        for listener in listeners:
            listener(state, value)
        return True

    def _on_settle(self, listener: Callable[[PromiseState, Any], None]) -> None:
        with self._cond:
            if self._state is PromiseState.PENDING:
                self._listeners.append(listener)
                return
            state, value = self._state, self._value
        listener(state, value)

    def resolve(self, value: Any = None) -> None:
        """Resolve a pending promise; settled promises are left unchanged."""
        self._settle(PromiseState.RESOLVED, value)

    def reject(self, reason: Any = None) -> None:
        """Reject a pending promise; settled promises are left unchanged."""
        self._settle(PromiseState.REJECTED, reason)

    @staticmethod
    def _run_into(fn: Handler, value: Any, child: Promise) -> None:
        try:
            result = fn(value)
        except Exception as exc:
            child.reject(str(exc))
        else:
            child.resolve(result)

    def next(
        self, on_resolve: Handler | None = None, on_reject: Handler | None = None
    ) -> Promise:
        """Attach handlers and return a promise for what follows.

        On a settled promise the matching handler runs at once and its return
        value resolves the child. On a pending one the handler runs when the
        promise settles and the child takes over the settled value.
        """
        _check_handler(on_resolve, "on_resolve", optional=True)
        _check_handler(on_reject, "on_reject", optional=True)
        child = Promise()
        state, value = self._snapshot()

        if state is PromiseState.RESOLVED:
            if on_resolve is not None:
                self._run_into(on_resolve, value, child)
            else:
                child.resolve(value)
        elif state is PromiseState.REJECTED:
            if on_reject is not None:
                self._run_into(on_reject, value, child)
            else:
                child.reject(value)
        else:

            def follow(settled: PromiseState, result: Any) -> None:
                if settled is PromiseState.RESOLVED:
                    if on_resolve is not None:
                        _quietly(on_resolve, result)
                    child.resolve(result)
                elif on_reject is not None:
                    _quietly(on_reject, result)
                    child.resolve(result)
                else:
                    child.reject(result)

            self._on_settle(follow)
        return child

    def catch(self, on_reject: Handler) -> Promise:
        """Handle a rejection and return a promise for what follows.

        On an already rejected promise the handler runs and its return value
        resolves the child. A pending promise passes its eventual value on to
        the child as a resolution without calling the handler.
        """
        _check_handler(on_reject, "on_reject", optional=False)
        child = Promise()
        state, value = self._snapshot()
        if state is PromiseState.REJECTED:
            self._run_into(on_reject, value, child)
        elif state is PromiseState.RESOLVED:
            child.resolve(value)
        else:
            self._on_settle(lambda _settled, result: child.resolve(result))
        return child

    def wait(self, timeout: float = 30.0) -> Any:
        """Return the resolved value; raises PromiseRejected or TimeoutError."""
        with self._cond:
            self._cond.wait_for(
                lambda: self._state is not PromiseState.PENDING, timeout=max(timeout, 0)
            )
            state, value = self._state, self._value
        if state is PromiseState.RESOLVED:
            return value
        if state is PromiseState.REJECTED:
            raise PromiseRejected(value)
        raise TimeoutError("timeout")

    def __repr__(self) -> str:
        state, value = self._snapshot()
        return f"Promise({state.value}, {value!r})"


def _promises(items: Iterable[Any] | Mapping[Any, Any]) -> list[Promise]:
    values = items.values() if isinstance(items, Mapping) else items
    return [item for item in values if isinstance(item, Promise)]


def promise_all(promises: Iterable[Any]) -> Promise:
    """Resolve with every value in order, or reject with the first rejection in order.

    Items that are not promises are ignored.
    """
    members = _promises(promises)
    result = Promise()
    if not members:
        result.resolve([])
        return result

    def check(_state: PromiseState, _value: Any) -> None:
        values = []
        for member in members:
            state, value = member._snapshot()
            if state is PromiseState.PENDING:
                return
            if state is PromiseState.REJECTED:
                result.reject(value)
                return
            values.append(value)
        result.resolve(values)

    for member in members:
        member._on_settle(check)
    return result


def promise_race(promises: Iterable[Any]) -> Promise:
    """Settle like the first promise to settle; stays pending if there are none."""
    result = Promise()
    for member in _promises(promises):
        member._on_settle(result._settle)
    return result


class PromiseModule:
    """The ``promise`` global: new, resolve, reject, all and race."""

    @staticmethod
    def new(executor: Callable[[Handler, Handler], Any]) -> Promise:
        return Promise.create(executor)

    @staticmethod
    def resolve(value: Any = None) -> Promise:
        return Promise.resolved(value)

    @staticmethod
    def reject(reason: Any = None) -> Promise:
        return Promise.rejected(reason)

    @staticmethod
    def all(promises: Iterable[Any]) -> Promise:
        return promise_all(promises)

    @staticmethod
    def race(promises: Iterable[Any]) -> Promise:
        return promise_race(promises)


def register_promise(state: ScriptState) -> None:
    """Install the ``promise`` module in the script state."""
    state.set_global("promise", PromiseModule())