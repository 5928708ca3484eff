import threading
import time

import pytest

from llmspell.stdlib.callbacks import get_callback_manager, register_async_callback
from llmspell.stdlib.promise import PromiseState, register_promise
from llmspell.stdlib.promise_async import (
    async_promise,
    await_all,
    register_promise_async,
)
from llmspell.stdlib.state import ScriptState


@pytest.fixture
def state():
    st = ScriptState()
    register_promise(st)
    register_async_callback(st)
    register_promise_async(st)
    return st


def test_async_promise_resolves_immediately():
    seen = []
    p = async_promise(lambda resolve, reject: resolve("async result"))
    p.next(seen.append)
    assert seen == ["async result"]
    assert p.state is PromiseState.RESOLVED


def test_async_promise_with_callbacks(state):
    mgr = get_callback_manager(state)
    ids = []
    seen = []

    def executor(resolve, reject):
        ids.append(mgr.create_callback(resolve))

    p = async_promise(executor)
    assert ids[0] > 0
    p.next(seen.append)
    assert seen == []

    mgr.queue_result(ids[0], "callback result")
    mgr.process_callbacks()
    assert seen == ["callback result"]


def test_await_all_collects_results(state):
    mgr = get_callback_manager(state)
    ids = []
    promises = []
    for _ in range(3):
        promises.append(
            async_promise(lambda resolve, reject: ids.append(mgr.create_callback(resolve)))
        )
    assert len(promises) == 3
    assert len(ids) == 3

    def feed():
        time.sleep(0.01)
        for n, cid in enumerate(ids, start=1):
            mgr.queue_result(cid, f"result{n}")

    worker = threading.Thread(target=feed)
    worker.start()
    results = await_all(state, promises, 5)
    worker.join()
    assert results == ["result1", "result2", "result3"]


def test_await_all_zero_timeout_returns_none_for_pending(state):
    mgr = get_callback_manager(state)
    p = async_promise(lambda resolve, reject: mgr.create_callback(resolve))
    start_pending = mgr.pending_count()
    results = await_all(state, [p], 0)
    assert results == [None]
    assert mgr.pending_count() == start_pending == 1


def test_async_rejection_through_errback(state):
    mgr = get_callback_manager(state)
    ids = []
    p = async_promise(
        lambda resolve, reject: ids.append(mgr.create_callback(resolve, reject))
    )
    errors = []
    mgr.queue_error(ids[0], "async error")
    mgr.process_callbacks()
    assert p.state is PromiseState.REJECTED
    p.catch(errors.append)
    assert errors == ["async error"]


def test_await_all_non_promises_and_rejections_give_none(state):
    promise_mod = state.get_global("promise")
    items = [promise_mod.resolve(1), "plain", promise_mod.reject("bad")]
    assert await_all(state, items, 1) == [1, None, None]


def test_await_all_accepts_mapping(state):
    promise_mod = state.get_global("promise")
    table = {1: promise_mod.resolve("a"), 2: promise_mod.resolve("b")}
    assert await_all(state, table, 1) == ["a", "b"]


def test_registered_module_exposes_helpers(state):
    promise_mod = state.get_global("promise")
    p = promise_mod.async_(lambda resolve, reject: resolve(7))
    assert p.wait(1) == 7
    assert promise_mod.await_all([p]) == [7]
    assert promise_mod.new(lambda resolve, reject: resolve(3)).wait(1) == 3


def test_register_requires_promise_module():
    with pytest.raises(RuntimeError):
        register_promise_async(ScriptState())