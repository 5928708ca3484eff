import threading
import time
from concurrent.futures import CancelledError

import pytest

from llmspell.security import (
    ContextConfig,
    ResourceLimits,
    ResourceTracker,
    SecurityPolicy,
    check_resource_limits,
    new_secure_context,
    start_resource_monitor,
)

MB = 1024 * 1024


def test_create_secure_context():
    config = ContextConfig(
        max_memory=64 * MB, max_cpu_time=5.0, max_execution_time=10.0, max_tasks=100
    )
    with new_secure_context(None, config) as ctx:
        assert ctx.config.max_memory == 64 * MB
        assert ctx.tracker.limits.max_tasks == 100
        assert ctx.done() is False
        assert ctx.error() is None


@pytest.mark.parametrize(
    "config",
    [
        ContextConfig(max_memory=-1, max_execution_time=10.0),
        ContextConfig(max_memory=64 * MB, max_execution_time=0),
        ContextConfig(max_memory=64 * MB, max_execution_time=10.0, max_tasks=-1),
    ],
    ids=["negative memory", "zero execution time", "negative task limit"],
)
def test_invalid_config(config):
    with pytest.raises(ValueError, match="invalid config"):
        new_secure_context(None, config)


def test_memory_tracking():
    tracker = ResourceTracker(ResourceLimits(max_memory=100 * 1024, max_cpu_time=60, max_tasks=10))
    tracker.allocate_memory(50 * 1024)
    assert tracker.memory_usage() == 50 * 1024

    with pytest.raises(RuntimeError, match="memory limit exceeded"):
        tracker.allocate_memory(60 * 1024)

    tracker.free_memory(30 * 1024)
    assert tracker.memory_usage() == 20 * 1024

    tracker.allocate_memory(60 * 1024)
    assert tracker.memory_usage() == 80 * 1024


def test_free_memory_never_negative():
    tracker = ResourceTracker(ResourceLimits())
    tracker.allocate_memory(10)
    tracker.free_memory(100)
    assert tracker.memory_usage() == 0


def test_task_tracking():
    tracker = ResourceTracker(ResourceLimits(max_memory=100 * MB, max_cpu_time=60, max_tasks=5))
    for _ in range(3):
        tracker.start_task()
    assert tracker.task_count() == 3

    tracker.start_task()
    tracker.start_task()
    with pytest.raises(RuntimeError, match="task limit exceeded"):
        tracker.start_task()
    assert tracker.task_count() == 5

    tracker.end_task()
    assert tracker.task_count() == 4


def test_cpu_time_tracking():
    tracker = ResourceTracker(ResourceLimits(max_memory=100 * MB, max_cpu_time=0.1, max_tasks=10))
    tracker.start_cpu_tracking()
    time.sleep(0.05)
    tracker.update_cpu_time()
    assert tracker.cpu_time() >= 0.04
    tracker.check_cpu_limit()

    time.sleep(0.06)
    tracker.update_cpu_time()
    with pytest.raises(RuntimeError, match="CPU time limit exceeded"):
        tracker.check_cpu_limit()


def test_cpu_time_zero_without_tracking():
    tracker = ResourceTracker(ResourceLimits(max_cpu_time=0.001))
    time.sleep(0.01)
    tracker.update_cpu_time()
    assert tracker.cpu_time() == 0.0


def test_execution_timeout():
    ctx = new_secure_context(None, ContextConfig(max_memory=64 * MB, max_execution_time=0.1))
    assert ctx.wait(0.5) is True
    assert isinstance(ctx.error(), TimeoutError)


def test_parent_context_cancellation():
    parent = new_secure_context(None, ContextConfig(max_memory=64 * MB, max_execution_time=10.0))
    child = new_secure_context(parent, ContextConfig(max_memory=64 * MB, max_execution_time=10.0))
    parent.cancel()
    assert child.wait(0.1) is True
    assert isinstance(child.error(), CancelledError)
    assert isinstance(parent.error(), CancelledError)


def test_child_of_finished_parent_is_done():
    parent = new_secure_context(None, ContextConfig(max_execution_time=10.0))
    parent.cancel()
    child = new_secure_context(parent, ContextConfig(max_execution_time=10.0))
    assert child.done() is True
    assert isinstance(child.error(), CancelledError)


def test_cancelling_child_leaves_parent_running():
    with new_secure_context(None, ContextConfig(max_execution_time=10.0)) as parent:
        child = new_secure_context(parent, ContextConfig(max_execution_time=10.0))
        child.cancel()
        assert child.done() is True
        assert parent.done() is False


def test_periodic_monitoring():
    config = ContextConfig(
        max_memory=64 * MB, max_execution_time=5.0, max_cpu_time=1.0, max_tasks=10
    )
    with new_secure_context(None, config) as ctx:
        with start_resource_monitor(ctx, 0.05) as monitor:
            ctx.tracker.allocate_memory(60 * MB)
            time.sleep(0.15)
            violations = monitor.violations()
        assert len(violations) > 0
        assert any(v.kind == "memory" for v in violations)


def test_monitor_reports_no_violations_under_threshold():
    config = ContextConfig(max_memory=64 * MB, max_execution_time=5.0, max_tasks=10)
    with new_secure_context(None, config) as ctx:
        with start_resource_monitor(ctx, 0.02) as monitor:
            ctx.tracker.allocate_memory(MB)
            time.sleep(0.08)
            violations = monitor.violations()
        assert violations == []


def test_concurrent_resource_access():
    tracker = ResourceTracker(ResourceLimits(max_memory=100 * MB, max_cpu_time=60, max_tasks=100))

    def memory_worker():
        tracker.allocate_memory(MB)
        time.sleep(0.01)
        tracker.free_memory(MB)

    def task_worker():
        tracker.start_task()
        time.sleep(0.01)
        tracker.end_task()

    def reader():
        tracker.memory_usage()
        tracker.task_count()
        tracker.cpu_time()

    threads = [
        threading.Thread(target=fn)
        for fn in (memory_worker, task_worker, reader)
        for _ in range(50)
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert tracker.memory_usage() == 0
    assert tracker.task_count() == 0


def test_security_policy():
    config = ContextConfig(
        max_memory=64 * MB,
        max_execution_time=10.0,
        security_policy=SecurityPolicy(
            allow_network_access=False,
            allow_file_write=False,
            allow_file_read=True,
            allowed_paths=["/tmp", "/var/tmp"],
            blocked_paths=["/etc", "/usr/bin"],
        ),
    )
    with new_secure_context(None, config) as ctx:
        policy = ctx.policy
        assert policy is config.security_policy
        assert policy.allow_network_access is False
        expected = {
            "/tmp/test.txt": True,
            "/var/tmp/data": True,
            "/etc/passwd": False,
            "/usr/bin/ls": False,
            "/home/user/file": False,
        }
        assert {p: policy.is_path_allowed(p) for p in expected} == expected


def test_policy_without_allowed_paths_allows_all_but_blocked():
    policy = SecurityPolicy(blocked_paths=["/etc"])
    assert policy.is_path_allowed("/home/user/file") is True
    assert policy.is_path_allowed("/etc/hosts") is False


def test_policy_inherited_from_parent():
    policy = SecurityPolicy(allowed_paths=["/tmp"])
    parent = new_secure_context(None, ContextConfig(max_execution_time=10.0, security_policy=policy))
    child = new_secure_context(parent, ContextConfig(max_execution_time=10.0))
    assert child.policy is policy
    parent.cancel()


def test_no_policy_is_none():
    with new_secure_context(None, ContextConfig(max_execution_time=10.0)) as ctx:
        assert ctx.policy is None


def test_check_resource_limits_cpu():
    with new_secure_context(
        None, ContextConfig(max_execution_time=10.0, max_cpu_time=0.01)
    ) as ctx:
        assert check_resource_limits(ctx) is None
        ctx.tracker.start_cpu_tracking()
        time.sleep(0.03)
        with pytest.raises(RuntimeError, match="CPU time limit exceeded"):
            check_resource_limits(ctx)


def test_check_resource_limits_none_context():
    assert check_resource_limits(None) is None