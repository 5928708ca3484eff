"""Sandboxed execution contexts with resource limits, tracking and monitoring."""

from __future__ import annotations

import os
import threading
import time
import tracemalloc
from concurrent.futures import CancelledError
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence


@dataclass
class SecurityPolicy:
    """Access restrictions applied to a script execution."""

    allow_network_access: bool = False
    allow_file_write: bool = False
    allow_file_read: bool = False
    allowed_paths: Sequence[str] = field(default_factory=list)
    blocked_paths: Sequence[str] = field(default_factory=list)

    def is_path_allowed(self, path: str) -> bool:
        """Return whether ``path`` passes the blocked and allowed prefix lists."""
        path = os.path.normpath(path)
        if any(path.startswith(os.path.normpath(b)) for b in self.blocked_paths):
            return False
        if not self.allowed_paths:
            return True
        return any(path.startswith(os.path.normpath(a)) for a in self.allowed_paths)


@dataclass
class ContextConfig:
    """Limits for a secure context; times are in seconds, zero means unlimited."""

    max_memory: int = 0
    max_cpu_time: float = 0.0
    max_execution_time: float = 0.0
    max_tasks: int = 0
    security_policy: SecurityPolicy | None = None

    def validate(self) -> None:
        """Raise ValueError if any limit is out of range."""
        if self.max_memory < 0:
            raise ValueError("max_memory must be non-negative")
        if self.max_execution_time <= 0:
            raise ValueError("max_execution_time must be positive")
        if self.max_tasks < 0:
            raise ValueError("max_tasks must be non-negative")


@dataclass(frozen=True)
class ResourceLimits:
    """Resource ceilings enforced by a tracker; zero means unlimited."""

    max_memory: int = 0
    max_cpu_time: float = 0.0
    max_tasks: int = 0


class ResourceTracker:
    """Thread-safe accounting of memory, concurrent tasks and elapsed CPU time."""

    def __init__(self, limits: ResourceLimits) -> None:
        self.limits = limits
        self._lock = threading.Lock()
        self._memory = 0
        self._tasks = 0
        self._cpu_start: float | None = None
        self._cpu_time = 0.0

    def allocate_memory(self, size: int) -> None:
        """Reserve ``size`` bytes; raises RuntimeError past the memory limit."""
        with self._lock:
            limit = self.limits.max_memory
            if limit > 0 and self._memory + size > limit:
                raise RuntimeError(
                    f"memory limit exceeded: requested {size}, "
                    f"used {self._memory}, limit {limit}"
                )
            self._memory += size

    def free_memory(self, size: int) -> None:
        """Release ``size`` bytes, never going below zero."""
        with self._lock:
            self._memory = max(0, self._memory - size)

    def memory_usage(self) -> int:
        """Return the bytes currently reserved."""
        with self._lock:
            return self._memory

    def start_task(self) -> None:
        """Count a new concurrent task; raises RuntimeError past the task limit."""
        with self._lock:
            limit = self.limits.max_tasks
            if limit > 0 and self._tasks + 1 > limit:
                raise RuntimeError(f"task limit exceeded: limit {limit}")
            self._tasks += 1

    def end_task(self) -> None:
        """Mark a concurrent task as finished."""
        with self._lock:
            self._tasks -= 1

    def task_count(self) -> int:
        """Return the number of running tasks."""
        with self._lock:
            return self._tasks

    def start_cpu_tracking(self) -> None:
        """Begin measuring elapsed time."""
        with self._lock:
            self._cpu_start = time.monotonic()

    def update_cpu_time(self) -> None:
        """Fold the time since the last mark into the running total."""
        with self._lock:
            if self._cpu_start is not None:
                now = time.monotonic()
                self._cpu_time += now - self._cpu_start
                self._cpu_start = now

    def cpu_time(self) -> float:
        """Return the tracked time in seconds, including the open interval."""
        with self._lock:
            elapsed = self._cpu_time
            if self._cpu_start is not None:
                elapsed += time.monotonic() - self._cpu_start
            return elapsed

    def check_cpu_limit(self) -> None:
        """Raise RuntimeError if the tracked time exceeds the CPU limit."""
        used = self.cpu_time()
        limit = self.limits.max_cpu_time
        if limit > 0 and used > limit:
            raise RuntimeError(
                f"CPU time limit exceeded: used {used:.3f}s, limit {limit:.3f}s"
            )


class SecureContext:
    """A cancellable execution context with a deadline, tracker and policy."""

    def __init__(self, config: ContextConfig, parent: SecureContext | None = None) -> None:
        self.config = config
        self.parent = parent
        self.tracker = ResourceTracker(
            ResourceLimits(config.max_memory, config.max_cpu_time, config.max_tasks)
        )
        self._policy = config.security_policy
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: BaseException | None = None
        self._children: list[SecureContext] = []
        self.deadline = time.monotonic() + config.max_execution_time
        self._timer = threading.Timer(config.max_execution_time, self._expire)
        self._timer.daemon = True
        self._timer.start()
        if parent is not None:
            parent._attach(self)

    @property
    def policy(self) -> SecurityPolicy | None:
        """The security policy of this context or, failing that, its parent."""
        if self._policy is not None:
            return self._policy
        return self.parent.policy if self.parent is not None else None

    def _attach(self, child: SecureContext) -> None:
        with self._lock:
            if self._error is None:
                self._children.append(child)
                return
            err = self._error
        child._finish(err)

    def _detach(self, child: SecureContext) -> None:
        with self._lock:
            if child in self._children:
                self._children.remove(child)

    def _expire(self) -> None:
        self._finish(TimeoutError("context deadline exceeded"))

    def _finish(self, err: BaseException) -> None:
        with self._lock:
            if self._error is not None:
                return
            self._error = err
            children, self._children = self._children, []
        self._timer.cancel()
        self._event.set()
        for child in children:
            child._finish(err)
        if self.parent is not None:
            self.parent._detach(self)

    def cancel(self) -> None:
        """Cancel this context and every context derived from it."""
        self._finish(CancelledError("context canceled"))

    def done(self) -> bool:
        """Return whether the context has been cancelled or has expired."""
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context ends or ``timeout`` passes; return ``done()``."""
        return self._event.wait(timeout)

    def error(self) -> BaseException | None:
        """Return why the context ended: TimeoutError, CancelledError or None."""
        with self._lock:
            return self._error

    def __enter__(self) -> SecureContext:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cancel()


def new_secure_context(parent: SecureContext | None, config: ContextConfig) -> SecureContext:
    """Create a secure context after validating ``config``."""
    try:
        config.validate()
    except ValueError as exc:
        raise ValueError(f"invalid config: {exc}") from exc
    return SecureContext(config, parent)


@dataclass(frozen=True)
class ResourceViolation:
    """A resource warning or limit breach seen by a monitor."""

    kind: str
    message: str
    timestamp: datetime


class ResourceMonitor:
    """Background thread that checks a context's resource usage periodically."""

    def __init__(self, ctx: SecureContext, interval: float) -> None:
        self.ctx = ctx
        self.interval = interval
        self._lock = threading.Lock()
        self._violations: list[ResourceViolation] = []
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            if self.ctx.done():
                return
            self._check()

    def _add(self, kind: str, message: str) -> None:
        with self._lock:
            self._violations.append(ResourceViolation(kind, message, datetime.now()))

    def _check(self) -> None:
        tracker = self.ctx.tracker
        config = self.ctx.config

        usage = tracker.memory_usage()
        if config.max_memory > 0 and usage > int(config.max_memory * 0.9):
            self._add("memory", f"Memory usage high: {usage}/{config.max_memory} bytes")

        try:
            tracker.check_cpu_limit()
        except RuntimeError as exc:
            self._add("cpu", str(exc))

        tasks = tracker.task_count()
        if config.max_tasks > 0 and tasks > int(config.max_tasks * 0.9):
            self._add("tasks", f"Task count high: {tasks}/{config.max_tasks}")

        if config.max_memory > 0 and tracemalloc.is_tracing():
            current, _peak = tracemalloc.get_traced_memory()
            if current > config.max_memory:
                self._add(
                    "system_memory",
                    f"System memory exceeded: {current}/{config.max_memory} bytes",
                )

    def violations(self) -> list[ResourceViolation]:
        """Return a copy of all violations recorded so far."""
        with self._lock:
            return list(self._violations)

    def stop(self) -> None:
        """Stop monitoring and wait for the background thread to exit."""
        self._stop.set()
        self._thread.join()

    def __enter__(self) -> ResourceMonitor:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()


def start_resource_monitor(ctx: SecureContext, interval: float) -> ResourceMonitor:
    """Start a monitor that checks ``ctx`` every ``interval`` seconds."""
    return ResourceMonitor(ctx, interval)


def check_resource_limits(ctx: SecureContext | None) -> None:
    """Raise RuntimeError if the context's resource usage is over any limit."""
    if ctx is None:
        return
    tracker = ctx.tracker
    tracker.check_cpu_limit()
    config = ctx.config
    if config.max_memory > 0:
        usage = tracker.memory_usage()
        if usage > config.max_memory:
            raise RuntimeError(
                f"memory limit exceeded: used {usage}, limit {config.max_memory}"
            )
    if config.max_tasks > 0:
        count = tracker.task_count()
        if count > config.max_tasks:
            raise RuntimeError(
                f"task limit exceeded: count {count}, limit {config.max_tasks}"
            )