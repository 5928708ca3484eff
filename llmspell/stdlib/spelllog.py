"""Structured logging for spells, plus a minimal print-based variant."""

from __future__ import annotations

import json
import logging
import sys
import threading
from datetime import datetime
from typing import Any, TextIO

from llmspell.stdlib.state import ScriptState, _as_string

_LEVEL_NAMES = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
}


def _quote(text: str) -> str:
    if not text or any(c.isspace() or c in '="' or not c.isprintable() for c in text):
        return json.dumps(text, ensure_ascii=False)
    return text


def _timestamp() -> str:
    stamp = datetime.now().astimezone().isoformat(timespec="milliseconds")
    return stamp[:-6] + "Z" if stamp.endswith("+00:00") else stamp


class Logger:
    """Writes ``key=value`` log lines tagged with the spell's name."""

    def __init__(self, name: str, level: int = logging.INFO, stream: TextIO | None = None) -> None:
        self.name = name
        self.level = level
        self._stream = stream
        self._lock = threading.Lock()

    def _log(self, level: int, message: Any, args: tuple[Any, ...]) -> None:
        if level < self.level:
            return
        parts = [
            f"time={_timestamp()}",
            f"level={_LEVEL_NAMES[level]}",
            f"msg={_quote(_as_string(message))}",
            f"spell={_quote(self.name)}",
        ]
        parts.extend(
            f"{_quote(_as_string(key))}={_quote(_as_string(value))}"
            for key, value in zip(args[0::2], args[1::2])
        )
        stream = self._stream if self._stream is not None else sys.stderr
        with self._lock:
            stream.write(" ".join(parts) + "\n")
            stream.flush()

    def debug(self, message: Any, *args: Any) -> None:
        """Log at debug level; extra arguments are key, value pairs."""
        self._log(logging.DEBUG, message, args)

    def info(self, message: Any, *args: Any) -> None:
        """Log at info level; extra arguments are key, value pairs."""
        self._log(logging.INFO, message, args)

    def warn(self, message: Any, *args: Any) -> None:
        """Log at warning level; extra arguments are key, value pairs."""
        self._log(logging.WARNING, message, args)

    def error(self, message: Any, *args: Any) -> None:
        """Log at error level; extra arguments are key, value pairs."""
        self._log(logging.ERROR, message, args)


def _check_message(message: Any) -> str:
    if isinstance(message, str) or (
        isinstance(message, (int, float)) and not isinstance(message, bool)
    ):
        return _as_string(message)
    raise TypeError(f"string expected, got {type(message).__name__}")


class SimpleLog:
    """Prints info to standard output and errors to standard error."""

    def info(self, message: Any) -> None:
        print(f"[INFO] {_check_message(message)}")

    def error(self, message: Any) -> None:
        print(f"[ERROR] {_check_message(message)}", file=sys.stderr)


def register_log(state: ScriptState, logger: Logger) -> None:
    """Install ``logger`` as the ``log`` module."""
    state.set_global("log", logger)


def register_simple_log(state: ScriptState) -> None:
    """Install the print-based ``log`` module."""
    state.set_global("log", SimpleLog())