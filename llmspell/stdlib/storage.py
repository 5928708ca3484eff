"""In-memory key-value store and sandboxed file storage for spells."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from pathlib import Path

from llmspell.stdlib.state import ScriptState

_MB = 1024 * 1024
_DEFAULT_EXTS = (".txt", ".json", ".yaml", ".yml", ".md")


class StorageError(Exception):
    """A storage operation was refused or failed."""


def _home() -> str:
    try:
        return str(Path.home())
    except RuntimeError:
        return ""


@dataclass
class StorageConfig:
    """Where files live, how large they may be and which extensions are allowed."""

    base_dir: str | os.PathLike[str]
    max_file_size: int = 10 * _MB
    allowed_exts: list[str] = field(default_factory=lambda: list(_DEFAULT_EXTS))

    @classmethod
    def default(cls) -> StorageConfig:
        return cls(base_dir=os.path.join(_home(), ".llmspell", "storage"))


def _extension(path: str) -> str:
    name = path.rsplit(os.sep, 1)[-1]
    dot = name.rfind(".")
    return name[dot:] if dot >= 0 else ""


class Storage:
    """Key-value memory plus file access confined to the base directory."""

    def __init__(self, config: StorageConfig | None = None) -> None:
        self.config = config if config is not None else StorageConfig.default()
        self._base = os.path.normpath(os.fspath(self.config.base_dir))
        try:
            os.makedirs(self._base, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create storage directory: {exc}") from exc
        self._memory: dict[str, str] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        """Return the in-memory value for ``key``, or None."""
        with self._lock:
            return self._memory.get(key)

    def set(self, key: str, value: str) -> None:
        """Store ``value`` in memory under ``key``."""
        if not isinstance(value, str):
            raise TypeError(f"string expected, got {type(value).__name__}")
        with self._lock:
            self._memory[key] = value

    def validate_path(self, filename: str) -> str:
        """Return the full path for ``filename`` or raise StorageError."""
        cleaned = os.path.normpath(filename) if filename else "."
        if ".." in cleaned:
            raise StorageError("invalid filename: directory traversal not allowed")
        if self.config.allowed_exts:
            ext = _extension(cleaned)
            if ext not in self.config.allowed_exts:
                raise StorageError(f"file extension {ext} not allowed")
        full = os.path.normpath(self._base + os.sep + cleaned)
        if not full.startswith(self._base):
            raise StorageError("invalid path: outside storage directory")
        return full

    def exists(self, filename: str) -> bool:
        """Return whether a valid, existing file name was given."""
        try:
            full = self.validate_path(filename)
        except StorageError:
            return False
        return os.path.exists(full)

    def read(self, filename: str) -> str:
        """Return the content of a stored file."""
        full = self.validate_path(filename)
        try:
            size = os.stat(full).st_size
        except OSError:
            raise StorageError(f"file not found: {filename}") from None
        limit = self.config.max_file_size
        if size > limit:
            raise StorageError(f"file too large: {size} bytes (max {limit})")
        try:
            with open(full, "rb") as fh:
                data = fh.read()
        except OSError as exc:
            raise StorageError(str(exc)) from exc
        return data.decode("utf-8", "surrogateescape")

    def write(self, filename: str, content: str) -> None:
        """Write ``content`` to a stored file, creating directories as needed."""
        if not isinstance(content, str):
            raise TypeError(f"string expected, got {type(content).__name__}")
        full = self.validate_path(filename)
        data = content.encode("utf-8", "surrogateescape")
        limit = self.config.max_file_size
        if len(data) > limit:
            raise StorageError(f"content too large: {len(data)} bytes (max {limit})")
        try:
            os.makedirs(os.path.dirname(full), exist_ok=True)
        except OSError as exc:
            raise StorageError(f"failed to create directory: {exc}") from exc
        try:
            with open(full, "wb") as fh:
                fh.write(data)
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def delete(self, filename: str) -> None:
        """Remove a stored file; a missing file is not an error."""
        full = self.validate_path(filename)
        try:
            os.remove(full)
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def list_files(self, pattern: str = "*") -> list[str]:
        """Return sorted relative paths of files matching the glob ``pattern``."""
        try:
            matches = sorted(str(p) for p in Path(self._base).glob(pattern))
        except (ValueError, NotImplementedError) as exc:
            raise StorageError(str(exc)) from exc
        names = []
        for match in matches:
            try:
                if os.path.isdir(match) or not os.path.lexists(match):
                    continue
                os.stat(match)
            except OSError:
                continue
            names.append(os.path.relpath(match, self._base))
        return names


def register_storage(state: ScriptState, storage: Storage) -> None:
    """Install ``storage`` as the ``storage`` module."""
    state.set_global("storage", storage)