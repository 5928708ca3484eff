"""Registry of script engine factories with discovery by file extension and MIME type."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Callable

EngineFactory = Callable[[Any], Any]


@dataclass
class EngineMetadata:
    """Descriptive information about a registered engine."""

    description: str = ""
    file_extensions: list[str] = field(default_factory=list)
    mime_types: list[str] = field(default_factory=list)
    version: str = ""


@dataclass(frozen=True)
class _Entry:
    factory: EngineFactory
    metadata: EngineMetadata


class EngineRegistry:
    """Thread-safe mapping of engine names to factories and metadata."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._engines: dict[str, _Entry] = {}

    def register(
        self,
        name: str,
        factory: EngineFactory,
        metadata: EngineMetadata | None = None,
    ) -> None:
        """Add an engine factory; raises ValueError if the name is taken."""
        if metadata is None:
            metadata = EngineMetadata()
        with self._lock:
            if name in self._engines:
                raise ValueError(f'engine "{name}" already registered')
            self._engines[name] = _Entry(factory, metadata)

    def _entry(self, name: str) -> _Entry:
        try:
            return self._engines[name]
        except KeyError:
            raise KeyError(f'engine "{name}" not found') from None

    def get_factory(self, name: str) -> EngineFactory:
        """Return the factory registered under ``name``."""
        with self._lock:
            return self._entry(name).factory

    def get_metadata(self, name: str) -> EngineMetadata:
        """Return the metadata registered under ``name``."""
        with self._lock:
            return self._entry(name).metadata

    def unregister(self, name: str) -> None:
        """Remove an engine; raises KeyError if it is not registered."""
        with self._lock:
            self._entry(name)
            del self._engines[name]

    def discover_by_extension(self, ext: str) -> str:
        """Return the name of an engine handling the file extension."""
        ext = ext.lower()
        with self._lock:
            for name, entry in self._engines.items():
                if any(e.lower() == ext for e in entry.metadata.file_extensions):
                    return name
        raise KeyError(f'no engine found for extension "{ext}"')

    def discover_by_mime_type(self, mime_type: str) -> str:
        """Return the name of an engine handling the MIME type."""
        mime_type = mime_type.lower()
        with self._lock:
            for name, entry in self._engines.items():
                if any(m.lower() == mime_type for m in entry.metadata.mime_types):
                    return name
        raise KeyError(f'no engine found for MIME type "{mime_type}"')

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._engines

    def __len__(self) -> int:
        with self._lock:
            return len(self._engines)

    def list(self) -> list[str]:
        """Return the names of all registered engines."""
        with self._lock:
            return list(self._engines)


_global_registry = EngineRegistry()


def reset_global_registry() -> None:
    """Replace the global registry with an empty one."""
    global _global_registry
    _global_registry = EngineRegistry()


def register_engine(
    name: str, factory: EngineFactory, metadata: EngineMetadata | None = None
) -> None:
    """Register an engine factory in the global registry."""
    _global_registry.register(name, factory, metadata)


def create_engine(name: str, config: Any) -> Any:
    """Create an engine instance from the global registry."""
    return _global_registry.get_factory(name)(config)


def list_engines() -> list[str]:
    """Return the names of all engines in the global registry."""
    return _global_registry.list()


def unregister_engine(name: str) -> None:
    """Remove an engine from the global registry."""
    _global_registry.unregister(name)


def discover_engine_by_extension(ext: str) -> str:
    """Find an engine in the global registry by file extension."""
    return _global_registry.discover_by_extension(ext)


def discover_engine_by_mime_type(mime_type: str) -> str:
    """Find an engine in the global registry by MIME type."""
    return _global_registry.discover_by_mime_type(mime_type)