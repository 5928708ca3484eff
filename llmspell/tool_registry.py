"""Thread-safe registry of tools, plus a process-wide default registry."""

from __future__ import annotations

import threading

from llmspell.tools import Tool


class ToolRegistry:
    """Registers, looks up and removes tools by name."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool | None) -> None:
        """Add a tool; raises ValueError for a missing, unnamed or duplicate tool."""
        if tool is None:
            raise ValueError("cannot register nil tool")
        name = tool.name
        if not name:
            raise ValueError("tool must have a non-empty name")
        with self._lock:
            if name in self._tools:
                raise ValueError(f'tool with name "{name}" already registered')
            self._tools[name] = tool

    def get(self, name: str) -> Tool:
        """Return the tool registered under ``name``."""
        with self._lock:
            try:
                return self._tools[name]
            except KeyError:
                raise KeyError(f'tool "{name}" not found') from None

    def remove(self, name: str) -> None:
        """Unregister a tool; raises KeyError if it is not registered."""
        with self._lock:
            if name not in self._tools:
                raise KeyError(f'tool "{name}" not found')
            del self._tools[name]

    def __contains__(self, name: object) -> bool:
        with self._lock:
            return name in self._tools

    def __len__(self) -> int:
        with self._lock:
            return len(self._tools)

    def list(self) -> list[Tool]:
        """Return all registered tools."""
        with self._lock:
            return list(self._tools.values())


default_registry = ToolRegistry()


def register(tool: Tool) -> None:
    """Add a tool to the default registry."""
    default_registry.register(tool)


def get(name: str) -> Tool:
    """Retrieve a tool from the default registry."""
    return default_registry.get(name)


def list_tools() -> list[Tool]:
    """Return all tools in the default registry."""
    return default_registry.list()


def remove(name: str) -> None:
    """Remove a tool from the default registry."""
    default_registry.remove(name)