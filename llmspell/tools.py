"""Tool abstraction and the JSON records that describe tools and their results."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping

ToolFunc = Callable[[Mapping[str, Any]], Any]


def _compact(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"))


class Tool(ABC):
    """A named operation with a JSON schema for its parameters."""

    name: str
    description: str
    parameters: str

    @abstractmethod
    def execute(self, params: Mapping[str, Any]) -> Any:
        """Run the tool with the given parameters."""


@dataclass
class FunctionTool(Tool):
    """A tool backed by a plain callable."""

    name: str
    description: str
    parameters: str
    fn: ToolFunc

    def execute(self, params: Mapping[str, Any]) -> Any:
        return self.fn(params)


@dataclass
class Metadata:
    """Additional information about a tool."""

    name: str = ""
    description: str = ""
    version: str = ""
    author: str = ""
    tags: list[str] = field(default_factory=list)
    parameters: str | None = None

    def to_json(self) -> str:
        params = json.loads(self.parameters) if self.parameters else None
        return _compact(
            {
                "name": self.name,
                "description": self.description,
                "version": self.version,
                "author": self.author,
                "tags": self.tags,
                "parameters": params,
            }
        )

    @classmethod
    def from_json(cls, text: str) -> Metadata:
        data = json.loads(text)
        params = data.get("parameters")
        return cls(
            name=data.get("name", ""),
            description=data.get("description", ""),
            version=data.get("version", ""),
            author=data.get("author", ""),
            tags=list(data.get("tags") or []),
            parameters=None if params is None else _compact(params),
        )


@dataclass
class Result:
    """Outcome of a tool execution."""

    success: bool
    data: Any = None
    error: str = ""

    def to_json(self) -> str:
        record: dict[str, Any] = {"success": self.success}
        if self.data is not None:
            record["data"] = self.data
        if self.error:
            record["error"] = self.error
        return _compact(record)

    @classmethod
    def from_json(cls, text: str) -> Result:
        data = json.loads(text)
        return cls(
            success=bool(data.get("success", False)),
            data=data.get("data"),
            error=data.get("error", ""),
        )