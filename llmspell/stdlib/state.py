"""Global namespace shared by the standard modules a spell sees."""

from __future__ import annotations

import math
from typing import Any, Iterator, Mapping


def _number_string(number: int | float) -> str:
    """Format a number the way script values print: integral floats lose '.0'."""
    if isinstance(number, int):
        return str(number)
    if math.isnan(number):
        return "NaN"
    if math.isinf(number):
        return "+Inf" if number > 0 else "-Inf"
    if number.is_integer() and abs(number) < 2**63:
        return str(int(number))
    return repr(number)


def _as_string(value: Any) -> str:
    """Return strings as they are, numbers formatted, anything else as ''."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return _number_string(value)
    return ""


class ScriptState:
    """Holds the named globals installed for one running spell."""

    def __init__(self, initial: Mapping[str, Any] | None = None) -> None:
        self._globals: dict[str, Any] = {}
        for name, value in (initial or {}).items():
            self.set_global(name, value)

    def set_global(self, name: str, value: Any) -> None:
        """Bind ``name`` to ``value``; binding None removes the name."""
        if value is None:
            self._globals.pop(name, None)
        else:
            self._globals[name] = value

    def get_global(self, name: str) -> Any:
        """Return the value bound to ``name``, or None if it is unbound."""
        return self._globals.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._globals

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._globals))