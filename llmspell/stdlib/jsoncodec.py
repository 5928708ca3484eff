"""JSON encoding and decoding for script values."""

from __future__ import annotations

import json
import math
from typing import Any, Mapping

from llmspell.stdlib.state import ScriptState, _number_string

_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _plain_float(value: float) -> int | float:
    if not math.isfinite(value):
        raise ValueError(f"json: unsupported value: {_number_string(value)}")
    if value.is_integer() and abs(value) < 1e21:
        return int(value)
    return value


def _plain_table(table: Mapping[Any, Any]) -> list[Any] | dict[str, Any]:
    numeric = sorted(k for k in table if _is_number(k))
    if numeric and len(numeric) == len(table) and numeric == list(range(1, len(numeric) + 1)):
        return [to_plain(table[k]) for k in numeric]
    obj: dict[str, Any] = {}
    for key, value in table.items():
        if isinstance(key, str):
            obj[key] = to_plain(value)
        elif _is_number(key):
            obj[_number_string(key)] = to_plain(value)
    return obj


def to_plain(value: Any) -> Any:
    """Convert a script value to JSON-ready data.

    A mapping whose keys are exactly 1..n becomes a list; any other mapping
    becomes an object with string keys. Unsupported values become None.
    """
    if value is None or isinstance(value, (bool, str)):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return _plain_float(value)
    if isinstance(value, (list, tuple)):
        return [to_plain(item) for item in value]
    if isinstance(value, Mapping):
        return _plain_table(value)
    return None


def encode(value: Any) -> str:
    """Encode a script value as compact JSON with sorted object keys."""
    text = json.dumps(
        to_plain(value),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    for char, escaped in _ESCAPES.items():
        text = text.replace(char, escaped)
    return text


def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid character in JSON: {name}")


def decode(text: str) -> Any:
    """Decode a JSON document; raises ValueError on malformed input."""
    return json.loads(text, parse_constant=_reject_constant)


class JSONModule:
    """The ``json`` global: encode and decode."""

    encode = staticmethod(encode)
    decode = staticmethod(decode)


def register_json(state: ScriptState) -> None:
    """Install the ``json`` module in the script state."""
    state.set_global("json", JSONModule())