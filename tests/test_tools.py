import json
import threading

import pytest

from llmspell.tools import FunctionTool, Metadata, Result, Tool


def _add(params):
    a, b = params.get("a"), params.get("b")
    if not isinstance(a, float):
        raise ValueError("parameter 'a' must be a number")
    if not isinstance(b, float):
        raise ValueError("parameter 'b' must be a number")
    return a + b


def _concat(params):
    s1, s2 = params.get("str1"), params.get("str2")
    if not isinstance(s1, str):
        raise ValueError("parameter 'str1' must be a string")
    if not isinstance(s2, str):
        raise ValueError("parameter 'str2' must be a string")
    return s1 + s2


def _multiply(params):
    x, y = params.get("x"), params.get("y")
    if not isinstance(x, float):
        raise ValueError("parameter 'x' must be a number")
    if not isinstance(y, float):
        raise ValueError("parameter 'y' must be a number")
    return x * y


_never_cancelled = threading.Event()


def _slow(params):
    if _never_cancelled.is_set():
        raise RuntimeError("cancelled")
    return "completed"


CASES = [
    (
        "add",
        "Adds two numbers",
        '{"type":"object","properties":{"a":{"type":"number"},"b":{"type":"number"}},"required":["a","b"]}',
        _add,
        {"a": 5.0, "b": 3.0},
        8.0,
    ),
    (
        "concat",
        "Concatenates two strings",
        '{"type":"object","properties":{"str1":{"type":"string"},"str2":{"type":"string"}},"required":["str1","str2"]}',
        _concat,
        {"str1": "hello", "str2": "world"},
        "helloworld",
    ),
    (
        "slow_operation",
        "A slow operation that respects context",
        '{"type":"object","properties":{}}',
        _slow,
        {},
        "completed",
    ),
]


@pytest.mark.parametrize("name,description,parameters,fn,params,expected", CASES)
def test_function_tool(name, description, parameters, fn, params, expected):
    tool = FunctionTool(name, description, parameters, fn)
    assert tool.name == name
    assert tool.description == description
    assert tool.parameters == parameters
    assert tool.execute(params) == expected


def test_function_tool_missing_parameter():
    tool = FunctionTool(
        "multiply",
        "Multiplies two numbers",
        '{"type":"object","properties":{"x":{"type":"number"},"y":{"type":"number"}},"required":["x","y"]}',
        _multiply,
    )
    with pytest.raises(ValueError, match="'y'"):
        tool.execute({"x": 5.0})


def test_cancellation_error_propagates():
    cancelled = threading.Event()
    cancelled.set()

    def fn(params):
        if cancelled.is_set():
            raise RuntimeError("context canceled")
        return "should not reach here in test"

    tool = FunctionTool("cancellable", "A cancellable operation", '{"type":"object"}', fn)
    with pytest.raises(RuntimeError, match="canceled"):
        tool.execute({})


def test_function_tool_is_a_tool():
    tool = FunctionTool("t", "d", "{}", lambda p: 1)
    assert isinstance(tool, Tool)
    assert tool.execute({}) == 1


def test_result_json_round_trip():
    success = Result(success=True, data="test data")
    text = success.to_json()
    assert text == '{"success":true,"data":"test data"}'
    assert Result.from_json(text) == success


def test_result_error_omits_data():
    failure = Result(success=False, error="test error")
    text = failure.to_json()
    assert text == '{"success":false,"error":"test error"}'
    restored = Result.from_json(text)
    assert restored.success is False
    assert restored.error == "test error"
    assert restored.data is None


def test_metadata_json_round_trip():
    metadata = Metadata(
        name="test-tool",
        description="A test tool",
        version="1.0.0",
        author="Test Author",
        tags=["test", "example"],
        parameters='{"type":"object"}',
    )
    text = metadata.to_json()
    assert json.loads(text)["parameters"] == {"type": "object"}
    restored = Metadata.from_json(text)
    assert restored.name == metadata.name
    assert restored.tags == ["test", "example"]
    assert restored == metadata


def test_metadata_without_parameters():
    text = Metadata(name="bare").to_json()
    assert json.loads(text)["parameters"] is None
    assert Metadata.from_json(text).parameters is None