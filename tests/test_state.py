from llmspell.stdlib.state import ScriptState


def test_missing_global_is_none():
    state = ScriptState()
    assert state.get_global("json") is None
    assert "json" not in state


def test_set_then_get_returns_same_object():
    state = ScriptState()
    module = {"encode": len}
    state.set_global("json", module)
    assert state.get_global("json") is module
    assert "json" in state


def test_overwrite_replaces_value():
    state = ScriptState()
    state.set_global("x", "first")
    state.set_global("x", "second")
    assert state.get_global("x") == "second"


def test_setting_none_removes_global():
    state = ScriptState()
    state.set_global("x", "value")
    state.set_global("x", None)
    assert "x" not in state
    assert list(state) == []


def test_states_are_independent():
    first = ScriptState()
    second = ScriptState()
    first.set_global("shared", "one")
    assert second.get_global("shared") is None


def test_initial_globals_are_installed():
    state = ScriptState({"a": "alpha", "b": None})
    assert state.get_global("a") == "alpha"
    assert sorted(state) == ["a"]