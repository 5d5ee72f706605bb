from __future__ import annotations

import dataclasses

import pytest

from policycatalog.core.policy.state import BooleanPolicyState, ConfigurablePolicyState
from policycatalog.core.usecase.result import ApiError


def test_boolean_state_is_immutable():
    s = BooleanPolicyState(is_enabled=True)
    with pytest.raises(dataclasses.FrozenInstanceError):
        s.is_enabled = False


def test_with_enabled_returns_new_instance_of_same_type():
    s = BooleanPolicyState(is_enabled=False)
    t = s.with_enabled(True)

    assert type(t) is BooleanPolicyState
    assert t.is_enabled is True
    assert s.is_enabled is False


def test_with_error_keeps_other_fields_and_ignores_exception_in_equality():
    s = BooleanPolicyState(is_enabled=True)
    err = ApiError.unexpected("boom")

    a = s.with_error(err, RuntimeError("x"))
    b = s.with_error(err, ValueError("y"))

    assert a.has_error and a.is_enabled
    assert a == b
    assert not s.has_error


def test_unsupported_is_plain_data():
    s = BooleanPolicyState.unsupported()
    assert s.is_supported is False
    assert s.is_enabled is False
    assert s.error is None


def test_state_validation_rejects_non_bool_flags():
    with pytest.raises(TypeError):
        BooleanPolicyState(is_enabled=1)
    with pytest.raises(TypeError):
        BooleanPolicyState(is_enabled=True, error="bad")


def test_configurable_state_copies_and_freezes_options():
    raw = {"timeout_seconds": 30}
    s = ConfigurablePolicyState(is_enabled=True, options=raw)
    raw["timeout_seconds"] = 99

    assert s.options["timeout_seconds"] == 30
    with pytest.raises(TypeError):
        s.options["timeout_seconds"] = 10


def test_configurable_state_with_options_merges():
    s = ConfigurablePolicyState(is_enabled=True, options={"a": 1, "b": 2})
    t = s.with_options({"b": 3})

    assert dict(t.options) == {"a": 1, "b": 3}
    assert dict(s.options) == {"a": 1, "b": 2}
    assert t.with_enabled(False).options == t.options


def test_configurable_state_equality_and_hash():
    a = ConfigurablePolicyState(is_enabled=True, options={"a": 1})
    b = ConfigurablePolicyState(is_enabled=True, options={"a": 1})
    c = ConfigurablePolicyState(is_enabled=True, options={"a": 2})

    assert a == b
    assert hash(a) == hash(b)
    assert a != c
    assert len({a, b}) == 1


def test_to_dict():
    s = ConfigurablePolicyState(is_enabled=False, options={"x": "y"}).with_error(ApiError.permission())
    assert s.to_dict() == {
        "is_enabled": False,
        "is_supported": True,
        "error": {"kind": "PERMISSION", "message": "Permission denied"},
        "options": {"x": "y"},
    }
