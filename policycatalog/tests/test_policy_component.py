from __future__ import annotations

import dataclasses

import pytest

from policycatalog.core.policy.capabilities import PolicyCapability as Cap
from policycatalog.core.policy.category import PolicyCategory
from policycatalog.core.policy.contracts import (
    Policy,
    PolicyComponent,
    PolicyKey,
    PolicyParameters,
    make_component,
)
from policycatalog.core.policy.options import BooleanUiConverter, Choice, NumberInput, TextList, Toggle
from policycatalog.core.policy.state import BooleanPolicyState, ConfigurablePolicyState, PolicyState
from policycatalog.tests.fakes import FakeHandler, component


def test_make_component_derives_key_from_default_value():
    c = component("wifi-hotspot", [Cap.MODIFIES_WIFI])

    assert c.key.policy_name == "wifi-hotspot"
    assert c.key.state_type is BooleanPolicyState
    assert c.capabilities == frozenset({Cap.MODIFIES_WIFI})


def test_component_is_immutable_and_compared_by_identity():
    a = component("a", [Cap.MODIFIES_RADIO])
    b = component("a", [Cap.MODIFIES_RADIO])

    with pytest.raises(dataclasses.FrozenInstanceError):
        a.title = "x"
    assert a != b
    assert a == a
    assert len({a, b}) == 2


def test_component_rejects_mismatched_key():
    state = BooleanPolicyState(is_enabled=False)
    with pytest.raises(ValueError):
        PolicyComponent(
            policy_name="a",
            title="A",
            description="",
            category=PolicyCategory.TOGGLE,
            default_value=state,
            key=PolicyKey("b", BooleanPolicyState),
            handler=FakeHandler(state),
        )


def test_component_rejects_default_of_wrong_type():
    state = BooleanPolicyState(is_enabled=False)
    with pytest.raises(TypeError):
        PolicyComponent(
            policy_name="a",
            title="A",
            description="",
            category=PolicyCategory.TOGGLE,
            default_value=state,
            key=PolicyKey("a", ConfigurablePolicyState),
            handler=FakeHandler(state),
        )


def test_component_rejects_non_capability_members():
    with pytest.raises(TypeError):
        component("a", ["MODIFIES_RADIO"])


def test_empty_policy_name_is_rejected():
    with pytest.raises(ValueError):
        PolicyKey("  ", BooleanPolicyState)
    with pytest.raises(TypeError):
        PolicyKey("a", dict)


def test_policy_key_requires_state_type():
    with pytest.raises(TypeError):
        PolicyKey("a")


def test_capability_predicates():
    c = component("a", [Cap.MODIFIES_RADIO, Cap.STIG])

    assert c.has_capability(Cap.STIG)
    assert c.has_any_capability([Cap.MODIFIES_WIFI, Cap.STIG])
    assert not c.has_any_capability([])
    assert c.has_all_capabilities([Cap.MODIFIES_RADIO, Cap.STIG])
    assert not c.has_all_capabilities([Cap.MODIFIES_RADIO, Cap.MODIFIES_WIFI])
    assert c.has_all_capabilities([])


def test_to_dict_lists_capabilities_in_declaration_order():
    c = component("a", [Cap.STIG, Cap.MODIFIES_WIFI, Cap.MODIFIES_RADIO])
    d = c.to_dict()

    assert d["capabilities"] == ["MODIFIES_RADIO", "MODIFIES_WIFI", "STIG"]
    assert d["category"] == "TOGGLE"
    assert d["state_type"] == "BooleanPolicyState"


def test_policy_key_compatibility_requires_same_state_type():
    k1 = PolicyKey("a", BooleanPolicyState)
    k2 = PolicyKey("a", BooleanPolicyState)
    k3 = PolicyKey("a", PolicyState)

    assert k1 == k2
    assert k1.is_compatible_with(k2)
    assert not k1.is_compatible_with(k3)


def test_policy_pairs_key_and_state():
    c = component("a")
    p = Policy(key=c.key, state=BooleanPolicyState(is_enabled=True))
    assert p.policy_name == "a"
    assert p.to_dict()["state"]["is_enabled"] is True


def test_policy_parameters_are_frozen_copies():
    raw = {"slot": 1}
    params = PolicyParameters(raw)
    raw["slot"] = 2

    assert params.get("slot") == 1
    assert params.get("missing", "d") == "d"
    assert PolicyParameters.NONE.values == {}
    with pytest.raises(TypeError):
        PolicyParameters({1: "x"})


def test_configuration_options():
    assert Toggle(key="t", label="T", is_enabled=True).to_dict() == {
        "kind": "Toggle",
        "key": "t",
        "label": "T",
        "value": True,
    }
    assert Choice(key="c", label="C", selected="b", options=["a", "b"]).to_dict()["options"] == ["a", "b"]
    assert TextList(key="l", label="L", values={"b", "a"}).value == ["a", "b"]

    with pytest.raises(ValueError):
        Choice(key="c", label="C", selected="z", options=["a"])
    with pytest.raises(ValueError):
        NumberInput(key="n", label="N", number=5, minimum=10)


def test_boolean_ui_converter():
    conv = BooleanUiConverter()
    assert conv.from_ui_state(True, []) == BooleanPolicyState(is_enabled=True)
    assert conv.get_configuration_options(BooleanPolicyState(is_enabled=True)) == []


def test_make_component_accepts_converter():
    state = BooleanPolicyState(is_enabled=False)
    c = make_component(
        "x", title="X", default_value=state, handler=FakeHandler(state), ui_converter=BooleanUiConverter()
    )
    assert isinstance(c.ui_converter, BooleanUiConverter)
