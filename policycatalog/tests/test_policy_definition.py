from __future__ import annotations

import asyncio

import pytest

from policycatalog.core.catalog import BUILTIN_CATALOG, components_from, load_catalog, resolve_reference
from policycatalog.core.catalog.builtin import BUILTIN_POLICIES, ScreenLockTimeoutPolicy
from policycatalog.core.policy.capabilities import PolicyCapability as Cap
from policycatalog.core.policy.category import PolicyCategory
from policycatalog.core.policy.context import HandlerContext
from policycatalog.core.policy.definition import (
    PreferenceTogglePolicy,
    build_component,
    build_components,
    get_policy_definition,
    policy_definition,
    policy_name_for,
)
from policycatalog.core.policy.exceptions import PolicyConfigurationError
from policycatalog.core.policy.options import BooleanUiConverter, NumberInput
from policycatalog.core.policy.state import BooleanPolicyState, ConfigurablePolicyState
from policycatalog.core.registry.policy_registry import PolicyRegistry
from policycatalog.core.usecase.result import Success
from policycatalog.tests.fakes import component


@policy_definition(
    title="Auto Call Pickup",
    description="Answer calls automatically",
    capabilities=["MODIFIES_CALLING", Cap.REQUIRES_SIM],
)
class AutoCallPickupPolicy(PreferenceTogglePolicy):
    pass


@policy_definition(
    title="Renamed",
    description="Explicit name and storage key",
    policy_name="custom-name",
)
class RenamedPolicy(PreferenceTogglePolicy):
    preference_key = "legacy.key"
    enabled_by_default = True


class UndecoratedPolicy(PreferenceTogglePolicy):
    pass


def catalog_factory(context):
    return [AutoCallPickupPolicy, component("prebuilt")]


CATALOG_LIST = [RenamedPolicy]


@pytest.mark.parametrize(
    "class_name, expected",
    [
        ("AutoCallPickupPolicy", "auto-call-pickup"),
        ("BandLocking5gPolicy", "band-locking-5g"),
        ("EnableHDMPolicy", "enable-hdm"),
        ("WifiHotspot", "wifi-hotspot"),
        ("Policy", "policy"),
    ],
)
def test_policy_name_for(class_name, expected):
    assert policy_name_for(class_name) == expected


def test_build_component_uses_declared_metadata():
    ctx = HandlerContext.for_testing()
    c = build_component(AutoCallPickupPolicy, ctx)

    assert c.policy_name == "auto-call-pickup"
    assert c.title == "Auto Call Pickup"
    assert c.category is PolicyCategory.TOGGLE
    assert c.capabilities == frozenset({Cap.MODIFIES_CALLING, Cap.REQUIRES_SIM})
    assert c.key.state_type is BooleanPolicyState
    assert c.default_value == BooleanPolicyState(is_enabled=False)
    assert isinstance(c.handler, AutoCallPickupPolicy)
    assert c.handler.context is ctx
    assert isinstance(c.ui_converter, BooleanUiConverter)


def test_explicit_policy_name_wins():
    c = build_component(RenamedPolicy, HandlerContext.for_testing())
    assert c.policy_name == "custom-name"
    assert c.default_value.is_enabled is True


def test_undecorated_class_is_rejected():
    assert get_policy_definition(UndecoratedPolicy) is None
    with pytest.raises(PolicyConfigurationError):
        build_component(UndecoratedPolicy, HandlerContext.for_testing())


def test_decorator_requires_policy_contract_subclass():
    with pytest.raises(TypeError):
        policy_definition(title="x", description="y")(object)


def test_build_components_keeps_declaration_order():
    comps = build_components([RenamedPolicy, AutoCallPickupPolicy], HandlerContext.for_testing())
    assert [c.policy_name for c in comps] == ["custom-name", "auto-call-pickup"]


def test_preference_toggle_persists_through_context():
    ctx = HandlerContext.for_testing({"legacy.key": False})
    c = build_component(RenamedPolicy, ctx)

    async def scenario():
        before = await c.handler.get_state()
        result = await c.handler.set_state(BooleanPolicyState(is_enabled=True))
        after = await c.handler.get_state()
        stored = await ctx.preferences.get("legacy.key", False)
        return before, result, after, stored

    before, result, after, stored = asyncio.run(scenario())
    assert before.is_enabled is False
    assert isinstance(result, Success)
    assert after.is_enabled is True
    assert stored is True


def test_contexts_are_isolated():
    first = build_component(AutoCallPickupPolicy, HandlerContext.for_testing())
    second = build_component(AutoCallPickupPolicy, HandlerContext.for_testing())

    asyncio.run(first.handler.set_state(BooleanPolicyState(is_enabled=True)))

    assert asyncio.run(second.handler.get_state()).is_enabled is False


def test_context_metadata_is_frozen_and_derived():
    ctx = HandlerContext.for_testing().with_metadata({"model": "SM-G991U"})
    assert ctx.metadata["model"] == "SM-G991U"
    with pytest.raises(TypeError):
        ctx.metadata["model"] = "x"
    with pytest.raises(TypeError):
        HandlerContext(metadata={1: "x"})


def test_builtin_catalog_registers_and_groups():
    ctx = HandlerContext.for_testing()
    comps = load_catalog(BUILTIN_CATALOG, ctx)
    reg = PolicyRegistry(comps)

    assert len(comps) == len(BUILTIN_POLICIES)
    assert [c.policy_name for c in reg.get_by_category(PolicyCategory.CONFIGURABLE_TOGGLE)] == [
        "screen-lock-timeout"
    ]
    assert {c.policy_name for c in reg.get_by_capability(Cap.STIG)} == {
        "usb-debugging",
        "screen-lock-timeout",
    }


def test_screen_lock_timeout_round_trips_options():
    ctx = HandlerContext.for_testing()
    c = build_component(ScreenLockTimeoutPolicy, ctx)

    async def scenario():
        await c.handler.set_state(ConfigurablePolicyState(is_enabled=True, options={"timeout_seconds": 120}))
        return await c.handler.get_state()

    state = asyncio.run(scenario())
    assert state == ConfigurablePolicyState(is_enabled=True, options={"timeout_seconds": 120})

    options = c.ui_converter.get_configuration_options(state)
    assert isinstance(options[0], NumberInput) and options[0].number == 120
    assert c.ui_converter.from_ui_state(False, options) == state.with_enabled(False)

    with pytest.raises(ValueError):
        asyncio.run(c.handler.set_state(ConfigurablePolicyState(is_enabled=True, options={"timeout_seconds": 1})))


def test_catalog_factory_receives_context():
    comps = load_catalog(f"{__name__}:catalog_factory", HandlerContext.for_testing())
    assert [c.policy_name for c in comps] == ["auto-call-pickup", "prebuilt"]


def test_catalog_list_reference():
    comps = load_catalog(f"{__name__}:CATALOG_LIST", HandlerContext.for_testing())
    assert [c.policy_name for c in comps] == ["custom-name"]


@pytest.mark.parametrize(
    "ref",
    ["no-colon", "policycatalog.does_not_exist:X", f"{__name__}:missing_attr", ":X", "mod:"],
)
def test_bad_catalog_references(ref):
    with pytest.raises(PolicyConfigurationError):
        resolve_reference(ref)


def test_catalog_entries_must_be_components_or_policies():
    with pytest.raises(PolicyConfigurationError):
        components_from([object()], HandlerContext.for_testing())
    with pytest.raises(PolicyConfigurationError):
        components_from(42, HandlerContext.for_testing())
