from __future__ import annotations

import asyncio

from policycatalog.core.policy.contracts import PolicyKey
from policycatalog.core.policy.state import BooleanPolicyState, ConfigurablePolicyState
from policycatalog.core.registry.policy_registry import PolicyRegistry
from policycatalog.core.usecase.dispatchers import InlineDispatcher
from policycatalog.core.usecase.policy_usecases import (
    GetPolicyStateUseCase,
    SetPolicyEnabledUseCase,
    SetPolicyStateUseCase,
)
from policycatalog.core.usecase.result import ApiError, ApiErrorKind, Error, NotSupported, Success
from policycatalog.tests.fakes import FakeHandler, component

INLINE = InlineDispatcher()


def test_get_state_success():
    state = BooleanPolicyState(is_enabled=True)
    a = component("a", state=state)
    result = asyncio.run(GetPolicyStateUseCase(PolicyRegistry([a]), INLINE)(a.key))

    assert isinstance(result, Success)
    assert result.value == state


def test_get_state_for_unknown_key_is_not_found():
    result = asyncio.run(
        GetPolicyStateUseCase(PolicyRegistry(), INLINE)(PolicyKey("zzz", BooleanPolicyState))
    )
    assert isinstance(result, Error)
    assert result.api_error.kind is ApiErrorKind.NOT_FOUND


def test_get_state_handler_failure_is_mapped():
    handler = FakeHandler(BooleanPolicyState(is_enabled=False), get_error=PermissionError("nope"))
    a = component("a", handler=handler)
    result = asyncio.run(GetPolicyStateUseCase(PolicyRegistry([a]), INLINE)(a.key))

    assert isinstance(result, Error)
    assert result.api_error.kind is ApiErrorKind.PERMISSION
    assert isinstance(result.exception, PermissionError)


def test_set_state_writes_through_handler():
    handler = FakeHandler(ConfigurablePolicyState(is_enabled=False))
    a = component("a", handler=handler, state=ConfigurablePolicyState(is_enabled=False))
    new_state = ConfigurablePolicyState(is_enabled=True, options={"level": 3})

    result = asyncio.run(
        SetPolicyStateUseCase(PolicyRegistry([a]), INLINE)(SetPolicyStateUseCase.Params(a.key, new_state))
    )

    assert isinstance(result, Success)
    assert handler.set_calls == [new_state]


def test_set_state_with_wrong_state_type_is_an_error_result():
    a = component("a")
    result = asyncio.run(
        SetPolicyStateUseCase(PolicyRegistry([a]), INLINE)(
            SetPolicyStateUseCase.Params(a.key, ConfigurablePolicyState(is_enabled=True))
        )
    )
    assert isinstance(result, Error)
    assert result.api_error.kind is ApiErrorKind.UNEXPECTED


def test_set_state_propagates_handler_result():
    failure = Error(api_error=ApiError.permission("locked by admin"))
    handler = FakeHandler(BooleanPolicyState(is_enabled=False), set_result=failure)
    a = component("a", handler=handler)

    result = asyncio.run(
        SetPolicyStateUseCase(PolicyRegistry([a]), INLINE)(
            SetPolicyStateUseCase.Params(a.key, BooleanPolicyState(is_enabled=True))
        )
    )
    assert result is failure


def test_set_enabled_reads_modifies_and_writes():
    handler = FakeHandler(ConfigurablePolicyState(is_enabled=False, options={"level": 2}))
    a = component("a", handler=handler, state=ConfigurablePolicyState(is_enabled=False))

    result = asyncio.run(
        SetPolicyEnabledUseCase(PolicyRegistry([a]), INLINE)(SetPolicyEnabledUseCase.Params(a.key, True))
    )

    assert isinstance(result, Success)
    assert result.value == ConfigurablePolicyState(is_enabled=True, options={"level": 2})
    assert handler.set_calls == [result.value]


def test_set_enabled_clears_previous_error():
    stale = BooleanPolicyState(is_enabled=False).with_error(ApiError.unexpected())
    handler = FakeHandler(stale)
    a = component("a", handler=handler)

    result = asyncio.run(
        SetPolicyEnabledUseCase(PolicyRegistry([a]), INLINE)(SetPolicyEnabledUseCase.Params(a.key, True))
    )
    assert result.value.error is None


def test_set_enabled_on_unsupported_policy_is_not_supported_without_write():
    handler = FakeHandler(BooleanPolicyState.unsupported())
    a = component("a", handler=handler)

    result = asyncio.run(
        SetPolicyEnabledUseCase(PolicyRegistry([a]), INLINE)(SetPolicyEnabledUseCase.Params(a.key, True))
    )

    assert isinstance(result, NotSupported)
    assert handler.set_calls == []


def test_set_enabled_handler_failure_returns_error():
    handler = FakeHandler(BooleanPolicyState(is_enabled=False), set_error=OSError("io"))
    a = component("a", handler=handler)

    result = asyncio.run(
        SetPolicyEnabledUseCase(PolicyRegistry([a]), INLINE)(SetPolicyEnabledUseCase.Params(a.key, True))
    )

    assert isinstance(result, Error)
    assert isinstance(result.exception, OSError)


def test_missing_params_is_an_error_result():
    result = asyncio.run(GetPolicyStateUseCase(PolicyRegistry(), INLINE)())
    assert isinstance(result, Error)
    assert isinstance(result.exception, ValueError)
