from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from policycatalog.core.policy.contracts import PolicyKey, PolicyParameters
from policycatalog.core.policy.state import PolicyState
from policycatalog.core.registry.policy_registry import PolicyRegistry

from .dispatchers import CoroutineDispatcher
from .executor import SuspendingUseCase
from .result import ApiError, ApiResult, Error, Success


def _handler_not_found(key: PolicyKey[Any]) -> Error:
    return Error(api_error=ApiError.not_found(f"Policy handler not found: {key.policy_name}"))


class GetPolicyStateUseCase(SuspendingUseCase[PolicyKey[Any], PolicyState]):
    """Read a policy's live state through its handler."""

    def __init__(
        self,
        registry: PolicyRegistry,
        dispatcher: Optional[CoroutineDispatcher] = None,
        parameters: PolicyParameters = PolicyParameters.NONE,
    ):
        super().__init__(dispatcher)
        self._registry = registry
        self._parameters = parameters

    async def execute(self, params: Optional[PolicyKey[Any]]) -> ApiResult[PolicyState]:
        if params is None:
            raise ValueError("a PolicyKey is required")
        handler = self._registry.get_handler(params)
        if handler is None:
            return _handler_not_found(params)
        return Success(await handler.get_state(self._parameters))


class SetPolicyStateUseCase(SuspendingUseCase["SetPolicyStateUseCase.Params", None]):
    """Write a new state through the policy's handler."""

    @dataclass(frozen=True)
    class Params:
        key: PolicyKey[Any]
        state: PolicyState

    def __init__(self, registry: PolicyRegistry, dispatcher: Optional[CoroutineDispatcher] = None):
        super().__init__(dispatcher)
        self._registry = registry

    async def execute(self, params: Optional["SetPolicyStateUseCase.Params"]) -> ApiResult[None]:
        if params is None:
            raise ValueError("Params are required")
        handler = self._registry.get_handler(params.key)
        if handler is None:
            return _handler_not_found(params.key)
        if not isinstance(params.state, params.key.state_type):
            raise TypeError(
                f"state {type(params.state).__name__} does not match {params.key.state_type.__name__}"
            )
        return await handler.set_state(params.state)


class SetPolicyEnabledUseCase(SuspendingUseCase["SetPolicyEnabledUseCase.Params", PolicyState]):
    """
    Toggle a policy: read its current state, apply with_enabled, write it back.

    An unsupported policy short-circuits to NotSupported without a write.
    Success carries the state that was written.
    """

    @dataclass(frozen=True)
    class Params:
        key: PolicyKey[Any]
        enabled: bool

    def __init__(self, registry: PolicyRegistry, dispatcher: Optional[CoroutineDispatcher] = None):
        super().__init__(dispatcher)
        self._registry = registry

    async def execute(self, params: Optional["SetPolicyEnabledUseCase.Params"]) -> ApiResult[PolicyState]:
        if params is None:
            raise ValueError("Params are required")
        handler = self._registry.get_handler(params.key)
        if handler is None:
            return _handler_not_found(params.key)

        current = await handler.get_state()
        if not current.is_supported:
            raise NotImplementedError(f"{params.key.policy_name} is not supported on this device")

        new_state = current.with_enabled(params.enabled).with_error(None)
        result = await handler.set_state(new_state)
        if not result.is_success:
            return result
        return Success(new_state)
