from __future__ import annotations

from typing import Any, Iterable, List, Optional

from policycatalog.core.policy.capabilities import PolicyCapability
from policycatalog.core.policy.category import PolicyCategory
from policycatalog.core.policy.contracts import PolicyComponent, PolicyParameters, make_component
from policycatalog.core.policy.state import BooleanPolicyState, ConfigurablePolicyState, PolicyState
from policycatalog.core.usecase.result import ApiResult, Success


class FakeHandler:
    """In-memory handler recording every call; optionally raises."""

    def __init__(
        self,
        state: PolicyState,
        *,
        get_error: Optional[BaseException] = None,
        set_error: Optional[BaseException] = None,
        set_result: Optional[ApiResult[None]] = None,
    ):
        self.state = state
        self.get_error = get_error
        self.set_error = set_error
        self.set_result = set_result
        self.get_calls: List[PolicyParameters] = []
        self.set_calls: List[PolicyState] = []

    async def get_state(self, parameters: PolicyParameters = PolicyParameters.NONE) -> PolicyState:
        self.get_calls.append(parameters)
        if self.get_error is not None:
            raise self.get_error
        return self.state

    async def set_state(self, new_state: PolicyState) -> ApiResult[None]:
        self.set_calls.append(new_state)
        if self.set_error is not None:
            raise self.set_error
        if self.set_result is not None:
            return self.set_result
        self.state = new_state
        return Success()


def component(
    name: str,
    capabilities: Iterable[PolicyCapability] = (),
    *,
    category: PolicyCategory = PolicyCategory.TOGGLE,
    state: Optional[PolicyState] = None,
    handler: Any = None,
) -> PolicyComponent[Any]:
    if state is None:
        if category is PolicyCategory.CONFIGURABLE_TOGGLE:
            state = ConfigurablePolicyState(is_enabled=False)
        else:
            state = BooleanPolicyState(is_enabled=False)
    return make_component(
        name,
        title=name.replace("-", " ").title(),
        description=f"{name} policy",
        category=category,
        default_value=state,
        handler=handler if handler is not None else FakeHandler(state),
        capabilities=capabilities,
    )
