from __future__ import annotations

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, FrozenSet, Generic, Iterable, Optional, Tuple, Type, TypeVar

from policycatalog.core.usecase.result import ApiResult, Success

from .capabilities import PolicyCapability, parse_capabilities
from .category import PolicyCategory
from .context import HandlerContext
from .contracts import PolicyComponent, PolicyKey, PolicyParameters
from .exceptions import PolicyConfigurationError
from .options import BooleanUiConverter
from .state import BooleanPolicyState, PolicyState

T = TypeVar("T", bound=PolicyState)

_DEFINITION_ATTR = "__policy_definition__"

_WORD_BOUNDARY = re.compile(r"(?<=[a-z])(?=[A-Z0-9])|(?<=[0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def policy_name_for(class_name: str) -> str:
    """Derive a policy name from a class name.

    "AutoCallPickupPolicy" -> "auto-call-pickup"
    "BandLocking5gPolicy"  -> "band-locking-5g"
    "EnableHDMPolicy"      -> "enable-hdm"
    """

    base = class_name[: -len("Policy")] if class_name.endswith("Policy") and class_name != "Policy" else class_name
    return _WORD_BOUNDARY.sub("-", base).lower()


@dataclass(frozen=True)
class PolicyDefinition:
    """Declarative metadata attached to a policy implementation class."""

    title: str
    description: str
    category: PolicyCategory
    capabilities: FrozenSet[PolicyCapability] = frozenset()
    policy_name: Optional[str] = None


class PolicyContract(ABC, Generic[T]):
    """
    Base class for policy implementations.

    An instance is the component's handler. Dependencies arrive through the
    constructor's HandlerContext; implementations must not reach for global
    state.
    """

    def __init__(self, context: HandlerContext):
        self.context = context

    @property
    @abstractmethod
    def default_value(self) -> T:
        ...

    @abstractmethod
    async def get_state(self, parameters: PolicyParameters = PolicyParameters.NONE) -> T:
        ...

    @abstractmethod
    async def set_state(self, new_state: T) -> ApiResult[None]:
        ...

    @property
    def policy_name(self) -> str:
        return resolve_policy_name(type(self))

    def ui_converter(self) -> Any:
        return None


def policy_definition(
    title: str,
    description: str,
    category: PolicyCategory = PolicyCategory.TOGGLE,
    capabilities: Iterable[Any] = (),
    policy_name: Optional[str] = None,
) -> Callable[[Type[PolicyContract[Any]]], Type[PolicyContract[Any]]]:
    """
    Class decorator declaring a policy's registration metadata.

    Capabilities may be given as PolicyCapability members or names.
    """

    definition = PolicyDefinition(
        title=title,
        description=description,
        category=category,
        capabilities=parse_capabilities(capabilities),
        policy_name=policy_name,
    )

    def decorate(cls: Type[PolicyContract[Any]]) -> Type[PolicyContract[Any]]:
        if not (isinstance(cls, type) and issubclass(cls, PolicyContract)):
            raise TypeError("@policy_definition applies to PolicyContract subclasses only")
        setattr(cls, _DEFINITION_ATTR, definition)
        return cls

    return decorate


def get_policy_definition(cls: type) -> Optional[PolicyDefinition]:
    # Look only at the class itself so subclasses do not inherit a name.
    return cls.__dict__.get(_DEFINITION_ATTR)


def resolve_policy_name(cls: type) -> str:
    definition = get_policy_definition(cls)
    if definition is not None and definition.policy_name:
        return definition.policy_name
    return policy_name_for(cls.__name__)


def build_component(policy_cls: Type[PolicyContract[Any]], context: HandlerContext) -> PolicyComponent[Any]:
    """Instantiate a decorated policy class and wrap it in a PolicyComponent.

    Raises
    - PolicyConfigurationError: the class carries no @policy_definition.
    """

    definition = get_policy_definition(policy_cls)
    if definition is None:
        raise PolicyConfigurationError(f"{policy_cls.__name__} has no @policy_definition")

    impl = policy_cls(context)
    default_value = impl.default_value
    name = resolve_policy_name(policy_cls)

    return PolicyComponent(
        policy_name=name,
        title=definition.title,
        description=definition.description,
        category=definition.category,
        default_value=default_value,
        key=PolicyKey(policy_name=name, state_type=type(default_value)),
        handler=impl,
        capabilities=definition.capabilities,
        ui_converter=impl.ui_converter(),
    )


def build_components(
    policy_classes: Iterable[Type[PolicyContract[Any]]], context: HandlerContext
) -> Tuple[PolicyComponent[Any], ...]:
    """Build components in declaration order."""
    return tuple(build_component(cls, context) for cls in policy_classes)


class PreferenceTogglePolicy(PolicyContract[BooleanPolicyState]):
    """
    Boolean policy whose enabled flag lives in the preferences store.

    The preference key defaults to the policy name.
    """

    preference_key: str = ""
    enabled_by_default: bool = False

    @property
    def storage_key(self) -> str:
        return self.preference_key or self.policy_name

    @property
    def default_value(self) -> BooleanPolicyState:
        return BooleanPolicyState(is_enabled=self.enabled_by_default)

    async def get_state(
        self, parameters: PolicyParameters = PolicyParameters.NONE
    ) -> BooleanPolicyState:
        enabled = await self.context.preferences.get(self.storage_key, self.enabled_by_default)
        return BooleanPolicyState(is_enabled=bool(enabled))

    async def set_state(self, new_state: BooleanPolicyState) -> ApiResult[None]:
        await self.context.preferences.set_value(self.storage_key, new_state.is_enabled)
        return Success()

    def ui_converter(self) -> BooleanUiConverter:
        return BooleanUiConverter()
