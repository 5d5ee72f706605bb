from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, FrozenSet, Generic, Iterable, Mapping, Optional, Protocol, Type, TypeVar

from policycatalog.core.usecase.result import ApiResult

from .capabilities import PolicyCapability
from .category import PolicyCategory
from .options import PolicyUiConverter
from .state import PolicyState

T = TypeVar("T", bound=PolicyState)


@dataclass(frozen=True)
class PolicyParameters:
    """
    Optional, immutable inputs for a handler's get_state call.

    values is a mappingproxy built from a copy of the incoming mapping.
    """

    values: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        raw = self.values
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise TypeError("parameters must be a mapping")
        copied: Dict[str, Any] = dict(raw)
        for k in copied.keys():
            if not isinstance(k, str):
                raise TypeError("parameter keys must be strings")
        object.__setattr__(self, "values", MappingProxyType(copied))

    def __hash__(self) -> int:
        return hash(tuple(sorted(self.values.keys())))

    def get(self, name: str, default: Any = None) -> Any:
        return self.values.get(name, default)


PolicyParameters.NONE = PolicyParameters()


@dataclass(frozen=True)
class PolicyKey(Generic[T]):
    """
    Typed identity of a policy.

    policy_name is the registry primary key; state_type binds the key to one
    PolicyState variant so handler lookups with the wrong key type yield
    nothing rather than a wrongly typed handler.
    state_type is required: lookups match the concrete variant exactly,
    so a key without one could never resolve a handler.
    """

    policy_name: str
    state_type: Type[PolicyState]

    def __post_init__(self) -> None:
        if not isinstance(self.policy_name, str):
            raise TypeError("policy_name must be a string")
        if not self.policy_name.strip():
            raise ValueError("policy_name must be non-empty")
        if not (isinstance(self.state_type, type) and issubclass(self.state_type, PolicyState)):
            raise TypeError("state_type must be a PolicyState subclass")

    def is_compatible_with(self, other: "PolicyKey[Any]") -> bool:
        return type(self) is type(other) and self.state_type is other.state_type


class PolicyHandler(Protocol[T]):
    """
    Adapter performing the actual get/set of a policy's live state.

    Both calls may suspend, perform I/O or raise; the registry treats them
    as opaque.
    """

    async def get_state(self, parameters: PolicyParameters = PolicyParameters.NONE) -> T:
        ...

    async def set_state(self, new_state: T) -> ApiResult[None]:
        ...


@dataclass(frozen=True, eq=False)
class PolicyComponent(Generic[T]):
    """
    Canonical registration unit for one policy.

    Invariants
    - Immutable after construction; "updating" a policy means replacing the
      registry's whole component set.
    - capabilities is frozen at construction and contains only
      PolicyCapability members.
    - key.policy_name == policy_name.
    - Compared and hashed by identity, so two separately built components
      are never merged by a set.
    """

    policy_name: str
    title: str
    description: str
    category: PolicyCategory
    default_value: T
    key: PolicyKey[T]
    handler: PolicyHandler[T] = field(repr=False)
    capabilities: FrozenSet[PolicyCapability] = frozenset()
    ui_converter: Optional[PolicyUiConverter[T]] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.policy_name, str) or not self.policy_name.strip():
            raise ValueError("policy_name must be a non-empty string")
        if not isinstance(self.category, PolicyCategory):
            raise TypeError("category must be a PolicyCategory")
        if not isinstance(self.key, PolicyKey):
            raise TypeError("key must be a PolicyKey")
        if self.key.policy_name != self.policy_name:
            raise ValueError(
                f"key.policy_name {self.key.policy_name!r} does not match {self.policy_name!r}"
            )
        if not isinstance(self.default_value, self.key.state_type):
            raise TypeError("default_value does not match key.state_type")

        caps = frozenset(self.capabilities or ())
        for c in caps:
            if not isinstance(c, PolicyCapability):
                raise TypeError("capabilities must contain only PolicyCapability members")
        object.__setattr__(self, "capabilities", caps)

    def has_capability(self, capability: PolicyCapability) -> bool:
        return capability in self.capabilities

    def has_any_capability(self, capabilities: Iterable[PolicyCapability]) -> bool:
        return any(c in self.capabilities for c in capabilities)

    def has_all_capabilities(self, capabilities: Iterable[PolicyCapability]) -> bool:
        # Vacuously true for an empty iterable.
        return all(c in self.capabilities for c in capabilities)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "policy_name": self.policy_name,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "capabilities": [c.value for c in PolicyCapability if c in self.capabilities],
            "state_type": self.key.state_type.__name__,
        }


@dataclass(frozen=True)
class Policy(Generic[T]):
    """A policy key paired with the state its handler reported."""

    key: PolicyKey[T]
    state: T

    @property
    def policy_name(self) -> str:
        return self.key.policy_name

    def to_dict(self) -> Dict[str, Any]:
        return {"policy_name": self.policy_name, "state": self.state.to_dict()}


def make_component(
    policy_name: str,
    *,
    title: str,
    description: str = "",
    category: PolicyCategory = PolicyCategory.TOGGLE,
    default_value: PolicyState,
    handler: PolicyHandler[Any],
    capabilities: Optional[Iterable[PolicyCapability]] = None,
    ui_converter: Optional[PolicyUiConverter[Any]] = None,
) -> PolicyComponent[Any]:
    """Build a component whose key is derived from the default value's type."""

    key = PolicyKey(policy_name=policy_name, state_type=type(default_value))
    return PolicyComponent(
        policy_name=policy_name,
        title=title,
        description=description,
        category=category,
        default_value=default_value,
        key=key,
        handler=handler,
        capabilities=frozenset(capabilities or ()),
        ui_converter=ui_converter,
    )
