from __future__ import annotations

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, TypeVar

from policycatalog.core.usecase.result import ApiError

S = TypeVar("S", bound="PolicyState")


@dataclass(frozen=True)
class PolicyState:
    """
    Immutable snapshot of a policy's live state.

    Invariants
    - Transitions never mutate in place; they return a new instance of the
      same concrete subclass.
    - is_supported=False is ordinary data, not an exceptional path.
    """

    is_enabled: bool
    is_supported: bool = True
    error: Optional[ApiError] = None
    exception: Optional[BaseException] = field(default=None, compare=False)

    def __post_init__(self) -> None:
        if not isinstance(self.is_enabled, bool):
            raise TypeError("is_enabled must be a bool")
        if not isinstance(self.is_supported, bool):
            raise TypeError("is_supported must be a bool")
        if self.error is not None and not isinstance(self.error, ApiError):
            raise TypeError("error must be an ApiError")

    @property
    def has_error(self) -> bool:
        return self.error is not None

    def with_enabled(self: S, enabled: bool) -> S:
        return replace(self, is_enabled=enabled)

    def with_error(
        self: S, error: Optional[ApiError], exception: Optional[BaseException] = None
    ) -> S:
        return replace(self, error=error, exception=exception)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_enabled": self.is_enabled,
            "is_supported": self.is_supported,
            "error": self.error.to_dict() if self.error else None,
        }


@dataclass(frozen=True)
class BooleanPolicyState(PolicyState):
    """State of a plain on/off policy."""

    @classmethod
    def unsupported(cls) -> "BooleanPolicyState":
        return cls(is_enabled=False, is_supported=False)


def _freeze_options(value: Optional[Mapping[str, Any]]) -> MappingProxyType:
    if value is None:
        return MappingProxyType({})

    if not isinstance(value, Mapping):
        raise TypeError("options must be a mapping")

    copied: Dict[str, Any] = dict(value)
    for k in copied.keys():
        if not isinstance(k, str):
            raise TypeError("option keys must be strings")

    return MappingProxyType(copied)


@dataclass(frozen=True)
class ConfigurablePolicyState(PolicyState):
    """
    State of a toggle that also carries configuration values.

    options is an immutable mappingproxy; construction copies the incoming
    mapping so callers cannot mutate it afterwards.
    """

    options: MappingProxyType = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        super().__post_init__()
        object.__setattr__(self, "options", _freeze_options(self.options))

    # mappingproxy is unhashable; options still take part in equality.
    def __hash__(self) -> int:
        return hash((type(self), self.is_enabled, self.is_supported, self.error))

    def with_options(self, patch: Mapping[str, Any]) -> "ConfigurablePolicyState":
        """Return a new state with options merged (base then patch)."""
        if not isinstance(patch, Mapping):
            raise TypeError("patch must be a mapping")

        merged: Dict[str, Any] = dict(self.options)
        merged.update(dict(patch))
        return replace(self, options=merged)

    def to_dict(self) -> Dict[str, Any]:
        payload = super().to_dict()
        payload["options"] = dict(self.options)
        return payload
