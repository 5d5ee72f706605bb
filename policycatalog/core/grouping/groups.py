from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from policycatalog.core.policy.contracts import PolicyComponent


@dataclass(frozen=True)
class PolicyGroup:
    """
    UI-facing bucket of policies.

    Groups are defined by grouping strategies, never by the policies
    themselves. Lower sort_order displays first; equal values keep their
    declaration order.
    """

    id: str
    display_name: str
    description: str = ""
    icon: Optional[str] = None
    sort_order: int = 0

    def __post_init__(self) -> None:
        if not isinstance(self.id, str) or not self.id.strip():
            raise ValueError("group id must be a non-empty string")
        if not isinstance(self.sort_order, int) or isinstance(self.sort_order, bool):
            raise TypeError("sort_order must be an int")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "display_name": self.display_name,
            "description": self.description,
            "icon": self.icon,
            "sort_order": self.sort_order,
        }


@dataclass(frozen=True)
class ResolvedPolicyGroup:
    """A group paired with the components currently assigned to it."""

    group: PolicyGroup
    policies: Tuple[PolicyComponent[Any], ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "policies", tuple(self.policies))

    @property
    def is_empty(self) -> bool:
        return not self.policies

    @property
    def size(self) -> int:
        return len(self.policies)

    @property
    def policy_names(self) -> Tuple[str, ...]:
        return tuple(p.policy_name for p in self.policies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group": self.group.to_dict(),
            "policies": [p.policy_name for p in self.policies],
        }
