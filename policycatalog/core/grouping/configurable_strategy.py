from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from policycatalog.core.policy.contracts import PolicyComponent
from policycatalog.core.policy.exceptions import GroupingConfigurationError
from policycatalog.core.registry.policy_registry import PolicyCatalog

from .groups import PolicyGroup
from .strategy import PolicyGroupingStrategy


@dataclass(frozen=True)
class GroupingConfiguration:
    """
    Externally supplied grouping: ordered groups plus policy assignments.

    policy_assignments maps policy_name -> group id. Each policy has at most
    one group and group ids are unique. Assignments may reference policies
    that are not registered, and groups that are not defined; both simply
    resolve to nothing.
    """

    groups: Tuple[PolicyGroup, ...] = ()
    policy_assignments: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))

    def __post_init__(self) -> None:
        groups = tuple(self.groups)
        seen = set()
        for g in groups:
            if not isinstance(g, PolicyGroup):
                raise TypeError("groups must contain only PolicyGroup instances")
            if g.id in seen:
                raise GroupingConfigurationError(f"Duplicate group id: {g.id}")
            seen.add(g.id)

        if not isinstance(self.policy_assignments, Mapping):
            raise TypeError("policy_assignments must be a mapping")
        assignments: Dict[str, str] = dict(self.policy_assignments)
        for name, gid in assignments.items():
            if not isinstance(name, str) or not isinstance(gid, str):
                raise TypeError("policy_assignments must map strings to strings")

        object.__setattr__(self, "groups", groups)
        object.__setattr__(self, "policy_assignments", MappingProxyType(assignments))

    def __hash__(self) -> int:
        return hash((self.groups, tuple(sorted(self.policy_assignments.items()))))

    @property
    def group_ids(self) -> List[str]:
        return [g.id for g in self.groups]

    def find_group(self, group_id: str) -> Optional[PolicyGroup]:
        for g in self.groups:
            if g.id == group_id:
                return g
        return None

    def dangling_assignments(self) -> Dict[str, str]:
        """Assignments whose group id is not defined in groups."""
        known = set(self.group_ids)
        return {n: g for n, g in self.policy_assignments.items() if g not in known}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "groups": [g.to_dict() for g in self.groups],
            "policy_assignments": dict(self.policy_assignments),
        }

    @staticmethod
    def builder() -> "GroupingConfigurationBuilder":
        return GroupingConfigurationBuilder()


class GroupingConfigurationBuilder:
    """Accumulates groups and assignments for a GroupingConfiguration."""

    def __init__(self) -> None:
        self._groups: List[PolicyGroup] = []
        self._assignments: Dict[str, str] = {}

    def add_group(
        self,
        group,
        display_name: Optional[str] = None,
        description: str = "",
        sort_order: Optional[int] = None,
        icon: Optional[str] = None,
    ) -> "GroupingConfigurationBuilder":
        """
        Add a PolicyGroup, or build one from an id and display name.

        sort_order defaults to the number of groups already added.
        """

        if isinstance(group, PolicyGroup):
            self._groups.append(group)
            return self

        if display_name is None:
            raise TypeError("display_name is required when adding a group by id")
        self._groups.append(
            PolicyGroup(
                id=group,
                display_name=display_name,
                description=description,
                icon=icon,
                sort_order=len(self._groups) if sort_order is None else sort_order,
            )
        )
        return self

    def assign_policy(self, policy_name: str, group_id: str) -> "GroupingConfigurationBuilder":
        self._assignments[policy_name] = group_id
        return self

    def assign_policies(self, group_id: str, *policy_names: str) -> "GroupingConfigurationBuilder":
        for name in policy_names:
            self._assignments[name] = group_id
        return self

    def build(self) -> GroupingConfiguration:
        return GroupingConfiguration(groups=tuple(self._groups), policy_assignments=dict(self._assignments))


class ConfigurableGroupingStrategy(PolicyGroupingStrategy):
    """
    Grouping driven entirely by a GroupingConfiguration.

    Useful for remote configuration or deployment-specific layouts that
    should change without code changes.
    """

    def __init__(self, config: GroupingConfiguration):
        if not isinstance(config, GroupingConfiguration):
            raise TypeError("config must be a GroupingConfiguration")
        self._config = config

    @property
    def config(self) -> GroupingConfiguration:
        return self._config

    def get_groups(self) -> List[PolicyGroup]:
        return list(self._config.groups)

    def get_group_for_policy(self, policy: PolicyComponent[Any]) -> Optional[PolicyGroup]:
        group_id = self._config.policy_assignments.get(policy.policy_name)
        if group_id is None:
            return None
        return self._config.find_group(group_id)

    def get_policies_in_group(
        self, group_id: str, registry: PolicyCatalog
    ) -> List[PolicyComponent[Any]]:
        names = {n for n, g in self._config.policy_assignments.items() if g == group_id}
        if not names:
            return []
        return [c for c in registry.get_all_components() if c.policy_name in names]
