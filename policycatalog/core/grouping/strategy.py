from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from policycatalog.core.policy.contracts import PolicyComponent
from policycatalog.core.registry.policy_registry import PolicyCatalog

from .groups import PolicyGroup, ResolvedPolicyGroup


class PolicyGroupingStrategy(ABC):
    """
    Maps components to display groups without touching the registry.

    Strategies hold only group definitions. Every call queries the registry
    it is given, so results always reflect the currently published
    component set.
    """

    @abstractmethod
    def get_groups(self) -> List[PolicyGroup]:
        """All defined groups in declaration order."""

    @abstractmethod
    def get_group_for_policy(self, policy: PolicyComponent[Any]) -> Optional[PolicyGroup]:
        """The single group a policy belongs to, or None."""

    @abstractmethod
    def get_policies_in_group(
        self, group_id: str, registry: PolicyCatalog
    ) -> List[PolicyComponent[Any]]:
        """Components assigned to group_id; empty for unknown ids."""

    def resolve_all_groups(
        self, registry: PolicyCatalog, include_empty: bool = False
    ) -> List[ResolvedPolicyGroup]:
        """
        Resolve every group against one registry snapshot.

        Groups with no members are dropped unless include_empty is set. The
        result is sorted by sort_order; sorted() is stable, so equal sort
        orders keep declaration order.
        """

        snapshot = registry.snapshot()
        resolved = [
            ResolvedPolicyGroup(group=g, policies=tuple(self.get_policies_in_group(g.id, snapshot)))
            for g in self.get_groups()
        ]
        if not include_empty:
            resolved = [r for r in resolved if not r.is_empty]
        return sorted(resolved, key=lambda r: r.group.sort_order)

    def get_group_lookup(self, registry: PolicyCatalog) -> Dict[str, PolicyGroup]:
        """policy_name -> group for every currently assigned component."""

        lookup: Dict[str, PolicyGroup] = {}
        for component in registry.snapshot().get_all_components():
            group = self.get_group_for_policy(component)
            if group is not None:
                lookup[component.policy_name] = group
        return lookup
