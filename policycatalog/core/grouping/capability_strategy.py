from __future__ import annotations

from typing import Any, Iterable, List, Optional, Sequence, Tuple

from policycatalog.core.policy.capabilities import CapabilityKind, PolicyCapability
from policycatalog.core.policy.contracts import PolicyComponent
from policycatalog.core.registry.policy_registry import PolicyCatalog

from .groups import PolicyGroup
from .strategy import PolicyGroupingStrategy

OTHER_GROUP_ID = "other"

DEFAULT_CAPABILITY_GROUPS: Tuple[Tuple[PolicyCapability, PolicyGroup], ...] = (
    (
        PolicyCapability.MODIFIES_RADIO,
        PolicyGroup("radio", "Radio & Cellular", "Policies that modify cellular/radio settings", sort_order=1),
    ),
    (
        PolicyCapability.MODIFIES_WIFI,
        PolicyGroup("wifi", "Wi-Fi", "Policies that modify Wi-Fi settings", sort_order=2),
    ),
    (
        PolicyCapability.MODIFIES_BLUETOOTH,
        PolicyGroup("bluetooth", "Bluetooth", "Policies that modify Bluetooth settings", sort_order=3),
    ),
    (
        PolicyCapability.MODIFIES_DISPLAY,
        PolicyGroup("display", "Display", "Policies that modify display settings", sort_order=4),
    ),
    (
        PolicyCapability.MODIFIES_AUDIO,
        PolicyGroup("audio", "Audio", "Policies that modify audio settings", sort_order=5),
    ),
    (
        PolicyCapability.MODIFIES_CHARGING,
        PolicyGroup("charging", "Charging", "Policies that modify charging behavior", sort_order=6),
    ),
    (
        PolicyCapability.MODIFIES_CALLING,
        PolicyGroup("calling", "Calling", "Policies that modify calling/telephony behavior", sort_order=7),
    ),
    (
        PolicyCapability.MODIFIES_HARDWARE,
        PolicyGroup("hardware", "Hardware", "Policies that modify hardware components", sort_order=8),
    ),
    (
        PolicyCapability.MODIFIES_BROWSER,
        PolicyGroup("browser", "Browser", "Policies that modify browser settings", sort_order=9),
    ),
    (
        PolicyCapability.MODIFIES_SECURITY,
        PolicyGroup("security", "Security", "Policies that modify security settings", sort_order=10),
    ),
    (
        PolicyCapability.MODIFIES_NETWORK,
        PolicyGroup("network", "Network", "Policies that modify general network settings", sort_order=11),
    ),
)

DEFAULT_OTHER_GROUP = PolicyGroup(
    OTHER_GROUP_ID,
    "Other",
    "Policies that don't fit into other categories",
    sort_order=100,
)


class CapabilityBasedGroupingStrategy(PolicyGroupingStrategy):
    """
    Default grouping derived from each policy's "modifies" capabilities.

    Assignment rules
    - The capability -> group mapping is walked in declaration order; the
      first mapped capability a policy has decides its group. Capability
      enum order plays no part.
    - A policy with none of the mapped capabilities lands in "other".
    - Every policy is in exactly one group.
    """

    def __init__(
        self,
        mapping: Optional[Iterable[Tuple[PolicyCapability, PolicyGroup]]] = None,
        other_group: PolicyGroup = DEFAULT_OTHER_GROUP,
    ):
        pairs = tuple(mapping) if mapping is not None else DEFAULT_CAPABILITY_GROUPS

        seen_caps = set()
        seen_ids = {other_group.id}
        for cap, group in pairs:
            if not isinstance(cap, PolicyCapability) or cap.kind is not CapabilityKind.MODIFIES:
                raise ValueError(f"group mapping requires a MODIFIES_* capability, got {cap!r}")
            if cap in seen_caps:
                raise ValueError(f"capability mapped twice: {cap.value}")
            if group.id in seen_ids:
                raise ValueError(f"group id declared twice: {group.id}")
            seen_caps.add(cap)
            seen_ids.add(group.id)

        self._mapping: Tuple[Tuple[PolicyCapability, PolicyGroup], ...] = pairs
        self._other = other_group

    @property
    def mapped_capabilities(self) -> List[PolicyCapability]:
        return [cap for cap, _ in self._mapping]

    @property
    def other_group(self) -> PolicyGroup:
        return self._other

    def get_groups(self) -> List[PolicyGroup]:
        return [group for _, group in self._mapping] + [self._other]

    def get_group_for_policy(self, policy: PolicyComponent[Any]) -> PolicyGroup:
        for cap, group in self._mapping:
            if policy.has_capability(cap):
                return group
        return self._other

    def get_policies_in_group(
        self, group_id: str, registry: PolicyCatalog
    ) -> List[PolicyComponent[Any]]:
        if group_id == self._other.id:
            mapped = self.mapped_capabilities
            return [c for c in registry.get_all_components() if not c.has_any_capability(mapped)]

        for position, (cap, group) in enumerate(self._mapping):
            if group.id != group_id:
                continue
            # Index hit, minus policies an earlier mapping already claimed.
            earlier: Sequence[PolicyCapability] = [c for c, _ in self._mapping[:position]]
            return [c for c in registry.get_by_capability(cap) if not c.has_any_capability(earlier)]

        return []
