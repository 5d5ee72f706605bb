from __future__ import annotations

from enum import Enum
from typing import Iterable, List


class CapabilityKind(str, Enum):
    """Semantic partition of PolicyCapability values."""

    MODIFIES = "modifies"
    REQUIRES = "requires"
    IMPACT = "impact"
    COMPLIANCE = "compliance"


class PolicyCapability(str, Enum):
    """
    Intrinsic, declarative facts about what a policy does.

    Capabilities describe which device subsystem a policy changes, which
    device preconditions it needs, and its impact characteristics. They are
    declared once when a component is built and never derived at runtime.

    Declaration order is significant: it is the order used when iterating
    capabilities (index construction, union queries).
    """

    # What the policy modifies
    MODIFIES_RADIO = "MODIFIES_RADIO"
    MODIFIES_WIFI = "MODIFIES_WIFI"
    MODIFIES_BLUETOOTH = "MODIFIES_BLUETOOTH"
    MODIFIES_DISPLAY = "MODIFIES_DISPLAY"
    MODIFIES_AUDIO = "MODIFIES_AUDIO"
    MODIFIES_CHARGING = "MODIFIES_CHARGING"
    MODIFIES_CALLING = "MODIFIES_CALLING"
    MODIFIES_HARDWARE = "MODIFIES_HARDWARE"
    MODIFIES_SECURITY = "MODIFIES_SECURITY"
    MODIFIES_NETWORK = "MODIFIES_NETWORK"
    MODIFIES_BROWSER = "MODIFIES_BROWSER"

    # Device requirements
    REQUIRES_SIM = "REQUIRES_SIM"
    REQUIRES_HDM = "REQUIRES_HDM"
    REQUIRES_DUAL_SIM = "REQUIRES_DUAL_SIM"

    # Impact characteristics
    SECURITY_SENSITIVE = "SECURITY_SENSITIVE"
    AFFECTS_CONNECTIVITY = "AFFECTS_CONNECTIVITY"
    AFFECTS_BATTERY = "AFFECTS_BATTERY"
    REQUIRES_REBOOT = "REQUIRES_REBOOT"
    PERSISTENT_ACROSS_REBOOT = "PERSISTENT_ACROSS_REBOOT"

    # Compliance frameworks
    STIG = "STIG"

    @property
    def kind(self) -> CapabilityKind:
        if self.name.startswith("MODIFIES_"):
            return CapabilityKind.MODIFIES
        if self in _REQUIREMENTS:
            return CapabilityKind.REQUIRES
        if self is PolicyCapability.STIG:
            return CapabilityKind.COMPLIANCE
        return CapabilityKind.IMPACT

    @classmethod
    def of_kind(cls, kind: CapabilityKind) -> List["PolicyCapability"]:
        """Capabilities of one kind, in declaration order."""
        return [c for c in cls if c.kind is kind]

    @classmethod
    def modifies(cls) -> List["PolicyCapability"]:
        return cls.of_kind(CapabilityKind.MODIFIES)

    @classmethod
    def requires(cls) -> List["PolicyCapability"]:
        return cls.of_kind(CapabilityKind.REQUIRES)

    @classmethod
    def impacts(cls) -> List["PolicyCapability"]:
        return cls.of_kind(CapabilityKind.IMPACT)


# REQUIRES_REBOOT is an impact characteristic, not a device requirement.
_REQUIREMENTS = frozenset(
    {
        PolicyCapability.REQUIRES_SIM,
        PolicyCapability.REQUIRES_HDM,
        PolicyCapability.REQUIRES_DUAL_SIM,
    }
)


def parse_capability(value) -> PolicyCapability:
    """Parse a capability from its name.

    Accepts PolicyCapability instances unchanged. Strings are normalized
    (surrounding whitespace removed, upper-cased, '-' treated as '_') so
    "modifies-radio" and " MODIFIES_RADIO " both resolve.

    Raises
    - TypeError: value is neither a string nor a PolicyCapability
    - ValueError: unknown capability name
    """

    if isinstance(value, PolicyCapability):
        return value
    if not isinstance(value, str):
        raise TypeError("Capability name must be a string")

    normalized = value.strip().upper().replace("-", "_")
    if not normalized:
        raise ValueError("Capability name must be non-empty")

    try:
        return PolicyCapability[normalized]
    except KeyError:
        raise ValueError(f"Unknown capability: {value!r}") from None


def parse_capabilities(values: Iterable) -> frozenset:
    """Parse an iterable of capability names into a frozenset."""
    return frozenset(parse_capability(v) for v in values)
