from __future__ import annotations

from enum import Enum


class PolicyCategory(str, Enum):
    """
    Presentation-oriented classification of a policy.

    Orthogonal to capabilities: a category only tells a UI which kind of
    control to render.
    """

    TOGGLE = "TOGGLE"
    CONFIGURABLE_TOGGLE = "CONFIGURABLE_TOGGLE"


def parse_category(value) -> PolicyCategory:
    if isinstance(value, PolicyCategory):
        return value
    if not isinstance(value, str):
        raise TypeError("Category name must be a string")
    normalized = value.strip().upper().replace("-", "_")
    try:
        return PolicyCategory[normalized]
    except KeyError:
        raise ValueError(f"Unknown category: {value!r}") from None
