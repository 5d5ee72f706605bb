from __future__ import annotations

from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class ApiError(BaseModel):
    """Standard API error payload."""

    error: str
    detail: Optional[str] = None


class HealthOut(BaseModel):
    ok: bool = True
    generation: int
    policy_count: int
    grouping: str


class CapabilityOut(BaseModel):
    """One capability and how many registered policies declare it."""

    name: str
    kind: str
    policy_count: int = 0


class PolicyOut(BaseModel):
    """Static metadata of a registered policy (no handler call)."""

    policy_name: str
    title: str
    description: str = ""
    category: str
    capabilities: List[str] = Field(default_factory=list)
    state_type: str


class PolicyStateOut(BaseModel):
    is_enabled: bool
    is_supported: bool = True
    error: Optional[Dict[str, Any]] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class PolicyDetailOut(BaseModel):
    """Metadata plus the live state reported by the policy's handler."""

    policy: PolicyOut
    state: PolicyStateOut
    configuration_options: List[Dict[str, Any]] = Field(default_factory=list)


class SetPolicyStateIn(BaseModel):
    enabled: bool


class GroupOut(BaseModel):
    """A resolved display group."""

    id: str
    display_name: str
    description: str = ""
    icon: Optional[str] = None
    sort_order: int = 0
    policies: List[str] = Field(default_factory=list)
