from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from policycatalog.core.policy.exceptions import GroupingConfigurationError

from .configurable_strategy import GroupingConfiguration

log = logging.getLogger("policycatalog.grouping")

MAX_GROUPING_FILE_BYTES = 1024 * 1024


class GroupDocument(BaseModel):
    """One group entry of a grouping document."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    display_name: str
    description: str = ""
    icon: Optional[str] = None
    sort_order: Optional[int] = None
    policies: List[str] = Field(default_factory=list)


class GroupingDocument(BaseModel):
    """
    Grouping configuration document (YAML or JSON).

    Supported schema

    groups:
      - id: quick
        display_name: Quick Access
        sort_order: 1            # optional, defaults to position
        policies: [device-lock-mode, screen-brightness]
    policy_assignments:          # optional, merged after per-group lists
      band-locking-5g: advanced

    An assignment listed in policy_assignments overrides the same policy
    listed under a group.
    """

    model_config = ConfigDict(extra="forbid")

    groups: List[GroupDocument] = Field(default_factory=list)
    policy_assignments: Dict[str, str] = Field(default_factory=dict)

    @field_validator("groups")
    @classmethod
    def _unique_group_ids(cls, groups: List[GroupDocument]) -> List[GroupDocument]:
        seen = set()
        for g in groups:
            if g.id in seen:
                raise ValueError(f"duplicate group id: {g.id}")
            seen.add(g.id)
        return groups

    def to_configuration(self) -> GroupingConfiguration:
        builder = GroupingConfiguration.builder()
        for g in self.groups:
            builder.add_group(
                g.id,
                g.display_name,
                description=g.description,
                sort_order=g.sort_order,
                icon=g.icon,
            )
            builder.assign_policies(g.id, *g.policies)
        for name, gid in self.policy_assignments.items():
            builder.assign_policy(name, gid)
        return builder.build()


def _format_validation_error(e: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
    )


def parse_grouping_document(data: Any, *, strict: bool = False) -> GroupingConfiguration:
    """Validate an already-decoded document and build a configuration.

    strict additionally rejects assignments that reference undefined groups.

    Raises
    - GroupingConfigurationError on any validation failure.
    """

    if data is None:
        raise GroupingConfigurationError("Grouping document is empty")
    if not isinstance(data, dict):
        raise GroupingConfigurationError(
            f"Grouping document must be a mapping, got {type(data).__name__}"
        )

    try:
        doc = GroupingDocument.model_validate(data)
    except ValidationError as e:
        raise GroupingConfigurationError(
            f"Grouping document validation failed: {_format_validation_error(e)}"
        ) from e

    try:
        config = doc.to_configuration()
    except (TypeError, ValueError) as e:
        raise GroupingConfigurationError(f"Invalid grouping document: {e}") from e

    if strict:
        dangling = config.dangling_assignments()
        if dangling:
            names = ", ".join(f"{n}->{g}" for n, g in sorted(dangling.items()))
            raise GroupingConfigurationError(f"Assignments reference undefined groups: {names}")

    return config


def load_grouping_configuration(
    path: Union[str, Path], *, strict: bool = False
) -> GroupingConfiguration:
    """Load a GroupingConfiguration from a YAML or JSON file.

    The suffix picks the parser (.json -> json, otherwise YAML; YAML is a
    superset of JSON so unknown suffixes still load JSON content).
    """

    p = Path(path)
    if not p.is_file():
        raise GroupingConfigurationError(f"Grouping file not found: {p}")

    size = p.stat().st_size
    if size > MAX_GROUPING_FILE_BYTES:
        raise GroupingConfigurationError(
            f"Grouping file too large: {size} bytes (max {MAX_GROUPING_FILE_BYTES})"
        )

    try:
        text = p.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise GroupingConfigurationError(f"Grouping file {p.name} is not valid UTF-8: {e}") from e

    try:
        if p.suffix.lower() == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise GroupingConfigurationError(f"Invalid grouping file {p.name}: {e}") from e

    config = parse_grouping_document(data, strict=strict)
    log.debug(
        "loaded grouping configuration",
        extra={
            "path": str(p),
            "group_count": len(config.groups),
            "assignment_count": len(config.policy_assignments),
        },
    )
    return config


def dump_grouping_configuration(config: GroupingConfiguration) -> Dict[str, Any]:
    """Inverse of parse_grouping_document (assignments kept in the flat map)."""

    return {
        "groups": [
            {
                "id": g.id,
                "display_name": g.display_name,
                "description": g.description,
                "icon": g.icon,
                "sort_order": g.sort_order,
            }
            for g in config.groups
        ],
        "policy_assignments": dict(config.policy_assignments),
    }


__all__ = [
    "GroupDocument",
    "GroupingDocument",
    "dump_grouping_configuration",
    "load_grouping_configuration",
    "parse_grouping_document",
]
