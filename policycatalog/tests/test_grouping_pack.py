from __future__ import annotations

import json
from pathlib import Path

import pytest

from policycatalog.core.grouping import (
    dump_grouping_configuration,
    load_grouping_configuration,
    parse_grouping_document,
)
from policycatalog.core.policy.exceptions import GroupingConfigurationError

YAML_DOC = """
groups:
  - id: quick
    display_name: Quick Access
    sort_order: 1
    policies: [device-lock-mode, screen-brightness]
  - id: advanced
    display_name: Advanced
    description: Rarely changed settings
policy_assignments:
  band-locking-5g: advanced
  screen-brightness: advanced
"""


def test_load_yaml(tmp_path: Path) -> None:
    path = tmp_path / "grouping.yaml"
    path.write_text(YAML_DOC, encoding="utf-8")

    config = load_grouping_configuration(path)

    assert config.group_ids == ["quick", "advanced"]
    assert config.groups[0].sort_order == 1
    # Position is the default sort order.
    assert config.groups[1].sort_order == 1
    assert config.groups[1].description == "Rarely changed settings"
    assert config.policy_assignments["device-lock-mode"] == "quick"
    # policy_assignments override per-group lists.
    assert config.policy_assignments["screen-brightness"] == "advanced"


def test_load_json(tmp_path: Path) -> None:
    path = tmp_path / "grouping.json"
    path.write_text(
        json.dumps({"groups": [{"id": "g", "display_name": "G", "policies": ["p"]}]}),
        encoding="utf-8",
    )
    config = load_grouping_configuration(path)
    assert dict(config.policy_assignments) == {"p": "g"}


def test_dump_then_parse_preserves_configuration(tmp_path: Path) -> None:
    path = tmp_path / "grouping.yml"
    path.write_text(YAML_DOC, encoding="utf-8")
    config = load_grouping_configuration(path)

    assert parse_grouping_document(dump_grouping_configuration(config)) == config


@pytest.mark.parametrize(
    "doc",
    [
        None,
        ["not", "a", "mapping"],
        {"groups": [{"id": "a"}]},
        {"groups": [{"id": "a", "display_name": "A", "colour": "red"}]},
        {"groups": [{"id": "a", "display_name": "A"}, {"id": "a", "display_name": "B"}]},
        {"groups": [], "extra": True},
    ],
)
def test_invalid_documents_are_rejected(doc) -> None:
    with pytest.raises(GroupingConfigurationError):
        parse_grouping_document(doc)


def test_strict_rejects_dangling_assignments() -> None:
    doc = {"groups": [{"id": "a", "display_name": "A"}], "policy_assignments": {"p": "nope"}}

    config = parse_grouping_document(doc)
    assert config.dangling_assignments() == {"p": "nope"}

    with pytest.raises(GroupingConfigurationError):
        parse_grouping_document(doc, strict=True)


def test_missing_and_malformed_files(tmp_path: Path) -> None:
    with pytest.raises(GroupingConfigurationError):
        load_grouping_configuration(tmp_path / "absent.yaml")

    bad = tmp_path / "bad.yaml"
    bad.write_text("groups: [unclosed", encoding="utf-8")
    with pytest.raises(GroupingConfigurationError):
        load_grouping_configuration(bad)

    bad_json = tmp_path / "bad.json"
    bad_json.write_text("{", encoding="utf-8")
    with pytest.raises(GroupingConfigurationError):
        load_grouping_configuration(bad_json)


def test_blank_group_id_is_a_configuration_error(tmp_path: Path) -> None:
    p = tmp_path / "blank.yaml"
    p.write_text("groups:\n  - id: '  '\n    display_name: Blank\n", encoding="utf-8")

    with pytest.raises(GroupingConfigurationError, match="group id must be a non-empty string"):
        load_grouping_configuration(p)


def test_non_utf8_file_is_a_configuration_error(tmp_path: Path) -> None:
    p = tmp_path / "binary.yaml"
    p.write_bytes(b"\xff\xfegroups: []\n")

    with pytest.raises(GroupingConfigurationError, match="not valid UTF-8"):
        load_grouping_configuration(p)
