from __future__ import annotations

import pytest

from augent.resources.discovery import (
    ResourceType,
    detect_conflicts,
    discover_resources,
    filter_skill_paths,
    is_binary_path,
    leaf_skill_dirs,
)
from augent.resources.hashing import hash_bundle_tree


def _write(root, relative: str, content: str = "x\n") -> None:
    path = root / relative
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("commands/deploy.md", ResourceType.COMMAND),
        ("rules/style.md", ResourceType.RULE),
        ("agents/reviewer.md", ResourceType.AGENT),
        ("skills/pdf/SKILL.md", ResourceType.SKILL),
        ("root/.editorconfig", ResourceType.ROOT_FILE),
        ("mcp.jsonc", ResourceType.MCP_CONFIG),
        ("AGENTS.md", ResourceType.AGENT_DOC),
        ("notes/readme.txt", ResourceType.OTHER),
    ],
)
def test_resource_type_from_path(path: str, expected: ResourceType) -> None:
    assert ResourceType.from_path(path) is expected


def test_mergeable_and_root_predicates() -> None:
    assert ResourceType.MCP_CONFIG.is_mergeable
    assert ResourceType.AGENT_DOC.is_mergeable
    assert not ResourceType.COMMAND.is_mergeable
    assert ResourceType.ROOT_FILE.is_root_file
    assert not ResourceType.RULE.is_root_file


def test_binary_heuristic_uses_extension_only() -> None:
    assert is_binary_path("skills/pdf/logo.PNG")
    assert not is_binary_path("skills/pdf/SKILL.md")


def test_discover_resources_walks_known_locations_sorted(tmp_path) -> None:
    _write(tmp_path, "rules/style.md")
    _write(tmp_path, "commands/b.md")
    _write(tmp_path, "commands/a.md")
    _write(tmp_path, "AGENTS.md")
    _write(tmp_path, "mcp.jsonc", "{}")
    _write(tmp_path, "README.md")
    _write(tmp_path, "augent.yaml", "name: x\n")

    resources = discover_resources(tmp_path)

    assert [resource.path for resource in resources] == [
        "AGENTS.md",
        "commands/a.md",
        "commands/b.md",
        "mcp.jsonc",
        "rules/style.md",
    ]
    assert all(resource.digest.startswith("sha256:") for resource in resources)


def test_skills_keep_only_leaf_skill_directories() -> None:
    paths = [
        "skills/loose.md",
        "skills/pdf/SKILL.md",
        "skills/pdf/scripts/run.py",
        "skills/group/SKILL.md",
        "skills/group/inner/SKILL.md",
        "skills/group/inner/data.txt",
        "skills/nothing/file.md",
    ]

    assert leaf_skill_dirs(paths) == {"skills/pdf", "skills/group/inner"}
    assert filter_skill_paths(paths) == [
        "skills/pdf/SKILL.md",
        "skills/pdf/scripts/run.py",
        "skills/group/inner/SKILL.md",
        "skills/group/inner/data.txt",
    ]


def test_detect_conflicts_reports_later_providers(tmp_path) -> None:
    first = tmp_path / "first"
    second = tmp_path / "second"
    _write(first, "commands/shared.md", "one")
    _write(first, "commands/only-first.md")
    _write(second, "commands/shared.md", "two")

    conflicts = detect_conflicts(
        {"first": discover_resources(first), "second": discover_resources(second)}
    )

    assert [(c.path, c.first_bundle, c.second_bundle) for c in conflicts] == [
        ("commands/shared.md", "first", "second")
    ]


def test_bundle_hash_tracks_content_paths_and_manifest(tmp_path) -> None:
    _write(tmp_path, "commands/a.md", "one")
    baseline = hash_bundle_tree(tmp_path, ["commands/a.md"])

    assert hash_bundle_tree(tmp_path, ["commands/a.md"]) == baseline

    _write(tmp_path, "commands/a.md", "two")
    edited = hash_bundle_tree(tmp_path, ["commands/a.md"])
    assert edited != baseline

    _write(tmp_path, "augent.yaml", "name: x\n")
    assert hash_bundle_tree(tmp_path, ["commands/a.md"]) != edited
