from __future__ import annotations

import json

import pytest

from augent.core.exceptions import BundleNotFoundError, ConfigurationError, PathEscapeError
from augent.sources.marketplace import load_marketplace, materialize_plugin, plugin_path, split_plugin_path
from augent.workspace.manifest import load_bundle_manifest


def _write(repo, plugins) -> None:
    (repo / ".claude-plugin").mkdir(parents=True)
    (repo / ".claude-plugin" / "marketplace.json").write_text(json.dumps({"plugins": plugins}), encoding="utf-8")


@pytest.mark.parametrize(
    ("path", "expected"),
    [
        ("$claudeplugin/deploy", (None, "deploy")),
        ("vendor/market/$claudeplugin/deploy", ("vendor/market", "deploy")),
        ("bundles/deploy", ("bundles/deploy", None)),
        (None, (None, None)),
    ],
)
def test_split_plugin_path(path, expected) -> None:
    assert split_plugin_path(path) == expected


def test_plugin_path_joins_base() -> None:
    assert plugin_path(None, "x") == "$claudeplugin/x"
    assert plugin_path("market", "x") == "market/$claudeplugin/x"


def test_plugin_lists_accept_single_strings_and_remote_sources(tmp_path) -> None:
    _write(
        tmp_path,
        [{"name": "p", "commands": "./c.md", "source": {"source": "github", "repo": "o/r"}, "mcpServers": {}}],
    )

    plugin = load_marketplace(tmp_path).find("p")

    assert plugin.commands == ["./c.md"]
    assert plugin.source is None
    assert plugin.mcp_servers == []


def test_missing_marketplace_is_none(tmp_path) -> None:
    assert load_marketplace(tmp_path) is None


def test_invalid_marketplace_is_a_configuration_error(tmp_path) -> None:
    _write(tmp_path, [{"description": "no name"}])

    with pytest.raises(ConfigurationError, match="Invalid marketplace file"):
        load_marketplace(tmp_path)


def test_materialize_copies_listed_resources(tmp_path) -> None:
    repo = tmp_path / "repo"
    (repo / "skills" / "lint").mkdir(parents=True)
    (repo / "skills" / "lint" / "SKILL.md").write_text("lint", encoding="utf-8")
    (repo / "rules").mkdir()
    (repo / "rules" / "style.md").write_text("style", encoding="utf-8")
    _write(repo, [{"name": "p", "description": "Tools", "skills": ["./skills/lint"], "rules": ["rules/style.md"]}])
    target = tmp_path / "out" / "p"
    (target / "stale").mkdir(parents=True)

    materialize_plugin(repo, "p", target)

    assert (target / "skills" / "lint" / "SKILL.md").read_text(encoding="utf-8") == "lint"
    assert (target / "rules" / "style.md").read_text(encoding="utf-8") == "style"
    assert not (target / "stale").exists()
    manifest = load_bundle_manifest(target)
    assert (manifest.name, manifest.description) == ("p", "Tools")


def test_materialize_rejects_paths_outside_the_repository(tmp_path) -> None:
    repo = tmp_path / "repo"
    _write(repo, [{"name": "p", "commands": ["../../secret.md"]}])

    with pytest.raises(PathEscapeError):
        materialize_plugin(repo, "p", tmp_path / "out")


def test_materialize_unknown_plugin(tmp_path) -> None:
    _write(tmp_path, [{"name": "p"}])

    with pytest.raises(BundleNotFoundError, match="Bundle not found: q"):
        materialize_plugin(tmp_path, "q", tmp_path / "out")
