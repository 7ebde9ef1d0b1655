from __future__ import annotations

import pytest
import yaml

from augent.config import Settings
from augent.core.exceptions import BundleNotFoundError
from augent.operations.install import install
from augent.operations.uninstall import NO_MATCH_MESSAGE, match_targets, uninstall
from augent.sources.fetch import GitBundleFetcher
from augent.workspace.workspace import Workspace


def _write_bundle(root, relative: str, *, deps=(), files=None) -> None:
    bundle = root / relative
    bundle.mkdir(parents=True, exist_ok=True)
    if deps:
        (bundle / "augent.yaml").write_text(yaml.safe_dump({"bundles": list(deps)}), encoding="utf-8")
    for file_path, content in (files or {}).items():
        target = bundle / file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")


def _fetcher(root) -> GitBundleFetcher:
    return GitBundleFetcher(root, cache_dir=root.parent / "cache")


def _setup(root, manifest_bundles, platforms=("cursor",)) -> None:
    config_dir = root / ".augent"
    config_dir.mkdir(parents=True, exist_ok=True)
    (config_dir / "augent.yaml").write_text(
        yaml.safe_dump({"name": "@t/ws", "bundles": list(manifest_bundles)}), encoding="utf-8"
    )
    install(
        Workspace.open(root),
        platforms=list(platforms),
        fetcher=_fetcher(root),
        settings=Settings(),
    )


def _uninstall(root, name: str, **kwargs):
    return uninstall(Workspace.open(root), name, fetcher=_fetcher(root), **kwargs)


def _lock_names(root) -> list[str]:
    return [bundle.name for bundle in Workspace.open(root).lockfile.bundles]


@pytest.fixture
def shared_dependency(tmp_path):
    """``@t/a`` and ``@t/c`` both depend on ``@t/b``."""
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/a", deps=[{"name": "@t/b", "path": "../b"}], files={"commands/a.md": "A"})
    _write_bundle(root, "bundles/c", deps=[{"name": "@t/b", "path": "../b"}], files={"commands/c.md": "C"})
    _write_bundle(root, "bundles/b", files={"commands/b.md": "B"})
    _setup(root, [{"name": "@t/a", "path": "bundles/a"}, {"name": "@t/c", "path": "bundles/c"}])
    return root


def test_dependency_stays_while_another_bundle_needs_it(shared_dependency) -> None:
    root = shared_dependency

    report = _uninstall(root, "@t/a")

    assert report.targets == ["@t/a"]
    assert report.cascaded == []
    assert report.warnings == []
    assert _lock_names(root) == ["@t/b", "@t/c"]
    assert not (root / ".cursor" / "commands" / "a.md").exists()
    assert (root / ".cursor" / "commands" / "b.md").exists()
    workspace = Workspace.open(root)
    assert [dependency.name for dependency in workspace.manifest.bundles] == ["@t/c"]
    assert workspace.index.find("@t/a") is None
    assert ".cursor/commands/a.md" not in workspace.index.checksums


def test_last_dependent_removal_cascades(shared_dependency) -> None:
    root = shared_dependency
    _uninstall(root, "@t/a")

    report = _uninstall(root, "@t/c")

    assert report.removed_bundles == ["@t/c", "@t/b"]
    assert report.cascaded == ["@t/b"]
    assert _lock_names(root) == []
    assert not (root / ".cursor").exists()


def test_direct_dependencies_are_not_cascaded(tmp_path) -> None:
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/a", deps=[{"name": "@t/b", "path": "../b"}], files={"commands/a.md": "A"})
    _write_bundle(root, "bundles/b", files={"commands/b.md": "B"})
    _setup(root, [{"name": "@t/a", "path": "bundles/a"}, {"name": "@t/b", "path": "bundles/b"}])

    report = _uninstall(root, "@t/a")

    assert report.cascaded == []
    assert _lock_names(root) == ["@t/b"]


def test_removing_a_needed_bundle_warns(shared_dependency) -> None:
    report = _uninstall(shared_dependency, "@t/b")

    assert report.targets == ["@t/b"]
    assert report.warnings == ["@t/b is still required by @t/a, @t/c"]
    assert not (shared_dependency / ".cursor" / "commands" / "b.md").exists()


def test_force_silences_dependency_warnings(shared_dependency) -> None:
    report = _uninstall(shared_dependency, "@t/b", force=True)

    assert report.warnings == []
    assert _lock_names(shared_dependency) == ["@t/a", "@t/c"]


def test_scope_removes_every_matching_bundle(shared_dependency) -> None:
    report = _uninstall(shared_dependency, "@t")

    assert sorted(report.removed_bundles) == ["@t/a", "@t/b", "@t/c"]
    assert _lock_names(shared_dependency) == []
    assert Workspace.open(shared_dependency).manifest.bundles == []


def test_unmatched_scope_is_not_an_error(shared_dependency) -> None:
    lock_before = (shared_dependency / ".augent" / "augent.lock").read_bytes()

    report = _uninstall(shared_dependency, "@nobody")

    assert report.message == NO_MATCH_MESSAGE
    assert report.removed_bundles == []
    assert (shared_dependency / ".augent" / "augent.lock").read_bytes() == lock_before


def test_unknown_bundle_is_an_error(shared_dependency) -> None:
    with pytest.raises(BundleNotFoundError, match="Bundle not found: ghost"):
        _uninstall(shared_dependency, "ghost")


def test_dry_run_reports_without_deleting(shared_dependency) -> None:
    lock_before = (shared_dependency / ".augent" / "augent.lock").read_bytes()

    report = _uninstall(shared_dependency, "@t/a", dry_run=True)

    assert report.removed_files == [".cursor/commands/a.md"]
    assert (shared_dependency / ".cursor" / "commands" / "a.md").exists()
    assert (shared_dependency / ".augent" / "augent.lock").read_bytes() == lock_before


def test_file_shared_with_remaining_bundle_is_kept(tmp_path) -> None:
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/x", files={"commands/shared.md": "x", "commands/x.md": "x"})
    _write_bundle(root, "bundles/y", files={"commands/shared.md": "y"})
    _setup(root, [{"name": "x", "path": "bundles/x"}, {"name": "y", "path": "bundles/y"}])
    shared = root / ".cursor" / "commands" / "shared.md"
    assert shared.read_text(encoding="utf-8") == "y"

    report = _uninstall(root, "y")

    assert report.kept_files == [".cursor/commands/shared.md"]
    assert shared.exists()

    _uninstall(root, "x")

    assert not shared.exists()


def test_uninstall_removes_files_for_every_platform(tmp_path) -> None:
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/a", files={"commands/a.md": "A", "AGENTS.md": "# A"})
    _setup(root, [{"name": "a", "path": "bundles/a"}], platforms=("cursor", "claude"))
    assert (root / ".claude" / "commands" / "a.md").exists()
    assert (root / "CLAUDE.md").exists()

    report = _uninstall(root, "a")

    assert sorted(report.removed_files) == [
        ".claude/commands/a.md",
        ".cursor/commands/a.md",
        "AGENTS.md",
        "CLAUDE.md",
    ]
    assert not (root / ".claude").exists()
    assert not (root / ".cursor").exists()
    assert not (root / "AGENTS.md").exists()


def test_match_targets_prefers_exact_name(shared_dependency) -> None:
    lockfile = Workspace.open(shared_dependency).lockfile

    assert [entry.name for entry in match_targets(lockfile, "@t/a")] == ["@t/a"]
    assert [entry.name for entry in match_targets(lockfile, "@t/")] == ["@t/b", "@t/a", "@t/c"]


def test_unmatched_scoped_name_is_not_an_error(shared_dependency) -> None:
    lock_before = (shared_dependency / ".augent" / "augent.lock").read_bytes()

    report = _uninstall(shared_dependency, "@nobody/thing")

    assert report.message == NO_MATCH_MESSAGE
    assert (shared_dependency / ".augent" / "augent.lock").read_bytes() == lock_before


def test_scope_matches_case_insensitively(shared_dependency) -> None:
    lockfile = Workspace.open(shared_dependency).lockfile

    assert [entry.name for entry in match_targets(lockfile, "@T/A")] == ["@t/a"]

    report = _uninstall(shared_dependency, "@T")

    assert sorted(report.removed_bundles) == ["@t/a", "@t/b", "@t/c"]
    assert _lock_names(shared_dependency) == []


def test_manifest_alias_of_a_dependency_keeps_it(tmp_path) -> None:
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/a", deps=[{"name": "@t/b", "path": "../b"}], files={"commands/a.md": "A"})
    _write_bundle(root, "bundles/b", files={"commands/b.md": "B"})
    _setup(root, [{"name": "a", "path": "bundles/a"}, {"name": "b", "path": "bundles/b"}])
    assert _lock_names(root) == ["@t/b", "a"]

    report = _uninstall(root, "a")

    assert report.cascaded == []
    assert _lock_names(root) == ["@t/b"]
    assert (root / ".cursor" / "commands" / "b.md").exists()
    assert [dependency.name for dependency in Workspace.open(root).manifest.bundles] == ["b"]


def test_manifest_alias_selects_the_locked_bundle(tmp_path) -> None:
    root = tmp_path / "ws"
    _write_bundle(root, "bundles/a", deps=[{"name": "@t/b", "path": "../b"}], files={"commands/a.md": "A"})
    _write_bundle(root, "bundles/b", files={"commands/b.md": "B"})
    _setup(root, [{"name": "a", "path": "bundles/a"}, {"name": "b", "path": "bundles/b"}])

    report = _uninstall(root, "b", force=True)

    assert report.targets == ["@t/b"]
    assert _lock_names(root) == ["a"]
    assert not (root / ".cursor" / "commands" / "b.md").exists()
    assert [dependency.name for dependency in Workspace.open(root).manifest.bundles] == ["a"]
