from __future__ import annotations

import pytest

from augent.core.exceptions import BundleNotFoundError
from augent.resolver.discovery import bundle_directories, discover_bundles
from augent.sources.fetch import GitBundleFetcher
from augent.sources.reference import BundleReference


def _touch(path, content: str = "x") -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def test_a_bundle_root_is_the_only_bundle(tmp_path) -> None:
    _touch(tmp_path / "AGENTS.md")
    _touch(tmp_path / "sub" / "commands" / "x.md")

    assert list(bundle_directories(tmp_path)) == ["."]


def test_search_stops_at_the_first_bundle_on_each_branch(tmp_path) -> None:
    _touch(tmp_path / "README.md")
    (tmp_path / "outer").mkdir()
    _touch(tmp_path / "outer" / "augent.yaml", "name: outer\n")
    _touch(tmp_path / "outer" / "inner" / "rules" / "r.md")
    _touch(tmp_path / "group" / "leaf" / "skills" / "s" / "SKILL.md")
    _touch(tmp_path / ".git" / "commands" / "hidden.md")

    assert list(bundle_directories(tmp_path)) == ["outer", "group/leaf"]


def test_discovered_bundles_are_sorted_by_name(tmp_path) -> None:
    root = tmp_path / "ws"
    _touch(root / "pack" / "zeta" / "commands" / "z.md")
    _touch(root / "pack" / "deep" / "alpha" / "commands" / "a.md")

    found = discover_bundles(
        BundleReference(kind="dir", path="pack"),
        GitBundleFetcher(root, cache_dir=tmp_path / "cache"),
        root,
    )

    assert [(bundle.name, bundle.reference.path) for bundle in found] == [
        ("alpha", "pack/deep/alpha"),
        ("zeta", "pack/zeta"),
    ]


def test_source_without_bundles_is_an_error(tmp_path) -> None:
    root = tmp_path / "ws"
    _touch(root / "empty" / "README.md")

    with pytest.raises(BundleNotFoundError, match="contains no bundles"):
        discover_bundles(
            BundleReference(kind="dir", path="empty"),
            GitBundleFetcher(root, cache_dir=tmp_path / "cache"),
            root,
        )
