from __future__ import annotations

import subprocess

import pytest

from augent.core.exceptions import BundleNotFoundError, FetchFailedError, PathEscapeError
from augent.sources.fetch import GitBundleFetcher, _parse_ls_remote_commit, _parse_symref_branch
from augent.sources.reference import BundleReference


def _git(repo, *args: str) -> str:
    result = subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        text=True,
    )
    return result.stdout.strip()


def _init_repo(repo) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    subprocess.run(["git", "init", "-b", "main", str(repo)], check=True, capture_output=True, text=True)
    _git(repo, "config", "user.email", "tests@example.com")
    _git(repo, "config", "user.name", "Test User")


def _commit_all(repo, message: str) -> str:
    _git(repo, "add", ".")
    _git(repo, "commit", "-m", message)
    return _git(repo, "rev-parse", "HEAD")


def _make_repo(tmp_path):
    repo = tmp_path / "remote"
    _init_repo(repo)
    (repo / "commands").mkdir()
    (repo / "commands" / "hello.md").write_text("hello v1\n", encoding="utf-8")
    (repo / "bundles" / "nested" / "rules").mkdir(parents=True)
    (repo / "bundles" / "nested" / "rules" / "style.md").write_text("style\n", encoding="utf-8")
    first = _commit_all(repo, "initial")
    return repo, first


def test_fetch_resolves_default_branch_and_caches_checkout(tmp_path) -> None:
    repo, first = _make_repo(tmp_path)
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")

    fetched = fetcher.fetch(BundleReference(kind="git", url=str(repo)))

    assert fetched.sha == first
    assert fetched.ref == "main"
    assert (fetched.root / "commands" / "hello.md").read_text(encoding="utf-8") == "hello v1\n"
    assert fetched.root == fetcher.checkout_path(str(repo), first).resolve()


def test_fetch_with_pin_ignores_newer_commits(tmp_path) -> None:
    repo, first = _make_repo(tmp_path)
    (repo / "commands" / "hello.md").write_text("hello v2\n", encoding="utf-8")
    second = _commit_all(repo, "update")
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")

    pinned = fetcher.fetch(BundleReference(kind="git", url=str(repo)), pin=first)
    latest = fetcher.fetch(BundleReference(kind="git", url=str(repo), ref="main"))

    assert (pinned.root / "commands" / "hello.md").read_text(encoding="utf-8") == "hello v1\n"
    assert latest.sha == second
    assert (latest.root / "commands" / "hello.md").read_text(encoding="utf-8") == "hello v2\n"


def test_fetch_subdirectory_and_missing_subdirectory(tmp_path) -> None:
    repo, _ = _make_repo(tmp_path)
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")

    nested = fetcher.fetch(BundleReference(kind="git", url=str(repo), path="bundles/nested"))
    assert (nested.root / "rules" / "style.md").is_file()

    with pytest.raises(BundleNotFoundError):
        fetcher.fetch(BundleReference(kind="git", url=str(repo), path="bundles/missing"))


def test_fetch_unknown_ref_fails_with_reason(tmp_path) -> None:
    repo, _ = _make_repo(tmp_path)
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")

    with pytest.raises(FetchFailedError, match="Failed to fetch") as exc_info:
        fetcher.fetch(BundleReference(kind="git", url=str(repo), ref="no-such-branch"))

    assert "no-such-branch" in exc_info.value.reason


def test_fetch_missing_repository_fails(tmp_path) -> None:
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")

    with pytest.raises(FetchFailedError):
        fetcher.fetch(BundleReference(kind="git", url=str(tmp_path / "does-not-exist")))


def test_local_directories_stay_inside_the_workspace(tmp_path) -> None:
    workspace = tmp_path / "ws"
    (workspace / "bundles" / "a").mkdir(parents=True)
    fetcher = GitBundleFetcher(workspace, cache_dir=tmp_path / "cache")

    fetched = fetcher.fetch(BundleReference(kind="dir", path="bundles/a"))
    assert fetched.root == (workspace / "bundles" / "a").resolve()
    assert fetched.sha is None

    with pytest.raises(PathEscapeError):
        fetcher.fetch(BundleReference(kind="dir", path="../elsewhere"))
    with pytest.raises(BundleNotFoundError):
        fetcher.fetch(BundleReference(kind="dir", path="bundles/missing"))


def test_locate_never_fetches(tmp_path) -> None:
    repo, first = _make_repo(tmp_path)
    fetcher = GitBundleFetcher(tmp_path / "ws", cache_dir=tmp_path / "cache")
    reference = BundleReference(kind="git", url=str(repo))

    assert fetcher.locate(reference, first) is None
    fetcher.fetch(reference, pin=first)
    assert fetcher.locate(reference, first) == fetcher.checkout_path(str(repo), first).resolve()


def test_parse_ls_remote_prefers_peeled_tag() -> None:
    output = "1111111111111111111111111111111111111111\trefs/tags/v1\n" \
        "2222222222222222222222222222222222222222\trefs/tags/v1^{}\n"

    assert _parse_ls_remote_commit(output) == "2" * 40


def test_parse_symref_branch() -> None:
    output = "ref: refs/heads/trunk\tHEAD\n3333333333333333333333333333333333333333\tHEAD\n"

    assert _parse_symref_branch(output) == "trunk"
    assert _parse_ls_remote_commit(output) == "3" * 40
