from __future__ import annotations

import pytest

from augent.core.exceptions import LockfileMissingError, LockfileOutdatedError
from augent.resolver.reconcile import ensure_frozen, reconcile_lockfile
from augent.workspace.lockfile import DirSource, GitSource, LockedBundle, Lockfile
from augent.workspace.workspace import Workspace


def _dir(name: str, content: str = "1") -> LockedBundle:
    return LockedBundle(
        name=name,
        source=DirSource(path=f"bundles/{name}", hash=f"sha256:{content * 64}"),
    )


def _git(name: str, sha: str) -> LockedBundle:
    return LockedBundle(
        name=name,
        source=GitSource(
            url=f"https://github.com/acme/{name}.git",
            sha=sha * 40,
            hash=f"sha256:{sha * 64}",
        ),
    )


def _names(lockfile: Lockfile) -> list[str]:
    return [bundle.name for bundle in lockfile.bundles]


def test_unchanged_entries_keep_their_objects() -> None:
    base, app = _dir("base"), _dir("app")
    previous = Lockfile(name="ws", bundles=[base, app])

    reconciled = reconcile_lockfile(previous, [_dir("base"), _dir("app")])

    assert reconciled.bundles[0] is base
    assert reconciled.bundles[1] is app
    assert reconciled.to_json() == previous.to_json()


def test_changed_pin_is_replaced_in_place() -> None:
    previous = Lockfile(name="ws", bundles=[_git("base", "a"), _dir("other"), _dir("app")])
    updated = _git("base", "b")

    reconciled = reconcile_lockfile(previous, [updated])

    assert _names(reconciled) == ["base", "other", "app"]
    assert reconciled.bundles[0] is updated
    assert reconciled.bundles[0].sha == "b" * 40


def test_changed_pin_keeps_the_locked_name() -> None:
    previous = Lockfile(name="ws", bundles=[_git("base", "a"), _dir("app")])
    renamed = _git("base", "b").model_copy(update={"name": "@acme/base"})

    reconciled = reconcile_lockfile(previous, [renamed])

    assert _names(reconciled) == ["base", "app"]
    assert reconciled.bundles[0].sha == "b" * 40


def test_new_dependency_goes_before_its_dependent() -> None:
    previous = Lockfile(name="ws", bundles=[_dir("other"), _dir("app")])

    reconciled = reconcile_lockfile(previous, [_dir("base"), _dir("app")])

    assert _names(reconciled) == ["other", "base", "app"]


def test_new_bundles_are_appended() -> None:
    previous = Lockfile(name="ws", bundles=[_dir("first")])

    reconciled = reconcile_lockfile(previous, [_dir("c"), _dir("b")], name="renamed")

    assert _names(reconciled) == ["first", "c", "b"]
    assert reconciled.name == "renamed"


def test_unresolved_entries_are_retained() -> None:
    previous = Lockfile(name="ws", bundles=[_dir("old"), _dir("app")])

    reconciled = reconcile_lockfile(previous, [_dir("app", "2")])

    assert _names(reconciled) == ["old", "app"]
    assert reconciled.bundles[0] is previous.bundles[0]


def test_resolution_order_wins_over_stale_order() -> None:
    previous = Lockfile(name="ws", bundles=[_dir("app"), _dir("base")])

    reconciled = reconcile_lockfile(previous, [_dir("base"), _dir("app")])

    assert _names(reconciled) == ["base", "app"]


def test_frozen_requires_lockfile(tmp_path) -> None:
    workspace = Workspace.open(tmp_path)

    with pytest.raises(LockfileMissingError):
        ensure_frozen(workspace, Lockfile(name="ws"))


def test_frozen_accepts_identical_lock(tmp_path) -> None:
    workspace = Workspace.open(tmp_path)
    workspace.lockfile = Lockfile(name=workspace.name, bundles=[_dir("app")])
    workspace.save()
    reopened = Workspace.open(tmp_path)

    ensure_frozen(reopened, reconcile_lockfile(reopened.lockfile, [_dir("app")]))


def test_frozen_reports_changed_bundles(tmp_path) -> None:
    workspace = Workspace.open(tmp_path)
    workspace.lockfile = Lockfile(name=workspace.name, bundles=[_dir("app")])
    workspace.save()
    reopened = Workspace.open(tmp_path)

    reconciled = reconcile_lockfile(reopened.lockfile, [_dir("base"), _dir("app", "2")])

    with pytest.raises(LockfileOutdatedError, match="base, app"):
        ensure_frozen(reopened, reconciled)
