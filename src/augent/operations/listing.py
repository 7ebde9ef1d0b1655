"""Read-only views over the lockfile and index for ``list`` and ``show``."""

from __future__ import annotations

from dataclasses import dataclass, field

from augent.core.exceptions import BundleNotFoundError
from augent.resolver.graph import dependency_identity
from augent.workspace.lockfile import GitSource, LockedBundle
from augent.workspace.workspace import Workspace


@dataclass(frozen=True)
class BundleSummary:
    name: str
    kind: str
    source: str
    ref: str | None
    sha: str | None
    file_count: int
    installed_count: int
    direct: bool


@dataclass
class BundleDetails:
    summary: BundleSummary
    description: str | None = None
    version: str | None = None
    author: str | None = None
    license: str | None = None
    homepage: str | None = None
    hash: str = ""
    files: list[str] = field(default_factory=list)
    installed: dict[str, list[str]] = field(default_factory=dict)


def _summarize(workspace: Workspace, entry: LockedBundle) -> BundleSummary:
    source = entry.source
    index_entry = workspace.index.find(entry.name)
    return BundleSummary(
        name=entry.name,
        kind=source.type,
        source=entry.reference.describe() if isinstance(source, GitSource) else source.path,
        ref=source.ref if isinstance(source, GitSource) else None,
        sha=entry.sha,
        file_count=len(entry.files),
        installed_count=len(index_entry.locations()) if index_entry else 0,
        direct=any(
            dependency_identity(dependency, workspace.root) == entry.identity
            for dependency in workspace.manifest.bundles
        ),
    )


def list_bundles(workspace: Workspace) -> list[BundleSummary]:
    """Installed bundles in lockfile order."""
    return [_summarize(workspace, entry) for entry in workspace.lockfile.bundles]


def show_bundle(workspace: Workspace, name: str) -> BundleDetails:
    entry = workspace.lockfile.find(name)
    if entry is None:
        raise BundleNotFoundError(name)
    index_entry = workspace.index.find(name)
    return BundleDetails(
        summary=_summarize(workspace, entry),
        description=entry.description,
        version=entry.version,
        author=entry.author,
        license=entry.license,
        homepage=entry.homepage,
        hash=entry.source.hash,
        files=list(entry.files),
        installed=index_entry.to_payload()["enabled"] if index_entry else {},
    )
