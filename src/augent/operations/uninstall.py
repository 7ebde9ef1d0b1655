"""
The ``uninstall`` operation.

Removal is driven by the index: only locations recorded for a removed bundle
are deleted, and a location survives when a retained bundle also claims it.
Dependencies of the removed bundles are removed with them once nothing else
needs them, unless the workspace manifest lists them directly.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from augent.core.exceptions import BundleNotFoundError
from augent.core.logging.logger import get_logger
from augent.installer.transaction import Transaction
from augent.resolver.graph import child_reference, dependency_identity
from augent.sources.fetch import BundleFetcher, GitBundleFetcher
from augent.sources.reference import BundleIdentity
from augent.workspace.lockfile import LockedBundle, Lockfile
from augent.workspace.manifest import load_bundle_manifest
from augent.workspace.workspace import Workspace

logger = get_logger(__name__)

NO_MATCH_MESSAGE = "No bundles found matching scope"


@dataclass
class UninstallReport:
    requested: str
    targets: list[str] = field(default_factory=list)
    cascaded: list[str] = field(default_factory=list)
    removed_files: list[str] = field(default_factory=list)
    kept_files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    message: str | None = None
    dry_run: bool = False

    @property
    def removed_bundles(self) -> list[str]:
        return [*self.targets, *self.cascaded]


class DependencyGraph:
    """Identity-keyed adjacency list rebuilt from the locked bundles' manifests."""

    def __init__(self, edges: dict[BundleIdentity, list[BundleIdentity]]) -> None:
        self.edges = edges

    @classmethod
    def from_lockfile(cls, workspace: Workspace, fetcher: BundleFetcher) -> "DependencyGraph":
        known = {entry.identity for entry in workspace.lockfile.bundles}
        edges: dict[BundleIdentity, list[BundleIdentity]] = {}
        for entry in workspace.lockfile.bundles:
            edges[entry.identity] = [
                identity for identity in _declared_dependencies(workspace, fetcher, entry) if identity in known
            ]
        return cls(edges)

    def dependencies(self, identity: BundleIdentity) -> list[BundleIdentity]:
        return self.edges.get(identity, [])

    def dependents(self, identity: BundleIdentity) -> set[BundleIdentity]:
        return {parent for parent, children in self.edges.items() if identity in children}

    def closure(self, roots: set[BundleIdentity]) -> set[BundleIdentity]:
        """Every bundle reachable from ``roots``, excluding the roots themselves."""
        seen: set[BundleIdentity] = set()
        pending = [child for root in roots for child in self.dependencies(root)]
        while pending:
            identity = pending.pop()
            if identity in seen or identity in roots:
                continue
            seen.add(identity)
            pending.extend(self.dependencies(identity))
        return seen


def _declared_dependencies(
    workspace: Workspace,
    fetcher: BundleFetcher,
    entry: LockedBundle,
) -> list[BundleIdentity]:
    reference = entry.reference
    root = fetcher.locate(reference, entry.sha)
    if root is None:
        logger.debug("Bundle source unavailable, assuming no dependencies", data={"name": entry.name})
        return []
    manifest = load_bundle_manifest(root)
    if manifest is None:
        return []
    return [
        child_reference(reference, dependency, workspace_root=workspace.root).identity
        for dependency in manifest.bundles
    ]


def is_scope_request(name: str, all_matching: bool) -> bool:
    return all_matching or name.startswith("@") or name.endswith("/")


def match_targets(lockfile: Lockfile, name: str, *, all_matching: bool = False) -> list[LockedBundle]:
    """Exact name match, otherwise every bundle under the ``name/`` scope.

    Scopes (``@owner``, ``@owner/repo``, ``name/``) match case-insensitively.
    """
    if not is_scope_request(name, all_matching):
        return [entry for entry in lockfile.bundles if entry.name == name]
    scope = name.rstrip("/").lower()
    scoped = [
        entry
        for entry in lockfile.bundles
        if entry.name.lower() == scope or entry.name.lower().startswith(f"{scope}/")
    ]
    if all_matching or name.endswith("/"):
        return scoped
    exact = [entry for entry in scoped if entry.name.lower() == scope]
    return exact or scoped


def _manifest_target(workspace: Workspace, name: str) -> list[LockedBundle]:
    """The locked bundle a workspace manifest entry called ``name`` resolved to."""
    dependency = workspace.manifest.find_dependency(name)
    if dependency is None:
        return []
    entry = workspace.lockfile.find_by_identity(dependency_identity(dependency, workspace.root))
    return [entry] if entry is not None else []


def uninstall(
    workspace: Workspace,
    name: str,
    *,
    all_matching: bool = False,
    dry_run: bool = False,
    force: bool = False,
    fetcher: BundleFetcher | None = None,
) -> UninstallReport:
    report = UninstallReport(requested=name, dry_run=dry_run)
    targets = match_targets(workspace.lockfile, name, all_matching=all_matching)
    if not targets:
        targets = _manifest_target(workspace, name)
    if not targets:
        if is_scope_request(name, all_matching):
            report.message = NO_MATCH_MESSAGE
            logger.info(NO_MATCH_MESSAGE, data={"scope": name})
            return report
        raise BundleNotFoundError(name)

    fetcher = fetcher or GitBundleFetcher(workspace.root)
    graph = DependencyGraph.from_lockfile(workspace, fetcher)
    by_identity = {entry.identity: entry for entry in workspace.lockfile.bundles}
    direct = {dependency_identity(dependency, workspace.root) for dependency in workspace.manifest.bundles}

    target_ids = {entry.identity for entry in targets}
    removal = set(target_ids)
    candidates = graph.closure(target_ids)
    changed = True
    while changed:
        changed = False
        for identity in sorted(candidates - removal, key=str):
            if identity in direct:
                continue
            if graph.dependents(identity) <= removal:
                removal.add(identity)
                changed = True

    for entry in targets:
        outside = sorted(by_identity[parent].name for parent in graph.dependents(entry.identity) - removal)
        if outside and not force:
            warning = f"{entry.name} is still required by {', '.join(outside)}"
            report.warnings.append(warning)
            logger.warning("Removing a bundle other bundles depend on", data={"bundle": entry.name, "dependents": ", ".join(outside)})

    removed_entries = [entry for entry in workspace.lockfile.bundles if entry.identity in removal]
    removed_names = {entry.name for entry in removed_entries}
    report.targets = [entry.name for entry in removed_entries if entry.identity in target_ids]
    report.cascaded = [entry.name for entry in removed_entries if entry.identity not in target_ids]

    to_delete: list[str] = []
    for entry in removed_entries:
        index_entry = workspace.index.find(entry.name)
        if index_entry is None:
            continue
        for location in sorted(index_entry.locations()):
            if location in to_delete or location in report.kept_files:
                continue
            if workspace.index.claimants(location, exclude=removed_names):
                report.kept_files.append(location)
            else:
                to_delete.append(location)
    report.removed_files = [loc for loc in to_delete if (workspace.root / loc).exists()]

    if dry_run:
        return report

    with Transaction(workspace.root, workspace.store_paths) as transaction:
        for location in to_delete:
            transaction.delete(workspace.root / location)
            workspace.index.checksums.pop(location, None)
        for entry in removed_entries:
            workspace.lockfile.remove(entry.name)
            workspace.index.remove(entry.name)
        workspace.manifest.bundles = [
            dependency
            for dependency in workspace.manifest.bundles
            if dependency_identity(dependency, workspace.root) not in removal
        ]
        workspace.save()
        transaction.commit()
    logger.debug("Uninstalled bundles", data={"bundles": ", ".join(report.removed_bundles)})
    return report
