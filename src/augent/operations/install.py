"""The ``install`` operation: resolve, lock, plan and write bundles."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Sequence

from augent.config import Settings, get_settings
from augent.core.exceptions import ConfigurationError, LockfileMissingError
from augent.core.logging.logger import get_logger
from augent.installer.executor import execute_plan
from augent.installer.planner import InstallPlan, PlanAction, PlannedOperation, plan_install
from augent.installer.transaction import Transaction
from augent.platforms.registry import Platform, detect_platforms, resolve_platforms
from augent.resolver.graph import (
    BundleRequest,
    DependencyResolver,
    ResolvedBundle,
    dependency_identity,
    request_for_reference,
    workspace_reference,
)
from augent.resolver.discovery import discover_bundles
from augent.resolver.reconcile import ensure_frozen, reconcile_lockfile
from augent.resources.discovery import ResourceConflict
from augent.sources.fetch import BundleFetcher, GitBundleFetcher
from augent.sources.reference import BundleReference, parse_bundle_reference
from augent.workspace.lockfile import LockedBundle, Lockfile
from augent.workspace.manifest import DependencySpec
from augent.workspace.workspace import Workspace

logger = get_logger(__name__)


@dataclass
class InstallReport:
    bundles: list[LockedBundle] = field(default_factory=list)
    platforms: list[str] = field(default_factory=list)
    operations: list[PlannedOperation] = field(default_factory=list)
    conflicts: list[ResourceConflict] = field(default_factory=list)
    manifest_entries: list[DependencySpec] = field(default_factory=list)
    lockfile_changed: bool = False
    dry_run: bool = False

    def count(self, action: PlanAction) -> int:
        return sum(1 for operation in self.operations if operation.action is action)

    @property
    def skipped(self) -> list[PlannedOperation]:
        return [op for op in self.operations if op.action is PlanAction.SKIP_MODIFIED]

    @property
    def untargeted_removals(self) -> list[PlannedOperation]:
        """Stale files removed from platforms this run no longer installs to."""
        return [
            op
            for op in self.operations
            if op.action is PlanAction.REMOVE_STALE
            and op.platform_id is not None
            and op.platform_id not in self.platforms
        ]


def select_platforms(
    workspace: Workspace,
    requested: Sequence[str] | None,
    settings: Settings,
) -> list[Platform]:
    """Explicit ids win, then platforms detected in the workspace, then settings."""
    if requested:
        return resolve_platforms(requested)
    detected = detect_platforms(workspace.root)
    if detected:
        return detected
    if settings.platforms:
        return resolve_platforms(settings.platforms)
    raise ConfigurationError(
        "No platforms detected in the workspace",
        "pass --to <platform> or set 'platforms' in augent.config.yaml",
    )


def manifest_entry_for(request: BundleRequest) -> DependencySpec:
    reference = request.reference
    if reference.kind == "git":
        return DependencySpec(
            name=request.name,
            git=reference.url,
            ref=reference.ref,
            path=reference.path,
        )
    return DependencySpec(name=request.name, path=reference.identity.location)


def _workspace_requests(workspace: Workspace) -> list[BundleRequest]:
    return [
        BundleRequest(dependency.name, workspace_reference(dependency.to_reference(), workspace.root))
        for dependency in workspace.manifest.bundles
    ]


def install(
    workspace: Workspace,
    source: str | BundleReference | None = None,
    *,
    platforms: Sequence[str] | None = None,
    frozen: bool = False,
    dry_run: bool = False,
    update: bool = False,
    all_bundles: bool = False,
    fetcher: BundleFetcher | None = None,
    settings: Settings | None = None,
) -> InstallReport:
    """Install ``source`` (or every bundle the workspace manifest lists).

    With ``all_bundles`` every bundle the source contains is installed
    instead of the source itself. Nothing is written when any step fails,
    and nothing at all in dry-run mode. In frozen mode the lockfile must
    already describe the resolution exactly and is never rewritten.
    """
    settings = settings or get_settings()
    fetcher = fetcher or GitBundleFetcher(workspace.root, settings=settings)

    if frozen and not workspace.has_lockfile:
        raise LockfileMissingError(workspace.lockfile_path)
    if all_bundles and source is None:
        raise ConfigurationError("Installing all bundles needs a source", "pass the source to search for bundles")

    if source is None:
        requests = _workspace_requests(workspace)
    else:
        reference = parse_bundle_reference(source) if isinstance(source, str) else source
        if all_bundles:
            requests = [
                BundleRequest(bundle.name, bundle.reference)
                for bundle in discover_bundles(reference, fetcher, workspace.root)
            ]
        else:
            requests = [request_for_reference(reference, workspace.root)]

    resolver = DependencyResolver(
        fetcher,
        workspace.root,
        lockfile=workspace.lockfile,
        update=update and not frozen,
    )
    resolved = resolver.resolve(requests)
    logger.debug("Resolved bundles", data={"count": len(resolved)})

    lockfile = reconcile_lockfile(
        workspace.lockfile,
        [bundle.to_locked() for bundle in resolved],
        name=workspace.name,
    )
    if frozen:
        ensure_frozen(workspace, lockfile)

    # Bundles already locked keep their locked name everywhere.
    ordered = _in_lock_order(resolved, lockfile)
    selected = select_platforms(workspace, platforms, settings)
    plan = plan_install(workspace.root, ordered, selected, workspace.index)

    manifest_entries: list[DependencySpec] = []
    if source is not None and not frozen:
        for request in requests:
            locked = lockfile.find_by_identity(request.reference.identity)
            name = locked.name if locked is not None else request.name
            manifest_entries.append(manifest_entry_for(BundleRequest(name, request.reference)))

    report = InstallReport(
        bundles=[bundle.to_locked() for bundle in ordered],
        platforms=[platform.id for platform in selected],
        operations=list(plan.operations),
        conflicts=list(plan.conflicts),
        manifest_entries=manifest_entries,
        lockfile_changed=lockfile.to_json() != workspace.lockfile.to_json() or not workspace.has_lockfile,
        dry_run=dry_run,
    )
    for conflict in plan.conflicts:
        logger.info(
            "Resource provided by more than one bundle",
            data={"path": conflict.path, "first": conflict.first_bundle, "second": conflict.second_bundle},
        )
    if dry_run:
        return report

    with Transaction(workspace.root, workspace.store_paths) as transaction:
        execute_plan(plan, workspace.root, transaction)
        _record(workspace, plan, manifest_entries)
        if not frozen:
            workspace.lockfile = lockfile
        workspace.save(include_lockfile=not frozen)
        transaction.commit()
    return report


def _in_lock_order(resolved: Sequence[ResolvedBundle], lockfile: Lockfile) -> list[ResolvedBundle]:
    positions = {entry.identity: (position, entry.name) for position, entry in enumerate(lockfile.bundles)}
    ordered = sorted(resolved, key=lambda bundle: positions[bundle.identity][0])
    return [replace(bundle, name=positions[bundle.identity][1]) for bundle in ordered]


def _record(workspace: Workspace, plan: InstallPlan, manifest_entries: Sequence[DependencySpec]) -> None:
    for entry in plan.index_entries:
        workspace.index.put(entry)
    workspace.index.checksums = dict(plan.checksums)
    manifest = workspace.manifest
    for manifest_entry in manifest_entries:
        identity = dependency_identity(manifest_entry, workspace.root)
        manifest.bundles = [
            dependency
            for dependency in manifest.bundles
            if dependency.name == manifest_entry.name
            or dependency_identity(dependency, workspace.root) != identity
        ]
        manifest.add_dependency(manifest_entry)
