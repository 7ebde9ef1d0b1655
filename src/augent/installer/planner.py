"""
Install planning.

The planner decides, for every resource of every bundle and every selected
platform, what happens at the target location. It runs entirely in memory:
planned file contents are tracked per location so a later bundle in the same
run sees what an earlier one will write, and a dry run reports exactly the
decisions a real run would carry out.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Sequence

from augent.core.exceptions import MergeFailedError, wrap_os_error
from augent.core.logging.logger import get_logger
from augent.platforms.merge import merge_content
from augent.platforms.registry import MergeStrategy, Platform, platform_for_location
from augent.platforms.transform import target_paths
from augent.resources.discovery import (
    Resource,
    ResourceConflict,
    detect_conflicts,
    leaf_skill_dirs,
    skill_root_for,
)
from augent.resources.hashing import hash_bytes
from augent.resolver.graph import ResolvedBundle
from augent.workspace.index import IndexBundle, WorkspaceIndex

logger = get_logger(__name__)


class PlanAction(str, Enum):
    CREATE = "create"
    OVERWRITE = "overwrite"
    MERGE = "merge"
    UNCHANGED = "unchanged"
    SKIP_MODIFIED = "skip_modified"
    REMOVE_STALE = "remove_stale"

    @property
    def writes(self) -> bool:
        return self in (PlanAction.CREATE, PlanAction.OVERWRITE, PlanAction.MERGE)


@dataclass(frozen=True)
class PlannedOperation:
    bundle: str
    location: str
    action: PlanAction
    resource: str | None = None
    platform_id: str | None = None
    content: bytes | None = field(default=None, repr=False)


@dataclass
class InstallPlan:
    operations: list[PlannedOperation] = field(default_factory=list)
    index_entries: list[IndexBundle] = field(default_factory=list)
    checksums: dict[str, str] = field(default_factory=dict)
    conflicts: list[ResourceConflict] = field(default_factory=list)

    def count(self, action: PlanAction) -> int:
        return sum(1 for operation in self.operations if operation.action is action)

    def by_action(self, action: PlanAction) -> list[PlannedOperation]:
        return [operation for operation in self.operations if operation.action is action]


class InstallPlanner:
    """Plan the installation of ``bundles`` (dependencies first) for ``platforms``."""

    def __init__(
        self,
        workspace_root: Path,
        platforms: Sequence[Platform],
        index: WorkspaceIndex,
    ) -> None:
        self.workspace_root = workspace_root
        self.platforms = list(platforms)
        self.index = index
        self._planned: dict[str, bytes] = {}
        self._checksums: dict[str, str] = dict(index.checksums)

    def plan(self, bundles: Sequence[ResolvedBundle]) -> InstallPlan:
        plan = InstallPlan(
            conflicts=detect_conflicts({bundle.name: bundle.resources for bundle in bundles})
        )
        planned_names = {bundle.name for bundle in bundles}
        claimed_this_run: set[str] = set()

        for bundle in bundles:
            entry = IndexBundle(name=bundle.name)
            leaves = leaf_skill_dirs(resource.path for resource in bundle.resources)
            for resource in bundle.resources:
                self._plan_resource(plan, bundle.name, resource, leaves, entry)
            entry.enabled = {
                resource: sorted(set(locations)) for resource, locations in entry.enabled.items()
            }
            claimed_this_run |= entry.locations()
            plan.index_entries.append(entry)

        for entry in plan.index_entries:
            self._plan_stale(plan, entry, planned_names, claimed_this_run)

        plan.checksums = self._checksums
        return plan

    def _plan_resource(
        self,
        plan: InstallPlan,
        bundle_name: str,
        resource: Resource,
        leaves: set[str],
        entry: IndexBundle,
    ) -> None:
        incoming = self._read_source(resource)
        skill_root = skill_root_for(resource.path, leaves)
        for target in target_paths(self.platforms, resource, skill_root=skill_root):
            location = target.location
            entry.enabled.setdefault(resource.path, []).append(location)

            existing = self._current(location)
            structured = target.merge is not MergeStrategy.REPLACE and not resource.is_binary

            if existing is None:
                content = self._merge(b"", incoming, target.merge, location) if structured else incoming
                action = PlanAction.CREATE
            elif self._is_modified(location, existing):
                logger.warning(
                    "Skipping file modified since it was installed",
                    data={"path": location, "bundle": bundle_name},
                )
                plan.operations.append(
                    PlannedOperation(
                        bundle_name,
                        location,
                        PlanAction.SKIP_MODIFIED,
                        resource=resource.path,
                        platform_id=target.platform_id,
                    )
                )
                continue
            elif structured:
                content = self._merge(existing, incoming, target.merge, location)
                action = PlanAction.UNCHANGED if content == existing else PlanAction.MERGE
            else:
                content = incoming
                action = PlanAction.UNCHANGED if content == existing else PlanAction.OVERWRITE

            self._planned[location] = content
            self._checksums[location] = hash_bytes(content)
            logger.debug(
                "Planned install",
                data={"path": location, "action": action.value, "bundle": bundle_name},
            )
            plan.operations.append(
                PlannedOperation(
                    bundle_name,
                    location,
                    action,
                    resource=resource.path,
                    platform_id=target.platform_id,
                    content=content if action.writes else None,
                )
            )

    def _plan_stale(
        self,
        plan: InstallPlan,
        entry: IndexBundle,
        planned_names: set[str],
        claimed_this_run: set[str],
    ) -> None:
        """Drop locations the bundle wrote last time but no longer provides."""
        previous = self.index.find(entry.name)
        if previous is None:
            return
        for location in sorted(previous.locations() - entry.locations()):
            if location in claimed_this_run:
                continue
            if self.index.claimants(location, exclude=planned_names):
                continue
            existing = self._current(location)
            modified = existing is not None and self._is_modified(location, existing)
            self._checksums.pop(location, None)
            if existing is None or modified:
                continue
            owner = platform_for_location(location)
            plan.operations.append(
                PlannedOperation(
                    entry.name,
                    location,
                    PlanAction.REMOVE_STALE,
                    platform_id=owner.id if owner is not None else None,
                )
            )

    def _current(self, location: str) -> bytes | None:
        if location in self._planned:
            return self._planned[location]
        path = self.workspace_root / location
        if not path.is_file():
            return None
        try:
            return path.read_bytes()
        except OSError as exc:
            raise wrap_os_error(exc, path) from exc

    def _is_modified(self, location: str, content: bytes) -> bool:
        """True when the file on disk differs from what was last installed there."""
        if location in self._planned:
            return False
        recorded = self._checksums.get(location)
        return recorded is not None and recorded != hash_bytes(content)

    @staticmethod
    def _read_source(resource: Resource) -> bytes:
        try:
            return resource.absolute_path.read_bytes()
        except OSError as exc:
            raise wrap_os_error(exc, resource.absolute_path) from exc

    @staticmethod
    def _merge(existing: bytes, incoming: bytes, strategy: MergeStrategy, location: str) -> bytes:
        try:
            existing_text = existing.decode("utf-8")
            incoming_text = incoming.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MergeFailedError(f"Cannot merge non-UTF-8 content at {location}", str(exc)) from exc
        try:
            merged = merge_content(existing_text, incoming_text, strategy)
        except MergeFailedError as exc:
            raise MergeFailedError(f"{exc.message} ({location})", exc.details) from exc
        return merged.encode("utf-8")


def plan_install(
    workspace_root: Path,
    bundles: Sequence[ResolvedBundle],
    platforms: Sequence[Platform],
    index: WorkspaceIndex,
) -> InstallPlan:
    return InstallPlanner(workspace_root, platforms, index).plan(bundles)
