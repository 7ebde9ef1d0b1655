"""Merge a fresh resolution into the persisted lockfile."""

from __future__ import annotations

from typing import Sequence

from augent.core.exceptions import LockfileMissingError, LockfileOutdatedError
from augent.core.logging.logger import get_logger
from augent.sources.reference import BundleIdentity
from augent.workspace.lockfile import LockedBundle, Lockfile
from augent.workspace.workspace import Workspace

logger = get_logger(__name__)


def reconcile_lockfile(
    previous: Lockfile,
    resolved: Sequence[LockedBundle],
    *,
    name: str | None = None,
) -> Lockfile:
    """Return the lockfile that results from recording ``resolved``.

    ``resolved`` is in dependency order. Entries whose pin is unchanged are
    kept as the previous objects, changed pins are replaced where they stand
    under the name already locked,
    new bundles are placed ahead of the first existing entry that depends on
    them, and entries missing from ``resolved`` are retained untouched.
    """
    entries: list[LockedBundle] = list(previous.bundles)
    positions = {entry.identity: index for index, entry in enumerate(entries)}
    resolved_ids = [bundle.identity for bundle in resolved]

    for offset, bundle in enumerate(resolved):
        identity = resolved_ids[offset]
        existing_at = positions.get(identity)
        if existing_at is not None:
            current = entries[existing_at]
            if current.same_pin(bundle):
                continue
            logger.debug("Updating lock entry", data={"name": current.name})
            if bundle.name != current.name:
                # A locked bundle keeps its name whatever it is requested as.
                bundle = bundle.model_copy(update={"name": current.name})
            entries[existing_at] = bundle
            continue

        later = [positions[other] for other in resolved_ids[offset + 1 :] if other in positions]
        insert_at = min(later) if later else len(entries)
        entries.insert(insert_at, bundle)
        positions = {entry.identity: index for index, entry in enumerate(entries)}
        logger.debug("Adding lock entry", data={"name": bundle.name, "position": insert_at})

    _restore_dependency_order(entries, resolved_ids)
    return Lockfile(name=name or previous.name, bundles=entries)


def _restore_dependency_order(entries: list[LockedBundle], order: Sequence[BundleIdentity]) -> None:
    """Refill the slots held by resolved bundles in resolution order."""
    rank = {identity: index for index, identity in enumerate(order)}
    slots = [index for index, entry in enumerate(entries) if entry.identity in rank]
    ordered = sorted((entries[index] for index in slots), key=lambda entry: rank[entry.identity])
    for slot, entry in zip(slots, ordered):
        entries[slot] = entry


def ensure_frozen(workspace: Workspace, reconciled: Lockfile) -> None:
    """Fail unless ``reconciled`` is exactly the lockfile already on disk."""
    if not workspace.has_lockfile:
        raise LockfileMissingError(workspace.lockfile_path)

    current = workspace.lockfile
    if reconciled.to_json() == current.to_json():
        return

    current_pins = {entry.identity: entry for entry in current.bundles}
    changed = [
        entry.name
        for entry in reconciled.bundles
        if entry.identity not in current_pins or not current_pins[entry.identity].same_pin(entry)
    ]
    details = f"changed bundles: {', '.join(changed)}" if changed else "bundle order changed"
    raise LockfileOutdatedError(details)
