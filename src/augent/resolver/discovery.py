"""Enumerate the bundles a source offers.

A source is a single bundle when its root holds an ``augent.yaml`` or any
resource. Otherwise every nested directory that is a bundle is offered, and a
``.claude-plugin/marketplace.json`` offers its plugins instead.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Iterator

from augent.constants import MANIFEST_FILENAME, RESOURCE_DIRS, RESOURCE_FILES
from augent.core.exceptions import BundleNotFoundError
from augent.core.logging.logger import get_logger
from augent.resolver.graph import request_for_reference, workspace_reference
from augent.sources.fetch import BundleFetcher
from augent.sources.marketplace import load_marketplace, plugin_path
from augent.sources.reference import BundleReference, join_relative_path, repo_name_from_url

logger = get_logger(__name__)


@dataclass(frozen=True)
class DiscoveredBundle:
    name: str
    reference: BundleReference
    description: str | None = None


def is_bundle_directory(path: Path) -> bool:
    if (path / MANIFEST_FILENAME).is_file():
        return True
    if any((path / directory).is_dir() for directory in RESOURCE_DIRS):
        return True
    return any((path / filename).is_file() for filename in RESOURCE_FILES)


def bundle_directories(root: Path) -> Iterator[str]:
    """Yield bundle directories below ``root`` as relative POSIX paths.

    The search stops descending at the first bundle on each branch and skips
    hidden directories.
    """
    if is_bundle_directory(root):
        yield "."
        return
    pending = [root]
    while pending:
        current = pending.pop(0)
        for child in sorted(current.iterdir()):
            if not child.is_dir() or child.name.startswith("."):
                continue
            if is_bundle_directory(child):
                yield child.relative_to(root).as_posix()
            else:
                pending.append(child)


def discover_bundles(
    reference: BundleReference,
    fetcher: BundleFetcher,
    workspace_root: Path,
) -> list[DiscoveredBundle]:
    """Every bundle ``reference`` offers, sorted by name."""
    reference = workspace_reference(reference, workspace_root)
    fetched = fetcher.fetch(reference)

    marketplace = load_marketplace(fetched.root)
    if marketplace is not None and marketplace.plugins:
        found = [
            _plugin_bundle(reference, plugin.name, plugin.description, workspace_root)
            for plugin in marketplace.plugins
        ]
    else:
        found = []
        for relative in bundle_directories(fetched.root):
            child = _child(reference, relative)
            request = request_for_reference(child, workspace_root)
            found.append(DiscoveredBundle(request.name, request.reference))

    if not found:
        raise BundleNotFoundError(reference.describe(), "the source contains no bundles")
    logger.debug(
        "Discovered bundles",
        data={"source": reference.describe(), "count": len(found)},
    )
    return sorted(found, key=lambda bundle: bundle.name)


def _child(reference: BundleReference, relative: str) -> BundleReference:
    label = "repository root" if reference.kind == "git" else "workspace"
    path = join_relative_path(reference.path, relative, root_label=label)
    if reference.kind == "git":
        return replace(reference, path=None if path == "." else path)
    return replace(reference, path=path)


def _plugin_bundle(
    reference: BundleReference,
    plugin: str,
    description: str | None,
    workspace_root: Path,
) -> DiscoveredBundle:
    base = None if reference.path in (None, ".") else reference.path
    child = replace(reference, path=plugin_path(base, plugin))
    if reference.kind == "git":
        name = f"{repo_name_from_url(reference.url or '')}/{plugin}"
    else:
        name = plugin
    return DiscoveredBundle(name, workspace_reference(child, workspace_root), description)
