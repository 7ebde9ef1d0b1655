"""
Dependency graph resolution.

Starting from one or more requested bundles, every bundle is fetched, its
``augent.yaml`` read and its dependencies followed depth first. The result
lists each distinct bundle exactly once with dependencies ahead of the
bundles that need them. Siblings are visited in the order they are declared.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterator, Sequence

from augent.constants import DEFAULT_GIT_REF
from augent.core.exceptions import CircularDependencyError, HashMismatchError, PathEscapeError
from augent.core.logging.logger import get_logger
from augent.resources.discovery import Resource, discover_resources
from augent.resources.hashing import hash_bundle_tree
from augent.sources.fetch import BundleFetcher
from augent.sources.reference import (
    BundleIdentity,
    BundleReference,
    git_bundle_name,
    join_relative_path,
    normalize_relative_path,
)
from augent.workspace.lockfile import DirSource, GitSource, LockedBundle, Lockfile
from augent.workspace.manifest import BundleManifest, DependencySpec, load_bundle_manifest

logger = get_logger(__name__)


@dataclass(frozen=True)
class BundleRequest:
    """A bundle asked for by name, either by the user or by a parent manifest."""

    name: str
    reference: BundleReference


@dataclass
class ResolvedBundle:
    name: str
    reference: BundleReference
    root: Path
    hash: str
    sha: str | None = None
    ref: str | None = None
    manifest: BundleManifest | None = None
    resources: list[Resource] = field(default_factory=list)
    dependencies: list[BundleIdentity] = field(default_factory=list)

    @property
    def identity(self) -> BundleIdentity:
        return self.reference.identity

    def to_locked(self) -> LockedBundle:
        if self.reference.kind == "git":
            source: DirSource | GitSource = GitSource(
                url=self.reference.url or "",
                path=self.reference.path,
                ref=self.ref or DEFAULT_GIT_REF,
                sha=self.sha or "",
                hash=self.hash,
            )
        else:
            source = DirSource(path=self.identity.location, hash=self.hash)

        metadata = self.manifest or BundleManifest()
        return LockedBundle(
            name=self.name,
            description=metadata.description,
            version=metadata.version,
            author=metadata.author,
            license=metadata.license,
            homepage=metadata.homepage,
            source=source,
            files=[resource.path for resource in self.resources],
        )


def workspace_reference(reference: BundleReference, workspace_root: Path) -> BundleReference:
    """Express a directory reference relative to the workspace root.

    Absolute paths are accepted only when they point inside the workspace.
    """
    if reference.kind != "dir":
        return reference
    raw = reference.path or "."
    candidate = Path(raw)
    if candidate.is_absolute():
        root = workspace_root.resolve()
        try:
            relative = candidate.resolve().relative_to(root)
        except ValueError as exc:
            raise PathEscapeError(raw, root) from exc
        return BundleReference(kind="dir", path=normalize_relative_path(relative.as_posix()))
    return BundleReference(
        kind="dir",
        path=join_relative_path(None, raw, root_label=str(workspace_root)),
    )


def dependency_identity(dependency: DependencySpec, workspace_root: Path) -> BundleIdentity:
    """Identity of a workspace manifest entry, comparable with locked bundles."""
    return workspace_reference(dependency.to_reference(), workspace_root).identity


def request_for_reference(reference: BundleReference, workspace_root: Path) -> BundleRequest:
    """Name a user supplied reference: ``@owner/repo[:path]`` or the directory name."""
    reference = workspace_reference(reference, workspace_root)
    if reference.kind == "git":
        return BundleRequest(git_bundle_name(reference.url or "", reference.path), reference)
    location = reference.identity.location
    name = workspace_root.name if location == "." else Path(location).name
    return BundleRequest(name, reference)


def child_reference(
    parent: BundleReference,
    dependency: DependencySpec,
    *,
    workspace_root: Path,
) -> BundleReference:
    """Reference for ``dependency`` as declared inside ``parent``'s manifest.

    Local paths inside a git bundle stay in the same repository and commit;
    local paths inside a directory bundle are relative to that directory.
    """
    if dependency.is_git:
        return dependency.to_reference()
    declared = dependency.path or "."
    if parent.kind == "git":
        subpath = join_relative_path(parent.path, declared, root_label="repository root")
        return BundleReference(
            kind="git",
            url=parent.url,
            path=None if subpath == "." else subpath,
            ref=parent.ref,
        )
    return BundleReference(
        kind="dir",
        path=join_relative_path(parent.path, declared, root_label=str(workspace_root)),
    )


@dataclass
class _Frame:
    bundle: ResolvedBundle
    pending: Iterator[DependencySpec]


class DependencyResolver:
    """Depth-first resolver with an explicit visiting stack.

    ``lockfile`` supplies the commits git bundles stay pinned to unless
    ``update`` is set or the requested ref differs from the locked one.
    """

    def __init__(
        self,
        fetcher: BundleFetcher,
        workspace_root: Path,
        *,
        lockfile: Lockfile | None = None,
        update: bool = False,
    ) -> None:
        self.fetcher = fetcher
        self.workspace_root = workspace_root
        self.lockfile = lockfile
        self.update = update
        self._resolved: dict[BundleIdentity, ResolvedBundle] = {}
        self._order: list[ResolvedBundle] = []

    def resolve(self, requests: Sequence[BundleRequest]) -> list[ResolvedBundle]:
        for request in requests:
            self._visit(request)
        return list(self._order)

    def _visit(self, request: BundleRequest) -> None:
        if request.reference.identity in self._resolved:
            return

        frames: list[_Frame] = [self._enter(request, pin=None)]
        while frames:
            frame = frames[-1]
            dependency = next(frame.pending, None)
            if dependency is None:
                frames.pop()
                self._emit(frame.bundle)
                continue

            parent = frame.bundle
            reference = child_reference(
                parent.reference, dependency, workspace_root=self.workspace_root
            )
            identity = reference.identity
            if identity not in parent.dependencies:
                parent.dependencies.append(identity)
            if identity in self._resolved:
                continue

            on_stack = [item.bundle.identity for item in frames]
            if identity in on_stack:
                chain = [item.bundle.name for item in frames] + [dependency.name]
                raise CircularDependencyError(chain)

            # A local path inside a git bundle resolves at the parent's commit.
            inherited_pin = None
            if reference.kind == "git" and not dependency.is_git:
                inherited_pin = parent.sha
                reference = replace(reference, ref=parent.ref or reference.ref)
            frames.append(self._enter(BundleRequest(dependency.name, reference), pin=inherited_pin))

    def _enter(self, request: BundleRequest, *, pin: str | None) -> _Frame:
        reference = request.reference
        locked = self._locked(reference)
        if pin is None:
            pin = self._pin_for(reference, locked)

        fetched = self.fetcher.fetch(reference, pin=pin)
        manifest = load_bundle_manifest(fetched.root)
        resources = discover_resources(fetched.root)
        content_hash = hash_bundle_tree(fetched.root, [resource.path for resource in resources])

        if (
            pin is not None
            and locked is not None
            and locked.sha == pin
            and locked.source.hash != content_hash
        ):
            raise HashMismatchError(request.name, locked.source.hash, content_hash)

        ref = fetched.ref
        if ref is None and locked is not None and isinstance(locked.source, GitSource):
            # Pinned fetches of an unqualified reference keep the recorded branch.
            ref = locked.source.ref

        bundle = ResolvedBundle(
            name=request.name,
            reference=reference,
            root=fetched.root,
            hash=content_hash,
            sha=fetched.sha,
            ref=ref,
            manifest=manifest,
            resources=resources,
        )
        logger.debug(
            "Resolving bundle",
            data={"name": request.name, "identity": str(reference.identity), "sha": fetched.sha},
        )
        dependencies = manifest.bundles if manifest is not None else []
        return _Frame(bundle=bundle, pending=iter(list(dependencies)))

    def _locked(self, reference: BundleReference) -> LockedBundle | None:
        if self.lockfile is None:
            return None
        return self.lockfile.find_by_identity(reference.identity)

    def _pin_for(self, reference: BundleReference, locked: LockedBundle | None) -> str | None:
        if self.update or reference.kind != "git" or locked is None:
            return None
        source = locked.source
        if not isinstance(source, GitSource):
            return None
        if reference.ref and reference.ref not in (source.ref, source.sha):
            return None
        return source.sha

    def _emit(self, bundle: ResolvedBundle) -> None:
        self._resolved[bundle.identity] = bundle
        self._order.append(bundle)
