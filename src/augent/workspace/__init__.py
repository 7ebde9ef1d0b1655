"""Workspace stores: manifest, lockfile and installed-file index."""

from augent.workspace.index import IndexBundle, WorkspaceIndex
from augent.workspace.lockfile import DirSource, GitSource, LockedBundle, Lockfile
from augent.workspace.manifest import BundleManifest, DependencySpec, load_bundle_manifest
from augent.workspace.workspace import Workspace, find_workspace_root

__all__ = [
    # Manifest
    "BundleManifest",
    "DependencySpec",
    "load_bundle_manifest",
    # Lockfile
    "DirSource",
    "GitSource",
    "LockedBundle",
    "Lockfile",
    # Index
    "IndexBundle",
    "WorkspaceIndex",
    # Workspace
    "Workspace",
    "find_workspace_root",
]
