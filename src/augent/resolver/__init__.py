"""Dependency resolution and lockfile reconciliation."""

from augent.resolver.graph import (
    BundleRequest,
    DependencyResolver,
    ResolvedBundle,
    child_reference,
    request_for_reference,
    workspace_reference,
)
from augent.resolver.reconcile import ensure_frozen, reconcile_lockfile

__all__ = [
    "BundleRequest",
    "DependencyResolver",
    "ResolvedBundle",
    "child_reference",
    "ensure_frozen",
    "reconcile_lockfile",
    "request_for_reference",
    "workspace_reference",
]
