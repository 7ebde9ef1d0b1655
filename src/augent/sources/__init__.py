"""Bundle source references and the fetch collaborator."""

from augent.sources.fetch import BundleFetcher, FetchedSource, GitBundleFetcher
from augent.sources.reference import BundleIdentity, BundleReference, parse_bundle_reference

__all__ = [
    "BundleFetcher",
    "BundleIdentity",
    "BundleReference",
    "FetchedSource",
    "GitBundleFetcher",
    "parse_bundle_reference",
]
