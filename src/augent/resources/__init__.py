"""Bundle resources: discovery, classification, hashing and conflicts."""

from augent.resources.discovery import (
    Resource,
    ResourceConflict,
    ResourceType,
    detect_conflicts,
    discover_resources,
)
from augent.resources.hashing import hash_bundle_tree, hash_bytes, hash_file

__all__ = [
    "Resource",
    "ResourceConflict",
    "ResourceType",
    "detect_conflicts",
    "discover_resources",
    "hash_bundle_tree",
    "hash_bytes",
    "hash_file",
]
