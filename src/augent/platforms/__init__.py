"""Platform registry, path transforms and merge strategies."""

from augent.platforms.merge import merge_content
from augent.platforms.registry import (
    PLATFORMS,
    MergeStrategy,
    Platform,
    TransformRule,
    detect_platforms,
    get_platform,
    resolve_platforms,
)
from augent.platforms.transform import InstallTarget, apply_transform_rule, find_transform_rule, target_paths

__all__ = [
    "PLATFORMS",
    "InstallTarget",
    "MergeStrategy",
    "Platform",
    "TransformRule",
    "apply_transform_rule",
    "detect_platforms",
    "find_transform_rule",
    "get_platform",
    "merge_content",
    "resolve_platforms",
    "target_paths",
]
