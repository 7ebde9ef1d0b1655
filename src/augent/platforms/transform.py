"""Map bundle resource paths onto platform-specific install locations.

Rules are glob patterns (``**`` spans directories, ``*`` stays within one
segment). Targets may use ``{name}`` (the skill directory name for skills, the
file stem otherwise), ``**`` (the path below the pattern's fixed prefix) and a
lone ``*`` (the file stem).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import PurePosixPath
from typing import Sequence

from augent.constants import RESOURCE_FILES
from augent.core.exceptions import PathEscapeError
from augent.platforms.registry import MergeStrategy, Platform, TransformRule
from augent.resources.discovery import Resource
from augent.sources.reference import join_relative_path

ROOT_PREFIX = "root/"


@dataclass(frozen=True)
class InstallTarget:
    """One workspace-relative location a resource is written to."""

    location: str
    merge: MergeStrategy
    platform_id: str | None = None


@lru_cache(maxsize=256)
def _compile_glob(pattern: str) -> re.Pattern[str]:
    parts: list[str] = []
    index = 0
    while index < len(pattern):
        if pattern.startswith("**/", index):
            parts.append("(?:.*/)?")
            index += 3
        elif pattern.startswith("**", index):
            parts.append(".*")
            index += 2
        elif pattern[index] == "*":
            parts.append("[^/]*")
            index += 1
        elif pattern[index] == "?":
            parts.append("[^/]")
            index += 1
        else:
            parts.append(re.escape(pattern[index]))
            index += 1
    return re.compile("".join(parts))


def glob_matches(pattern: str, path: str) -> bool:
    return _compile_glob(pattern).fullmatch(path) is not None


def find_transform_rule(platform: Platform, resource_path: str) -> TransformRule | None:
    """First rule of ``platform`` whose source pattern matches ``resource_path``."""
    for rule in platform.transforms:
        if glob_matches(rule.source, resource_path):
            return rule
    return None


def _strip_extension(path: str) -> str:
    head, _, leaf = path.rpartition("/")
    if "." in leaf.lstrip("."):
        leaf = leaf[: leaf.rfind(".")]
    return f"{head}/{leaf}" if head else leaf


def _pattern_relative(pattern: str, resource_path: str) -> str:
    """Part of ``resource_path`` below the fixed prefix of ``pattern``."""
    prefix = pattern.split("*", 1)[0]
    if prefix and resource_path.startswith(prefix):
        return resource_path[len(prefix) :].lstrip("/")
    return PurePosixPath(resource_path).name


def apply_transform_rule(
    rule: TransformRule,
    resource_path: str,
    *,
    skill_root: str | None = None,
) -> str:
    """Return the workspace-relative target for ``resource_path`` under ``rule``."""
    target = rule.target
    stem = PurePosixPath(resource_path).stem
    uses_name = "{name}" in target

    if uses_name:
        name = PurePosixPath(skill_root).name if skill_root else stem
        target = target.replace("{name}", name)

    if uses_name and skill_root:
        relative = resource_path[len(skill_root) :].lstrip("/")
    else:
        relative = _pattern_relative(rule.source, resource_path)

    if "**" in target:
        prefix, _, suffix = target.partition("**")
        if rule.extension and ("." in suffix or "*" in suffix):
            relative = f"{_strip_extension(relative)}.{rule.extension}"
        if suffix.startswith("/"):
            tail = suffix[1:]
            if "." in tail or "*" in tail:
                target = f"{prefix}{relative}"
            else:
                target = f"{prefix}{relative}/{tail}"
        else:
            target = f"{prefix}{relative}{suffix.replace('*', '')}"
        return target

    if "*" in target:
        target = target.replace("*", stem)
    if rule.extension and not target.endswith(f".{rule.extension}"):
        target = f"{_strip_extension(target)}.{rule.extension}"
    return target


def _checked_location(location: str) -> str:
    normalized = join_relative_path(None, location, root_label="workspace root")
    if normalized == ".":
        raise PathEscapeError(location, "workspace root")
    return normalized


def target_paths(
    platforms: Sequence[Platform],
    resource: Resource,
    *,
    skill_root: str | None = None,
) -> list[InstallTarget]:
    """Compute every install location of ``resource`` for ``platforms``.

    Files under ``root/`` land once at the workspace root. Bundle-level
    ``AGENTS.md`` and ``mcp.jsonc`` follow the platform rules and fall back to
    the workspace root when no selected platform has a rule for them. Anything
    else without a rule is copied below the platform directory.
    """
    path = resource.path
    if resource.resource_type.is_root_file:
        relative = path[len(ROOT_PREFIX) :] if path.startswith(ROOT_PREFIX) else path
        return [InstallTarget(_checked_location(relative), MergeStrategy.REPLACE)]

    targets: list[InstallTarget] = []
    seen: set[str] = set()

    def _add(location: str, merge: MergeStrategy, platform_id: str | None) -> None:
        checked = _checked_location(location)
        if checked not in seen:
            seen.add(checked)
            targets.append(InstallTarget(checked, merge, platform_id))

    bundle_level = path in RESOURCE_FILES
    for platform in platforms:
        rule = find_transform_rule(platform, path)
        if rule is not None:
            _add(apply_transform_rule(rule, path, skill_root=skill_root), rule.merge, platform.id)
        elif not bundle_level:
            _add(f"{platform.directory}/{path}", MergeStrategy.REPLACE, platform.id)

    if bundle_level and not targets:
        _add(path, MergeStrategy.REPLACE, None)
    return targets
