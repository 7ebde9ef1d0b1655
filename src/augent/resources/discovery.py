"""Enumerate the resources a bundle provides and detect cross-bundle collisions."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Iterable, Mapping, Sequence

from augent.constants import BINARY_EXTENSIONS, RESOURCE_DIRS, RESOURCE_FILES, SKILL_FILENAME
from augent.core.exceptions import wrap_os_error
from augent.resources.hashing import hash_file


class ResourceType(str, Enum):
    COMMAND = "command"
    RULE = "rule"
    AGENT = "agent"
    SKILL = "skill"
    MCP_CONFIG = "mcp_config"
    ROOT_FILE = "root_file"
    AGENT_DOC = "agent_doc"
    OTHER = "other"

    @classmethod
    def from_path(cls, path: str) -> "ResourceType":
        """Classify by directory prefix first, then by file name."""
        normalized = path.replace("\\", "/").lower()
        for prefix, resource_type in _PREFIX_TYPES:
            if normalized.startswith(prefix):
                return resource_type
        filename = PurePosixPath(normalized).name
        if filename in ("mcp.jsonc", "mcp.json"):
            return cls.MCP_CONFIG
        if filename in ("agents.md", "claude.md"):
            return cls.AGENT_DOC
        return cls.OTHER

    @property
    def is_mergeable(self) -> bool:
        return self in (ResourceType.MCP_CONFIG, ResourceType.AGENT_DOC)

    @property
    def is_root_file(self) -> bool:
        return self is ResourceType.ROOT_FILE


_PREFIX_TYPES: tuple[tuple[str, ResourceType], ...] = (
    ("commands/", ResourceType.COMMAND),
    ("rules/", ResourceType.RULE),
    ("agents/", ResourceType.AGENT),
    ("skills/", ResourceType.SKILL),
    ("root/", ResourceType.ROOT_FILE),
)


@dataclass(frozen=True)
class Resource:
    path: str
    absolute_path: Path
    resource_type: ResourceType
    digest: str

    @property
    def is_binary(self) -> bool:
        return is_binary_path(self.path)


@dataclass(frozen=True)
class ResourceConflict:
    path: str
    first_bundle: str
    second_bundle: str


def is_binary_path(path: str) -> bool:
    suffix = PurePosixPath(path).suffix.lower().lstrip(".")
    return suffix in BINARY_EXTENSIONS


def discover_resources(bundle_root: Path) -> list[Resource]:
    """Return the bundle's resources sorted by relative path."""
    relative_paths: list[str] = []
    for dir_name in RESOURCE_DIRS:
        directory = bundle_root / dir_name
        if not directory.is_dir():
            continue
        try:
            files = [candidate for candidate in directory.rglob("*") if candidate.is_file()]
        except OSError as exc:
            raise wrap_os_error(exc, directory) from exc
        relative_paths.extend(candidate.relative_to(bundle_root).as_posix() for candidate in files)

    for file_name in RESOURCE_FILES:
        if (bundle_root / file_name).is_file():
            relative_paths.append(file_name)

    kept = filter_skill_paths(relative_paths)
    return [
        Resource(
            path=relative,
            absolute_path=bundle_root / relative,
            resource_type=ResourceType.from_path(relative),
            digest=hash_file(bundle_root / relative),
        )
        for relative in sorted(kept)
    ]


def leaf_skill_dirs(paths: Iterable[str]) -> set[str]:
    """Skill directories holding ``SKILL.md`` that contain no nested skill directory."""
    skill_dirs = {
        str(PurePosixPath(path).parent)
        for path in paths
        if path.startswith("skills/") and PurePosixPath(path).name == SKILL_FILENAME
    }
    return {
        directory
        for directory in skill_dirs
        if not any(other.startswith(f"{directory}/") for other in skill_dirs)
    }


def filter_skill_paths(paths: Sequence[str]) -> list[str]:
    """Drop skill files outside leaf skill directories, including loose ``skills/*`` files."""
    leaves = leaf_skill_dirs(paths)
    kept: list[str] = []
    for path in paths:
        if not path.startswith("skills/"):
            kept.append(path)
            continue
        if "/" not in path[len("skills/") :]:
            continue
        if skill_root_for(path, leaves) is not None:
            kept.append(path)
    return kept


def skill_root_for(path: str, leaves: Iterable[str]) -> str | None:
    for leaf in leaves:
        if path == leaf or path.startswith(f"{leaf}/"):
            return leaf
    return None


def detect_conflicts(resource_sets: Mapping[str, Iterable[Resource]]) -> list[ResourceConflict]:
    """Report every relative path provided by more than one bundle.

    ``resource_sets`` maps bundle names to their resources in install order;
    each later provider of a path is reported against the first one.
    """
    first_owner: dict[str, str] = {}
    conflicts: list[ResourceConflict] = []
    for bundle_name, resources in resource_sets.items():
        for resource in resources:
            owner = first_owner.setdefault(resource.path, bundle_name)
            if owner != bundle_name:
                conflicts.append(ResourceConflict(resource.path, owner, bundle_name))
    return conflicts
