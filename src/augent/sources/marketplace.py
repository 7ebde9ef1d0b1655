"""Claude plugin marketplaces: ``.claude-plugin/marketplace.json``.

A marketplace repository lists plugins, each a set of command, agent, skill
and rule paths. A plugin is installed as a synthetic bundle: the listed paths
are copied into the usual resource directories of a fresh directory together
with an ``augent.yaml`` carrying the plugin's description and version.

Plugins are addressed by a path ending in ``$claudeplugin/<name>`` below the
directory holding the marketplace.
"""

from __future__ import annotations

import shutil
from pathlib import Path, PurePosixPath
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from augent.constants import RESOURCE_DIRS
from augent.core.exceptions import BundleNotFoundError, ConfigurationError, PathEscapeError, wrap_os_error
from augent.core.logging.logger import get_logger
from augent.workspace.manifest import BundleManifest, save_manifest
from augent.workspace.store import load_json_mapping

logger = get_logger(__name__)

MARKETPLACE_FILE = ".claude-plugin/marketplace.json"
PLUGIN_DIR = "$claudeplugin"

# Plugin lists copied into the synthetic bundle, by target directory
_COPIED_LISTS = ("commands", "agents", "skills", "rules")


class MarketplacePlugin(BaseModel):
    name: str
    description: str | None = None
    version: str | None = None
    source: str | None = None
    commands: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    rules: list[str] = Field(default_factory=list)
    mcp_servers: list[str] = Field(default_factory=list, alias="mcpServers")
    hooks: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @field_validator("source", mode="before")
    @classmethod
    def _local_source_only(cls, value: Any) -> Any:
        # Remote sources ({"source": "github", ...}) are not followed.
        return value if isinstance(value, str) else None

    @field_validator("commands", "agents", "skills", "rules", "mcp_servers", "hooks", mode="before")
    @classmethod
    def _as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        if isinstance(value, list):
            return [item for item in value if isinstance(item, str)]
        # Inline objects (hook or server definitions) name no paths to copy.
        return []

    @property
    def lists_resources(self) -> bool:
        return any(getattr(self, key) for key in _COPIED_LISTS)


class Marketplace(BaseModel):
    name: str | None = None
    plugins: list[MarketplacePlugin] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def find(self, name: str) -> MarketplacePlugin | None:
        for plugin in self.plugins:
            if plugin.name == name:
                return plugin
        return None


def load_marketplace(repo_root: Path) -> Marketplace | None:
    """Read the marketplace under ``repo_root``; ``None`` when there is none."""
    path = repo_root / MARKETPLACE_FILE
    if not path.is_file():
        return None
    try:
        return Marketplace.model_validate(load_json_mapping(path))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid marketplace file {path}", str(exc)) from exc


def plugin_path(base: str | None, name: str) -> str:
    if not base or base == ".":
        return f"{PLUGIN_DIR}/{name}"
    return f"{base}/{PLUGIN_DIR}/{name}"


def split_plugin_path(path: str | None) -> tuple[str | None, str | None]:
    """Split ``<base>/$claudeplugin/<name>`` into the base path and plugin name."""
    if not path:
        return path, None
    parts = PurePosixPath(path).parts
    if len(parts) < 2 or parts[-2] != PLUGIN_DIR:
        return path, None
    base = "/".join(parts[:-2]) or None
    return base, parts[-1]


def materialize_plugin(repo_root: Path, name: str, target: Path) -> Path:
    """Build the synthetic bundle for plugin ``name`` at ``target``.

    Any previous content of ``target`` is replaced.
    """
    marketplace = load_marketplace(repo_root)
    plugin = marketplace.find(name) if marketplace is not None else None
    if plugin is None:
        raise BundleNotFoundError(name, f"no plugin named '{name}' in {repo_root / MARKETPLACE_FILE}")

    source_root = _inside(repo_root, plugin.source or ".")
    try:
        if target.exists():
            shutil.rmtree(target)
        target.mkdir(parents=True)
        if plugin.lists_resources:
            for key in _COPIED_LISTS:
                _copy_list(source_root, getattr(plugin, key), target / key)
        else:
            for directory in RESOURCE_DIRS:
                if (source_root / directory).is_dir():
                    shutil.copytree(source_root / directory, target / directory)
    except OSError as exc:
        raise wrap_os_error(exc, target) from exc

    if plugin.mcp_servers or plugin.hooks:
        logger.debug(
            "Plugin hooks and MCP server lists are not installed",
            data={"plugin": name, "hooks": len(plugin.hooks), "mcp_servers": len(plugin.mcp_servers)},
        )
    save_manifest(
        target / "augent.yaml",
        BundleManifest(name=name, description=plugin.description, version=plugin.version),
    )
    logger.debug("Materialized marketplace plugin", data={"plugin": name, "path": str(target)})
    return target


def _copy_list(source_root: Path, entries: list[str], destination: Path) -> None:
    for entry in entries:
        source = _inside(source_root, entry)
        if not source.exists():
            logger.debug("Plugin resource missing", data={"path": entry})
            continue
        destination.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            shutil.copytree(source, destination / source.name, dirs_exist_ok=True)
        else:
            shutil.copy2(source, destination / source.name)


def _inside(root: Path, relative: str) -> Path:
    root = root.resolve()
    candidate = (root / relative.removeprefix("./")).resolve()
    try:
        candidate.relative_to(root)
    except ValueError as exc:
        raise PathEscapeError(relative, root) from exc
    return candidate
