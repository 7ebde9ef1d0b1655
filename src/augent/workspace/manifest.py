"""Bundle manifest (``augent.yaml``) model, reader and writer.

The same schema describes a workspace's direct dependencies and a bundle's own
dependencies::

    name: "@acme/tools"
    description: Shared commands
    bundles:
      - name: "@acme/base"
        git: https://github.com/acme/base.git
        ref: v1.2.0
        path: bundles/base
      - name: local-rules
        path: ./bundles/rules

For git dependencies ``path`` is the subdirectory inside the repository.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from augent.constants import MANIFEST_FILENAME
from augent.core.exceptions import ConfigurationError
from augent.sources.reference import BundleReference
from augent.workspace.store import dump_yaml, load_yaml_mapping, write_text_atomic


class DependencySpec(BaseModel):
    name: str
    path: str | None = None
    git: str | None = None
    ref: str | None = None

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _normalize_aliases(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        normalized = dict(data)
        if not normalized.get("git") and normalized.get("url"):
            normalized["git"] = normalized.pop("url")
        if normalized.get("git") and not normalized.get("path") and normalized.get("subpath"):
            normalized["path"] = normalized.pop("subpath")
        return normalized

    @model_validator(mode="after")
    def _require_source(self) -> "DependencySpec":
        if not self.git and not self.path:
            raise ValueError(f"dependency '{self.name}' needs either 'path' or 'git'")
        return self

    @property
    def is_git(self) -> bool:
        return bool(self.git)

    def to_reference(self) -> BundleReference:
        if self.git:
            return BundleReference(kind="git", url=self.git, path=self.path or None, ref=self.ref)
        return BundleReference(kind="dir", path=self.path)

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"name": self.name}
        if self.git:
            payload["git"] = self.git
            if self.ref:
                payload["ref"] = self.ref
            if self.path:
                payload["path"] = self.path
        else:
            payload["path"] = self.path
        return payload


class BundleManifest(BaseModel):
    name: str | None = None
    description: str | None = None
    version: str | None = None
    author: str | None = None
    license: str | None = None
    homepage: str | None = None
    bundles: list[DependencySpec] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def find_dependency(self, name: str) -> DependencySpec | None:
        for dependency in self.bundles:
            if dependency.name == name:
                return dependency
        return None

    def add_dependency(self, dependency: DependencySpec) -> None:
        """Add or replace a dependency, keeping git entries ahead of local ones."""
        for index, existing in enumerate(self.bundles):
            if existing.name == dependency.name:
                self.bundles[index] = dependency
                return
        if dependency.is_git:
            insert_at = next(
                (index for index, existing in enumerate(self.bundles) if not existing.is_git),
                len(self.bundles),
            )
            self.bundles.insert(insert_at, dependency)
        else:
            self.bundles.append(dependency)

    def remove_dependency(self, name: str) -> bool:
        before = len(self.bundles)
        self.bundles = [dependency for dependency in self.bundles if dependency.name != name]
        return len(self.bundles) != before

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for key in ("name", "description", "version", "author", "license", "homepage"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        payload["bundles"] = [dependency.to_payload() for dependency in self.bundles]
        return payload

    def to_yaml(self) -> str:
        return dump_yaml(self.to_payload())


def parse_manifest(data: dict[str, Any], *, source: Path | str) -> BundleManifest:
    try:
        return BundleManifest.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid bundle manifest {source}", str(exc)) from exc


def load_manifest(path: Path) -> BundleManifest:
    return parse_manifest(load_yaml_mapping(path), source=path)


def load_bundle_manifest(bundle_root: Path) -> BundleManifest | None:
    """Read ``augent.yaml`` from a bundle directory; a missing file means no manifest."""
    manifest_path = bundle_root / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return None
    return load_manifest(manifest_path)


def save_manifest(path: Path, manifest: BundleManifest) -> None:
    write_text_atomic(path, manifest.to_yaml())
