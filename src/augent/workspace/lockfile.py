"""Lockfile (``augent.lock``) model.

The lockfile lists every resolved bundle in dependency order (dependencies
first) together with a concrete pin: a content hash for local directories, a
commit SHA plus content hash for git repositories.
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from augent.constants import DEFAULT_GIT_REF
from augent.core.exceptions import ConfigurationError
from augent.sources.reference import BundleIdentity, BundleReference, normalize_relative_path
from augent.workspace.store import dump_json, load_json_mapping, write_text_atomic


class DirSource(BaseModel):
    type: Literal["dir"] = "dir"
    path: str = "."
    hash: str

    model_config = ConfigDict(extra="ignore")

    @property
    def pin(self) -> tuple[str | None, str]:
        return None, self.hash


class GitSource(BaseModel):
    type: Literal["git"] = "git"
    url: str
    path: str | None = None
    ref: str = DEFAULT_GIT_REF
    sha: str
    hash: str

    model_config = ConfigDict(extra="ignore")

    @model_validator(mode="before")
    @classmethod
    def _default_ref(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("ref"):
            data = {**data, "ref": DEFAULT_GIT_REF}
        return data

    @property
    def pin(self) -> tuple[str | None, str]:
        return self.sha, self.hash


LockedSource = Annotated[DirSource | GitSource, Field(discriminator="type")]


class LockedBundle(BaseModel):
    name: str
    description: str | None = None
    version: str | None = None
    author: str | None = None
    license: str | None = None
    homepage: str | None = None
    source: LockedSource
    files: list[str] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    @property
    def identity(self) -> BundleIdentity:
        return self.reference.identity

    @property
    def reference(self) -> BundleReference:
        source = self.source
        if isinstance(source, GitSource):
            return BundleReference(kind="git", url=source.url, path=source.path, ref=source.ref)
        return BundleReference(kind="dir", path=normalize_relative_path(source.path))

    @property
    def sha(self) -> str | None:
        return self.source.sha if isinstance(self.source, GitSource) else None

    def same_pin(self, other: "LockedBundle") -> bool:
        return self.source.pin == other.source.pin

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)


class Lockfile(BaseModel):
    name: str
    bundles: list[LockedBundle] = Field(default_factory=list)

    model_config = ConfigDict(extra="ignore")

    def find(self, name: str) -> LockedBundle | None:
        for bundle in self.bundles:
            if bundle.name == name:
                return bundle
        return None

    def find_by_identity(self, identity: BundleIdentity) -> LockedBundle | None:
        for bundle in self.bundles:
            if bundle.identity == identity:
                return bundle
        return None

    def remove(self, name: str) -> bool:
        before = len(self.bundles)
        self.bundles = [bundle for bundle in self.bundles if bundle.name != name]
        return len(self.bundles) != before

    def to_json(self) -> str:
        return dump_json(
            {"name": self.name, "bundles": [bundle.to_payload() for bundle in self.bundles]}
        )


def load_lockfile(path: Path) -> Lockfile:
    data = load_json_mapping(path)
    try:
        return Lockfile.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid lockfile {path}", str(exc)) from exc


def save_lockfile(path: Path, lockfile: Lockfile) -> None:
    write_text_atomic(path, lockfile.to_json())
