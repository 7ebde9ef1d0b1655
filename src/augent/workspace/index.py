"""Installed-file index (``augent.index.yaml``).

The index is the record of what was actually written: for every bundle, each
resource path maps to the workspace-relative locations it was installed to
(one per platform). ``checksums`` keeps the hash of the content last written
at each location so later runs can tell whether a user edited the file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from augent.core.exceptions import ConfigurationError
from augent.workspace.store import dump_yaml, load_yaml_mapping, write_text_atomic


class IndexBundle(BaseModel):
    name: str
    enabled: dict[str, list[str]] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def locations(self) -> set[str]:
        return {location for locations in self.enabled.values() for location in locations}

    def to_payload(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "enabled": {
                resource: sorted(set(self.enabled[resource])) for resource in sorted(self.enabled)
            },
        }


class WorkspaceIndex(BaseModel):
    name: str
    bundles: list[IndexBundle] = Field(default_factory=list)
    checksums: dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(extra="ignore")

    def find(self, name: str) -> IndexBundle | None:
        for bundle in self.bundles:
            if bundle.name == name:
                return bundle
        return None

    def put(self, entry: IndexBundle) -> None:
        for position, existing in enumerate(self.bundles):
            if existing.name == entry.name:
                self.bundles[position] = entry
                return
        self.bundles.append(entry)

    def remove(self, name: str) -> IndexBundle | None:
        entry = self.find(name)
        if entry is not None:
            self.bundles = [bundle for bundle in self.bundles if bundle.name != name]
        return entry

    def claimants(self, location: str, *, exclude: Iterable[str] = ()) -> list[str]:
        """Names of bundles whose entry lists ``location``."""
        excluded = set(exclude)
        return [
            bundle.name
            for bundle in self.bundles
            if bundle.name not in excluded and location in bundle.locations()
        ]

    def to_yaml(self) -> str:
        payload: dict[str, Any] = {
            "name": self.name,
            "bundles": [bundle.to_payload() for bundle in self.bundles],
        }
        if self.checksums:
            payload["checksums"] = {key: self.checksums[key] for key in sorted(self.checksums)}
        return dump_yaml(payload)


def load_index(path: Path) -> WorkspaceIndex:
    data = load_yaml_mapping(path)
    try:
        return WorkspaceIndex.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid index {path}", str(exc)) from exc


def save_index(path: Path, index: WorkspaceIndex) -> None:
    write_text_atomic(path, index.to_yaml())
