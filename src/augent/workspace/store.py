"""Atomic read/write helpers for the workspace store files."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

from augent.core.exceptions import ConfigurationError, wrap_os_error


def write_text_atomic(target: Path, content: str | bytes) -> None:
    """Write ``content`` to ``target`` through a temp file renamed into place.

    Readers observe either the previous file or the complete new one.
    """
    payload = content.encode("utf-8") if isinstance(content, str) else content
    temp_path: Path | None = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            dir=target.parent,
            prefix=f".{target.name}.",
            suffix=".tmp",
            delete=False,
        ) as temp_file:
            temp_path = Path(temp_file.name)
            temp_file.write(payload)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        os.replace(temp_path, target)
    except OSError as exc:
        raise wrap_os_error(exc, target) from exc
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)


def read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as exc:
        raise wrap_os_error(exc, path) from exc


def load_yaml_mapping(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(read_text(path))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}", str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return data


def load_json_mapping(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(read_text(path))
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Invalid JSON in {path}", str(exc)) from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain an object")
    return data


def dump_yaml(payload: dict[str, Any]) -> str:
    return yaml.safe_dump(payload, sort_keys=False, allow_unicode=True, default_flow_style=False)


def dump_json(payload: dict[str, Any]) -> str:
    return json.dumps(payload, indent=2, ensure_ascii=False, sort_keys=True) + "\n"


def prune_empty_parents(path: Path, *, stop_at: Path) -> None:
    """Remove empty directories above ``path`` up to, not including, ``stop_at``."""
    stop = stop_at.resolve()
    current = path.parent
    while True:
        try:
            resolved = current.resolve()
        except OSError:
            return
        if resolved == stop or stop not in resolved.parents:
            return
        try:
            current.rmdir()
        except OSError:
            # Not empty, or already gone.
            return
        current = current.parent
