"""
Settings for augent.

Values are layered: built-in defaults, then the nearest ``augent.config.yaml``
found from the working directory upwards, then ``AUGENT_*`` environment
variables (nested keys use ``__``, e.g. ``AUGENT_LOGGER__LEVEL=debug``).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from augent.constants import CONFIG_FILENAME, DEFAULT_CACHE_DIR
from augent.core.exceptions import ConfigurationError


class LoggerSettings(BaseModel):
    """Logging verbosity for the ``augent`` logger hierarchy."""

    level: str = "warning"

    model_config = ConfigDict(extra="ignore")

    @field_validator("level")
    @classmethod
    def _normalize_level(cls, value: str) -> str:
        normalized = value.strip().lower()
        if normalized not in {"debug", "info", "warning", "error"}:
            raise ValueError(f"Unsupported log level: {value}")
        return normalized


class Settings(BaseSettings):
    """Top-level augent settings."""

    cache_dir: str = DEFAULT_CACHE_DIR
    """Directory holding cloned git bundles."""

    platforms: list[str] = Field(default_factory=list)
    """Platform ids used when none are given on the command line and none are detected."""

    git_binary: str = "git"

    logger: LoggerSettings = Field(default_factory=LoggerSettings)

    model_config = SettingsConfigDict(
        env_prefix="AUGENT_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Environment wins over values loaded from the config file.
        return (env_settings, init_settings)

    @property
    def cache_path(self) -> Path:
        return Path(self.cache_dir).expanduser()


_settings: Settings | None = None


def find_config_file(start: Path | None = None) -> Path | None:
    current = (start or Path.cwd()).resolve()
    for candidate_dir in (current, *current.parents):
        candidate = candidate_dir / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
    return None


def load_config_file(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}", str(exc)) from exc
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    return data


def get_settings(config_path: str | Path | None = None) -> Settings:
    """Return the cached settings, loading them on first use."""
    global _settings

    if config_path is None and _settings is not None:
        return _settings

    resolved_path = Path(config_path) if config_path is not None else find_config_file()
    values = load_config_file(resolved_path) if resolved_path is not None else {}
    settings = Settings(**values)
    if config_path is None:
        _settings = settings
    return settings
