"""Application configuration handling.

Settings come from three layers, later ones winning: field defaults, a YAML
file (``TOCC_CONFIG`` or ``~/.config/term-occurrences/config.yaml``), and
``TOCC_<FIELD>`` environment variables. The YAML file is grouped by concern::

    storage:
      db_path: ~/.term-occurrences/occurrences.db
    identifiers:
      occurrence_separator: /occurrences
    annotation:
      occurrence_marker: term-occurrence
    cleanup:
      enabled: true
      interval_seconds: 3600
    logging:
      level: INFO
      json: true
"""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator

ENV_PREFIX = "TOCC_"
DEFAULT_CONFIG_PATH = Path("~/.config/term-occurrences/config.yaml")

_SECTION_FIELDS: Mapping[str, Mapping[str, str]] = {
    "storage": {"db_path": "db_path"},
    "identifiers": {"occurrence_separator": "occurrence_separator"},
    "annotation": {"occurrence_marker": "occurrence_marker"},
    "cleanup": {"enabled": "cleanup_enabled", "interval_seconds": "cleanup_interval_seconds"},
    "logging": {"level": "log_level", "json": "log_json"},
}


class Settings(BaseModel):
    """Runtime configuration of the occurrence store, annotator and cleanup job."""

    db_path: Path = Field(default=Path.home() / ".term-occurrences" / "occurrences.db")
    occurrence_separator: str = "/occurrences"
    occurrence_marker: str = "term-occurrence"
    cleanup_enabled: bool = True
    cleanup_interval_seconds: float = Field(default=3600.0, gt=0)
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, (str, Path)):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @field_validator("occurrence_separator")
    @classmethod
    def _check_separator(cls, value: str) -> str:
        if not value.startswith("/"):
            raise ValueError("occurrence_separator must start with '/'")
        return value.rstrip("/")

    @field_validator("occurrence_marker")
    @classmethod
    def _check_marker(cls, value: str) -> str:
        # The marker is matched as a single token of the ``typeof`` attribute.
        if not value or any(ch.isspace() for ch in value):
            raise ValueError("occurrence_marker must be a single non-empty token")
        return value

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load the YAML file (if any) and overlay environment variables."""
        data: dict[str, Any] = {}
        config_path = _config_path(path)
        if config_path is not None and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                data.update(_fields_from_sections(yaml.safe_load(fh) or {}))
        data.update(_fields_from_env(os.environ))
        return cls(**data)


def _config_path(path: Path | None) -> Path | None:
    if path is not None:
        return path.expanduser()
    from_env = os.environ.get(f"{ENV_PREFIX}CONFIG")
    if from_env:
        return Path(from_env).expanduser()
    default = DEFAULT_CONFIG_PATH.expanduser()
    return default if default.exists() else None


def _fields_from_sections(raw: Mapping[str, Any]) -> dict[str, Any]:
    """Map ``section.key`` YAML entries to field names; top-level field names are accepted too."""
    fields: dict[str, Any] = {}
    for key, value in raw.items():
        section = _SECTION_FIELDS.get(key)
        if section is not None and isinstance(value, Mapping):
            for sub_key, sub_value in value.items():
                if sub_key in section:
                    fields[section[sub_key]] = sub_value
        elif key in Settings.model_fields:
            fields[key] = value
    return fields


def _fields_from_env(environ: Mapping[str, str]) -> dict[str, Any]:
    prefix_len = len(ENV_PREFIX)
    return {
        key[prefix_len:].lower(): value
        for key, value in environ.items()
        if key.startswith(ENV_PREFIX) and key[prefix_len:].lower() in Settings.model_fields
    }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
