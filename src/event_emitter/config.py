"""Configuration models for event emitters."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

DEFAULT_MAX_LISTENERS = 10

ENV_PREFIX = "EVENT_EMITTER_"
SECTION = "event_emitter"

_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class EmitterSettings(BaseModel):
    """Tunables shared by emitters built from the same configuration."""

    max_listeners: int = Field(
        default=DEFAULT_MAX_LISTENERS,
        ge=1,
        description="Listener count per event above which a leak warning is produced",
    )
    validate_payloads: bool = Field(
        default=True,
        description="If True payloads are checked against the event map before dispatch.",
    )
    log_level: str = Field(default="INFO", description="Level applied to the package loggers")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.upper()
        if level not in _LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LEVELS)}")
        return level


def build_settings_from_dict(raw: Mapping[str, Any]) -> EmitterSettings:
    """Utility helper to build :class:`EmitterSettings` from a plain dictionary."""

    try:
        return EmitterSettings.model_validate(dict(raw))
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid emitter settings: {exc}") from exc


def _read_file(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except FileNotFoundError as exc:
        raise ConfigurationError(f"Settings file not found: {path}") from exc
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Settings file {path} is not valid YAML") from exc

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Settings file {path} must contain a mapping")
    section = data.get(SECTION, data)
    if section is None:
        return {}
    if not isinstance(section, Mapping):
        raise ConfigurationError(f"Section '{SECTION}' in {path} must be a mapping")
    return dict(section)


def _read_environ(environ: Mapping[str, str]) -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for field_name in EmitterSettings.model_fields:
        key = f"{ENV_PREFIX}{field_name.upper()}"
        if key in environ:
            values[field_name] = environ[key]
    return values


def load_settings(
    path: str | Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> EmitterSettings:
    """Load settings from defaults, an optional YAML file and the environment.

    Later sources win: environment variables prefixed with ``EVENT_EMITTER_``
    override values from the file, which override the model defaults.
    """

    environ = os.environ if environ is None else environ
    raw: Dict[str, Any] = {}
    if path is not None:
        raw.update(_read_file(Path(path)))
    raw.update(_read_environ(environ))
    return build_settings_from_dict(raw)


__all__ = [
    "DEFAULT_MAX_LISTENERS",
    "EmitterSettings",
    "build_settings_from_dict",
    "load_settings",
]
