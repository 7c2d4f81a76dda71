"""Engine configuration (pydantic models loaded from YAML)."""

from __future__ import annotations

from datetime import tzinfo
from pathlib import Path
from typing import Any, Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .exceptions import ConfigError, ConfigErrorCodes


class AdmissionSection(BaseModel):
    """Admission settings.

    timezone: IANA zone every instant is interpreted in. When unset the
        engine works in naive wall time and rejects offset-carrying input.
    """

    model_config = ConfigDict(extra="forbid")

    lock_timeout: float = Field(default=5.0, gt=0)
    conflict_retries: int = Field(default=1, ge=0, le=3)
    timezone: str | None = None

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                ZoneInfo(value)
            except (ZoneInfoNotFoundError, ValueError) as e:
                raise ValueError(f"unknown timezone: {value}") from e
        return value

    @property
    def tzinfo(self) -> tzinfo | None:
        return ZoneInfo(self.timezone) if self.timezone else None


class LogSection(BaseModel):
    """Log settings."""

    model_config = ConfigDict(extra="forbid")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"

    @field_validator("level", mode="before")
    @classmethod
    def _upper(cls, value: Any) -> Any:
        return value.upper() if isinstance(value, str) else value


class QuotaEngineConfig(BaseModel):
    """Quota engine settings."""

    model_config = ConfigDict(extra="forbid")

    admission: AdmissionSection = Field(default_factory=AdmissionSection)
    log: LogSection = Field(default_factory=LogSection)


def _read_sections(path: Path) -> dict[str, Any]:
    """Read one YAML file into a mapping of section name to settings."""
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(
            code=ConfigErrorCodes.READ_FILE,
            message=f"Failed to read config file: {path}",
            cause=e,
        ) from e
    except yaml.YAMLError as e:
        raise ConfigError(
            code=ConfigErrorCodes.PARSE_YAML,
            message=f"Failed to parse YAML: {path}",
            cause=e,
        ) from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(
            code=ConfigErrorCodes.PARSE_YAML,
            message=f"Config root must be a mapping of sections: {path}",
        )
    return data


def _overlay(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Overlay settings section by section; keys missing from `override` keep their base value."""
    merged = {
        name: dict(values) if isinstance(values, dict) else values
        for name, values in base.items()
    }
    for name, values in override.items():
        if isinstance(values, dict) and isinstance(merged.get(name), dict):
            merged[name].update(values)
        else:
            merged[name] = values
    return merged


def load(base_path: Path, env_path: Path | None = None) -> QuotaEngineConfig:
    """Load the engine config.

    base_path: base YAML file (required)
    env_path: per-environment YAML overlaid on the base when it exists

    Raises:
        ConfigError: unreadable file, bad YAML, or settings out of range
    """
    sections = _read_sections(base_path)
    if env_path is not None and env_path.exists():
        sections = _overlay(sections, _read_sections(env_path))
    try:
        return QuotaEngineConfig.model_validate(sections)
    except ValidationError as e:
        raise ConfigError(
            code=ConfigErrorCodes.VALIDATION,
            message=f"Config validation failed: {e}",
            cause=e,
        ) from e
