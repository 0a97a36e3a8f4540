"""Configuration utilities for the grotto agent."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from .errors import ConfigError

DEFAULT_CONFIG_PATH = "grotto.conf"
DEFAULT_LIBRATO_PERIOD_SECONDS = 5
DEFAULT_CPU_PERIOD_SECONDS = 1
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class _Section(BaseModel):
    """Base for configuration sections.

    Keys left empty in the document (YAML `Key:` with no value, or a section
    whose entries are all commented out) fall back to their defaults.
    """

    model_config = ConfigDict(populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_empty_values(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class LibratoConfig(_Section):
    """Settings for the Librato collector."""

    email: str = Field(..., alias="Email", min_length=1, description="Account email used as the Basic auth identity.")
    token: str = Field(..., alias="Token", min_length=1, description="API token used as the Basic auth secret.")
    url: str = Field(..., alias="Url", min_length=1, description="Collector endpoint receiving metric payloads.")
    period_seconds: int = Field(
        DEFAULT_LIBRATO_PERIOD_SECONDS,
        alias="PeriodSeconds",
        description="Batching window. Non-positive values fall back to the default.",
    )
    timeout_seconds: float = Field(
        10.0,
        alias="TimeoutSeconds",
        gt=0.0,
        description="Timeout applied to each delivery request.",
    )
    max_inflight: int = Field(
        4,
        alias="MaxInflight",
        ge=1,
        description="Upper bound on concurrently running deliveries.",
    )

    @field_validator("period_seconds")
    @classmethod
    def _positive_period(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_LIBRATO_PERIOD_SECONDS


class CpuConfig(_Section):
    """Settings for CPU sampling."""

    period_seconds: int = Field(
        DEFAULT_CPU_PERIOD_SECONDS,
        alias="PeriodSeconds",
        description="Sampling period. Non-positive values fall back to the default.",
    )
    stat_path: Path = Field(
        Path("/proc/stat"),
        alias="StatPath",
        description="File exposing the cumulative per-CPU counters.",
    )

    @field_validator("period_seconds")
    @classmethod
    def _positive_period(cls, value: int) -> int:
        return value if value > 0 else DEFAULT_CPU_PERIOD_SECONDS


class LoggingConfig(_Section):
    """Logging configuration."""

    level: str = Field("INFO", alias="Level", description="Root logging level.")
    log_dir: Optional[Path] = Field(
        None,
        alias="Dir",
        description="Directory for rotating log files. Console only when omitted.",
    )

    @field_validator("level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown logging level {value!r}; expected one of {', '.join(LOG_LEVELS)}")
        return level


class AgentConfig(_Section):
    """Top-level configuration object."""

    librato: LibratoConfig = Field(..., alias="Librato")
    cpu: CpuConfig = Field(default_factory=CpuConfig, alias="Cpu")
    logging: LoggingConfig = Field(default_factory=LoggingConfig, alias="Logging")


def load_config(path: Optional[os.PathLike[str] | str] = None) -> AgentConfig:
    """Load and validate the agent configuration.

    The document may be JSON or YAML. Any problem reading, parsing or
    validating it is raised as :class:`ConfigError`.
    """

    config_path = Path(path) if path else Path(DEFAULT_CONFIG_PATH)

    if not config_path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Could not read {config_path}: {exc}") from exc

    data = _parse_document(text, config_path)

    try:
        return AgentConfig(**data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration in {config_path}: {exc}") from exc


def _parse_document(text: str, config_path: Path) -> Dict[str, Any]:
    try:
        if text.lstrip().startswith("{"):
            data = json.loads(text)
        else:
            data = yaml.safe_load(text) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise ConfigError(f"Malformed configuration in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration in {config_path} must be a mapping")
    return data
