"""Configuration models and loader.

Configuration is read from gantt-stream.yaml (or a dict in tests), validated
with pydantic and cached as a module-level singleton.

Example:
    >>> config = load_config({"stream": {"url": "http://localhost:8765/events"}})
    >>> get_config().stream.record_channel
    'record-channel'

"""

import logging
from datetime import date
from enum import StrEnum
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from gantt_stream.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "gantt-stream.yaml"

RECORD_CHANNEL = "record-channel"
CLOSE_CHANNEL = "close-channel"


class PublishMode(StrEnum):
    """How the shared state cell republishes fragments.

    INCREMENTAL: each fragment is broadcast as received; sinks accumulate.
    ACCUMULATE: fragments are merged into a running graph and the full
        graph is broadcast on every publish.
    """

    INCREMENTAL = "incremental"
    ACCUMULATE = "accumulate"


class StreamSettings(BaseModel):
    """Push stream connection settings."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(
        default="http://127.0.0.1:8765/events",
        description="Server-Sent Events endpoint",
    )
    record_channel: str = Field(default=RECORD_CHANNEL, min_length=1)
    close_channel: str = Field(default=CLOSE_CHANNEL, min_length=1)
    connect_timeout: float = Field(default=10.0, gt=0)
    read_timeout: float | None = Field(
        default=None,
        description="Seconds to wait for the next chunk; None keeps the stream open indefinitely",
    )

    @field_validator("read_timeout")
    @classmethod
    def validate_read_timeout(cls, v: float | None) -> float | None:
        """Reject non-positive read timeouts (use None for unbounded)."""
        if v is not None and v <= 0:
            raise ValueError("read_timeout must be positive or null")
        return v


class StateSettings(BaseModel):
    """Shared state cell settings."""

    model_config = ConfigDict(frozen=True)

    publish_mode: PublishMode = PublishMode.INCREMENTAL
    poll_interval: float = Field(
        default=1.0,
        gt=0,
        description="Seconds between consumer-side samples of the latest graph",
    )


class DemoSourceSettings(BaseModel):
    """Settings for the bundled demo push source."""

    model_config = ConfigDict(frozen=True)

    host: str = "127.0.0.1"
    port: int = Field(default=8765, ge=1, le=65535)
    path: str = "/events"
    project_count: int = Field(default=5, ge=0)
    sprints_per_project: int = Field(default=3, ge=0)
    interval: float = Field(default=1.0, ge=0)
    seed: int | None = None
    start_date: date | None = None

    @field_validator("path")
    @classmethod
    def validate_path(cls, v: str) -> str:
        """Route paths must be absolute."""
        if not v.startswith("/"):
            raise ValueError(f"path must start with '/': {v!r}")
        return v


class GanttStreamConfig(BaseModel):
    """Root configuration model."""

    model_config = ConfigDict(frozen=True)

    stream: StreamSettings = Field(default_factory=StreamSettings)
    state: StateSettings = Field(default_factory=StateSettings)
    demo: DemoSourceSettings = Field(default_factory=DemoSourceSettings)

    @field_validator("stream", "state", "demo", mode="before")
    @classmethod
    def coerce_none_to_defaults(cls, v: Any) -> Any:
        """YAML parses empty sections as None."""
        if v is None:
            return {}
        return v


# Module-level singleton
_config: GanttStreamConfig | None = None


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read a YAML mapping from disk.

    Raises:
        ConfigError: If the file is missing, unparsable or not a mapping.

    """
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping, got {type(data).__name__}")
    return data


def load_config(source: dict[str, Any] | Path | None = None) -> GanttStreamConfig:
    """Load, validate and cache configuration.

    Args:
        source: Raw config dict, path to a YAML file, or None. With None,
            ./gantt-stream.yaml is read when present, otherwise defaults apply.

    Returns:
        Validated configuration (also stored as the singleton).

    Raises:
        ConfigError: If the file cannot be read or validation fails.

    """
    global _config

    if source is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        raw = _read_yaml(default_path) if default_path.exists() else {}
    elif isinstance(source, Path):
        raw = _read_yaml(source)
        logger.debug("Loaded config file %s", source)
    else:
        raw = source

    try:
        config = GanttStreamConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

    _config = config
    return config


def get_config() -> GanttStreamConfig:
    """Return the loaded configuration, loading defaults on first use."""
    if _config is None:
        return load_config()
    return _config


def _reset_config() -> None:
    """Reset config singleton (tests only)."""
    global _config
    _config = None
