"""Centralised configuration using pydantic-settings.

All environment variables are read through the Settings class.
Consumers call ``get_settings()`` to obtain a cached, validated instance.
Tests construct ``Settings(_env_file=None, ...)`` directly for isolation.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from markwell.highlights.colors import COLORS

logger = logging.getLogger(__name__)

# src/markwell/config.py  ->  parent x3  ->  project root
_PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent


# ---------------------------------------------------------------------------
# Sub-models (one per configuration domain)
# ---------------------------------------------------------------------------
class HighlightConfig(BaseModel):
    """Highlight store defaults."""

    default_color: str = "yellow"

    @field_validator("default_color")
    @classmethod
    def _known_color(cls, value: str) -> str:
        if value not in COLORS:
            msg = f"HIGHLIGHT__DEFAULT_COLOR must be one of {sorted(COLORS)}"
            raise ValueError(msg)
        return value


class MigrationConfig(BaseModel):
    """Legacy markup migration settings."""

    state_key_prefix: str = "migration_state"
    legacy_class: str = "simple-highlight"
    # None = retry after every failure, without limit
    max_retries: int | None = Field(default=None, ge=0)
    completed_state_ttl_days: int = Field(default=7, ge=0)


class StabilityConfig(BaseModel):
    """Tree-stability wait used when re-resolving anchors."""

    threshold_ms: int = Field(default=150, ge=0)
    max_wait_ms: int = Field(default=2000, ge=0)
    poll_interval_ms: int = Field(default=25, gt=0)
    restore_retries: int = Field(default=3, ge=0)


class LoggingConfig(BaseModel):
    """Log file location and console verbosity."""

    log_dir: Path = Path("logs")
    console_level: str = "INFO"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------
class Settings(BaseSettings):
    """Settings with automatic .env loading and type validation.

    Environment variables use double-underscore delimiter for nesting:
    ``MIGRATION__LEGACY_CLASS``, ``STABILITY__MAX_WAIT_MS``, etc.
    """

    model_config = SettingsConfigDict(
        env_file=_PROJECT_ROOT / ".env",
        env_nested_delimiter="__",
        extra="ignore",
    )

    highlight: HighlightConfig = HighlightConfig()
    migration: MigrationConfig = MigrationConfig()
    stability: StabilityConfig = StabilityConfig()
    logging: LoggingConfig = LoggingConfig()


# ---------------------------------------------------------------------------
# Singleton access
# ---------------------------------------------------------------------------
@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance.

    Call ``get_settings.cache_clear()`` in tests to reset.
    """
    settings = Settings()

    env_file = settings.model_config.get("env_file")
    if env_file is not None and Path(str(env_file)).is_file():
        logger.info("Settings loaded .env from: %s", env_file)
    else:
        logger.info("Settings: no .env file found, using env vars and defaults")

    return settings
