"""Environment-driven settings for pacer.

``PacerSettings`` holds the scheduler defaults and the logging setup.  Values
come from keyword arguments, ``PACER_*`` environment variables, or a ``.env``
file, in that order of precedence.

Fields
──────
concurrency  : Default max simultaneously active tasks
max_retries  : Default retries before a task fails permanently
log_level    : Structlog log level
log_json     : Force JSON (True) / console (False) logs; None auto-detects
service      : Service name stamped on every log line

Examples:
    >>> from pacer.core.settings import PacerSettings
    >>> settings = PacerSettings(concurrency=8)
    >>> scheduler = TaskScheduler.from_settings(settings)
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class PacerSettings(BaseSettings):
    """Settings shared by the scheduler and the CLI."""

    model_config = SettingsConfigDict(
        env_prefix="PACER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Scheduling ───────────────────────────────────────────────
    concurrency: int = Field(default=5, ge=1, description="Max simultaneously active tasks")
    max_retries: int = Field(default=3, ge=0, description="Retries before permanent failure")

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_json: bool | None = None
    service: str = "pacer"

    @field_validator("log_level")
    @classmethod
    def _normalise_level(cls, value: str) -> str:
        level = value.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return level


@lru_cache(maxsize=1)
def get_settings() -> PacerSettings:
    """Return the process-wide settings (read once from the environment)."""
    return PacerSettings()


__all__ = ["PacerSettings", "get_settings"]
