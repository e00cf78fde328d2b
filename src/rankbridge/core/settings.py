"""
Centralized settings for rankbridge.

Manifesto:
    Configuration should be explicit, validated, and environment-driven.
    Every tunable the bridge has (lookup timeout, bus backend, store path)
    lives on one pydantic-settings model read from ``RANKBRIDGE_*``
    environment variables or a ``.env`` file.

Examples:
    >>> from rankbridge.core.settings import get_settings
    >>> settings = get_settings()
    >>> settings.rank_timeout_seconds
    30.0

Tags:
    settings, configuration, pydantic, environment, rankbridge

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class BridgeSettings(BaseSettings):
    """rankbridge configuration.

    Fields
    ──────
    debug                  : Enable debug mode (forces DEBUG log level)
    log_level              : Structlog log level
    log_format             : ``json``, ``console`` or ``auto`` (json when not a tty)
    rank_timeout_seconds   : Bound on one coalesced upstream rank lookup
    bus_backend            : ``memory`` (single process) or ``redis``
    redis_url              : Redis URL when ``bus_backend=redis``
    exchange_channel       : Pub/Sub channel shared with the voice service
    database_path          : SQLite file holding the identity mappings
    profile_fetch_timeout  : HTTP timeout for profile document fetches
    community_base_url     : Base URL of the community profile pages
    """

    model_config = SettingsConfigDict(
        env_prefix="RANKBRIDGE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    debug: bool = False
    log_level: str = "INFO"
    log_format: Literal["json", "console", "auto"] = "auto"

    # ── Upstream ─────────────────────────────────────────────────
    rank_timeout_seconds: float = Field(default=30.0, gt=0)

    # ── Exchange bus ─────────────────────────────────────────────
    bus_backend: Literal["memory", "redis"] = "memory"
    redis_url: str = "redis://localhost:6379/0"
    exchange_channel: str = Field(default="exchange", min_length=1)

    # ── Storage ──────────────────────────────────────────────────
    database_path: Path = Field(
        default_factory=lambda: Path.home() / ".rankbridge" / "identities.db",
        description="SQLite identity store",
    )

    # ── Identity resolution ──────────────────────────────────────
    profile_fetch_timeout: float = Field(default=10.0, gt=0)
    community_base_url: str = "https://steamcommunity.com"

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"unknown log level: {value}")
        return value

    @property
    def effective_log_level(self) -> str:
        return "DEBUG" if self.debug else self.log_level

    @property
    def json_logs(self) -> bool | None:
        """Renderer choice for :func:`configure_logging` (None = auto)."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


@lru_cache(maxsize=1)
def get_settings() -> BridgeSettings:
    """Return the process-wide settings, built on first use."""
    return BridgeSettings()


def reset_settings() -> None:
    """Drop the cached settings (tests, reloads)."""
    get_settings.cache_clear()


__all__ = ["BridgeSettings", "get_settings", "reset_settings"]
