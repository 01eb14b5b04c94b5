"""Helpers for loading and validating lost-and-found cache configuration.

Updates:
    v0.1 - 2026-10-05 - Added Pydantic-based loader for storage and cache settings.
    v0.2 - 2026-10-09 - Added Redis slot backend options and key prefix.
    v0.3 - 2026-10-12 - Added resolver item cache TTL and helpers for persisting
        updated configuration.
"""

from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from core.exceptions import ConfigError

CONFIG_FILE = Path(__file__).with_name("config.json")

SUPPORTED_DATE_LOCALES = ("id", "en")


class RedisConfig(BaseModel):
    """Redis-backed slot storage configuration."""

    host: str = Field("localhost")
    port: int = Field(6379, ge=0)
    db: int = Field(0, ge=0)
    key_prefix: str = Field("lostfound:", description="Prefix applied to every slot key.")
    socket_timeout_seconds: float = Field(2.0, gt=0)


class StorageConfig(BaseModel):
    """Selects the durable key-value backend used by the caches."""

    backend: Literal["file", "redis", "memory"] = "file"
    directory: str = Field(
        "data/cache",
        min_length=1,
        description="Directory holding one JSON file per slot for the file backend.",
    )
    redis: RedisConfig = Field(default_factory=RedisConfig)


class HistoryConfig(BaseModel):
    """Completed-report cache configuration."""

    slot: str = Field("completed_reports_history", min_length=1)
    date_locale: str = Field("id", description="Month names used for display dates.")
    timezone: Optional[str] = Field(
        default=None,
        description="IANA zone for display dates; the host zone when unset.",
    )

    @field_validator("date_locale")
    @classmethod
    def _known_locale(cls, value: str) -> str:
        if value not in SUPPORTED_DATE_LOCALES:
            raise ValueError(
                f"date_locale '{value}' is not one of {', '.join(SUPPORTED_DATE_LOCALES)}."
            )
        return value


class NotificationConfig(BaseModel):
    """Notification inbox configuration."""

    slot: str = Field("notifications", min_length=1)
    max_items: int = Field(50, ge=1)
    expiry_days: int = Field(30, ge=1)
    id_prefix: str = Field("local", min_length=1)


class LookupConfig(BaseModel):
    """Hybrid lookup resolver configuration."""

    item_cache_ttl_seconds: int = Field(
        180,
        ge=0,
        description="Lifetime of resolved items in the in-process cache; 0 disables it.",
    )


class TelemetryConfig(BaseModel):
    """Logging and telemetry configuration."""

    log_level: str = Field("INFO")


class AppConfig(BaseModel):
    """Complete application configuration payload."""

    version: str
    storage: StorageConfig = Field(default_factory=StorageConfig)
    history: HistoryConfig = Field(default_factory=HistoryConfig)
    notifications: NotificationConfig = Field(default_factory=NotificationConfig)
    lookup: LookupConfig = Field(default_factory=LookupConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Resolve the configuration path, defaulting to the packaged config file."""
    resolved = path or CONFIG_FILE
    if not resolved.exists():
        raise ConfigError(f"Configuration file not found at {resolved}")
    return resolved


def load_app_config(path: Optional[Path] = None) -> AppConfig:
    """Load and validate the application configuration from JSON."""
    config_path = resolve_config_path(path)
    try:
        payload = json.loads(config_path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"Unable to read configuration: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Invalid JSON in configuration: {exc}") from exc

    try:
        return AppConfig.model_validate(payload)
    except ValidationError as exc:
        raise ConfigError(f"Configuration validation failed: {exc}") from exc


@lru_cache(maxsize=1)
def get_app_config(path: Optional[Path] = None) -> AppConfig:
    """Memoised accessor for the application configuration."""
    return load_app_config(path)


def save_app_config(config: AppConfig, path: Optional[Path] = None) -> None:
    """Persist the provided configuration to disk."""
    target_path = path or CONFIG_FILE
    try:
        target_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Unable to prepare configuration directory: {exc}") from exc

    payload = config.model_dump(mode="json")
    try:
        target_path.write_text(
            json.dumps(payload, indent=2, sort_keys=True),
            encoding="utf-8",
        )
    except OSError as exc:
        raise ConfigError(f"Unable to write configuration: {exc}") from exc

    get_app_config.cache_clear()
