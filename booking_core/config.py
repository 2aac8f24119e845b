"""
Centralized configuration with environment variable overrides.

Scheduling tunables (slot granularity, buffers, search horizon) and catalog
limits live here. Engines read these defaults but accept an explicit config
so tests and embedding applications can override them without touching the
environment.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from booking_core.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s [%(request_id)s]: %(message)s"


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


def _safe_bool(env_var: str, default: str) -> bool:
    """Parse a boolean flag from an env var."""
    raw = os.getenv(env_var, default).strip().lower()
    if raw in _TRUTHY:
        return True
    if raw in _FALSY:
        return False
    raise ValueError(f"Invalid boolean for {env_var}: {raw!r}")


@dataclass(frozen=True)
class AvailabilityConfig:
    """Slot enumeration and conflict detection settings."""

    slot_granularity_minutes: int = _safe_int("SLOT_GRANULARITY_MINUTES", "15")
    booking_buffer_minutes: int = _safe_int("BOOKING_BUFFER_MINUTES", "0")
    max_search_days: int = _safe_int("MAX_SEARCH_DAYS", "30")


@dataclass(frozen=True)
class CatalogConfig:
    """Limits applied when services are defined."""

    max_service_duration_minutes: int = _safe_int("MAX_SERVICE_DURATION_MINUTES", "720")


@dataclass(frozen=True)
class NotificationConfig:
    """Outbound notification settings."""

    enabled: bool = _safe_bool("NOTIFICATIONS_ENABLED", "true")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    availability: AvailabilityConfig = field(default_factory=AvailabilityConfig)
    catalog: CatalogConfig = field(default_factory=CatalogConfig)
    notifications: NotificationConfig = field(default_factory=NotificationConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "booking-core")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    if config.availability.slot_granularity_minutes < 1:
        raise ValueError(
            "SLOT_GRANULARITY_MINUTES must be >= 1, "
            f"got {config.availability.slot_granularity_minutes}"
        )
    if config.availability.booking_buffer_minutes < 0:
        raise ValueError(
            "BOOKING_BUFFER_MINUTES must be >= 0, "
            f"got {config.availability.booking_buffer_minutes}"
        )
    if config.availability.max_search_days < 1:
        raise ValueError(
            f"MAX_SEARCH_DAYS must be >= 1, got {config.availability.max_search_days}"
        )
    if not 1 <= config.catalog.max_service_duration_minutes <= 24 * 60:
        raise ValueError(
            "MAX_SERVICE_DURATION_MINUTES must be between 1 and 1440, "
            f"got {config.catalog.max_service_duration_minutes}"
        )


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    # The filter sits on the handler so records from any logger carry request_id.
    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[handler],
    )
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
