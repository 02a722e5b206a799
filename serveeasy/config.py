"""
Centralized configuration with environment variable overrides.

Scheduling constants, store bootstrap, and server binding are all
configurable here. Nothing is hardcoded in scheduling or ticket logic.
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from serveeasy.logging_context import RequestIdFilter

load_dotenv()

logger = logging.getLogger(__name__)


def _safe_int(env_var: str, default: str) -> int:
    """Parse an integer from an env var with a clear error on bad values."""
    raw = os.getenv(env_var, default)
    try:
        return int(raw)
    except (ValueError, TypeError):
        raise ValueError(
            f"Invalid integer for {env_var}: {raw!r}"
        ) from None


@dataclass(frozen=True)
class SchedulingConfig:
    """Slot sizing and the fixed service timezone."""

    service_duration_minutes: int = _safe_int("SERVICE_DURATION_MINUTES", "120")
    max_slots_returned: int = _safe_int("MAX_SLOTS_RETURNED", "4")
    # India Standard Time
    utc_offset_minutes: int = _safe_int("UTC_OFFSET_MINUTES", "330")


@dataclass(frozen=True)
class StoreConfig:
    """Document store bootstrap settings."""

    seed_path: str = os.getenv("STORE_SEED_PATH", "")


@dataclass(frozen=True)
class ServerConfig:
    """HTTP binding for the request router."""

    host: str = os.getenv("API_HOST", "0.0.0.0")
    port: int = _safe_int("API_PORT", "3000")


@dataclass(frozen=True)
class AppConfig:
    """Root configuration aggregating all sub-configs."""

    scheduling: SchedulingConfig = field(default_factory=SchedulingConfig)
    store: StoreConfig = field(default_factory=StoreConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    app_name: str = os.getenv("APP_NAME", "serveeasy-dispatch")


def _validate_config(config: AppConfig) -> None:
    """Validate configuration values are within acceptable ranges."""
    duration = config.scheduling.service_duration_minutes
    if not 1 <= duration <= 24 * 60:
        raise ValueError(
            f"SERVICE_DURATION_MINUTES must be between 1 and 1440, got {duration}"
        )
    if config.scheduling.max_slots_returned < 1:
        raise ValueError(
            f"MAX_SLOTS_RETURNED must be >= 1, got {config.scheduling.max_slots_returned}"
        )
    offset = config.scheduling.utc_offset_minutes
    if not -14 * 60 <= offset <= 14 * 60:
        raise ValueError(
            f"UTC_OFFSET_MINUTES must be between -840 and 840, got {offset}"
        )
    if not 1 <= config.server.port <= 65535:
        raise ValueError(f"API_PORT must be between 1 and 65535, got {config.server.port}")
    if config.store.seed_path and not os.path.isfile(config.store.seed_path):
        raise ValueError(f"STORE_SEED_PATH does not exist: {config.store.seed_path!r}")


def load_config() -> AppConfig:
    """Load and validate application configuration."""
    config = AppConfig()
    _validate_config(config)
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(name)s] [%(request_id)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RequestIdFilter) for f in handler.filters):
            handler.addFilter(RequestIdFilter())
    logger.info("Configuration loaded for '%s'", config.app_name)
    return config


# Singleton instance
settings = load_config()
