"""Process-wide configuration."""

import logging
import os
from functools import lru_cache

import structlog
from pydantic import BaseModel, ConfigDict, Field

MIN_HASH_ITERATIONS = 100_000


class Settings(BaseModel):
    """Immutable settings injected into each component at construction."""

    model_config = ConfigDict(frozen=True)

    proxy_secret: str = "TOKEN"
    proxy_header: str = "x-nexodus-proxy"
    store_timeout: float = Field(default=5.0, gt=0)
    hash_iterations: int = Field(default=MIN_HASH_ITERATIONS, ge=MIN_HASH_ITERATIONS)
    auth_rate_limit: int = Field(default=20, gt=0)
    auth_rate_window: int = Field(default=60, gt=0)
    write_timeout: float = Field(default=30.0, gt=0)
    log_level: str = "INFO"
    log_json: bool = False


def load_settings() -> Settings:
    """Build settings from NEXODUS_* environment variables."""
    return Settings(
        proxy_secret=os.getenv("NEXODUS_PROXY_SECRET", "TOKEN"),
        proxy_header=os.getenv("NEXODUS_PROXY_HEADER", "x-nexodus-proxy"),
        store_timeout=float(os.getenv("NEXODUS_STORE_TIMEOUT", "5.0")),
        hash_iterations=int(os.getenv("NEXODUS_HASH_ITERATIONS", str(MIN_HASH_ITERATIONS))),
        auth_rate_limit=int(os.getenv("NEXODUS_AUTH_RATE_LIMIT", "20")),
        auth_rate_window=int(os.getenv("NEXODUS_AUTH_RATE_WINDOW", "60")),
        write_timeout=float(os.getenv("NEXODUS_WRITE_TIMEOUT", "30.0")),
        log_level=os.getenv("NEXODUS_LOG_LEVEL", "INFO").upper(),
        log_json=os.getenv("NEXODUS_LOG_JSON", "false").lower() in ("1", "true", "yes"),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Returns the settings read once at startup"""
    return load_settings()


def configure_logging(settings: Settings) -> None:
    """Configure structlog with UTC timestamps and the configured renderer."""
    level = logging.getLevelName(settings.log_level)
    if not isinstance(level, int):
        level = logging.INFO

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.log_json
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        cache_logger_on_first_use=False,
    )
