# produce/config.py
import logging
import os
from dataclasses import dataclass

from .errors import ConfigurationError

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _get_float(key: str, default: str) -> float:
    raw = os.environ.get(key, default)
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable '{key}' must be a number, got {raw!r}")


def _get_int(key: str, default: str) -> int:
    raw = os.environ.get(key, default)
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"Environment variable '{key}' must be an integer, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    environment: str
    database_path: str
    redis_url: str
    cache_backend: str
    cache_ttl: int
    socket_timeout: float
    log_level: str


def get_settings() -> Settings:
    """Read settings from the environment, falling back to local-dev defaults."""
    backend = os.environ.get("CACHE_BACKEND", "redis").lower()
    if backend not in ("redis", "memory"):
        raise ConfigurationError(f"CACHE_BACKEND must be 'redis' or 'memory', got {backend!r}")
    ttl = _get_int("CACHE_TTL", "60")
    if ttl <= 0:
        raise ConfigurationError("CACHE_TTL must be positive")
    return Settings(
        environment=os.environ.get("APP_ENV", "dev"),
        database_path=os.environ.get("DATABASE_PATH", "produce.db"),
        redis_url=os.environ.get("REDIS_URL", "redis://localhost:6379/0"),
        cache_backend=backend,
        cache_ttl=ttl,
        socket_timeout=_get_float("SOCKET_TIMEOUT", "1.0"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    # basicConfig is a no-op once handlers exist; the level still has to follow
    logging.getLogger().setLevel(level)
