from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()


def _get_env(name: str, default: str | None = None) -> str | None:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def _get_env_bool(name: str, default: bool) -> bool:
    raw = _get_env(name, None)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _get_env_int(name: str, default: int) -> int:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _get_env_float(name: str, default: float) -> float:
    raw = _get_env(name, None)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _get_env_list(name: str, default: list[str]) -> tuple[str, ...]:
    raw = _get_env(name, None)
    if raw is None:
        return tuple(default)
    values = [item.strip() for item in raw.split(",")]
    clean = [item for item in values if item]
    return tuple(clean) if clean else tuple(default)


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    rate_limit: str
    rate_limit_enabled: bool
    log_level: str
    sentry_dsn: str | None
    cors_allowed_origins: tuple[str, ...]
    analytics_enabled: bool
    analytics_db_path: str
    analytics_retention_days: int
    record_store_db_path: str
    reanalysis_max_workers: int
    reanalysis_timeout_s: float
    resume_fetch_timeout_s: float
    resume_max_bytes: int
    ranking_queue_enabled: bool


settings = Settings(
    api_key=_get_env("API_KEY"),
    rate_limit=_get_env("RATE_LIMIT", "60/minute") or "60/minute",
    rate_limit_enabled=_get_env_bool("RATE_LIMIT_ENABLED", True),
    log_level=_get_env("LOG_LEVEL", "INFO") or "INFO",
    sentry_dsn=_get_env("SENTRY_DSN"),
    cors_allowed_origins=_get_env_list(
        "CORS_ALLOWED_ORIGINS",
        [
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
    ),
    analytics_enabled=_get_env_bool("ANALYTICS_ENABLED", True),
    analytics_db_path=_get_env("ANALYTICS_DB_PATH", "data/analytics.db") or "data/analytics.db",
    analytics_retention_days=_get_env_int("ANALYTICS_RETENTION_DAYS", 90),
    record_store_db_path=_get_env("RECORD_STORE_DB_PATH", "data/records.db") or "data/records.db",
    reanalysis_max_workers=max(1, _get_env_int("REANALYSIS_MAX_WORKERS", 4)),
    reanalysis_timeout_s=_get_env_float("REANALYSIS_TIMEOUT_S", 600.0),
    resume_fetch_timeout_s=_get_env_float("RESUME_FETCH_TIMEOUT_S", 20.0),
    resume_max_bytes=_get_env_int("RESUME_MAX_BYTES", 10 * 1024 * 1024),
    ranking_queue_enabled=_get_env_bool("RANKING_QUEUE_ENABLED", True),
)

if settings.reanalysis_timeout_s <= 0:
    raise RuntimeError("REANALYSIS_TIMEOUT_S must be a positive number of seconds.")

__all__ = ["Settings", "settings"]
