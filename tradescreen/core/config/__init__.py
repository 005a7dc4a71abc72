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
    screening_db_path: str
    scoring_config_path: str | None
    auto_evaluate_enabled: bool
    auto_evaluate_min_exchanges: int
    vapi_api_base_url: str
    vapi_private_key: str | None
    vapi_fetch_timeout_s: float
    smtp_host: str | None
    smtp_port: int
    smtp_user: str | None
    smtp_password: str | None
    smtp_from: str | None
    smtp_use_tls: bool
    hr_notify_email: str | None


def load_settings() -> Settings:
    return Settings(
        api_key=_get_env("API_KEY"),
        rate_limit=_get_env("RATE_LIMIT", "120/minute") or "120/minute",
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
        screening_db_path=_get_env("SCREENING_DB_PATH", "data/screening.db") or "data/screening.db",
        scoring_config_path=_get_env("SCORING_CONFIG_PATH"),
        auto_evaluate_enabled=_get_env_bool("AUTO_EVALUATE_ENABLED", True),
        auto_evaluate_min_exchanges=_get_env_int("AUTO_EVALUATE_MIN_EXCHANGES", 3),
        vapi_api_base_url=_get_env("VAPI_API_BASE_URL", "https://api.vapi.ai") or "https://api.vapi.ai",
        vapi_private_key=_get_env("VAPI_PRIVATE_KEY"),
        vapi_fetch_timeout_s=_get_env_float("VAPI_FETCH_TIMEOUT_S", 10.0),
        smtp_host=_get_env("SMTP_HOST"),
        smtp_port=_get_env_int("SMTP_PORT", 587),
        smtp_user=_get_env("SMTP_USER"),
        smtp_password=_get_env("SMTP_PASSWORD"),
        smtp_from=_get_env("SMTP_FROM"),
        smtp_use_tls=_get_env_bool("SMTP_USE_TLS", True),
        hr_notify_email=_get_env("HR_NOTIFY_EMAIL"),
    )


settings = load_settings()

if settings.auto_evaluate_min_exchanges < 1:
    raise RuntimeError("AUTO_EVALUATE_MIN_EXCHANGES must be at least 1.")

__all__ = ["Settings", "settings", "load_settings"]
