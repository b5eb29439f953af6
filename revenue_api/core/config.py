"""
Environment configuration helpers.

Values are stripped; empty or malformed values fall back to the default.
"""

from __future__ import annotations

import os


def env_str(name: str, default: str = "") -> str:
    return os.environ.get(name, "").strip() or default


def env_int(name: str, default: int) -> int:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def env_csv(name: str, default: list[str]) -> list[str]:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


def app_env() -> str:
    return env_str("APP_ENV", "development").lower()


def is_production() -> bool:
    return app_env() in {"prod", "production"}


def service_name() -> str:
    return env_str("OTEL_SERVICE_NAME", "i-revenue-api")


def log_level() -> str:
    return env_str("LOG_LEVEL", "INFO").upper()


def cors_origins() -> list[str]:
    # Local frontend dev server by default.
    return env_csv(
        "CORS_ORIGINS",
        [
            "http://localhost:5173",
            "http://127.0.0.1:5173",
        ],
    )


def rate_limit_window_ms() -> int:
    value = env_int("RATE_LIMIT_WINDOW_MS", 60_000)
    return value if value > 0 else 60_000


def rate_limit_max_requests() -> int:
    value = env_int("RATE_LIMIT_MAX_REQUESTS", 100)
    return value if value > 0 else 100


def docs_credentials() -> tuple[str, str] | None:
    """
    Return (user, password) when the docs UI should be gated, else None.
    """
    user = env_str("SWAGGER_USER")
    password = env_str("SWAGGER_PASS")
    if not user or not password:
        return None
    return user, password


def log_persistence_enabled() -> bool:
    # Logs are copied to PostgreSQL whenever a database is configured.
    if not env_str("DATABASE_URL"):
        return False
    return env_str("LOG_PERSIST", "true").lower() not in {"0", "false", "no", "off"}
