from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional


@dataclass(frozen=True)
class Settings:
    """
    Application settings loaded from environment variables.

    Env vars:
    - PERSISTENCE_BACKEND: 'memory' (default) or 'remote' (hosted record store)
    - RECORD_STORE_URL: base URL of the hosted record API (required for 'remote')
    - RECORD_STORE_PROJECT_ID / RECORD_STORE_PUBLIC_KEY: record API credentials
    - IDENTITY_BACKEND: 'static' (default) or 'remote'
    - IDENTITY_URL: base URL of the identity service (required for 'remote')
    - STATIC_AUTH_TOKEN / STATIC_AUTH_EMAIL: the single accepted login for 'static'
    - CORS_ALLOW_ORIGINS: comma-separated list of allowed origins; '*' by default
    - DEFAULT_DARK_MODE: theme used when the browser has no darkMode cookie (default: false)
    - HTTP_TIMEOUT_SECONDS: timeout for outbound calls (default: 10)
    - LOG_LEVEL: root log level (default: INFO)
    - SECURE_COOKIES: 'true' to mark cookies Secure (default: false)
    - SESSION_MAX_COUNT: browser sessions kept in memory before the least recently used is dropped (default: 10000)
    - SESSION_IDLE_SECONDS: idle time after which a browser session expires (default: 86400)
    """

    persistence_backend: str
    record_store_url: Optional[str]
    record_store_project_id: Optional[str]
    record_store_public_key: Optional[str]
    identity_backend: str
    identity_url: Optional[str]
    static_auth_token: Optional[str]
    static_auth_email: str
    cors_allow_origins: List[str]
    default_dark_mode: bool
    http_timeout_seconds: float
    log_level: str
    secure_cookies: bool
    session_max_count: int = 10000
    session_idle_seconds: float = 86400.0


def _get_env(name: str, default: str) -> str:
    value = os.getenv(name, default)
    if value is None or value == "":
        return default
    return value


def _get_optional(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


def _parse_bool(value: str, default: bool = False) -> bool:
    v = value.strip().lower()
    if v in {"1", "true", "yes", "on"}:
        return True
    if v in {"0", "false", "no", "off"}:
        return False
    return default


def _parse_float(value: str, default: float) -> float:
    try:
        parsed = float(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_int(value: str, default: int) -> int:
    try:
        parsed = int(value)
    except ValueError:
        return default
    return parsed if parsed > 0 else default


def _parse_origins(origins_value: str) -> List[str]:
    """
    Parse CORS origins from env. Supports:
    - '*' to allow all origins
    - Comma-separated list of origins
    """
    value = origins_value.strip()
    if value == "*":
        return ["*"]
    return [o.strip() for o in value.split(",") if o.strip()]


# PUBLIC_INTERFACE
def get_settings() -> Settings:
    """Return application settings loaded from environment variables."""
    backend = _get_env("PERSISTENCE_BACKEND", "memory").strip().lower()
    if backend not in {"memory", "remote"}:
        backend = "memory"

    identity_backend = _get_env("IDENTITY_BACKEND", "static").strip().lower()
    if identity_backend not in {"static", "remote"}:
        identity_backend = "static"

    log_level = _get_env("LOG_LEVEL", "INFO").strip().upper()
    if log_level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
        log_level = "INFO"

    return Settings(
        persistence_backend=backend,
        record_store_url=_get_optional("RECORD_STORE_URL"),
        record_store_project_id=_get_optional("RECORD_STORE_PROJECT_ID"),
        record_store_public_key=_get_optional("RECORD_STORE_PUBLIC_KEY"),
        identity_backend=identity_backend,
        identity_url=_get_optional("IDENTITY_URL"),
        static_auth_token=_get_optional("STATIC_AUTH_TOKEN"),
        static_auth_email=_get_env("STATIC_AUTH_EMAIL", "user@example.com").strip(),
        cors_allow_origins=_parse_origins(_get_env("CORS_ALLOW_ORIGINS", "*")),
        default_dark_mode=_parse_bool(_get_env("DEFAULT_DARK_MODE", "false"), False),
        http_timeout_seconds=_parse_float(_get_env("HTTP_TIMEOUT_SECONDS", "10"), 10.0),
        log_level=log_level,
        secure_cookies=_parse_bool(_get_env("SECURE_COOKIES", "false"), False),
        session_max_count=_parse_int(_get_env("SESSION_MAX_COUNT", "10000"), 10000),
        session_idle_seconds=_parse_float(_get_env("SESSION_IDLE_SECONDS", "86400"), 86400.0),
    )
