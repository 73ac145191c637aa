"""
Configuration and startup security checks for CodeSpace.

Why: Prevent accidental insecure deployments without burdening local
development. This module provides a single guard that enforces minimal
production safety constraints.

Permissions: The caller needs no special privileges. The function simply reads
environment variables and raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

from backend.identity_access.config import DEFAULT_ADMIN_PASSWORD, DEV_JWT_SECRET


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def current_environment() -> str:
    return (os.getenv("CODESPACE_ENV", "dev") or "dev").strip().lower()


def is_production() -> bool:
    return _is_prod_like(current_environment())


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Intent: Abort process startup when obviously insecure settings are detected
    in production/staging. Development remains permissive for convenience.

    Checks:
    - JWT_SECRET must be set and not the development placeholder.
    - The bootstrap teacher password must not be the well-known default.
    - DATABASE_URL must not explicitly disable TLS.
    - AI_BACKEND=stub is forbidden.
    """
    if not is_production():
        return  # dev/test remain permissive

    secret = (os.getenv("JWT_SECRET", "") or "").strip()
    if not secret or secret == DEV_JWT_SECRET or secret.upper().startswith("CHANGE_ME"):
        raise SystemExit(
            "Refusing to start: JWT_SECRET is unset or a placeholder in production."
        )

    admin_pw = os.getenv("CODESPACE_ADMIN_PASSWORD") or DEFAULT_ADMIN_PASSWORD
    if admin_pw == DEFAULT_ADMIN_PASSWORD:
        raise SystemExit(
            "Refusing to start: CODESPACE_ADMIN_PASSWORD must be changed from the default in production."
        )

    dsn = os.getenv("DATABASE_URL", "")
    if "sslmode=disable" in dsn:
        raise SystemExit(
            "Refusing to start: DATABASE_URL contains sslmode=disable in production. Use sslmode=require or verify TLS."
        )

    ai_backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if ai_backend == "stub":
        raise SystemExit(
            "Refusing to start: AI_BACKEND=stub is not allowed in production/staging. Configure a real adapter."
        )


DEFAULT_RATE_LIMIT_MAX = 100
DEFAULT_RATE_LIMIT_WINDOW_SECONDS = 15 * 60
DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024


@dataclass(frozen=True)
class HttpLimits:
    rate_limit_max: int
    rate_limit_window_seconds: int
    max_body_bytes: int

    @property
    def rate_limit(self) -> str:
        """Limit string in the `limits` notation, e.g. "100/900 seconds"."""
        return f"{self.rate_limit_max}/{self.rate_limit_window_seconds} seconds"


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be positive, got: {value}")
    return value


def load_http_limits() -> HttpLimits:
    """Per-IP request budget for `/api` and the request body cap.

    Env: `RATE_LIMIT_MAX` (100 requests), `RATE_LIMIT_WINDOW_SECONDS` (900),
    `CODESPACE_MAX_BODY_BYTES` (10 MiB).
    """
    return HttpLimits(
        rate_limit_max=_positive_int_env("RATE_LIMIT_MAX", DEFAULT_RATE_LIMIT_MAX),
        rate_limit_window_seconds=_positive_int_env("RATE_LIMIT_WINDOW_SECONDS", DEFAULT_RATE_LIMIT_WINDOW_SECONDS),
        max_body_bytes=_positive_int_env("CODESPACE_MAX_BODY_BYTES", DEFAULT_MAX_BODY_BYTES),
    )
