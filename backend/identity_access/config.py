"""
Identity configuration loaded from environment variables.

Behavior:
    - `JWT_SECRET` signs bearer tokens (HS256). A development placeholder is
      used when unset; the startup guard rejects that in prod-like envs.
    - `JWT_EXPIRE_SECONDS` must be a positive integer (default one day).
    - Bootstrap teacher credentials default to the well-known dev account.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEV_JWT_SECRET = "dev-insecure-jwt-secret"
DEFAULT_EXPIRE_SECONDS = 86400

DEFAULT_ADMIN_USERNAME = "admin"
DEFAULT_ADMIN_EMAIL = "admin@codespace.com"
DEFAULT_ADMIN_PASSWORD = "admin123"


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret: str
    jwt_expire_seconds: int
    allow_teacher_self_registration: bool
    admin_username: str
    admin_email: str
    admin_password: str


def _truthy(value: str | None) -> bool:
    return (value or "").strip().lower() in {"1", "true", "yes", "on"}


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def load_auth_config() -> AuthConfig:
    return AuthConfig(
        jwt_secret=(os.getenv("JWT_SECRET") or DEV_JWT_SECRET).strip(),
        jwt_expire_seconds=_positive_int_env("JWT_EXPIRE_SECONDS", DEFAULT_EXPIRE_SECONDS),
        allow_teacher_self_registration=_truthy(os.getenv("CODESPACE_ALLOW_TEACHER_SELF_REGISTRATION")),
        admin_username=(os.getenv("CODESPACE_ADMIN_USERNAME") or DEFAULT_ADMIN_USERNAME).strip(),
        admin_email=(os.getenv("CODESPACE_ADMIN_EMAIL") or DEFAULT_ADMIN_EMAIL).strip().lower(),
        admin_password=os.getenv("CODESPACE_ADMIN_PASSWORD") or DEFAULT_ADMIN_PASSWORD,
    )
