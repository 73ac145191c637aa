"""
Security config guard tests.

Production/staging must fail fast on placeholder secrets, the default
bootstrap password, disabled TLS and the stub AI backend, while development
stays permissive.
"""
from __future__ import annotations

import importlib

import pytest


def _secure_prod_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CODESPACE_ENV", "prod")
    monkeypatch.setenv("JWT_SECRET", "a-long-random-production-secret")
    monkeypatch.setenv("CODESPACE_ADMIN_PASSWORD", "Str0ng-admin-pass")
    monkeypatch.setenv("AI_BACKEND", "local")
    monkeypatch.setenv("DATABASE_URL", "postgresql://app:pw@db.example.com:5432/codespace?sslmode=require")


def _guard():
    from backend.web import config as cfg  # type: ignore

    importlib.reload(cfg)
    return cfg.ensure_secure_config_on_startup


def test_dev_allows_defaults(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CODESPACE_ENV", "dev")
    _guard()()


def test_secure_prod_config_passes(monkeypatch: pytest.MonkeyPatch):
    _secure_prod_env(monkeypatch)
    _guard()()


@pytest.mark.parametrize(
    "var,value",
    [
        ("JWT_SECRET", ""),
        ("JWT_SECRET", "dev-insecure-jwt-secret"),
        ("JWT_SECRET", "CHANGE_ME_please"),
        ("CODESPACE_ADMIN_PASSWORD", "admin123"),
        ("DATABASE_URL", "postgresql://app:pw@db:5432/codespace?sslmode=disable"),
        ("AI_BACKEND", "stub"),
    ],
)
def test_prod_rejects_insecure_setting(monkeypatch: pytest.MonkeyPatch, var: str, value: str):
    _secure_prod_env(monkeypatch)
    monkeypatch.setenv(var, value)
    with pytest.raises(SystemExit):
        _guard()()


def test_staging_counts_as_prod(monkeypatch: pytest.MonkeyPatch):
    _secure_prod_env(monkeypatch)
    monkeypatch.setenv("CODESPACE_ENV", "staging")
    monkeypatch.delenv("JWT_SECRET")
    with pytest.raises(SystemExit):
        _guard()()
