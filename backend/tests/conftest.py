"""
Pytest configuration for backend tests.

Why: Force AnyIO to use the asyncio backend and give every test a fresh
in-memory service container so accounts and submissions never leak between
cases.
"""
import os
import sys
from pathlib import Path

import pytest

# Ensure `backend.*` is importable when pytest is started from backend/
REPO_ROOT = Path(__file__).resolve().parents[2]
TESTS_DIR = REPO_ROOT / "backend" / "tests"
for p in (str(REPO_ROOT), str(TESTS_DIR)):
    if p not in sys.path:
        sys.path.insert(0, p)

# Import-time guard in backend.web.main must see a dev environment
for _var in ("CODESPACE_ENV", "JWT_SECRET", "AI_BACKEND", "LEARNING_ANALYSIS_ADAPTER", "STORE_BACKEND"):
    os.environ.pop(_var, None)


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_env_toggles(monkeypatch: pytest.MonkeyPatch):
    """Keep env-driven toggles at their defaults unless a test opts in."""
    for var in (
        "CODESPACE_ENV",
        "CODESPACE_ALLOW_TEACHER_SELF_REGISTRATION",
        "CODESPACE_ADMIN_USERNAME",
        "CODESPACE_ADMIN_EMAIL",
        "CODESPACE_ADMIN_PASSWORD",
        "JWT_SECRET",
        "JWT_EXPIRE_SECONDS",
        "AI_BACKEND",
        "AI_ANALYSIS_MODEL",
        "AI_TIMEOUT_ANALYSIS",
        "OLLAMA_BASE_URL",
        "LEARNING_ANALYSIS_ADAPTER",
        "STORE_BACKEND",
        "RATE_LIMIT_MAX",
        "RATE_LIMIT_WINDOW_SECONDS",
        "CODESPACE_MAX_BODY_BYTES",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def _fresh_services():
    """Install a fresh in-memory container (stub analysis) per test.

    Behavior:
        - Bootstraps the default teacher like the app startup hook does;
          `ASGITransport` does not run the lifespan.
        - Clears the per-IP request counters so every test starts with a full
          budget.
        - Resets the global container afterwards so the next test starts clean.
    """
    from backend.web import main
    from backend.web.rate_limit import reset_counters
    from backend.web.storage_wiring import build_memory_services, set_services

    reset_counters()

    services = build_memory_services()
    main.bootstrap_default_teacher(services)
    set_services(services)
    yield services
    set_services(None)


@pytest.fixture
def services(_fresh_services):
    return _fresh_services
