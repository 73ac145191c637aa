"""
AI configuration for code analysis.

Intent:
    Read the environment once into a frozen `AIConfig`: which adapter module
    to load, which Ollama model to ask, how long to wait and where Ollama
    listens. Tests call `load_ai_config()` directly without booting the app.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass
from urllib.parse import urlparse

ADAPTER_MODULES = {
    "stub": "backend.learning.adapters.stub_analysis",
    "local": "backend.learning.adapters.local_analysis",
}

DEFAULT_ANALYSIS_MODEL = "codellama:7b"
DEFAULT_TIMEOUT_SECONDS = 120
MAX_TIMEOUT_SECONDS = 300
DEFAULT_OLLAMA_URL = "http://localhost:11434"

_HOST_RE = re.compile(r"^[a-z0-9._-]+$")


@dataclass(frozen=True)
class AIConfig:
    backend: str  # "stub" | "local"
    analysis_adapter_path: str
    analysis_model: str
    timeout_analysis_seconds: int
    ollama_base_url: str


def _timeout_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got: {raw!r}")
    if not 1 <= value <= MAX_TIMEOUT_SECONDS:
        raise ValueError(f"{name} out of range (1..{MAX_TIMEOUT_SECONDS}), got: {value}")
    return value


def _check_ollama_url(url: str) -> str:
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"}:
        raise ValueError("OLLAMA_BASE_URL must start with http:// or https://")
    host = (parsed.hostname or "").lower()
    if not _HOST_RE.match(host):
        raise ValueError("OLLAMA_BASE_URL must contain a valid hostname")
    return url


def is_prod_like() -> bool:
    return (os.getenv("CODESPACE_ENV") or "dev").lower() in {"prod", "production", "stage", "staging"}


def load_ai_config() -> AIConfig:
    """
    Parse and validate AI-related configuration from environment variables.

    Behavior:
        - `AI_BACKEND` picks the adapter alias, "stub" (default) or "local".
          The stub is refused in prod-like environments.
        - `LEARNING_ANALYSIS_ADAPTER` (dotted module path) overrides the alias.
        - `AI_TIMEOUT_ANALYSIS` must lie in 1..300 seconds.
    """
    backend = (os.getenv("AI_BACKEND") or "stub").strip().lower()
    if backend not in ADAPTER_MODULES:
        raise ValueError("AI_BACKEND must be 'stub' or 'local'")
    if backend == "stub" and is_prod_like():
        raise ValueError("AI_BACKEND=stub is not allowed in production/staging environments.")

    return AIConfig(
        backend=backend,
        analysis_adapter_path=os.getenv("LEARNING_ANALYSIS_ADAPTER", ADAPTER_MODULES[backend]),
        analysis_model=os.getenv("AI_ANALYSIS_MODEL", DEFAULT_ANALYSIS_MODEL),
        timeout_analysis_seconds=_timeout_env("AI_TIMEOUT_ANALYSIS", DEFAULT_TIMEOUT_SECONDS),
        ollama_base_url=_check_ollama_url(os.getenv("OLLAMA_BASE_URL", DEFAULT_OLLAMA_URL)),
    )
