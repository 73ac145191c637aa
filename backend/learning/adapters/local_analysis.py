"""
Local analysis adapter using the Ollama client.

Intent:
    Send one code snippet with a language-specific review prompt to a local
    Ollama model (`generate`, non-streaming) and return the text answer.

Error mapping:
    - connection refused             -> AnalysisUnavailableError
    - client/read timeout            -> AnalysisTimeoutError
    - anything else (bad response)   -> AnalysisFailedError

Privacy:
    Do not log the submitted code or the model output.
"""

from __future__ import annotations

import logging

import httpx

from backend.learning.adapters.ports import (
    AnalysisFailedError,
    AnalysisResult,
    AnalysisTimeoutError,
    AnalysisUnavailableError,
)
from backend.learning.config import AIConfig, load_ai_config


logger = logging.getLogger("codespace.learning.analysis")


LANGUAGE_PROMPTS = {
    "javascript": "Analyze this JavaScript code for best practices, potential bugs, and performance issues:",
    "python": "Analyze this Python code for PEP 8 compliance, potential bugs, and Pythonic practices:",
    "java": "Analyze this Java code for best practices, potential bugs, and design patterns:",
    "cpp": "Analyze this C++ code for best practices, memory management, and potential issues:",
    "c": "Analyze this C code for best practices, memory management, and potential issues:",
}
GENERIC_PROMPT = "Analyze this code:"

_REVIEW_CHECKLIST = (
    "Please provide:\n"
    "1. Code quality assessment\n"
    "2. Potential bugs or issues\n"
    "3. Performance considerations\n"
    "4. Best practice recommendations\n"
    "5. Security considerations (if applicable)"
)


def build_prompt(language: str, code: str) -> str:
    intro = LANGUAGE_PROMPTS.get(language, GENERIC_PROMPT)
    return f"{intro}\n\n{code}\n\n{_REVIEW_CHECKLIST}"


def _response_text(raw: object) -> str:
    if isinstance(raw, dict):
        val = raw.get("response")
    else:
        val = getattr(raw, "response", None)
        if val is None and isinstance(raw, str):
            val = raw
    return str(val or "").strip()


class _LocalAnalysisAdapter:
    """Analysis adapter backed by a local Ollama server."""

    def __init__(self, cfg: AIConfig | None = None) -> None:
        cfg = cfg or load_ai_config()
        self._model = cfg.analysis_model
        self._base_url = cfg.ollama_base_url
        self._timeout = cfg.timeout_analysis_seconds

    def analyze(self, *, language: str, code: str) -> AnalysisResult:
        # Import lazily so tests can install a fake module
        try:
            import ollama  # type: ignore
        except ImportError as exc:
            raise AnalysisUnavailableError("ollama client unavailable") from exc

        prompt = build_prompt(language, code)
        try:
            client = ollama.Client(host=self._base_url, timeout=self._timeout)
            raw = client.generate(model=self._model, prompt=prompt, stream=False)
        except (httpx.TimeoutException, TimeoutError) as exc:
            logger.warning("learning.analysis.timeout model=%s timeout=%s", self._model, self._timeout)
            raise AnalysisTimeoutError(str(exc)) from exc
        except (httpx.ConnectError, ConnectionError) as exc:
            logger.warning("learning.analysis.unavailable base_url=%s", self._base_url)
            raise AnalysisUnavailableError(str(exc)) from exc
        except Exception as exc:
            logger.warning("learning.analysis.failed reason=%s", exc.__class__.__name__)
            raise AnalysisFailedError(exc.__class__.__name__) from exc

        text = _response_text(raw)
        if not text:
            logger.warning("learning.analysis.failed reason=empty_response")
            raise AnalysisFailedError("empty_response")
        logger.info("learning.analysis.completed backend=ollama language=%s", language)
        return AnalysisResult(text=text, raw_metadata={"backend": "ollama", "model": self._model})


def build() -> _LocalAnalysisAdapter:
    return _LocalAnalysisAdapter()
