"""
Ports for the code analysis adapters: result type, protocol and errors.

Intent:
    Provide framework-agnostic contracts between the analysis use case and
    concrete adapters (local Ollama, stub). Keeping these definitions in a
    dedicated module avoids circular imports and clarifies boundaries.

Design:
    - Result dataclass: AnalysisResult
    - Protocol: AnalysisAdapterProtocol
    - Error taxonomy: unavailable (connection refused), timeout, failed
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class AnalysisResult:
    """Analysis adapter response.

    Parameters:
        text: Free-form review text shown to the student.
        raw_metadata: Optional adapter-specific diagnostics (model, backend).
    """

    text: str
    raw_metadata: Optional[dict] = None


class AnalysisAdapterProtocol(Protocol):
    """Analysis adapter reviews one code snippet."""

    def analyze(self, *, language: str, code: str) -> AnalysisResult:
        ...


class AnalysisError(Exception):
    """Base class for analysis adapter failures."""


class AnalysisUnavailableError(AnalysisError):
    """The AI service refused the connection (not running)."""


class AnalysisTimeoutError(AnalysisError):
    """The AI service did not answer within the configured timeout."""


class AnalysisFailedError(AnalysisError):
    """Any other failure: bad response, model error, empty output."""


__all__ = [
    "AnalysisResult",
    "AnalysisAdapterProtocol",
    "AnalysisError",
    "AnalysisUnavailableError",
    "AnalysisTimeoutError",
    "AnalysisFailedError",
]
