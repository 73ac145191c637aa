"""
Deterministic analysis stub for development and tests.

Returns a short fixed-format review without contacting any AI service.
"""

from __future__ import annotations

from backend.learning.adapters.ports import AnalysisResult


class _StubAnalysisAdapter:
    def analyze(self, *, language: str, code: str) -> AnalysisResult:
        lines = len(code.splitlines()) or 1
        text = (
            f"Automated review ({language}): {lines} line(s) received.\n"
            "1. Code quality: looks readable.\n"
            "2. Potential issues: none detected by the stub analyzer."
        )
        return AnalysisResult(text=text, raw_metadata={"backend": "stub"})


def build() -> _StubAnalysisAdapter:
    return _StubAnalysisAdapter()
