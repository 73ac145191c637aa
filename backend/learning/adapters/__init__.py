"""Adapter factory helpers for code analysis.

Intent:
    Keep runtime adapters discoverable via dotted paths so the web app can load
    them dynamically (`LEARNING_ANALYSIS_ADAPTER`, defaulting by `AI_BACKEND`).

Exports:
    The individual modules expose a `build()` function returning an object that
    implements `AnalysisAdapterProtocol`.
"""

__all__ = ["local_analysis", "stub_analysis"]
