"""
Service container wiring: store backend selection, adapter loading via dotted
path and the default teacher bootstrap.
"""
from __future__ import annotations

import pytest

from backend.identity_access.domain import ROLE_TEACHER
from backend.identity_access.stores import InMemoryUserStore
from backend.learning.adapters.stub_analysis import _StubAnalysisAdapter
from backend.learning.repo_memory import InMemorySubmissionRepo
from backend.web import main, storage_wiring


def test_default_services_use_memory_and_stub():
    services = storage_wiring.build_default_services()
    assert isinstance(services.users, InMemoryUserStore)
    assert isinstance(services.submissions, InMemorySubmissionRepo)
    assert isinstance(services.analysis, _StubAnalysisAdapter)


def test_unknown_store_backend_is_rejected(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("STORE_BACKEND", "mongo")
    with pytest.raises(ValueError):
        storage_wiring.build_default_services()


def test_adapter_module_without_build_is_rejected():
    with pytest.raises(RuntimeError):
        storage_wiring.load_analysis_adapter("backend.learning.adapters.ports")


def test_stub_adapter_is_deterministic():
    adapter = storage_wiring.load_analysis_adapter("backend.learning.adapters.stub_analysis")
    first = adapter.analyze(language="c", code="int a;\nint b;")
    assert first.text == adapter.analyze(language="c", code="int a;\nint b;").text
    assert first.text.startswith("Automated review (c): 2 line(s)")


def test_bootstrap_uses_configured_admin(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CODESPACE_ADMIN_USERNAME", "head")
    monkeypatch.setenv("CODESPACE_ADMIN_EMAIL", "Head@School.org")
    monkeypatch.setenv("CODESPACE_ADMIN_PASSWORD", "head-pass")
    services = storage_wiring.build_memory_services()

    main.bootstrap_default_teacher(services)
    main.bootstrap_default_teacher(services)

    teacher = services.users.find_by_email("head@school.org")
    assert teacher is not None and teacher.role == ROLE_TEACHER
    assert services.users.count_students() == 0
    services.accounts.authenticate(email="head@school.org", password="head-pass")
