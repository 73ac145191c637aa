"""
Wiring of stores, services and the analysis adapter for the web app.

Why:
    Routes need one place to obtain their collaborators. Tests swap the whole
    container via `set_services()`; production builds it once at startup from
    environment variables.

Behavior:
    - `STORE_BACKEND=memory` (default) wires in-memory stores; `db` wires the
      Postgres stores and creates the schema idempotently.
    - The analysis adapter is loaded from a dotted module path exposing
      `build()` (see `learning.config`).
"""
from __future__ import annotations

import importlib
import logging
import os
from dataclasses import dataclass
from typing import Optional

from backend.identity_access.accounts import AccountService
from backend.identity_access.config import AuthConfig, load_auth_config
from backend.learning.adapters.ports import AnalysisAdapterProtocol
from backend.learning.config import load_ai_config
from backend.learning.repo_memory import InMemorySubmissionRepo
from backend.learning.usecases.submissions import SubmissionRepoProtocol
from backend.teaching.services.feedback import FeedbackService
from backend.teaching.services.reporting import ReportingService
from backend.teaching.services.students import StudentsService

logger = logging.getLogger("codespace.web")


@dataclass
class Services:
    auth_config: AuthConfig
    accounts: AccountService
    submissions: SubmissionRepoProtocol
    analysis: AnalysisAdapterProtocol
    reporting: ReportingService
    students: StudentsService
    feedback: FeedbackService

    @property
    def users(self):
        return self.accounts.users


def load_analysis_adapter(path: Optional[str] = None) -> AnalysisAdapterProtocol:
    module_path = path or load_ai_config().analysis_adapter_path
    module = importlib.import_module(module_path)
    build = getattr(module, "build", None)
    if not callable(build):
        raise RuntimeError(f"analysis adapter module {module_path!r} has no build()")
    return build()


def assemble_services(users, submissions, *, analysis: AnalysisAdapterProtocol, auth_config: AuthConfig) -> Services:
    accounts = AccountService(users, allow_teacher_self_registration=auth_config.allow_teacher_self_registration)
    return Services(
        auth_config=auth_config,
        accounts=accounts,
        submissions=submissions,
        analysis=analysis,
        reporting=ReportingService(users=users, submissions=submissions),
        students=StudentsService(accounts=accounts, submissions=submissions),
        feedback=FeedbackService(repo=submissions),
    )


def build_memory_services(
    *,
    analysis: Optional[AnalysisAdapterProtocol] = None,
    auth_config: Optional[AuthConfig] = None,
) -> Services:
    from backend.identity_access.stores import InMemoryUserStore

    submissions = InMemorySubmissionRepo()
    users = InMemoryUserStore(submissions=submissions)
    return assemble_services(
        users,
        submissions,
        analysis=analysis or load_analysis_adapter("backend.learning.adapters.stub_analysis"),
        auth_config=auth_config or load_auth_config(),
    )


def build_default_services() -> Services:
    backend = (os.getenv("STORE_BACKEND", "memory") or "memory").strip().lower()
    auth_config = load_auth_config()
    analysis = load_analysis_adapter()
    if backend == "db":
        # Lazy imports keep psycopg out of the memory-only path.
        from backend.common.db import ensure_schema
        from backend.identity_access.stores_db import DBUserStore
        from backend.learning.repo_db import DBSubmissionRepo

        ensure_schema()
        logger.info("web.wiring.stores backend=db")
        return assemble_services(DBUserStore(), DBSubmissionRepo(), analysis=analysis, auth_config=auth_config)
    if backend != "memory":
        raise ValueError("STORE_BACKEND must be 'memory' or 'db'")
    logger.info("web.wiring.stores backend=memory")
    return build_memory_services(analysis=analysis, auth_config=auth_config)


SERVICES: Optional[Services] = None


def set_services(services: Optional[Services]) -> None:
    """Swap the active container (tests) or reset it with None."""
    global SERVICES
    SERVICES = services


def get_services() -> Services:
    global SERVICES
    if SERVICES is None:
        SERVICES = build_default_services()
    return SERVICES
