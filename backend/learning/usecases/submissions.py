"""
Submission use cases: create, list, read, edit, delete and AI analysis.

Intent:
    Framework-free boundary between the web adapter and the submission store.
    Each use case consults the authorization policy, validates input and
    applies lifecycle transitions before writing.

Permissions:
    See `identity_access.policy`: students own their submissions; teachers may
    read and delete any submission; only the owner edits or analyzes.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Protocol

from backend.common.errors import (
    ConflictError,
    ExternalServiceError,
    ExternalServiceTimeout,
    ExternalServiceUnavailable,
    NotFoundError,
)
from backend.common.pagination import Page, PageRequest
from backend.identity_access import policy
from backend.identity_access.domain import Actor
from backend.learning import lifecycle
from backend.learning.adapters.ports import (
    AnalysisAdapterProtocol,
    AnalysisTimeoutError,
    AnalysisUnavailableError,
)
from backend.learning.domain import Submission, SubmissionContent, SubmissionFilters
from backend.learning.validation import validate_filters, validate_submission

_log = logging.getLogger("codespace.learning.submissions")

SUBMISSION_NOT_FOUND = "Code not found"


class SubmissionRepoProtocol(Protocol):
    def create(self, owner_id: str, content: SubmissionContent, *, now: Optional[datetime] = None) -> Submission:
        ...

    def get(self, submission_id: str) -> Optional[Submission]:
        ...

    def list_by_owner(self, owner_id: str, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        ...

    def list_all(self, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        ...

    def update(self, sub: Submission, *, expected_revision: Optional[int] = None) -> bool:
        ...

    def delete(self, submission_id: str) -> bool:
        ...

    def delete_all_by_owner(self, owner_id: str) -> int:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def load_submission(repo: SubmissionRepoProtocol, submission_id: str) -> Submission:
    sub = repo.get(submission_id)
    if sub is None:
        raise NotFoundError(SUBMISSION_NOT_FOUND)
    return sub


@dataclass
class CreateSubmissionInput:
    actor: Optional[Actor]
    title: Any
    language: Any
    code: Any
    description: Any = None
    tags: Any = None


class CreateSubmissionUseCase:
    def __init__(self, repo: SubmissionRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: CreateSubmissionInput) -> Submission:
        """Create a submission owned by the caller.

        Behavior:
            - The owner is always the authenticated actor, never a payload field.
            - New submissions start in `submitted` with revision 0.
        """
        actor = policy.authorize(req.actor, policy.SUBMISSION_CREATE)
        content = validate_submission(
            title=req.title,
            language=req.language,
            code=req.code,
            description=req.description,
            tags=req.tags,
        )
        sub = self._repo.create(actor.id, content, now=_utcnow())
        _log.info("learning.submission.created submission_id=%s language=%s", sub.id, sub.language)
        return sub


@dataclass
class ListSubmissionsInput:
    actor: Optional[Actor]
    language: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None
    page: Any = 1
    limit: Any = 10


class ListSubmissionsUseCase:
    def __init__(self, repo: SubmissionRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: ListSubmissionsInput) -> Page[Submission]:
        """Return the caller's own submissions, newest first, one page at a time."""
        actor = policy.authorize(req.actor, policy.SUBMISSION_LIST)
        filters = validate_filters(language=req.language, status=req.status, search=req.search)
        return self._repo.list_by_owner(actor.id, filters, PageRequest.clamp(req.page, req.limit))


class GetSubmissionUseCase:
    def __init__(self, repo: SubmissionRepoProtocol) -> None:
        self._repo = repo

    def execute(self, actor: Optional[Actor], submission_id: str) -> Submission:
        policy.authorize(actor, policy.SUBMISSION_LIST)
        sub = load_submission(self._repo, submission_id)
        policy.authorize(actor, policy.SUBMISSION_READ, sub)
        return sub


@dataclass
class UpdateSubmissionInput:
    actor: Optional[Actor]
    submission_id: str
    title: Any
    language: Any
    code: Any
    description: Any = None
    tags: Any = None


class UpdateSubmissionUseCase:
    def __init__(self, repo: SubmissionRepoProtocol) -> None:
        self._repo = repo

    def execute(self, req: UpdateSubmissionInput) -> Submission:
        """Replace the editable content and reset the lifecycle.

        Behavior:
            - Validation runs before the store is touched.
            - Any edit forces `submitted`, clears the analysis, keeps teacher
              feedback and increments `revision`.
            - An omitted description or tag list keeps the stored value.
            - Concurrent edits: last writer wins.
        """
        policy.authorize(req.actor, policy.SUBMISSION_LIST)
        content = validate_submission(
            title=req.title,
            language=req.language,
            code=req.code,
            description=req.description,
            tags=req.tags,
        )
        sub = load_submission(self._repo, req.submission_id)
        policy.authorize(req.actor, policy.SUBMISSION_UPDATE, sub)
        if req.description is None or req.tags is None:
            content = SubmissionContent(
                title=content.title,
                language=content.language,
                code=content.code,
                description=content.description if req.description is not None else sub.description,
                tags=content.tags if req.tags is not None else tuple(sub.tags),
            )
        lifecycle.edit(sub, content, _utcnow())
        if not self._repo.update(sub):
            raise NotFoundError(SUBMISSION_NOT_FOUND)
        _log.info("learning.submission.edited submission_id=%s revision=%s", sub.id, sub.revision)
        return sub


class DeleteSubmissionUseCase:
    def __init__(self, repo: SubmissionRepoProtocol) -> None:
        self._repo = repo

    def execute(self, actor: Optional[Actor], submission_id: str) -> None:
        policy.authorize(actor, policy.SUBMISSION_LIST)
        sub = load_submission(self._repo, submission_id)
        policy.authorize(actor, policy.SUBMISSION_DELETE, sub)
        if not self._repo.delete(sub.id):
            raise NotFoundError(SUBMISSION_NOT_FOUND)
        _log.info("learning.submission.deleted submission_id=%s", sub.id)


class AnalyzeSubmissionUseCase:
    def __init__(self, repo: SubmissionRepoProtocol, adapter: AnalysisAdapterProtocol) -> None:
        self._repo = repo
        self._adapter = adapter

    def execute(self, actor: Optional[Actor], submission_id: str) -> Submission:
        """Run the AI analysis for the caller's own submission and store it.

        Behavior:
            - The adapter is called outside any store write; on failure the
              stored submission is left untouched.
            - The result is applied to a fresh read and written only if the
              revision is unchanged; otherwise the result is discarded and a
              `stale_analysis` conflict is raised.
            - Connection refused -> 503, timeout -> 504, other failure -> 502.
        """
        policy.authorize(actor, policy.SUBMISSION_LIST)
        sub = load_submission(self._repo, submission_id)
        policy.authorize(actor, policy.SUBMISSION_ANALYZE, sub)
        revision = sub.revision

        try:
            result = self._adapter.analyze(language=sub.language, code=sub.code)
        except AnalysisUnavailableError as exc:
            raise ExternalServiceUnavailable() from exc
        except AnalysisTimeoutError as exc:
            raise ExternalServiceTimeout() from exc
        except Exception as exc:
            _log.warning("learning.analysis.error submission_id=%s reason=%s", sub.id, exc.__class__.__name__)
            raise ExternalServiceError() from exc

        fresh = load_submission(self._repo, submission_id)
        if fresh.revision != revision:
            _log.info("learning.analysis.discarded submission_id=%s reason=stale", sub.id)
            raise ConflictError("stale_analysis", "Code was edited while the analysis was running")
        lifecycle.complete_analysis(fresh, result.text, _utcnow())
        if not self._repo.update(fresh, expected_revision=revision):
            raise ConflictError("stale_analysis", "Code was edited while the analysis was running")
        _log.info("learning.analysis.stored submission_id=%s", fresh.id)
        return fresh
