"""Student management for teachers: listing, per-student code, accounts.

Why:
    Keeps the admin routes thin and lets tests exercise search, sorting and
    the delete cascade without HTTP.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Protocol, Tuple

from backend.common.errors import NotFoundError
from backend.common.pagination import Page, PageRequest
from backend.identity_access import policy
from backend.identity_access.accounts import AccountService
from backend.identity_access.domain import DEFAULT_STUDENT_SORT, Actor, User
from backend.learning.domain import OwnerStats, Submission, SubmissionFilters
from backend.learning.validation import validate_filters

_log = logging.getLogger("codespace.teaching.students")


class StudentSubmissionsProtocol(Protocol):
    def list_by_owner(self, owner_id: str, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        ...

    def owner_stats_many(self, owner_ids: Iterable[str]) -> Dict[str, OwnerStats]:
        ...


@dataclass
class StudentRow:
    user: User
    stats: OwnerStats


@dataclass
class StudentsService:
    accounts: AccountService
    submissions: StudentSubmissionsProtocol

    def list_students(
        self,
        actor: Optional[Actor],
        *,
        search: Optional[str] = None,
        sort_by: Optional[str] = None,
        page: Any = 1,
        limit: Any = 10,
    ) -> Page[StudentRow]:
        """Students only, with their submission count and latest submission time."""
        policy.authorize(actor, policy.ADMIN_STUDENTS_LIST)
        found = self.accounts.users.search_students(
            search=search,
            sort_by=sort_by or DEFAULT_STUDENT_SORT,
            page=PageRequest.clamp(page, limit),
        )
        stats = self.submissions.owner_stats_many([u.id for u in found.items])
        rows = [StudentRow(user=u, stats=stats.get(u.id, OwnerStats())) for u in found.items]
        return Page(items=rows, total=found.total, page=found.page, limit=found.limit)

    def student_codes(
        self,
        actor: Optional[Actor],
        student_id: str,
        *,
        language: Optional[str] = None,
        status: Optional[str] = None,
        page: Any = 1,
        limit: Any = 10,
    ) -> Tuple[User, Page[Submission]]:
        policy.authorize(actor, policy.ADMIN_STUDENTS_READ)
        filters = validate_filters(language=language, status=status)
        student = self.accounts.find_by_id(student_id)
        if student is None:
            raise NotFoundError("Student not found")
        codes = self.submissions.list_by_owner(student.id, filters, PageRequest.clamp(page, limit))
        return student, codes

    def create_student(self, actor: Optional[Actor], *, username: Any, email: Any, password: Any) -> User:
        policy.authorize(actor, policy.ADMIN_USERS_CREATE)
        user = self.accounts.create_student(username=username, email=email, password=password)
        return user

    def delete_user(self, actor: Optional[Actor], user_id: str) -> None:
        """Delete a student account and all of their submissions."""
        policy.authorize(actor, policy.ADMIN_USERS_DELETE)
        target = self.accounts.find_by_id(user_id)
        if target is None:
            raise NotFoundError("User not found")
        policy.authorize(actor, policy.ADMIN_USERS_DELETE, target)
        self.accounts.delete(target.id)
        _log.info("teaching.students.deleted user_id=%s", target.id)
