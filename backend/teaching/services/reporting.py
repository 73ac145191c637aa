"""Teacher dashboard aggregation (grouping/reduction functions).

Why:
    Statistics are computed by small explicit reductions over plain records so
    they can be unit-tested without a database. The in-memory submission store
    calls these directly; the Postgres store computes the same figures in SQL
    and must agree with them.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Protocol

from backend.identity_access.domain import User
from backend.learning.domain import GradeStats, LanguageCount, OwnerStats, Submission

RECENT_SUBMISSIONS_LIMIT = 5


def start_of_utc_day(now: datetime) -> datetime:
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def language_counts(submissions: Iterable[Submission]) -> List[LanguageCount]:
    """Count per language, most frequent first; ties ordered by language name."""
    counts = Counter(s.language for s in submissions)
    ordered = sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))
    return [LanguageCount(language=lang, count=n) for lang, n in ordered]


def grade_statistics(grades: Iterable[Optional[int]]) -> GradeStats:
    values = [g for g in grades if g is not None]
    if not values:
        return GradeStats()
    return GradeStats(
        average=round(sum(values) / len(values), 2),
        minimum=min(values),
        maximum=max(values),
        count=len(values),
    )


def submission_grades(submissions: Iterable[Submission]) -> List[int]:
    return [s.feedback.grade for s in submissions if s.feedback is not None and s.feedback.grade is not None]


def owner_statistics(submissions: Iterable[Submission]) -> Dict[str, OwnerStats]:
    counts: Dict[str, int] = {}
    latest: Dict[str, datetime] = {}
    for s in submissions:
        counts[s.owner_id] = counts.get(s.owner_id, 0) + 1
        prev = latest.get(s.owner_id)
        if prev is None or s.created_at > prev:
            latest[s.owner_id] = s.created_at
    return {
        owner: OwnerStats(submission_count=n, last_submission_at=latest.get(owner))
        for owner, n in counts.items()
    }


def count_active_since(users: Iterable[User], since: datetime) -> int:
    return sum(1 for u in users if u.last_active is not None and u.last_active >= since)


class ReportingUsersProtocol(Protocol):
    def count_students(self) -> int:
        ...

    def count_students_active_since(self, since: datetime) -> int:
        ...


class ReportingSubmissionsProtocol(Protocol):
    def count(self) -> int:
        ...

    def count_by_language(self) -> List[LanguageCount]:
        ...

    def grade_stats(self) -> GradeStats:
        ...

    def recent(self, limit: int) -> List[Submission]:
        ...


@dataclass
class Dashboard:
    total_students: int
    total_submissions: int
    active_today: int
    language_stats: List[LanguageCount]
    grade_stats: GradeStats
    recent_submissions: List[Submission]


@dataclass
class ReportingService:
    users: ReportingUsersProtocol
    submissions: ReportingSubmissionsProtocol

    def dashboard(self, *, now: Optional[datetime] = None, recent_limit: int = RECENT_SUBMISSIONS_LIMIT) -> Dashboard:
        now = now or datetime.now(timezone.utc)
        return Dashboard(
            total_students=self.users.count_students(),
            total_submissions=self.submissions.count(),
            active_today=self.users.count_students_active_since(start_of_utc_day(now)),
            language_stats=self.submissions.count_by_language(),
            grade_stats=self.submissions.grade_stats(),
            recent_submissions=self.submissions.recent(recent_limit),
        )
