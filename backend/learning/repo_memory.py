"""
In-memory submission store for tests and local development.

Behavior:
    - Stores deep copies; callers mutate their own copy and persist it through
      `update`, mirroring the round trip through the Postgres store.
    - Listing order is newest first (`created_at` desc, insertion order as the
      tie breaker).
    - `update(..., expected_revision=n)` refuses the write when the stored
      revision moved on, which the analysis use case relies on.
"""
from __future__ import annotations

import copy
import itertools
import threading
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional

from backend.common.pagination import Page, PageRequest, slice_page
from backend.teaching.services.reporting import (
    grade_statistics,
    language_counts,
    owner_statistics,
    submission_grades,
)

from .domain import (
    STATUS_SUBMITTED,
    GradeStats,
    LanguageCount,
    OwnerStats,
    Submission,
    SubmissionContent,
    SubmissionFilters,
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class InMemorySubmissionRepo:
    def __init__(self) -> None:
        self._data: Dict[str, Submission] = {}
        self._seq: Dict[str, int] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def create(self, owner_id: str, content: SubmissionContent, *, now: Optional[datetime] = None) -> Submission:
        ts = now or _now()
        sub = Submission(
            id=str(uuid.uuid4()),
            owner_id=owner_id,
            title=content.title,
            language=content.language,
            code=content.code,
            description=content.description,
            tags=list(content.tags),
            status=STATUS_SUBMITTED,
            created_at=ts,
            updated_at=ts,
        )
        with self._lock:
            self._data[sub.id] = copy.deepcopy(sub)
            self._seq[sub.id] = next(self._counter)
        return sub

    def get(self, submission_id: str) -> Optional[Submission]:
        with self._lock:
            sub = self._data.get(submission_id)
            return copy.deepcopy(sub) if sub is not None else None

    def _ordered(self, subs: Iterable[Submission]) -> List[Submission]:
        return sorted(subs, key=lambda s: (s.created_at, self._seq.get(s.id, 0)), reverse=True)

    def _select(self, filters: SubmissionFilters, owner_id: Optional[str]) -> List[Submission]:
        with self._lock:
            rows = [
                s for s in self._data.values()
                if (owner_id is None or s.owner_id == owner_id) and filters.matches(s)
            ]
            return [copy.deepcopy(s) for s in self._ordered(rows)]

    def list_by_owner(self, owner_id: str, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        return slice_page(self._select(filters, owner_id), page)

    def list_all(self, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        return slice_page(self._select(filters, None), page)

    def update(self, sub: Submission, *, expected_revision: Optional[int] = None) -> bool:
        """Replace the stored record. Returns False when missing or stale."""
        with self._lock:
            current = self._data.get(sub.id)
            if current is None:
                return False
            if expected_revision is not None and current.revision != expected_revision:
                return False
            stored = copy.deepcopy(sub)
            stored.owner_id = current.owner_id
            stored.created_at = current.created_at
            self._data[sub.id] = stored
            return True

    def delete(self, submission_id: str) -> bool:
        with self._lock:
            self._seq.pop(submission_id, None)
            return self._data.pop(submission_id, None) is not None

    def delete_all_by_owner(self, owner_id: str) -> int:
        with self._lock:
            doomed = [sid for sid, s in self._data.items() if s.owner_id == owner_id]
            for sid in doomed:
                self._data.pop(sid, None)
                self._seq.pop(sid, None)
            return len(doomed)

    def count(self) -> int:
        with self._lock:
            return len(self._data)

    def count_by_language(self) -> List[LanguageCount]:
        with self._lock:
            return language_counts(list(self._data.values()))

    def grade_stats(self) -> GradeStats:
        with self._lock:
            return grade_statistics(submission_grades(list(self._data.values())))

    def recent(self, limit: int) -> List[Submission]:
        with self._lock:
            rows = self._ordered(self._data.values())[: max(0, limit)]
            return [copy.deepcopy(s) for s in rows]

    def owner_stats(self, owner_id: str) -> OwnerStats:
        return self.owner_stats_many([owner_id]).get(owner_id, OwnerStats())

    def owner_stats_many(self, owner_ids: Iterable[str]) -> Dict[str, OwnerStats]:
        wanted = set(owner_ids)
        with self._lock:
            stats = owner_statistics(s for s in self._data.values() if s.owner_id in wanted)
        return {oid: stats.get(oid, OwnerStats()) for oid in wanted}
