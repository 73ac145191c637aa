"""
Postgres-backed submission store (psycopg3, JSONB for nested fields).

Design:
- Each call opens a short-lived connection; no ORM.
- `tags`, `analysis` and `feedback` are JSONB documents; scalar columns carry
  the fields used for filtering and ordering.
- Aggregations run in SQL and must agree with the reductions in
  `teaching.services.reporting`.
- `update(..., expected_revision=n)` is a single conditional UPDATE so a stale
  analysis cannot overwrite a newer edit.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from backend.common.db import psycopg, require_psycopg, resolve_dsn
from backend.common.pagination import Page, PageRequest

from .domain import (
    STATUS_SUBMITTED,
    Analysis,
    Feedback,
    GradeStats,
    LanguageCount,
    OwnerStats,
    Submission,
    SubmissionContent,
    SubmissionFilters,
)

try:
    from psycopg.types.json import Jsonb
except Exception:  # pragma: no cover - optional in some dev envs
    Jsonb = None  # type: ignore


_COLUMNS = (
    "id::text, owner_id::text, title, description, language, code, tags, status, "
    "analysis, feedback, revision, created_at, updated_at"
)


def _parse_ts(value: Any) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _analysis_to_json(a: Optional[Analysis]) -> Optional[dict]:
    if a is None:
        return None
    return {"result": a.result, "analyzed_at": a.analyzed_at.isoformat()}


def _feedback_to_json(f: Optional[Feedback]) -> Optional[dict]:
    if f is None:
        return None
    return {
        "teacher_id": f.teacher_id,
        "comment": f.comment,
        "grade": f.grade,
        "feedback_at": f.feedback_at.isoformat(),
    }


def _row_to_submission(row: Tuple) -> Submission:
    analysis = row[8]
    feedback = row[9]
    return Submission(
        id=row[0],
        owner_id=row[1],
        title=row[2],
        description=row[3] or "",
        language=row[4],
        code=row[5],
        tags=list(row[6] or []),
        status=row[7],
        analysis=Analysis(result=analysis["result"], analyzed_at=_parse_ts(analysis["analyzed_at"]))
        if analysis else None,
        feedback=Feedback(
            teacher_id=feedback["teacher_id"],
            comment=feedback["comment"],
            grade=feedback.get("grade"),
            feedback_at=_parse_ts(feedback["feedback_at"]),
        ) if feedback else None,
        revision=int(row[10]),
        created_at=row[11],
        updated_at=row[12],
    )


def _where(filters: SubmissionFilters, owner_id: Optional[str]) -> Tuple[str, List[object]]:
    clauses: List[str] = []
    params: List[object] = []
    if owner_id is not None:
        clauses.append("owner_id = %s::uuid")
        params.append(owner_id)
    if filters.language:
        clauses.append("language = %s")
        params.append(filters.language)
    if filters.status:
        clauses.append("status = %s")
        params.append(filters.status)
    if filters.search:
        pattern = "%" + filters.search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_") + "%"
        clauses.append("(title ilike %s or description ilike %s)")
        params.extend([pattern, pattern])
    return (" where " + " and ".join(clauses)) if clauses else "", params


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(str(value))
        return True
    except (ValueError, TypeError):
        return False


class DBSubmissionRepo:
    def __init__(self, dsn: str | None = None) -> None:
        require_psycopg()
        self._dsn = resolve_dsn(dsn)

    def create(self, owner_id: str, content: SubmissionContent, *, now: Optional[datetime] = None) -> Submission:
        ts = now or datetime.now(timezone.utc)
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
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "insert into submissions (id, owner_id, title, description, language, code, tags, "
                    "status, revision, created_at, updated_at) "
                    "values (%s::uuid, %s::uuid, %s, %s, %s, %s, %s, %s, %s, %s, %s)",
                    (sub.id, sub.owner_id, sub.title, sub.description, sub.language, sub.code,
                     Jsonb(sub.tags), sub.status, sub.revision, sub.created_at, sub.updated_at),
                )
        return sub

    def get(self, submission_id: str) -> Optional[Submission]:
        if not _is_uuid(submission_id):
            return None
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_COLUMNS} from submissions where id = %s::uuid", (submission_id,))
                row = cur.fetchone()
        return _row_to_submission(row) if row else None

    def _list(self, filters: SubmissionFilters, owner_id: Optional[str], page: PageRequest) -> Page[Submission]:
        where, params = _where(filters, owner_id)
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select count(*) from submissions{where}", tuple(params))
                total = int(cur.fetchone()[0])
                cur.execute(
                    f"select {_COLUMNS} from submissions{where} order by created_at desc, id "
                    "limit %s offset %s",
                    tuple(params + [page.limit, page.offset]),
                )
                rows = cur.fetchall()
        return Page(items=[_row_to_submission(r) for r in rows], total=total, page=page.page, limit=page.limit)

    def list_by_owner(self, owner_id: str, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        if not _is_uuid(owner_id):
            return Page(items=[], total=0, page=page.page, limit=page.limit)
        return self._list(filters, owner_id, page)

    def list_all(self, filters: SubmissionFilters, page: PageRequest) -> Page[Submission]:
        return self._list(filters, None, page)

    def update(self, sub: Submission, *, expected_revision: Optional[int] = None) -> bool:
        sql = (
            "update submissions set title = %s, description = %s, language = %s, code = %s, tags = %s, "
            "status = %s, analysis = %s, feedback = %s, revision = %s, updated_at = %s "
            "where id = %s::uuid"
        )
        params: List[object] = [
            sub.title, sub.description, sub.language, sub.code, Jsonb(list(sub.tags)), sub.status,
            Jsonb(_analysis_to_json(sub.analysis)) if sub.analysis else None,
            Jsonb(_feedback_to_json(sub.feedback)) if sub.feedback else None,
            sub.revision, sub.updated_at, sub.id,
        ]
        if expected_revision is not None:
            sql += " and revision = %s"
            params.append(expected_revision)
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, tuple(params))
                return cur.rowcount > 0

    def delete(self, submission_id: str) -> bool:
        if not _is_uuid(submission_id):
            return False
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from submissions where id = %s::uuid", (submission_id,))
                return cur.rowcount > 0

    def delete_all_by_owner(self, owner_id: str) -> int:
        if not _is_uuid(owner_id):
            return 0
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("delete from submissions where owner_id = %s::uuid", (owner_id,))
                return cur.rowcount

    def count(self) -> int:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute("select count(*) from submissions")
                return int(cur.fetchone()[0])

    def count_by_language(self) -> List[LanguageCount]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select language, count(*) from submissions group by language "
                    "order by count(*) desc, language asc"
                )
                rows = cur.fetchall()
        return [LanguageCount(language=r[0], count=int(r[1])) for r in rows]

    def grade_stats(self) -> GradeStats:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select round(avg((feedback->>'grade')::int), 2), min((feedback->>'grade')::int), "
                    "max((feedback->>'grade')::int), count(*) from submissions "
                    "where feedback is not null and feedback->>'grade' is not null"
                )
                row = cur.fetchone()
        if not row or not row[3]:
            return GradeStats()
        return GradeStats(average=float(row[0]), minimum=int(row[1]), maximum=int(row[2]), count=int(row[3]))

    def recent(self, limit: int) -> List[Submission]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select {_COLUMNS} from submissions order by created_at desc, id limit %s",
                    (max(0, limit),),
                )
                rows = cur.fetchall()
        return [_row_to_submission(r) for r in rows]

    def owner_stats(self, owner_id: str) -> OwnerStats:
        return self.owner_stats_many([owner_id]).get(owner_id, OwnerStats())

    def owner_stats_many(self, owner_ids: Iterable[str]) -> Dict[str, OwnerStats]:
        wanted = [o for o in set(owner_ids) if _is_uuid(o)]
        stats: Dict[str, OwnerStats] = {o: OwnerStats() for o in set(owner_ids)}
        if not wanted:
            return stats
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "select owner_id::text, count(*), max(created_at) from submissions "
                    "where owner_id::text = any(%s) group by owner_id",
                    (wanted,),
                )
                for owner, n, latest in cur.fetchall():
                    stats[owner] = OwnerStats(submission_count=int(n), last_submission_at=latest)
        return stats
