"""
Database-backed user store (Postgres via psycopg3).

Why: In-memory accounts are not durable and do not scale across instances.
This store keeps the same interface as `InMemoryUserStore` and lets Postgres
enforce uniqueness and the submission cascade.

Note: Imported only when `STORE_BACKEND=db`. Tests use the in-memory store
unless a database is reachable.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Tuple

from backend.common.db import psycopg, require_psycopg, resolve_dsn
from backend.common.errors import ConflictError
from backend.common.pagination import Page, PageRequest

from .domain import DEFAULT_STUDENT_SORT, ROLE_STUDENT, STUDENT_SORT_KEYS, User
from .stores import EMAIL_EXISTS, USERNAME_TAKEN

_COLUMNS = "id::text, username, email, password_hash, role, created_at, last_active"

# Column expressions for the whitelisted sort keys; never interpolate input.
_ORDER_BY = {
    "last_active": "last_active desc nulls last, created_at desc",
    "created_at": "created_at desc",
    "username": "lower(username) desc",
}


def _row_to_user(row: Tuple) -> User:
    return User(
        id=row[0],
        username=row[1],
        email=row[2],
        password_hash=row[3],
        role=row[4],
        created_at=row[5],
        last_active=row[6],
    )


def _conflict_from(exc: Exception) -> ConflictError:
    constraint = getattr(getattr(exc, "diag", None), "constraint_name", "") or ""
    if "email" in constraint:
        return ConflictError("email_exists", EMAIL_EXISTS)
    return ConflictError("username_taken", USERNAME_TAKEN)


class DBUserStore:
    """Postgres-backed user store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string. Defaults to `DATABASE_URL`.
    """

    def __init__(self, dsn: str | None = None) -> None:
        require_psycopg()
        self._dsn = resolve_dsn(dsn)

    def add(self, user: User) -> User:
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "insert into users (id, username, email, password_hash, role, created_at, last_active) "
                        "values (%s::uuid, %s, %s, %s, %s, %s, %s)",
                        (user.id, user.username, user.email, user.password_hash, user.role,
                         user.created_at, user.last_active),
                    )
        except psycopg.errors.UniqueViolation as exc:
            raise _conflict_from(exc) from exc
        return user

    def save(self, user: User) -> bool:
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute(
                        "update users set username = %s, email = %s, password_hash = %s, role = %s, "
                        "last_active = %s where id = %s::uuid",
                        (user.username, user.email, user.password_hash, user.role, user.last_active, user.id),
                    )
                    return cur.rowcount > 0
        except psycopg.errors.UniqueViolation as exc:
            raise _conflict_from(exc) from exc

    def _fetch_one(self, where: str, params: tuple) -> Optional[User]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_COLUMNS} from users where {where}", params)
                row = cur.fetchone()
        return _row_to_user(row) if row else None

    def get(self, user_id: str) -> Optional[User]:
        try:
            return self._fetch_one("id = %s::uuid", (user_id,))
        except psycopg.errors.InvalidTextRepresentation:
            return None

    def get_many(self, ids: Iterable[str]) -> Dict[str, User]:
        wanted = list(set(ids))
        if not wanted:
            return {}
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select {_COLUMNS} from users where id::text = any(%s)", (wanted,))
                rows = cur.fetchall()
        return {row[0]: _row_to_user(row) for row in rows}

    def find_by_email(self, email: str) -> Optional[User]:
        return self._fetch_one("email = %s", ((email or "").strip().lower(),))

    def find_by_username(self, username: str) -> Optional[User]:
        return self._fetch_one("username = %s", (username,))

    def touch_last_active(self, user_id: str, ts: datetime) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute("update users set last_active = %s where id = %s::uuid", (ts, user_id))

    def delete(self, user_id: str) -> bool:
        # Submissions go with the user (FK on delete cascade)
        try:
            with psycopg.connect(self._dsn, autocommit=True) as conn:
                with conn.cursor() as cur:
                    cur.execute("delete from users where id = %s::uuid", (user_id,))
                    return cur.rowcount > 0
        except psycopg.errors.InvalidTextRepresentation:
            return False

    def _scalar(self, sql: str, params: tuple = ()) -> int:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(sql, params)
                row = cur.fetchone()
        return int(row[0]) if row else 0

    def count_students(self) -> int:
        return self._scalar("select count(*) from users where role = %s", (ROLE_STUDENT,))

    def count_students_active_since(self, since: datetime) -> int:
        return self._scalar(
            "select count(*) from users where role = %s and last_active >= %s", (ROLE_STUDENT, since)
        )

    def search_students(
        self,
        *,
        search: Optional[str],
        sort_by: str = DEFAULT_STUDENT_SORT,
        page: PageRequest,
    ) -> Page[User]:
        key = sort_by if sort_by in STUDENT_SORT_KEYS else DEFAULT_STUDENT_SORT
        where = "role = %s"
        params: List[object] = [ROLE_STUDENT]
        needle = (search or "").strip()
        if needle:
            where += " and (username ilike %s or email ilike %s)"
            pattern = f"%{_escape_like(needle)}%"
            params.extend([pattern, pattern])
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(f"select count(*) from users where {where}", tuple(params))
                total = int(cur.fetchone()[0])
                cur.execute(
                    f"select {_COLUMNS} from users where {where} order by {_ORDER_BY[key]} limit %s offset %s",
                    tuple(params + [page.limit, page.offset]),
                )
                rows = cur.fetchall()
        return Page(items=[_row_to_user(r) for r in rows], total=total, page=page.page, limit=page.limit)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
