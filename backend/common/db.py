"""
Postgres plumbing shared by the user and submission stores.

Design:
- Minimal psycopg3 usage; each store call opens a short-lived connection.
- The schema is small and created idempotently at startup when
  `STORE_BACKEND=db` (`ensure_schema`). Submissions reference users with
  `on delete cascade`, so deleting a user removes their code in the same
  statement.
"""
from __future__ import annotations

import os

try:
    import psycopg
    HAVE_PSYCOPG = True
except Exception:  # pragma: no cover - optional in some dev envs
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False


SCHEMA_SQL = """
create table if not exists users (
    id uuid primary key,
    username text not null unique,
    email text not null unique,
    password_hash text not null,
    role text not null check (role in ('student', 'teacher')),
    last_active timestamptz,
    created_at timestamptz not null default now()
);

create table if not exists submissions (
    id uuid primary key,
    owner_id uuid not null references users(id) on delete cascade,
    title text not null check (char_length(title) <= 100),
    description text not null default '' check (char_length(description) <= 500),
    language text not null check (language in ('javascript', 'python', 'java', 'cpp', 'c')),
    code text not null,
    tags jsonb not null default '[]'::jsonb,
    status text not null check (status in ('submitted', 'analyzed', 'reviewed', 'graded')),
    analysis jsonb,
    feedback jsonb,
    revision integer not null default 0,
    created_at timestamptz not null default now(),
    updated_at timestamptz not null default now()
);

create index if not exists submissions_owner_created_idx on submissions (owner_id, created_at desc);
create index if not exists submissions_created_idx on submissions (created_at desc);
"""


def _default_dsn() -> str:
    host = os.getenv("TEST_DB_HOST", "127.0.0.1")
    port = os.getenv("TEST_DB_PORT", "5432")
    return f"postgresql://codespace:codespace@{host}:{port}/codespace"


def resolve_dsn(dsn: str | None = None) -> str:
    """Resolve the DSN, falling back to the local development database."""
    return dsn or os.getenv("DATABASE_URL") or _default_dsn()


def require_psycopg() -> None:
    if not HAVE_PSYCOPG:
        raise RuntimeError("psycopg3 is required for the Postgres stores")


def ensure_schema(dsn: str | None = None) -> None:
    require_psycopg()
    with psycopg.connect(resolve_dsn(dsn), autocommit=True) as conn:
        with conn.cursor() as cur:
            cur.execute(SCHEMA_SQL)
