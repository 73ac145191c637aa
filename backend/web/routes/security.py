"""
Shared web helpers for the API routers.

Contains the private JSON response helper and actor lookup used by the auth,
code and admin routers. Keeping a single implementation avoids drift in cache
headers and error bodies.
"""
from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import JSONResponse

from backend.common.errors import CodespaceError
from backend.identity_access.domain import Actor, User

PRIVATE_HEADERS = {"Cache-Control": "private, no-store"}


def _json_private(body: dict, *, status_code: int = 200) -> JSONResponse:
    return JSONResponse(body, status_code=status_code, headers=dict(PRIVATE_HEADERS))


def _error_response(exc: CodespaceError) -> JSONResponse:
    return _json_private(exc.to_dict(), status_code=exc.status_code)


def current_actor(request: Request) -> Optional[Actor]:
    """Actor resolved by the auth middleware, or None on public paths."""
    return getattr(request.state, "actor", None)


def current_user(request: Request) -> Optional[User]:
    return getattr(request.state, "user", None)
