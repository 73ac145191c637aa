"""
Teacher administration API: dashboard, students, feedback, accounts.

Permissions:
    Every endpoint requires the teacher role. Teacher accounts cannot be
    deleted here. Student deletion removes their submissions as well.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from backend.identity_access import policy
from backend.web.serializers import (
    dashboard_view,
    people_ids,
    submission_view,
    submissions_page,
    students_page,
    user_public,
    user_summary,
)
from backend.web.storage_wiring import get_services

from .security import _json_private, current_actor

admin_router = APIRouter(prefix="/api/admin", tags=["Admin"])
logger = logging.getLogger("codespace.web.admin")


class FeedbackPayload(BaseModel):
    comment: Any = None
    grade: Any = None


class CreateUserPayload(BaseModel):
    username: Any = None
    email: Any = None
    password: Any = None


@admin_router.get("/dashboard")
async def dashboard(request: Request):
    policy.authorize(current_actor(request), policy.ADMIN_DASHBOARD)
    services = get_services()
    d = services.reporting.dashboard()
    people = services.users.get_many(people_ids(d.recent_submissions))
    return _json_private({"success": True, "stats": dashboard_view(d, people)})


@admin_router.get("/students")
async def list_students(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    search: Optional[str] = None,
    sortBy: Optional[str] = None,
):
    result = get_services().students.list_students(
        current_actor(request), search=search, sort_by=sortBy, page=page, limit=limit
    )
    return _json_private(students_page(result))


@admin_router.get("/students/{student_id}/codes")
async def student_codes(
    request: Request,
    student_id: str,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    language: Optional[str] = None,
    status: Optional[str] = None,
):
    services = get_services()
    student, codes = services.students.student_codes(
        current_actor(request), student_id, language=language, status=status, page=page, limit=limit
    )
    people = services.users.get_many(people_ids(codes.items))
    body = submissions_page(codes, people)
    body["student"] = user_summary(student)
    return _json_private(body)


@admin_router.post("/codes/{code_id}/feedback")
async def give_feedback(request: Request, code_id: str, payload: FeedbackPayload):
    services = get_services()
    sub = services.feedback.give_feedback(
        current_actor(request), code_id, comment=payload.comment, grade=payload.grade
    )
    people = services.users.get_many(people_ids([sub]))
    return _json_private({"success": True, "code": submission_view(sub, people)})


@admin_router.post("/users")
async def create_user(request: Request, payload: CreateUserPayload):
    user = get_services().students.create_student(
        current_actor(request), username=payload.username, email=payload.email, password=payload.password
    )
    return _json_private({"success": True, "user": user_public(user)}, status_code=201)


@admin_router.delete("/users/{user_id}")
async def delete_user(request: Request, user_id: str):
    get_services().students.delete_user(current_actor(request), user_id)
    return _json_private({"success": True, "message": "User and associated data deleted successfully"})
