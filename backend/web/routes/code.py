"""
Code submission API: CRUD for a student's own snippets plus AI analysis.

Why:
    Adapter over the learning use cases. Each handler builds the use case
    input from the request, lets the use case authorize/validate/transition,
    and serializes the result with owner and teacher populated.

Permissions:
    - Create/list: any authenticated user (always their own submissions).
    - Read/delete: owner or teacher.
    - Update/analyze: owner only.
"""
from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from backend.learning.domain import Submission
from backend.learning.usecases.submissions import (
    AnalyzeSubmissionUseCase,
    CreateSubmissionInput,
    CreateSubmissionUseCase,
    DeleteSubmissionUseCase,
    GetSubmissionUseCase,
    ListSubmissionsInput,
    ListSubmissionsUseCase,
    UpdateSubmissionInput,
    UpdateSubmissionUseCase,
)
from backend.web.serializers import people_ids, submission_view, submissions_page
from backend.web.storage_wiring import get_services

from .security import _json_private, current_actor

code_router = APIRouter(prefix="/api/code", tags=["Code"])
logger = logging.getLogger("codespace.web.code")


class SubmissionPayload(BaseModel):
    # Accept raw values and validate in the use case to return all errors at once
    title: Any = None
    description: Any = None
    language: Any = None
    code: Any = None
    tags: Any = None


def _view(sub: Submission) -> dict:
    people = get_services().users.get_many(people_ids([sub]))
    return submission_view(sub, people)


@code_router.post("")
async def create_code(request: Request, payload: SubmissionPayload):
    sub = CreateSubmissionUseCase(get_services().submissions).execute(
        CreateSubmissionInput(
            actor=current_actor(request),
            title=payload.title,
            language=payload.language,
            code=payload.code,
            description=payload.description,
            tags=payload.tags,
        )
    )
    return _json_private({"success": True, "code": _view(sub)}, status_code=201)


@code_router.get("")
async def list_codes(
    request: Request,
    page: Optional[str] = None,
    limit: Optional[str] = None,
    language: Optional[str] = None,
    status: Optional[str] = None,
    search: Optional[str] = None,
):
    services = get_services()
    result = ListSubmissionsUseCase(services.submissions).execute(
        ListSubmissionsInput(
            actor=current_actor(request),
            language=language,
            status=status,
            search=search,
            page=page,
            limit=limit,
        )
    )
    people = services.users.get_many(people_ids(result.items))
    return _json_private(submissions_page(result, people))


@code_router.get("/{code_id}")
async def get_code(request: Request, code_id: str):
    sub = GetSubmissionUseCase(get_services().submissions).execute(current_actor(request), code_id)
    return _json_private({"success": True, "code": _view(sub)})


@code_router.put("/{code_id}")
async def update_code(request: Request, code_id: str, payload: SubmissionPayload):
    sub = UpdateSubmissionUseCase(get_services().submissions).execute(
        UpdateSubmissionInput(
            actor=current_actor(request),
            submission_id=code_id,
            title=payload.title,
            language=payload.language,
            code=payload.code,
            description=payload.description,
            tags=payload.tags,
        )
    )
    return _json_private({"success": True, "code": _view(sub)})


@code_router.delete("/{code_id}")
async def delete_code(request: Request, code_id: str):
    DeleteSubmissionUseCase(get_services().submissions).execute(current_actor(request), code_id)
    return _json_private({"success": True, "message": "Code deleted successfully"})


@code_router.post("/{code_id}/analyze")
async def analyze_code(request: Request, code_id: str):
    """Run the AI review for the caller's own submission.

    Behavior:
        The adapter call blocks for up to the configured timeout, so the use
        case runs in the threadpool to keep the event loop responsive.
    """
    services = get_services()
    usecase = AnalyzeSubmissionUseCase(services.submissions, services.analysis)
    sub = await run_in_threadpool(usecase.execute, current_actor(request), code_id)
    return _json_private(
        {"success": True, "analysis": sub.analysis.result if sub.analysis else None, "code": _view(sub)}
    )
