"""
JSON views of domain records for the HTTP API.

Notes:
    - Keys follow the client contract (camelCase, `codes`/`students` lists,
      `totalPages`/`currentPage`/`total` on pages).
    - User views never include the password hash.
"""
from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, Mapping, Optional

from backend.common.pagination import Page
from backend.identity_access.domain import User
from backend.learning.domain import GradeStats, LanguageCount, Submission
from backend.teaching.services.reporting import Dashboard
from backend.teaching.services.students import StudentRow


def _iso(ts: Optional[datetime]) -> Optional[str]:
    return ts.isoformat() if ts is not None else None


def user_public(user: User) -> dict:
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "lastActive": _iso(user.last_active),
        "createdAt": _iso(user.created_at),
    }


def user_summary(user: Optional[User]) -> Optional[dict]:
    if user is None:
        return None
    return {"id": user.id, "username": user.username, "email": user.email}


def submission_view(sub: Submission, people: Mapping[str, User]) -> dict:
    """Submission payload with owner and feedback teacher populated from `people`."""
    owner = people.get(sub.owner_id)
    body = {
        "id": sub.id,
        "title": sub.title,
        "description": sub.description,
        "language": sub.language,
        "code": sub.code,
        "tags": list(sub.tags),
        "status": sub.status,
        "analysis": None,
        "feedback": None,
        "revision": sub.revision,
        "user": user_summary(owner) or {"id": sub.owner_id},
        "createdAt": _iso(sub.created_at),
        "updatedAt": _iso(sub.updated_at),
    }
    if sub.analysis is not None:
        body["analysis"] = {"result": sub.analysis.result, "analyzedAt": _iso(sub.analysis.analyzed_at)}
    if sub.feedback is not None:
        teacher = people.get(sub.feedback.teacher_id)
        body["feedback"] = {
            "teacher": {"id": teacher.id, "username": teacher.username} if teacher else {"id": sub.feedback.teacher_id},
            "comment": sub.feedback.comment,
            "grade": sub.feedback.grade,
            "feedbackAt": _iso(sub.feedback.feedback_at),
        }
    return body


def people_ids(subs: Iterable[Submission]) -> set:
    """Ids of everyone a submission view refers to (owners and teachers)."""
    ids = set()
    for s in subs:
        ids.add(s.owner_id)
        if s.feedback is not None:
            ids.add(s.feedback.teacher_id)
    return ids


def page_meta(page: Page) -> dict:
    return {"totalPages": page.total_pages, "currentPage": page.page, "total": page.total}


def submissions_page(page: Page[Submission], people: Mapping[str, User]) -> dict:
    body = {"success": True, "codes": [submission_view(s, people) for s in page.items]}
    body.update(page_meta(page))
    return body


def student_row(row: StudentRow) -> dict:
    body = user_public(row.user)
    body["submissionCount"] = row.stats.submission_count
    body["lastSubmission"] = _iso(row.stats.last_submission_at)
    return body


def students_page(page: Page[StudentRow]) -> dict:
    body = {"success": True, "students": [student_row(r) for r in page.items]}
    body.update(page_meta(page))
    return body


def _language_stats(items: Iterable[LanguageCount]) -> list:
    return [{"language": i.language, "count": i.count} for i in items]


def _grade_stats(g: GradeStats) -> dict:
    return {"avgGrade": g.average, "minGrade": g.minimum, "maxGrade": g.maximum, "count": g.count}


def dashboard_view(d: Dashboard, people: Dict[str, User]) -> dict:
    return {
        "totalStudents": d.total_students,
        "totalSubmissions": d.total_submissions,
        "activeToday": d.active_today,
        "languageStats": _language_stats(d.language_stats),
        "gradeStats": _grade_stats(d.grade_stats),
        "recentSubmissions": [submission_view(s, people) for s in d.recent_submissions],
    }
