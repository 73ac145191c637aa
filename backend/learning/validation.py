"""
Input validation for submissions and teacher feedback.

Behavior:
    Every check runs; all violations are collected and raised together as one
    `ValidationError`. Nothing here touches a store, so callers validate
    before loading or writing anything.
"""
from __future__ import annotations

import math
import re
from typing import Any, List, Optional, Tuple

from backend.common.errors import FieldError, ValidationError

from .domain import (
    DESCRIPTION_MAX_LENGTH,
    GRADE_MAX,
    GRADE_MIN,
    LANGUAGES,
    STATUSES,
    TITLE_MAX_LENGTH,
    SubmissionContent,
    SubmissionFilters,
)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


def normalize_tags(raw: Any, errors: List[FieldError]) -> Tuple[str, ...]:
    """Trim, drop empties and de-duplicate while keeping first occurrence order."""
    if raw is None:
        return ()
    if not isinstance(raw, (list, tuple)) or not all(isinstance(t, str) for t in raw):
        errors.append(FieldError("tags", "Tags must be a list of strings"))
        return ()
    seen: dict = {}
    for tag in raw:
        cleaned = tag.strip()
        if cleaned and cleaned not in seen:
            seen[cleaned] = True
    return tuple(seen.keys())


def validate_submission(
    *,
    title: Any,
    language: Any,
    code: Any,
    description: Any = None,
    tags: Any = None,
) -> SubmissionContent:
    errors: List[FieldError] = []

    title_s = (_text(title) or "").strip()
    if not title_s:
        errors.append(FieldError("title", "Title is required"))
    elif len(title_s) > TITLE_MAX_LENGTH:
        errors.append(FieldError("title", f"Title cannot exceed {TITLE_MAX_LENGTH} characters"))

    desc_s = _text(description)
    if description is not None and desc_s is None:
        errors.append(FieldError("description", "Description must be a string"))
        desc_s = ""
    desc_s = (desc_s or "").strip()
    if len(desc_s) > DESCRIPTION_MAX_LENGTH:
        errors.append(
            FieldError("description", f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
        )

    if language not in LANGUAGES:
        errors.append(FieldError("language", "Invalid language"))

    code_s = _text(code)
    if not code_s:
        errors.append(FieldError("code", "Code is required"))

    clean_tags = normalize_tags(tags, errors)

    if errors:
        raise ValidationError(errors)
    return SubmissionContent(
        title=title_s,
        language=str(language),
        code=str(code_s),
        description=desc_s,
        tags=clean_tags,
    )


_INT_RE = re.compile(r"^[-+]?(0|[1-9][0-9]*)$")


def _whole_number(value: Any) -> Optional[int]:
    """Integer value of `value`, or None when it is not a whole number.

    Accepts ints, integral floats (85.0) and decimal integer strings ("85").
    """
    # bool is an int subclass; reject it explicitly
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) and value.is_integer() else None
    if isinstance(value, str) and _INT_RE.match(value):
        return int(value)
    return None


def validate_feedback(*, comment: Any, grade: Any) -> Tuple[str, Optional[int]]:
    errors: List[FieldError] = []
    comment_s = (_text(comment) or "").strip()
    if not comment_s:
        errors.append(FieldError("comment", "Feedback comment is required"))

    grade_v: Optional[int] = None
    if grade is not None:
        grade_v = _whole_number(grade)
        if grade_v is None:
            errors.append(FieldError("grade", "Grade must be a whole number"))
        elif grade_v < GRADE_MIN or grade_v > GRADE_MAX:
            errors.append(FieldError("grade", "Grade must be between 0 and 100"))
            grade_v = None

    if errors:
        raise ValidationError(errors)
    return comment_s, grade_v


def validate_filters(
    *, language: Optional[str] = None, status: Optional[str] = None, search: Optional[str] = None
) -> SubmissionFilters:
    errors: List[FieldError] = []
    language = language or None
    status = status or None
    if language is not None and language not in LANGUAGES:
        errors.append(FieldError("language", "Invalid language"))
    if status is not None and status not in STATUSES:
        errors.append(FieldError("status", "Invalid status"))
    if errors:
        raise ValidationError(errors)
    search_s = (search or "").strip() or None
    return SubmissionFilters(language=language, status=status, search=search_s)
