"""
Submission lifecycle: submitted -> analyzed -> reviewed -> graded.

Behavior:
    - `derive_status` is pure: feedback dominates analysis, and a feedback
      grade (including 0) makes the submission graded.
    - `edit` is the one transition that forces `submitted`: it clears the
      analysis, keeps teacher feedback and bumps `revision`.
    - `complete_analysis` and `apply_feedback` overwrite their slot and derive
      the status afterwards. No history is kept.

All transitions mutate the given submission in place and return it; callers
persist it through the submission store.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from .domain import (
    STATUS_ANALYZED,
    STATUS_GRADED,
    STATUS_REVIEWED,
    STATUS_SUBMITTED,
    Analysis,
    Feedback,
    Submission,
    SubmissionContent,
)


def derive_status(analysis: Optional[Analysis], feedback: Optional[Feedback]) -> str:
    if feedback is not None:
        return STATUS_GRADED if feedback.grade is not None else STATUS_REVIEWED
    if analysis is not None:
        return STATUS_ANALYZED
    return STATUS_SUBMITTED


def edit(sub: Submission, content: SubmissionContent, now: datetime) -> Submission:
    sub.title = content.title
    sub.description = content.description
    sub.language = content.language
    sub.code = content.code
    sub.tags = list(content.tags)
    sub.analysis = None
    sub.status = STATUS_SUBMITTED
    sub.revision += 1
    sub.updated_at = now
    return sub


def complete_analysis(sub: Submission, result: str, now: datetime) -> Submission:
    sub.analysis = Analysis(result=result, analyzed_at=now)
    sub.status = derive_status(sub.analysis, sub.feedback)
    sub.updated_at = now
    return sub


def apply_feedback(
    sub: Submission,
    *,
    teacher_id: str,
    comment: str,
    grade: Optional[int],
    now: datetime,
) -> Submission:
    sub.feedback = Feedback(teacher_id=teacher_id, comment=comment, grade=grade, feedback_at=now)
    sub.status = derive_status(sub.analysis, sub.feedback)
    sub.updated_at = now
    return sub
