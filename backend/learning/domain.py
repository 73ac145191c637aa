"""
Submission records for the learning context.

Intent:
    A submission is a student's code snippet plus the optional AI analysis and
    optional teacher feedback. `status` is stored for listing/filtering but is
    always recomputed by `learning.lifecycle` when content, analysis or
    feedback change.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

LANGUAGES = ("javascript", "python", "java", "cpp", "c")

STATUS_SUBMITTED = "submitted"
STATUS_ANALYZED = "analyzed"
STATUS_REVIEWED = "reviewed"
STATUS_GRADED = "graded"
STATUSES = (STATUS_SUBMITTED, STATUS_ANALYZED, STATUS_REVIEWED, STATUS_GRADED)

TITLE_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 500
GRADE_MIN = 0
GRADE_MAX = 100


@dataclass(frozen=True)
class Analysis:
    result: str
    analyzed_at: datetime


@dataclass(frozen=True)
class Feedback:
    teacher_id: str
    comment: str
    grade: Optional[int]
    feedback_at: datetime


@dataclass(frozen=True)
class SubmissionContent:
    """Student-editable fields, already validated and normalized."""

    title: str
    language: str
    code: str
    description: str = ""
    tags: tuple = ()


@dataclass
class Submission:
    id: str
    owner_id: str
    title: str
    language: str
    code: str
    description: str
    tags: List[str]
    status: str
    created_at: datetime
    updated_at: datetime
    analysis: Optional[Analysis] = None
    feedback: Optional[Feedback] = None
    revision: int = 0


@dataclass(frozen=True)
class SubmissionFilters:
    language: Optional[str] = None
    status: Optional[str] = None
    search: Optional[str] = None

    def matches(self, sub: Submission) -> bool:
        if self.language and sub.language != self.language:
            return False
        if self.status and sub.status != self.status:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in sub.title.lower() and needle not in (sub.description or "").lower():
                return False
        return True


@dataclass(frozen=True)
class OwnerStats:
    submission_count: int = 0
    last_submission_at: Optional[datetime] = None


@dataclass(frozen=True)
class GradeStats:
    average: float = 0.0
    minimum: int = 0
    maximum: int = 0
    count: int = 0


@dataclass(frozen=True)
class LanguageCount:
    language: str
    count: int
