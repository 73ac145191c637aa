"""Teacher feedback on submissions (Clean Architecture boundary).

Why:
    Grading is a teaching concern but mutates a learning record. Keeping it in
    a small service keeps the lifecycle rules (`learning.lifecycle`) and the
    teacher-only policy in one call path the web adapter cannot bypass.

Behavior:
    - A new feedback overwrites the previous one; no grade history is kept.
    - A grade (0 included) makes the submission `graded`, otherwise `reviewed`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from backend.common.errors import NotFoundError
from backend.identity_access import policy
from backend.identity_access.domain import Actor
from backend.learning import lifecycle
from backend.learning.domain import Submission
from backend.learning.usecases.submissions import SUBMISSION_NOT_FOUND, SubmissionRepoProtocol, load_submission
from backend.learning.validation import validate_feedback

_log = logging.getLogger("codespace.teaching.feedback")


@dataclass
class FeedbackService:
    repo: SubmissionRepoProtocol

    def give_feedback(
        self,
        actor: Optional[Actor],
        submission_id: str,
        *,
        comment: Any,
        grade: Any = None,
        now: Optional[datetime] = None,
    ) -> Submission:
        teacher = policy.authorize(actor, policy.ADMIN_FEEDBACK)
        comment_s, grade_v = validate_feedback(comment=comment, grade=grade)
        sub = load_submission(self.repo, submission_id)
        lifecycle.apply_feedback(
            sub,
            teacher_id=teacher.id,
            comment=comment_s,
            grade=grade_v,
            now=now or datetime.now(timezone.utc),
        )
        if not self.repo.update(sub):
            raise NotFoundError(SUBMISSION_NOT_FOUND)
        _log.info(
            "teaching.feedback.saved submission_id=%s graded=%s", sub.id, grade_v is not None
        )
        return sub
