"""
Authorization policy: pure decisions over (actor, action, resource).

Why:
    Routes used to embed role checks inline (`_require_teacher`, owner
    comparisons). Collecting the rules here keeps them in one ordered list
    that unit tests can exercise without FastAPI.

Rules (first match wins):
    1. No actor                          -> deny, not authenticated
    2. Admin actions                     -> teachers only
    3. Create/list own submissions       -> any authenticated actor
    4. Read/delete submission            -> owner or teacher
       Update/analyze submission         -> owner only
    5. Delete user                       -> target must not be a teacher
    6. Profile actions                   -> any authenticated actor (self)
    7. Anything else                     -> deny

Permissions:
    The functions here never touch stores; callers load the resource first and
    pass it in. Denial reasons are surfaced for HTTP status mapping.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from backend.common.errors import AuthenticationError, AuthorizationError
from backend.identity_access.domain import ROLE_TEACHER, Actor

SUBMISSION_CREATE = "submission.create"
SUBMISSION_LIST = "submission.list"
SUBMISSION_READ = "submission.read"
SUBMISSION_UPDATE = "submission.update"
SUBMISSION_DELETE = "submission.delete"
SUBMISSION_ANALYZE = "submission.analyze"

ADMIN_DASHBOARD = "admin.dashboard"
ADMIN_STUDENTS_LIST = "admin.students.list"
ADMIN_STUDENTS_READ = "admin.students.read"
ADMIN_FEEDBACK = "admin.feedback"
ADMIN_USERS_CREATE = "admin.users.create"
ADMIN_USERS_DELETE = "admin.users.delete"

PROFILE_READ = "profile.read"
PROFILE_UPDATE = "profile.update"
PROFILE_CHANGE_PASSWORD = "profile.change_password"

ADMIN_ACTIONS = frozenset(
    {
        ADMIN_DASHBOARD,
        ADMIN_STUDENTS_LIST,
        ADMIN_STUDENTS_READ,
        ADMIN_FEEDBACK,
        ADMIN_USERS_CREATE,
        ADMIN_USERS_DELETE,
    }
)
PROFILE_ACTIONS = frozenset({PROFILE_READ, PROFILE_UPDATE, PROFILE_CHANGE_PASSWORD})
OWNER_OR_TEACHER_ACTIONS = frozenset({SUBMISSION_READ, SUBMISSION_DELETE})
OWNER_ONLY_ACTIONS = frozenset({SUBMISSION_UPDATE, SUBMISSION_ANALYZE})

REASON_NOT_AUTHENTICATED = "not authenticated"
REASON_NOT_AUTHORIZED = "not authorized"
REASON_TEACHER_TARGET = "cannot delete teacher accounts"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: Optional[str] = None

    @property
    def authenticated(self) -> bool:
        return self.reason != REASON_NOT_AUTHENTICATED

    @property
    def kind(self) -> Optional[str]:
        if self.allowed:
            return None
        return "not_authenticated" if not self.authenticated else "not_authorized"


ALLOW = Decision(True)


def _deny(reason: str) -> Decision:
    return Decision(False, reason)


def _owner_of(resource: Any) -> Optional[str]:
    owner = getattr(resource, "owner_id", None)
    return str(owner) if owner is not None else None


def can_perform(actor: Optional[Actor], action: str, resource: Any = None) -> Decision:
    """Return the decision for `actor` performing `action` on `resource`.

    Parameters:
        actor: Authenticated identity or None.
        action: One of the action constants of this module.
        resource: Submission (has `owner_id`) or target user (has `role`);
                  optional for collection-level actions.
    """
    if actor is None:
        return _deny(REASON_NOT_AUTHENTICATED)

    if action in ADMIN_ACTIONS:
        if actor.role != ROLE_TEACHER:
            return _deny(REASON_NOT_AUTHORIZED)
        if action == ADMIN_USERS_DELETE and resource is not None:
            if getattr(resource, "role", None) == ROLE_TEACHER:
                return _deny(REASON_TEACHER_TARGET)
        return ALLOW

    if action in (SUBMISSION_CREATE, SUBMISSION_LIST):
        return ALLOW

    if action in OWNER_OR_TEACHER_ACTIONS:
        if resource is not None and _owner_of(resource) == actor.id:
            return ALLOW
        if actor.role == ROLE_TEACHER:
            return ALLOW
        return _deny(REASON_NOT_AUTHORIZED)

    if action in OWNER_ONLY_ACTIONS:
        if resource is not None and _owner_of(resource) == actor.id:
            return ALLOW
        return _deny(REASON_NOT_AUTHORIZED)

    if action in PROFILE_ACTIONS:
        return ALLOW

    return _deny(REASON_NOT_AUTHORIZED)


def authorize(actor: Optional[Actor], action: str, resource: Any = None) -> Actor:
    """Raise on denial; return the (non-None) actor on success."""
    decision = can_perform(actor, action, resource)
    if not decision.allowed:
        if not decision.authenticated:
            raise AuthenticationError("Not authorized to access this route")
        raise AuthorizationError(_message_for(decision.reason))
    if actor is None:
        raise AuthenticationError("Not authorized to access this route")
    return actor


def _message_for(reason: Optional[str]) -> str:
    if reason == REASON_TEACHER_TARGET:
        return "Cannot delete teacher accounts"
    return "You are not authorized to perform this action"
