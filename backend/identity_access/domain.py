"""
Identity domain constants and records.

Why:
- Centralize allowed roles to avoid drift between the policy and web layer.
- Keep the stored user record and the request actor as separate types: the
  actor is what the policy sees, the record is what the store persists.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

ROLE_STUDENT = "student"
ROLE_TEACHER = "teacher"

# Keep roles minimal and explicit. Immutable to prevent accidental mutation.
ALLOWED_ROLES = frozenset({ROLE_STUDENT, ROLE_TEACHER})

USERNAME_MIN_LENGTH = 3
PASSWORD_MIN_LENGTH = 6

# Student listing sort keys (always descending).
STUDENT_SORT_KEYS = ("last_active", "created_at", "username")
DEFAULT_STUDENT_SORT = "last_active"


@dataclass
class User:
    id: str
    username: str
    email: str
    password_hash: str
    role: str
    created_at: datetime
    last_active: Optional[datetime] = None

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER


@dataclass(frozen=True)
class Actor:
    """Authenticated identity making a request."""

    id: str
    role: str

    @property
    def is_teacher(self) -> bool:
        return self.role == ROLE_TEACHER

    @classmethod
    def from_user(cls, user: User) -> "Actor":
        return cls(id=user.id, role=user.role)


__all__ = [
    "ALLOWED_ROLES",
    "ROLE_STUDENT",
    "ROLE_TEACHER",
    "USERNAME_MIN_LENGTH",
    "PASSWORD_MIN_LENGTH",
    "STUDENT_SORT_KEYS",
    "DEFAULT_STUDENT_SORT",
    "User",
    "Actor",
]
