"""
In-memory user store for development and tests.

Why: Keep account state behind the same small interface as the Postgres store
so use cases and routes stay storage-agnostic.

Behavior:
- Username and email are unique; username is checked first so a request that
  collides on both reports the username.
- Deleting a user deletes their submissions through the submission store it
  was wired with. Postgres does the same with `on delete cascade`.
"""
from __future__ import annotations

import copy
import threading
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Protocol

from backend.common.errors import ConflictError
from backend.common.pagination import Page, PageRequest, slice_page
from backend.teaching.services.reporting import count_active_since

from .domain import DEFAULT_STUDENT_SORT, ROLE_STUDENT, STUDENT_SORT_KEYS, User

USERNAME_TAKEN = "Username already taken"
EMAIL_EXISTS = "Email already exists"

_EPOCH = datetime.min


class OwnedSubmissionsProtocol(Protocol):
    def delete_all_by_owner(self, owner_id: str) -> int:
        ...


def _sort_value(user: User, key: str):
    value = getattr(user, key, None)
    if key == "username":
        return (1, (value or "").lower())
    if value is None:
        # Never-active students sort last in a descending listing
        return (0, _EPOCH)
    return (1, value.replace(tzinfo=None) if isinstance(value, datetime) else value)


class InMemoryUserStore:
    def __init__(self, submissions: Optional[OwnedSubmissionsProtocol] = None):
        self._data: Dict[str, User] = {}
        self._submissions = submissions
        self._lock = threading.Lock()

    def _check_unique(self, username: str, email: str, exclude_id: Optional[str] = None) -> None:
        others = [u for u in self._data.values() if u.id != exclude_id]
        if any(u.username == username for u in others):
            raise ConflictError("username_taken", USERNAME_TAKEN)
        if any(u.email == email for u in others):
            raise ConflictError("email_exists", EMAIL_EXISTS)

    def add(self, user: User) -> User:
        with self._lock:
            self._check_unique(user.username, user.email)
            self._data[user.id] = copy.deepcopy(user)
        return user

    def save(self, user: User) -> bool:
        with self._lock:
            if user.id not in self._data:
                return False
            self._check_unique(user.username, user.email, exclude_id=user.id)
            self._data[user.id] = copy.deepcopy(user)
            return True

    def get(self, user_id: str) -> Optional[User]:
        with self._lock:
            rec = self._data.get(user_id)
            return copy.deepcopy(rec) if rec else None

    def get_many(self, ids: Iterable[str]) -> Dict[str, User]:
        with self._lock:
            return {i: copy.deepcopy(self._data[i]) for i in set(ids) if i in self._data}

    def find_by_email(self, email: str) -> Optional[User]:
        needle = (email or "").strip().lower()
        with self._lock:
            for rec in self._data.values():
                if rec.email == needle:
                    return copy.deepcopy(rec)
        return None

    def find_by_username(self, username: str) -> Optional[User]:
        with self._lock:
            for rec in self._data.values():
                if rec.username == username:
                    return copy.deepcopy(rec)
        return None

    def touch_last_active(self, user_id: str, ts: datetime) -> None:
        with self._lock:
            rec = self._data.get(user_id)
            if rec:
                rec.last_active = ts

    def delete(self, user_id: str) -> bool:
        with self._lock:
            if self._data.pop(user_id, None) is None:
                return False
        if self._submissions is not None:
            self._submissions.delete_all_by_owner(user_id)
        return True

    def count_students(self) -> int:
        with self._lock:
            return sum(1 for u in self._data.values() if u.role == ROLE_STUDENT)

    def count_students_active_since(self, since: datetime) -> int:
        with self._lock:
            return count_active_since((u for u in self._data.values() if u.role == ROLE_STUDENT), since)

    def search_students(
        self,
        *,
        search: Optional[str],
        sort_by: str = DEFAULT_STUDENT_SORT,
        page: PageRequest,
    ) -> Page[User]:
        key = sort_by if sort_by in STUDENT_SORT_KEYS else DEFAULT_STUDENT_SORT
        needle = (search or "").strip().lower()
        with self._lock:
            rows: List[User] = [
                copy.deepcopy(u)
                for u in self._data.values()
                if u.role == ROLE_STUDENT
                and (not needle or needle in u.username.lower() or needle in u.email.lower())
            ]
        rows.sort(key=lambda u: _sort_value(u, key), reverse=True)
        return slice_page(rows, page)
