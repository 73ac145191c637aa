"""
Account use cases: registration, login, profile and password changes.

Why:
    Keep credential handling and uniqueness rules framework-free so the web
    adapter only translates HTTP to calls here. The store enforces uniqueness
    again on write; checking here first gives the stable "username before
    email" ordering for both stores.

Security:
    - Passwords are hashed with werkzeug before they reach a store.
    - Login failures do not reveal whether the email exists.
"""
from __future__ import annotations

import logging
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol

from backend.common.errors import (
    ConflictError,
    FieldError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WrongPasswordError,
)
from backend.common.pagination import Page, PageRequest

from .domain import (
    ALLOWED_ROLES,
    PASSWORD_MIN_LENGTH,
    ROLE_STUDENT,
    ROLE_TEACHER,
    USERNAME_MIN_LENGTH,
    User,
)
from .passwords import hash_password, verify_password
from .stores import EMAIL_EXISTS, USERNAME_TAKEN

_log = logging.getLogger("codespace.identity.accounts")

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class UserStoreProtocol(Protocol):
    def add(self, user: User) -> User:
        ...

    def save(self, user: User) -> bool:
        ...

    def get(self, user_id: str) -> Optional[User]:
        ...

    def get_many(self, ids: Iterable[str]) -> Dict[str, User]:
        ...

    def find_by_email(self, email: str) -> Optional[User]:
        ...

    def find_by_username(self, username: str) -> Optional[User]:
        ...

    def touch_last_active(self, user_id: str, ts: datetime) -> None:
        ...

    def delete(self, user_id: str) -> bool:
        ...

    def count_students(self) -> int:
        ...

    def count_students_active_since(self, since: datetime) -> int:
        ...

    def search_students(self, *, search: Optional[str], sort_by: str, page: PageRequest) -> Page[User]:
        ...


def normalize_email(email: Any) -> str:
    return email.strip().lower() if isinstance(email, str) else ""


def _username_error(username: str) -> Optional[FieldError]:
    if len(username) < USERNAME_MIN_LENGTH:
        return FieldError("username", f"Username must be at least {USERNAME_MIN_LENGTH} characters")
    return None


def _email_error(email: str) -> Optional[FieldError]:
    if not _EMAIL_RE.match(email):
        return FieldError("email", "Valid email is required")
    return None


def _password_error(password: Any, field: str = "password") -> Optional[FieldError]:
    if not isinstance(password, str) or len(password) < PASSWORD_MIN_LENGTH:
        label = "Password" if field == "password" else "New password"
        return FieldError(field, f"{label} must be at least {PASSWORD_MIN_LENGTH} characters")
    return None


def validate_new_account(username: Any, email: Any, password: Any) -> tuple[str, str, str]:
    uname = username.strip() if isinstance(username, str) else ""
    mail = normalize_email(email)
    errors: List[FieldError] = [
        e for e in (_username_error(uname), _email_error(mail), _password_error(password)) if e
    ]
    if errors:
        raise ValidationError(errors)
    return uname, mail, str(password)


@dataclass
class AccountService:
    users: UserStoreProtocol
    allow_teacher_self_registration: bool = False

    def _ensure_available(self, username: str, email: str, exclude_id: Optional[str] = None) -> None:
        by_name = self.users.find_by_username(username)
        if by_name and by_name.id != exclude_id:
            raise ConflictError("username_taken", USERNAME_TAKEN)
        by_mail = self.users.find_by_email(email)
        if by_mail and by_mail.id != exclude_id:
            raise ConflictError("email_exists", EMAIL_EXISTS)

    def _create(self, username: str, email: str, password: str, role: str, now: Optional[datetime]) -> User:
        self._ensure_available(username, email)
        user = User(
            id=str(uuid.uuid4()),
            username=username,
            email=email,
            password_hash=hash_password(password),
            role=role,
            created_at=now or datetime.now(timezone.utc),
        )
        self.users.add(user)
        _log.info("identity.account.created user_id=%s role=%s", user.id, role)
        return user

    def register(
        self,
        *,
        username: Any,
        email: Any,
        password: Any,
        role: Any = None,
        now: Optional[datetime] = None,
    ) -> User:
        """Create an account. The teacher role is honoured only when enabled."""
        uname, mail, pwd = validate_new_account(username, email, password)
        if role is not None and role not in ALLOWED_ROLES:
            raise ValidationError([FieldError("role", "Invalid role")])
        effective = ROLE_STUDENT
        if role == ROLE_TEACHER and self.allow_teacher_self_registration:
            effective = ROLE_TEACHER
        return self._create(uname, mail, pwd, effective, now)

    def create_student(self, *, username: Any, email: Any, password: Any, now: Optional[datetime] = None) -> User:
        uname, mail, pwd = validate_new_account(username, email, password)
        return self._create(uname, mail, pwd, ROLE_STUDENT, now)

    def authenticate(self, *, email: Any, password: Any, now: Optional[datetime] = None) -> User:
        mail = normalize_email(email)
        errors: List[FieldError] = []
        if not mail:
            errors.append(FieldError("email", "Valid email is required"))
        if not isinstance(password, str) or not password:
            errors.append(FieldError("password", "Password is required"))
        if errors:
            raise ValidationError(errors)
        user = self.users.find_by_email(mail)
        if user is None or not verify_password(user.password_hash, password):
            _log.info("identity.login.failed")
            raise InvalidCredentialsError()
        ts = now or datetime.now(timezone.utc)
        self.users.touch_last_active(user.id, ts)
        user.last_active = ts
        _log.info("identity.login.succeeded user_id=%s", user.id)
        return user

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self.users.get(user_id)

    def _require(self, user_id: str) -> User:
        user = self.users.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, user_id: str, *, username: Any = None, email: Any = None) -> User:
        user = self._require(user_id)
        errors: List[FieldError] = []
        new_name = user.username
        new_mail = user.email
        if username is not None:
            new_name = username.strip() if isinstance(username, str) else ""
            err = _username_error(new_name)
            if err:
                errors.append(err)
        if email is not None:
            new_mail = normalize_email(email)
            err = _email_error(new_mail)
            if err:
                errors.append(err)
        if errors:
            raise ValidationError(errors)
        self._ensure_available(new_name, new_mail, exclude_id=user.id)
        user.username = new_name
        user.email = new_mail
        if not self.users.save(user):
            raise NotFoundError("User not found")
        return user

    def change_password(self, user_id: str, *, current_password: Any, new_password: Any) -> None:
        user = self._require(user_id)
        errors: List[FieldError] = []
        if not isinstance(current_password, str) or not current_password:
            errors.append(FieldError("current_password", "Current password is required"))
        err = _password_error(new_password, field="new_password")
        if err:
            errors.append(err)
        if errors:
            raise ValidationError(errors)
        if not verify_password(user.password_hash, current_password):
            raise WrongPasswordError()
        user.password_hash = hash_password(new_password)
        if not self.users.save(user):
            raise NotFoundError("User not found")
        _log.info("identity.password.changed user_id=%s", user.id)

    def delete(self, user_id: str) -> None:
        """Delete the user and, through the store, all of their submissions."""
        if not self.users.delete(user_id):
            raise NotFoundError("User not found")
        _log.info("identity.account.deleted user_id=%s", user_id)
