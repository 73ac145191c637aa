"""
Startup bootstrap for the default teacher account.

Intent:
    Make sure one teacher exists so the admin area is reachable on a fresh
    install. Called explicitly once from the application startup hook.

Safety:
    Idempotent: if a user with the configured email or username exists,
    nothing is created or changed.
"""
from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional

from .domain import ROLE_TEACHER, User
from .passwords import hash_password

_log = logging.getLogger("codespace.identity.bootstrap")


def ensure_default_teacher(users, *, username: str, email: str, password: str) -> Optional[User]:
    """Create the default teacher when missing. Returns the created user or None."""
    email = email.strip().lower()
    if users.find_by_email(email) or users.find_by_username(username):
        _log.debug("identity.bootstrap.skip existing admin")
        return None
    user = User(
        id=str(uuid.uuid4()),
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=ROLE_TEACHER,
        created_at=datetime.now(timezone.utc),
    )
    users.add(user)
    _log.info("identity.bootstrap.created teacher user_id=%s", user.id)
    return user
