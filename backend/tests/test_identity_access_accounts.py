"""
Account service against the in-memory stores: registration rules, login,
profile edits, password changes and the delete cascade.
"""
from __future__ import annotations

from datetime import datetime, timezone

import pytest

from backend.common.errors import (
    ConflictError,
    InvalidCredentialsError,
    NotFoundError,
    ValidationError,
    WrongPasswordError,
)
from backend.common.pagination import PageRequest
from backend.identity_access.accounts import AccountService
from backend.identity_access.bootstrap import ensure_default_teacher
from backend.identity_access.domain import ROLE_STUDENT, ROLE_TEACHER
from backend.identity_access.passwords import verify_password
from backend.identity_access.stores import InMemoryUserStore
from backend.learning.domain import SubmissionContent, SubmissionFilters
from backend.learning.repo_memory import InMemorySubmissionRepo


@pytest.fixture
def repo():
    return InMemorySubmissionRepo()


@pytest.fixture
def accounts(repo):
    return AccountService(InMemoryUserStore(submissions=repo))


def test_register_hashes_password_and_normalizes_email(accounts):
    user = accounts.register(username=" alice ", email=" Alice@Example.COM ", password="secret1")
    assert user.username == "alice"
    assert user.email == "alice@example.com"
    assert user.role == ROLE_STUDENT
    assert user.password_hash != "secret1"
    assert verify_password(user.password_hash, "secret1")


def test_register_collects_all_field_errors(accounts):
    with pytest.raises(ValidationError) as info:
        accounts.register(username="ab", email="not-an-email", password="123")
    assert {e.field for e in info.value.errors} == {"username", "email", "password"}


def test_username_conflict_reported_before_email(accounts):
    accounts.register(username="alice", email="alice@example.com", password="secret1")
    with pytest.raises(ConflictError) as info:
        accounts.register(username="alice", email="alice@example.com", password="secret1")
    assert info.value.reason == "username_taken"
    assert info.value.message == "Username already taken"

    with pytest.raises(ConflictError) as info:
        accounts.register(username="alice2", email="ALICE@example.com", password="secret1")
    assert info.value.reason == "email_exists"


def test_teacher_role_requires_opt_in(repo):
    closed = AccountService(InMemoryUserStore(submissions=repo))
    assert closed.register(username="tina", email="t@example.com", password="secret1", role="teacher").role == ROLE_STUDENT

    opened = AccountService(InMemoryUserStore(submissions=repo), allow_teacher_self_registration=True)
    assert opened.register(username="tina", email="t@example.com", password="secret1", role="teacher").role == ROLE_TEACHER

    with pytest.raises(ValidationError):
        opened.register(username="root", email="r@example.com", password="secret1", role="admin")


def test_authenticate_touches_last_active(accounts):
    created = accounts.register(username="bob", email="bob@example.com", password="secret1")
    assert created.last_active is None
    ts = datetime(2024, 1, 1, tzinfo=timezone.utc)

    user = accounts.authenticate(email="BOB@example.com", password="secret1", now=ts)

    assert user.id == created.id
    assert accounts.find_by_id(created.id).last_active == ts


def test_authenticate_does_not_reveal_unknown_email(accounts):
    accounts.register(username="bob", email="bob@example.com", password="secret1")
    with pytest.raises(InvalidCredentialsError):
        accounts.authenticate(email="bob@example.com", password="wrong-pass")
    with pytest.raises(InvalidCredentialsError):
        accounts.authenticate(email="nobody@example.com", password="secret1")
    with pytest.raises(ValidationError):
        accounts.authenticate(email="", password="")


def test_update_profile_checks_uniqueness(accounts):
    accounts.register(username="alice", email="alice@example.com", password="secret1")
    bob = accounts.register(username="bob", email="bob@example.com", password="secret1")

    with pytest.raises(ConflictError) as info:
        accounts.update_profile(bob.id, username="alice", email="alice@example.com")
    assert info.value.reason == "username_taken"

    updated = accounts.update_profile(bob.id, email="Bobby@Example.com")
    assert updated.username == "bob"
    assert updated.email == "bobby@example.com"
    # Keeping one's own values is not a conflict
    accounts.update_profile(bob.id, username="bob", email="bobby@example.com")


def test_change_password(accounts):
    user = accounts.register(username="carol", email="carol@example.com", password="secret1")

    with pytest.raises(WrongPasswordError):
        accounts.change_password(user.id, current_password="nope-nope", new_password="another1")
    with pytest.raises(ValidationError) as info:
        accounts.change_password(user.id, current_password="secret1", new_password="123")
    assert info.value.errors[0].message == "New password must be at least 6 characters"

    accounts.change_password(user.id, current_password="secret1", new_password="another1")
    accounts.authenticate(email="carol@example.com", password="another1")
    with pytest.raises(InvalidCredentialsError):
        accounts.authenticate(email="carol@example.com", password="secret1")


def test_delete_cascades_to_submissions(accounts, repo):
    user = accounts.register(username="dave", email="dave@example.com", password="secret1")
    other = accounts.register(username="erin", email="erin@example.com", password="secret1")
    for _ in range(3):
        repo.create(user.id, SubmissionContent(title="t", language="c", code="x"))
    repo.create(other.id, SubmissionContent(title="t", language="c", code="x"))

    accounts.delete(user.id)

    assert accounts.find_by_id(user.id) is None
    assert repo.list_by_owner(user.id, SubmissionFilters(), PageRequest()).total == 0
    assert repo.count() == 1
    with pytest.raises(NotFoundError):
        accounts.delete(user.id)


def test_bootstrap_teacher_is_idempotent():
    users = InMemoryUserStore()
    first = ensure_default_teacher(users, username="admin", email="Admin@Codespace.com", password="admin123")
    assert first is not None and first.role == ROLE_TEACHER
    assert first.email == "admin@codespace.com"
    assert ensure_default_teacher(users, username="admin", email="admin@codespace.com", password="other1") is None
    assert verify_password(users.find_by_username("admin").password_hash, "admin123")
