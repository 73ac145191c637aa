"""
Authorization policy decisions (pure, no FastAPI).

Covers the ordered rules: unauthenticated first, teacher-only admin actions,
owner/teacher access to submissions and the teacher-target delete guard.
"""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from backend.common.errors import AuthenticationError, AuthorizationError
from backend.identity_access import policy
from backend.identity_access.domain import ROLE_STUDENT, ROLE_TEACHER, Actor

STUDENT = Actor(id="s1", role=ROLE_STUDENT)
OTHER_STUDENT = Actor(id="s2", role=ROLE_STUDENT)
TEACHER = Actor(id="t1", role=ROLE_TEACHER)
OWN_SUBMISSION = SimpleNamespace(owner_id="s1")


@pytest.mark.parametrize("action", sorted(policy.ADMIN_ACTIONS | policy.PROFILE_ACTIONS))
def test_missing_actor_is_not_authenticated(action):
    decision = policy.can_perform(None, action)
    assert decision.allowed is False
    assert decision.kind == "not_authenticated"


@pytest.mark.parametrize("action", sorted(policy.ADMIN_ACTIONS))
def test_admin_actions_require_teacher(action):
    assert policy.can_perform(STUDENT, action).kind == "not_authorized"
    assert policy.can_perform(TEACHER, action).allowed


def test_owner_and_teacher_may_read_and_delete():
    for action in (policy.SUBMISSION_READ, policy.SUBMISSION_DELETE):
        assert policy.can_perform(STUDENT, action, OWN_SUBMISSION).allowed
        assert policy.can_perform(TEACHER, action, OWN_SUBMISSION).allowed
        assert not policy.can_perform(OTHER_STUDENT, action, OWN_SUBMISSION).allowed


def test_only_owner_may_update_or_analyze():
    for action in (policy.SUBMISSION_UPDATE, policy.SUBMISSION_ANALYZE):
        assert policy.can_perform(STUDENT, action, OWN_SUBMISSION).allowed
        assert not policy.can_perform(TEACHER, action, OWN_SUBMISSION).allowed
        assert not policy.can_perform(OTHER_STUDENT, action, OWN_SUBMISSION).allowed


def test_teacher_target_cannot_be_deleted():
    target = SimpleNamespace(role=ROLE_TEACHER)
    decision = policy.can_perform(TEACHER, policy.ADMIN_USERS_DELETE, target)
    assert decision.allowed is False
    assert decision.kind == "not_authorized"
    assert policy.can_perform(TEACHER, policy.ADMIN_USERS_DELETE, SimpleNamespace(role=ROLE_STUDENT)).allowed


def test_unknown_action_is_denied():
    assert not policy.can_perform(TEACHER, "submission.publish").allowed


def test_authorize_raises_typed_errors():
    with pytest.raises(AuthenticationError):
        policy.authorize(None, policy.SUBMISSION_CREATE)
    with pytest.raises(AuthorizationError):
        policy.authorize(STUDENT, policy.ADMIN_DASHBOARD)
    with pytest.raises(AuthorizationError, match="Cannot delete teacher accounts"):
        policy.authorize(TEACHER, policy.ADMIN_USERS_DELETE, SimpleNamespace(role=ROLE_TEACHER))
    assert policy.authorize(STUDENT, policy.SUBMISSION_CREATE) is STUDENT


def test_authorize_never_returns_a_missing_actor(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(policy, "can_perform", lambda actor, action, resource=None: policy.ALLOW)
    with pytest.raises(AuthenticationError):
        policy.authorize(None, policy.PROFILE_READ)
