"""
Account API: register, login, current user, profile and password changes.

Why:
    Thin adapter over `identity_access.accounts.AccountService`. Business
    rules (validation, uniqueness, hashing) live in the service; this module
    maps HTTP payloads in and `{token, user}` responses out.

Permissions:
    register/login are public. `me`, `updateprofile` and `changepassword`
    require a bearer token and always act on the caller's own account.
"""
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field

from backend.common.errors import NotFoundError
from backend.identity_access import policy
from backend.identity_access.domain import User
from backend.identity_access.tokens import issue_token
from backend.web.serializers import user_public
from backend.web.storage_wiring import get_services

from .security import _json_private, current_actor, current_user

auth_router = APIRouter(prefix="/api/auth", tags=["Auth"])
logger = logging.getLogger("codespace.web.auth")


class RegisterPayload(BaseModel):
    # Permissive types: field rules are checked by the account service so all
    # violations are reported together.
    username: Any = None
    email: Any = None
    password: Any = None
    role: Any = None


class LoginPayload(BaseModel):
    email: Any = None
    password: Any = None


class ProfilePayload(BaseModel):
    username: Any = None
    email: Any = None


class PasswordPayload(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    current_password: Any = Field(default=None, alias="currentPassword")
    new_password: Any = Field(default=None, alias="newPassword")


def _token_for(user: User) -> str:
    cfg = get_services().auth_config
    return issue_token(
        user_id=user.id,
        role=user.role,
        secret=cfg.jwt_secret,
        expires_in=cfg.jwt_expire_seconds,
    )


@auth_router.post("/register")
async def register(payload: RegisterPayload):
    user = get_services().accounts.register(
        username=payload.username,
        email=payload.email,
        password=payload.password,
        role=payload.role,
    )
    return _json_private(
        {"success": True, "token": _token_for(user), "user": user_public(user)}, status_code=201
    )


@auth_router.post("/login")
async def login(payload: LoginPayload):
    user = get_services().accounts.authenticate(email=payload.email, password=payload.password)
    return _json_private({"success": True, "token": _token_for(user), "user": user_public(user)})


@auth_router.get("/me")
async def me(request: Request):
    actor = policy.authorize(current_actor(request), policy.PROFILE_READ)
    user = current_user(request) or get_services().accounts.find_by_id(actor.id)
    if user is None:
        raise NotFoundError("User not found")
    return _json_private({"success": True, "user": user_public(user)})


@auth_router.put("/updateprofile")
async def update_profile(request: Request, payload: ProfilePayload):
    actor = policy.authorize(current_actor(request), policy.PROFILE_UPDATE)
    user = get_services().accounts.update_profile(actor.id, username=payload.username, email=payload.email)
    return _json_private({"success": True, "user": user_public(user)})


@auth_router.put("/changepassword")
async def change_password(request: Request, payload: PasswordPayload):
    actor = policy.authorize(current_actor(request), policy.PROFILE_CHANGE_PASSWORD)
    get_services().accounts.change_password(
        actor.id,
        current_password=payload.current_password,
        new_password=payload.new_password,
    )
    return _json_private({"success": True, "message": "Password updated successfully"})
