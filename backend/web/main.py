"CodeSpace API"
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from backend.common.errors import CodespaceError, FieldError, PayloadTooLargeError, ValidationError
from backend.identity_access.bootstrap import ensure_default_teacher
from backend.identity_access.domain import Actor
from backend.identity_access.tokens import TokenVerificationError, verify_token
from backend.web import config as _cfg
from backend.web.rate_limit import limiter, rate_limit_exceeded_handler
from backend.web.routes.admin import admin_router
from backend.web.routes.auth import auth_router
from backend.web.routes.code import code_router
from backend.web.routes.operations import operations_router
from backend.web.routes.security import PRIVATE_HEADERS, _error_response, _json_private
from backend.web.storage_wiring import Services, get_services


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via CODESPACE_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("CODESPACE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
_cfg.ensure_secure_config_on_startup()

logger = logging.getLogger("codespace.web")

NOT_AUTHORIZED_ROUTE = "Not authorized to access this route"


def bootstrap_default_teacher(services: Services) -> None:
    cfg = services.auth_config
    ensure_default_teacher(
        services.users,
        username=cfg.admin_username,
        email=cfg.admin_email,
        password=cfg.admin_password,
    )


@asynccontextmanager
async def lifespan(_app: FastAPI):
    bootstrap_default_teacher(get_services())
    logger.info("web.startup.complete env=%s", _cfg.current_environment())
    yield


app = FastAPI(
    title="CodeSpace API",
    description="Code submissions with AI analysis and teacher feedback",
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(auth_router)
app.include_router(code_router)
app.include_router(admin_router)
app.include_router(operations_router)


# --- Auth Middleware -------------------------------------------------------------

PUBLIC_PATHS = frozenset({"/api/health", "/api/auth/register", "/api/auth/login"})


def _is_public_path(path: str) -> bool:
    return path in PUBLIC_PATHS or not path.startswith("/api/")


def _unauthenticated(message: str = NOT_AUTHORIZED_ROUTE) -> JSONResponse:
    headers = dict(PRIVATE_HEADERS)
    headers["WWW-Authenticate"] = "Bearer"
    return JSONResponse({"error": "not_authenticated", "message": message}, status_code=401, headers=headers)


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    """Resolve the bearer token to an Actor on `request.state`.

    Behavior:
        - Public paths and CORS preflights pass through with `actor = None`.
        - Missing/invalid/expired token or a deleted user -> 401.
        - The role is re-read from the user store on every request, so role
          changes and deletions apply immediately.
    """
    request.state.actor = None
    request.state.user = None
    path = request.url.path
    if request.method == "OPTIONS" or _is_public_path(path):
        return await call_next(request)

    header = request.headers.get("authorization", "")
    scheme, _, token = header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return _unauthenticated()

    services = get_services()
    try:
        claims = verify_token(token.strip(), secret=services.auth_config.jwt_secret)
    except TokenVerificationError as exc:
        logger.info("web.auth.token_rejected code=%s", exc.code)
        return _unauthenticated()

    user = services.users.get(str(claims["sub"]))
    if user is None:
        return _unauthenticated()

    request.state.user = user
    request.state.actor = Actor.from_user(user)
    return await call_next(request)


# --- Request Limits --------------------------------------------------------------

@app.middleware("http")
async def body_size_guard(request: Request, call_next):
    """Refuse bodies whose declared Content-Length exceeds the configured cap."""
    declared = request.headers.get("content-length", "")
    if declared.isdigit() and int(declared) > _cfg.load_http_limits().max_body_bytes:
        return _error_response(PayloadTooLargeError())
    return await call_next(request)


# Registered after the auth middleware so throttled requests never reach it.
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Content-Security-Policy", "default-src 'none'; frame-ancestors 'none'")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    if _cfg.is_production():
        response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# Added last so it wraps the middlewares above and answers preflights first.
app.add_middleware(
    CORSMiddleware,
    allow_origins=[os.getenv("FRONTEND_URL", "http://localhost:3000")],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


# --- Error Mapping -------------------------------------------------------------

@app.exception_handler(CodespaceError)
async def codespace_error_handler(request: Request, exc: CodespaceError):
    if exc.status_code >= 500:
        logger.warning("web.error kind=%s path=%s", exc.kind, request.url.path)
    return _error_response(exc)


def _field_name(loc) -> str:
    parts = [str(p) for p in loc if p not in ("body", "query", "path")]
    return ".".join(parts) or "body"


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [FieldError(_field_name(e.get("loc", ())), str(e.get("msg", "Invalid value"))) for e in exc.errors()]
    return _error_response(ValidationError(errors))


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("web.error.unhandled path=%s", request.url.path)
    message = "Something went wrong" if _cfg.is_production() else f"{exc.__class__.__name__}: {exc}"
    return _json_private({"error": "internal_error", "message": message}, status_code=500)
