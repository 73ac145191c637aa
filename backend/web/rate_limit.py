"""
Per-IP request budget for the API.

Behavior:
    - One shared fixed-window counter per client address across all API
      routes (slowapi application limit), 100 requests per 15 minutes unless
      `RATE_LIMIT_MAX` / `RATE_LIMIT_WINDOW_SECONDS` say otherwise.
    - The limit string is re-read from the environment on every check so a
      changed budget applies without rebuilding the limiter.
    - Exceeding the budget answers 429 with the usual JSON error body.

Counters live in process memory; a multi-process deployment would point
slowapi at a shared storage URI instead.
"""
from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from backend.common.errors import RateLimitedError
from backend.web.config import load_http_limits
from backend.web.routes.security import _error_response

logger = logging.getLogger("codespace.web.rate_limit")


def api_rate_limit() -> str:
    return load_http_limits().rate_limit


limiter = Limiter(key_func=get_remote_address, application_limits=[api_rate_limit])


# Must stay synchronous: SlowAPIMiddleware falls back to its own handler for
# coroutine handlers.
def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    logger.warning("web.rate_limited client=%s path=%s", get_remote_address(request), request.url.path)
    response = _error_response(RateLimitedError())
    response.headers["Retry-After"] = str(load_http_limits().rate_limit_window_seconds)
    return response


def reset_counters() -> None:
    limiter.reset()
