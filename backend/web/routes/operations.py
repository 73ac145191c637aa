"""Operations endpoints (liveness for load balancers and operators)."""

from __future__ import annotations

import time
from datetime import datetime, timezone

from fastapi import APIRouter

from .security import _json_private

operations_router = APIRouter(tags=["Operations"])

_STARTED_AT = time.monotonic()


@operations_router.get("/api/health")
async def health():
    """
    Report that the API process is up.

    Permissions:
        Public; returns no user data.
    """
    return _json_private(
        {
            "status": "OK",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uptime": round(time.monotonic() - _STARTED_AT, 3),
        }
    )
