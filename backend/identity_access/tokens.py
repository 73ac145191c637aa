"""
Bearer token helpers for the identity_access bounded context.

Why: Keep token signing and validation outside the web adapter so we can unit
test it independently of FastAPI.

Security: HS256 with a server-side secret. Tokens carry only the user id and
the role at issue time; the web layer re-reads the role from the user store on
every request, so a role recorded in a token is informational.
"""
from __future__ import annotations

import time
from typing import Dict, Optional

from jose import jwt
from jose.exceptions import ExpiredSignatureError, JOSEError

ALGORITHM = "HS256"
MAX_CLOCK_SKEW_SECONDS = 5


class TokenVerificationError(Exception):
    """Raised when a bearer token fails verification."""

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code


def issue_token(*, user_id: str, role: str, secret: str, expires_in: int, now: Optional[float] = None) -> str:
    issued_at = int(now if now is not None else time.time())
    claims = {
        "sub": user_id,
        "role": role,
        "iat": issued_at,
        "exp": issued_at + int(expires_in),
    }
    return jwt.encode(claims, secret, algorithm=ALGORITHM)


def verify_token(token: str, *, secret: str) -> Dict[str, object]:
    """Validate signature and expiry and return the claims.

    Raises
    ------
    TokenVerificationError:
        `expired_token` when `exp` has passed, `invalid_token` otherwise.
    """
    if not token:
        raise TokenVerificationError("missing_token")
    try:
        claims = jwt.decode(
            token,
            secret,
            algorithms=[ALGORITHM],
            options={"leeway": MAX_CLOCK_SKEW_SECONDS},
        )
    except ExpiredSignatureError as exc:
        raise TokenVerificationError("expired_token") from exc
    except JOSEError as exc:
        raise TokenVerificationError("invalid_token") from exc

    sub = claims.get("sub")
    if not isinstance(sub, str) or not sub:
        raise TokenVerificationError("invalid_token")
    return claims
