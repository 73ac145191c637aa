"""
Password hashing helpers.

Security:
- Salted one-way hashes via werkzeug (scrypt/pbkdf2 depending on version).
- Plaintext passwords never leave this module's call boundary and are never
  logged.
"""
from __future__ import annotations

from werkzeug.security import check_password_hash, generate_password_hash


def hash_password(plain: str) -> str:
    return generate_password_hash(plain)


def verify_password(password_hash: str, plain: str) -> bool:
    if not password_hash or plain is None:
        return False
    try:
        return check_password_hash(password_hash, plain)
    except ValueError:
        # Unknown or malformed hash format
        return False
