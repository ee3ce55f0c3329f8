"""
auth/passwords.py -- bcrypt password hashing and verification.

Security design decisions:
  bcrypt is used directly rather than through passlib. passlib's wrap-bug
  detection feeds bcrypt a password longer than 72 bytes, which bcrypt 4.x
  rejects. Direct usage has no compatibility shim.

  Cost factor comes from Settings.bcrypt_rounds (default 10). Tests lower it.

  bcrypt only consumes the first 72 bytes of a password. Newer bcrypt
  releases raise instead of truncating, so the truncation happens here and
  long passwords keep working.

  _DUMMY_HASH enables timing equalization in the login workflow: an unknown
  email still pays for one bcrypt check, so response time does not reveal
  whether the account exists.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import bcrypt

from core.config import get_settings
from core.errors import InternalError

_settings = get_settings()

_BCRYPT_MAX_BYTES = 72


def _encode(plain: str) -> bytes:
    return plain.encode("utf-8")[:_BCRYPT_MAX_BYTES]


def hash_password(plain: str) -> str:
    """Return a salted bcrypt hash of the given plaintext password."""
    try:
        salt = bcrypt.gensalt(rounds=_settings.bcrypt_rounds)
        return bcrypt.hashpw(_encode(plain), salt).decode("utf-8")
    except (ValueError, TypeError) as exc:
        raise InternalError("Password hashing failed") from exc


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash.

    A malformed stored hash is a data fault, not a wrong password, so it
    raises InternalError instead of returning False.
    """
    try:
        return bcrypt.checkpw(_encode(plain), hashed.encode("utf-8"))
    except (ValueError, TypeError) as exc:
        raise InternalError("Password verification failed") from exc


# Computed once at module load so the first login attempt for an unknown
# email is not measurably slower than later ones.
_DUMMY_HASH: str = hash_password("sessionauth_timing_dummy")


def verify_dummy(plain: str) -> None:
    """Burn one bcrypt check against a throwaway hash."""
    verify_password(plain, _DUMMY_HASH)
