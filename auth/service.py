"""
auth/service.py -- Registration, login and profile lookup.

The only module with business rules. Each operation:
  1. validates input shape (cheap, no I/O),
  2. talks to the UserStore and bcrypt,
  3. returns a public dataclass -- never a User, never a password hash.

Security:
  Login's "unknown email" and "wrong password" branches raise the same
  AuthError message and both run one bcrypt check, so neither the body nor
  the timing tells a caller which accounts exist.

  Email is normalized here even if the caller already did it; the store's
  UNIQUE constraint is keyed on the normalized form.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from auth.models import NewUser, PublicUser, UserProfile
from auth.passwords import hash_password, verify_dummy, verify_password
from auth.store import UserStore
from auth.validation import normalize_email, validate_credentials
from core.errors import AuthError, ConflictError, NotFoundError

logger = logging.getLogger("sessionauth.auth")

_INVALID_CREDENTIALS = "Invalid credentials"


def register(store: UserStore, email: object, password: object) -> NewUser:
    """Create an account and return its public fields.

    The lookup before insert only produces the friendlier 409; the store
    raises the same ConflictError if a concurrent registration wins the race.
    """
    validate_credentials(email, password)
    normalized = normalize_email(email)

    if store.find_by_email(normalized) is not None:
        raise ConflictError("Email already registered")

    user = store.create_user(normalized, hash_password(password))
    logger.info("Registered user id=%d", user.id)
    return NewUser(id=user.id, email=user.email, created_at=user.created_at)


def login(store: UserStore, email: object, password: object) -> PublicUser:
    """Check credentials and return the matching user's public fields."""
    validate_credentials(email, password)
    normalized = normalize_email(email)

    user = store.find_by_email(normalized)
    if user is None:
        # Equalize timing -- do NOT return before running bcrypt
        verify_dummy(password)
        logger.info("Login failed: unknown email")
        raise AuthError(_INVALID_CREDENTIALS)

    if not verify_password(password, user.password_hash):
        logger.info("Login failed: wrong password for user id=%d", user.id)
        raise AuthError(_INVALID_CREDENTIALS)

    return PublicUser(id=user.id, email=user.email)


def get_profile(store: UserStore, user_id: int) -> UserProfile:
    user = store.find_by_id(user_id)
    if user is None:
        raise NotFoundError("User not found")
    return UserProfile(
        id=user.id,
        email=user.email,
        created_at=user.created_at,
        updated_at=user.updated_at,
    )
