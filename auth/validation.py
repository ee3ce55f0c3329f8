"""
auth/validation.py -- Credential shape checks and email normalization.

Runs before any store lookup or bcrypt work so malformed requests are
rejected cheaply.

The email check is deliberately loose: anything containing
<non-space>@<non-space>.<non-space> passes. Deliverability is not our concern.
"""

from __future__ import annotations

import re

from core.errors import ValidationError

MIN_PASSWORD_LENGTH = 6

_EMAIL_RE = re.compile(r"\S+@\S+\.\S+")


def validate_credentials(email: object, password: object) -> None:
    """Raise ValidationError unless email and password have an acceptable shape.

    The email is checked first, so a request with both fields wrong reports
    the email.
    """
    if not isinstance(email, str) or not _EMAIL_RE.search(email.strip()):
        raise ValidationError("Invalid email format")
    if not isinstance(password, str) or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")


def normalize_email(email: str) -> str:
    """Return the lookup/uniqueness key for an email address."""
    return email.strip().lower()
