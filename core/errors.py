"""
core/errors.py -- Error taxonomy shared by the store, workflow and HTTP layers.

Every failure the service raises on purpose is one of the AppError subclasses
below. The classification (HTTP status) is a class attribute, fixed per kind,
never a property patched onto an exception instance after the fact.

api/main.py owns the only formatter that turns these into response bodies.
Anything that reaches the formatter without being an AppError is treated as
an InternalError.

Layer rule: core/ is the kernel. No imports from api/ or auth/.
"""

from __future__ import annotations


class AppError(Exception):
    """Base class for classified service errors."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @property
    def public_message(self) -> str:
        """Message safe to return to the client."""
        return self.message


class ValidationError(AppError):
    """Malformed input (400)."""

    status_code = 400


class AuthError(AppError):
    """Missing or invalid session, or bad credentials (401)."""

    status_code = 401


class NotFoundError(AppError):
    """Unknown user id (404)."""

    status_code = 404


class ConflictError(AppError):
    """Duplicate email (409)."""

    status_code = 409


class InternalError(AppError):
    """Store, hashing or session-store fault (500).

    The message is for logs only. Clients always see the generic text.
    """

    status_code = 500

    def __init__(self, message: str = "Internal Server Error") -> None:
        super().__init__(message)

    @property
    def public_message(self) -> str:
        return "Internal Server Error"
