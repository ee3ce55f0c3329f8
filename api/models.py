"""
API request and response models for SessionAuth REST endpoints.

These Pydantic v2 models define the HTTP transport contract. They are
intentionally separate from the dataclasses in auth/models.py, which own the
internal domain representation. Route handlers map between the two.

None of the response models has a password or hash field, so a hash cannot
be serialized by accident.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------


class CredentialsRequest(BaseModel):
    """Request body for POST /register and POST /login.

    Fields are untyped on purpose: shape checks (string, email pattern,
    minimum length) belong to auth.validation so register and login report
    the same 400 messages regardless of how the body was malformed.
    """

    email: Optional[Any] = None
    password: Optional[Any] = None


# ---------------------------------------------------------------------------
# Response models
# ---------------------------------------------------------------------------


class NewUserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    created_at: str


class PublicUserResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str


class UserProfileResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    email: str
    created_at: str
    updated_at: str


class RegisterResponse(BaseModel):
    """Response for POST /api/auth/register."""

    model_config = ConfigDict(frozen=True)

    message: str = "Registered successfully"
    user: NewUserResponse


class LoginResponse(BaseModel):
    """Response for POST /api/auth/login."""

    model_config = ConfigDict(frozen=True)

    message: str = "Logged in"
    user: PublicUserResponse


class MeResponse(BaseModel):
    """Response for GET /api/auth/me."""

    model_config = ConfigDict(frozen=True)

    user: UserProfileResponse


class MessageResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    message: str


class ErrorDetail(BaseModel):
    """Error payload. Only a human-readable message; never internals."""

    model_config = ConfigDict(frozen=True)

    message: str


class ErrorResponse(BaseModel):
    """Top-level error envelope returned on 4xx/5xx responses."""

    model_config = ConfigDict(frozen=True)

    error: ErrorDetail


class HealthResponse(BaseModel):
    """Response for GET /health."""

    model_config = ConfigDict(frozen=True)

    status: str = "ok"
    service: str = "auth-backend"
    components: dict[str, str]
