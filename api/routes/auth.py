"""
api/routes/auth.py -- Session authentication REST endpoints.

Routes:
  POST /api/auth/register  -- create account; starts a session; 201
  POST /api/auth/login     -- password login; starts a session; 200
  GET  /api/auth/me        -- current user's profile (requires session)
  POST /api/auth/logout    -- destroys the session and clears the cookie; 200

Handlers are plain functions. Their collaborators (UserStore, the request's
Session) arrive through FastAPI dependencies; each handler calls exactly one
auth.service operation. Errors are raised, never formatted here -- the
exception handlers in api/main.py own the error body.

Handlers are sync `def`, so FastAPI runs them in its threadpool and bcrypt
never blocks the event loop.

Security:
  POST /login is rate-limited (LOGIN_RATE_LIMIT, default 10/minute per IP).
  Cache-Control: no-store on responses that start a session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.limiter import limiter, login_rate_limit
from api.models import (
    CredentialsRequest,
    LoginResponse,
    MeResponse,
    MessageResponse,
    NewUserResponse,
    PublicUserResponse,
    RegisterResponse,
    UserProfileResponse,
)
from auth import service
from auth.dependencies import get_session, get_user_store, require_session
from auth.store import UserStore
from core.config import get_settings
from core.errors import InternalError

logger = logging.getLogger("sessionauth.api.auth")

_settings = get_settings()

# Auth policy:
# - POST /api/auth/register: public
# - POST /api/auth/login:    public, rate-limited
# - GET  /api/auth/me:       requires session (require_session)
# - POST /api/auth/logout:   public -- idempotent, a missing session is already logged out
router = APIRouter()


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=RegisterResponse, status_code=201)
def register(
    request: Request,
    body: CredentialsRequest,
    store: UserStore = Depends(get_user_store),
) -> JSONResponse:
    """Create an account and log it in."""
    user = service.register(store, body.email, body.password)
    _start_session(request, user.id)

    resp = JSONResponse(
        status_code=201,
        content=RegisterResponse(
            user=NewUserResponse(id=user.id, email=user.email, created_at=user.created_at),
        ).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/login", response_model=LoginResponse)
@limiter.limit(login_rate_limit)  # innermost, so the route registers the limited wrapper
def login(
    request: Request,
    body: CredentialsRequest,
    store: UserStore = Depends(get_user_store),
) -> JSONResponse:
    """Authenticate with email and password; start a session.

    Unknown email and wrong password return the same 401 body.
    """
    user = service.login(store, body.email, body.password)
    _start_session(request, user.id)

    resp = JSONResponse(
        status_code=200,
        content=LoginResponse(user=PublicUserResponse(id=user.id, email=user.email)).model_dump(),
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/auth/logout", response_model=MessageResponse)
def logout(request: Request) -> JSONResponse:
    """Destroy the server-side session and clear the cookie.

    Idempotent: with no session row (never logged in, or already logged out)
    the response is the same. A store fault while deleting surfaces as 500.
    """
    session = get_session(request)
    if session is not None:
        had_user = session.user_id is not None
        request.app.state.session_store.destroy(session)
        if had_user:
            logger.info("Session ended")

    resp = JSONResponse(content=MessageResponse(message="Logged out").model_dump())
    resp.delete_cookie(
        _settings.session_cookie_name,
        path="/",
        httponly=True,
        secure=_settings.cookie_secure,
        samesite=_settings.cookie_samesite,
    )
    return resp


# ---------------------------------------------------------------------------
# Session-gated endpoints
# ---------------------------------------------------------------------------


@router.get("/auth/me", response_model=MeResponse)
def me(
    user_id: int = Depends(require_session),
    store: UserStore = Depends(get_user_store),
) -> MeResponse:
    """Return the profile of the user bound to the current session."""
    profile = service.get_profile(store, user_id)
    return MeResponse(
        user=UserProfileResponse(
            id=profile.id,
            email=profile.email,
            created_at=profile.created_at,
            updated_at=profile.updated_at,
        )
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _start_session(request: Request, user_id: int) -> None:
    session = get_session(request)
    if session is None:
        raise InternalError("Session middleware is not installed")
    request.app.state.session_store.regenerate(session)
    session.data.clear()
    session.user_id = user_id
