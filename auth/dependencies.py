"""
auth/dependencies.py -- FastAPI Depends() helpers for session-gated routes.

The session itself is attached to request.state by ServerSessionMiddleware.
These helpers only read it; they never create, save or modify a session.

Layer rule: no imports from api/.
  auth/dependencies.py may import from fastapi (for Request) because this
  module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.sessions import Session
from auth.store import UserStore
from core.errors import AuthError


def get_session(request: Request) -> Session | None:
    """Return the request's session, or None when no session middleware ran."""
    return getattr(request.state, "session", None)


def require_session(request: Request) -> int:
    """Require an authenticated session. Returns its user id.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user_id: int = Depends(require_session)): ...

    Raises AuthError (401) when there is no session or it carries no user id.
    """
    session = get_session(request)
    user_id = session.user_id if session is not None else None
    if not user_id:
        raise AuthError("Unauthorized")
    return user_id


def get_user_store(request: Request) -> UserStore:
    return request.app.state.user_store
