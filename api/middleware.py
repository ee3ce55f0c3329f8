"""
api/middleware.py -- Server-side session middleware.

FLOW:
  1. Read the signed sid cookie and load the session row from
     app.state.session_store (a fresh unsaved Session if absent, expired or
     tampered).
  2. Expose it as request.state.session for the handler and auth dependencies.
  3. After the handler, if the session was modified and not destroyed,
     save it and (re)issue the cookie.

Cookies are only set when a handler actually put something in the session,
so anonymous traffic never creates session rows.

Store calls are synchronous SQLAlchemy; they run in Starlette's threadpool so
the event loop stays free while SQLite does I/O. A store fault while loading
or saving is logged and answered through on_error (api.main.error_response),
so the response still passes back out through CORS and the access log.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from auth.sessions import SessionCookieSigner
from core.errors import AppError

logger = logging.getLogger("sessionauth.api.session")


class ServerSessionMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        secret_key: str,
        on_error: Callable[[int, str], Response],
        cookie_name: str = "sid",
        max_age_seconds: int = 60 * 60 * 24 * 14,
        https_only: bool = False,
        same_site: str = "lax",
        path: str = "/",
    ) -> None:
        super().__init__(app)
        self.on_error = on_error
        self.cookie_name = cookie_name
        self.max_age_seconds = max_age_seconds
        self.https_only = https_only
        self.same_site = same_site
        self.path = path
        self.signer = SessionCookieSigner(secret_key)

    async def dispatch(self, request: Request, call_next) -> Response:
        store = request.app.state.session_store

        raw = request.cookies.get(self.cookie_name)
        sid = self.signer.unsign(raw) if raw else None
        try:
            session = await run_in_threadpool(store.load, sid)
        except AppError as exc:
            return self._store_failure(request, exc)
        request.state.session = session

        response = await call_next(request)

        if session.modified and not session.destroyed:
            try:
                await run_in_threadpool(store.save, session)
            except AppError as exc:
                return self._store_failure(request, exc)
            response.set_cookie(
                self.cookie_name,
                self.signer.sign(session.sid),
                max_age=self.max_age_seconds,
                path=self.path,
                httponly=True,
                secure=self.https_only,
                samesite=self.same_site,
            )
        return response

    def _store_failure(self, request: Request, exc: AppError) -> Response:
        logger.error(
            "Session store failed on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
        return self.on_error(exc.status_code, exc.public_message)
