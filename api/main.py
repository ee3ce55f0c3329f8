"""
api/main.py -- FastAPI application entry point for SessionAuth.

Run with:      python main.py serve
               uvicorn api.main:app --reload

Middleware stack (outermost to innermost):
  1. log_requests             -- per-request access log with latency
  2. CORSMiddleware           -- credentialed CORS for the browser client
  3. ServerSessionMiddleware  -- loads/saves the server-side session
  4. SlowAPIMiddleware        -- app-wide limits; the login limit is
                                 enforced by its @limiter.limit wrapper

Lifespan builds the database engine and both stores before the first request
and disposes the engine on shutdown. Schema creation happens inside the store
constructors, so the service never accepts traffic against a missing table.

Error handling: error_response() is the only function that builds an error
body. Every exception handler below delegates to it.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.limiter import limiter
from api.middleware import ServerSessionMiddleware
from api.models import ErrorDetail, ErrorResponse, HealthResponse
from api.routes.auth import router as auth_router
from auth.sessions import SessionStore
from auth.store import UserStore
from core.config import get_settings
from core.database import create_db_engine
from core.errors import AppError, InternalError

# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-5s %(name)s %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("sessionauth.api")

settings = get_settings()

# ---------------------------------------------------------------------------
# Background purge task
# ---------------------------------------------------------------------------


async def _purge_loop(app: FastAPI) -> None:
    """Delete expired session rows every SESSION_PURGE_INTERVAL_SECONDS.

    CancelledError from task.cancel() during shutdown propagates out of
    asyncio.sleep and unwinds the coroutine cleanly. A failed purge is logged
    and retried on the next tick.
    """
    while True:
        await asyncio.sleep(settings.session_purge_interval_seconds)
        try:
            removed = await asyncio.to_thread(app.state.session_store.purge_expired)
        except InternalError:
            logger.exception("Session purge failed")
            continue
        if removed:
            logger.info("Purged %d expired sessions", removed)


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Build shared resources on startup; release them on shutdown.

    One engine serves both stores unless SESSION_DATABASE_URL points the
    sessions somewhere else.
    """
    logger.info("SessionAuth API starting up (environment=%s)", settings.environment)
    engine = create_db_engine(settings.database_url)
    session_engine = engine
    if settings.session_database_url and settings.session_database_url != settings.database_url:
        session_engine = create_db_engine(settings.session_database_url)

    app.state.user_store = UserStore(engine)
    app.state.session_store = SessionStore(session_engine, max_age_seconds=settings.session_max_age_seconds)
    logger.info("Database initialized")
    app.state.purge_task = asyncio.create_task(_purge_loop(app))

    yield

    app.state.purge_task.cancel()
    if session_engine is not engine:
        session_engine.dispose()
    engine.dispose()
    logger.info("SessionAuth API shutdown complete")


# ---------------------------------------------------------------------------
# App instantiation
# ---------------------------------------------------------------------------

app = FastAPI(
    title="SessionAuth API",
    description="Session-based authentication: register, login, current user, logout.",
    version="1.0.0",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# Error formatting
#
# Every handler returns the same {"error": {"message": ...}} envelope. 500s
# never carry the underlying message: storage and driver details stay in
# the server log.
# ---------------------------------------------------------------------------


def error_response(status_code: int, message: str) -> JSONResponse:
    """Build the error body. The only place error JSON is produced."""
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=ErrorDetail(message=message)).model_dump(),
    )


# ---------------------------------------------------------------------------
# Middleware stack
#
# add_middleware() wraps the existing stack, so the LAST registered
# middleware is the OUTERMOST. Order of a request: log_requests -> CORS ->
# ServerSession -> SlowAPI. CORS sits outside the session layer so its
# headers also reach the 500 answered there on a store fault.
# ---------------------------------------------------------------------------

app.add_middleware(SlowAPIMiddleware)

app.add_middleware(
    ServerSessionMiddleware,
    secret_key=settings.secret_key,
    on_error=error_response,
    cookie_name=settings.session_cookie_name,
    max_age_seconds=settings.session_max_age_seconds,
    https_only=settings.cookie_secure,
    same_site=settings.cookie_samesite,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST"],
    allow_headers=["Content-Type"],
    max_age=3600,
)

# SlowAPI looks for app.state.limiter by convention.
app.state.limiter = limiter


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    client = request.client.host if request.client else "unknown"
    try:
        response = await call_next(request)
    except Exception:
        ms = (time.perf_counter() - start) * 1000
        logger.error("%s %s 500 %.1fms %s (unhandled)", request.method, request.url.path, ms, client)
        raise
    ms = (time.perf_counter() - start) * 1000
    logger.info(
        "%s %s %d %.1fms %s",
        request.method,
        request.url.path,
        response.status_code,
        ms,
        client,
    )
    return response


# ---------------------------------------------------------------------------
# Router registration
# ---------------------------------------------------------------------------

app.include_router(auth_router, prefix="/api", tags=["Auth"])


# ---------------------------------------------------------------------------
# Exception handlers
# ---------------------------------------------------------------------------


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Classified errors raised by the store, workflow, gate or handlers."""
    if isinstance(exc, InternalError):
        logger.error(
            "Internal error on %s %s: %s",
            request.method,
            request.url.path,
            exc.message,
            exc_info=exc,
        )
    return error_response(exc.status_code, exc.public_message)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body that is not a JSON object -- field shape is checked by auth.validation."""
    return error_response(400, "Invalid request body")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing-level errors (unknown path, wrong method)."""
    return error_response(exc.status_code, str(exc.detail))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """Return 429 when a rate limit is exceeded.

    Retry-After tells clients how many seconds to wait before retrying.
    """
    retry_after = int(getattr(exc, "retry_after", 60))
    response = error_response(429, "Too many requests")
    response.headers["Retry-After"] = str(retry_after)
    return response


@app.exception_handler(Exception)
async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unclassified errors: treated as InternalError.

    The raw exception is logged, never sent to the client.
    """
    logger.exception("Unhandled exception on %s %s", request.method, request.url.path)
    internal = InternalError()
    return error_response(internal.status_code, internal.public_message)


# ---------------------------------------------------------------------------
# Health endpoint
#
# Defined directly in main.py so it is reachable regardless of router
# registration. Not rate-limited -- health checks must not be throttled.
# ---------------------------------------------------------------------------


@app.get("/health", tags=["Health"])
def health(request: Request) -> HealthResponse:
    """Return liveness plus a database round-trip check."""
    db_ok = request.app.state.user_store.ping()
    return HealthResponse(
        status="ok" if db_ok else "degraded",
        components={"app": "ok", "database": "ok" if db_ok else "error"},
    )
