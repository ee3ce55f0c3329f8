"""
api/limiter.py -- Shared slowapi rate limiter for the login endpoint.

Only POST /api/auth/login is limited, per client IP. The limit string is read
from settings on every request (slowapi evaluates callable limits lazily), so
LOGIN_RATE_LIMIT changes apply without re-decorating the route.

Counters live in process memory; with several workers each process counts
on its own.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from core.config import get_settings

limiter = Limiter(key_func=get_remote_address, storage_uri="memory://")


def login_rate_limit() -> str:
    """Current login limit, e.g. "10/minute"."""
    return get_settings().login_rate_limit
