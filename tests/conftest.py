"""
tests/conftest.py -- Shared test fixtures for SessionAuth.

This module provides:
  - engine / user_store / session_store: isolated per-test SQLite databases
  - _patch_lifespan(): wires test stores into app.state, bypassing real startup
  - client: TestClient against the real app with the patched lifespan
  - lenient_client: same, but unhandled server exceptions become 500 responses
    instead of being re-raised into the test

Design: the app fixtures use a file database under pytest's tmp_path rather
than an in-memory one. TestClient runs sync route handlers and the session
middleware's store calls on different worker threads; a file database gives
every thread the same schema and data without shared-cache tricks.

BCRYPT_ROUNDS and LOGIN_RATE_LIMIT must be set before any auth/api import:
get_settings() is cached and auth.passwords hashes its dummy password at
import time.
"""

from __future__ import annotations

import os
from collections.abc import Generator
from contextlib import asynccontextmanager

# CRITICAL: set before any core/auth/api import.
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("LOGIN_RATE_LIMIT", "1000/minute")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from api.main import app
from auth.sessions import SessionStore
from auth.store import UserStore
from core.database import create_db_engine

# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def engine(tmp_path) -> Generator[Engine, None, None]:
    """Engine over a fresh SQLite file for this test only."""
    eng = create_db_engine(f"sqlite:///{tmp_path / 'auth.sqlite'}")
    yield eng
    eng.dispose()


@pytest.fixture
def user_store(engine: Engine) -> UserStore:
    return UserStore(engine)


@pytest.fixture
def session_store(engine: Engine) -> SessionStore:
    return SessionStore(engine, max_age_seconds=3600)


# ---------------------------------------------------------------------------
# App fixtures
# ---------------------------------------------------------------------------


def _patch_lifespan(user_store: UserStore, session_store: SessionStore):
    """Return an async context manager that replaces the real lifespan.

    Wires pre-created test stores into app.state so TestClient routes see
    isolated test DBs rather than the configured database. No purge task is
    started; tests call purge_expired() directly.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.user_store = user_store
        app.state.session_store = session_store
        yield

    return test_lifespan


@pytest.fixture
def client(user_store: UserStore, session_store: SessionStore) -> Generator[TestClient, None, None]:
    """TestClient over the real app with isolated stores.

    The client keeps cookies between requests like a browser, so a register
    or login call leaves the session cookie in client.cookies.
    """
    app.router.lifespan_context = _patch_lifespan(user_store, session_store)
    with TestClient(app, raise_server_exceptions=True) as c:
        yield c


@pytest.fixture
def lenient_client(user_store: UserStore, session_store: SessionStore) -> Generator[TestClient, None, None]:
    """TestClient that returns 500 responses for unhandled exceptions instead of raising."""
    app.router.lifespan_context = _patch_lifespan(user_store, session_store)
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
