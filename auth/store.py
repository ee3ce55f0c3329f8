"""
auth/store.py -- SQLAlchemy Core persistence layer for user accounts.

Pattern: Repository + Data Mapper. UserStore is the repository; _row_to_user
is the mapper. Route and workflow code never touches SQL directly.

Security:
  All queries use bound parameters. No f-strings in SQL.

  Email uniqueness is a UNIQUE constraint on the column, not only the
  workflow's lookup-before-insert. Two concurrent registrations for the same
  address both pass the lookup; the second INSERT fails with IntegrityError,
  which create_user() turns into ConflictError.

Errors:
  Every SQLAlchemyError leaving this module is re-raised as InternalError so
  the HTTP layer never sees (or echoes) driver messages.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy import Column, Index, Integer, MetaData, String, Table, Text, text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from auth.models import User
from core.errors import ConflictError, InternalError

logger = logging.getLogger("sessionauth.auth.store")

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_metadata = MetaData()

_NOW = text("(datetime('now'))")

_users = Table(
    "users",
    _metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email", Text, nullable=False, unique=True),
    Column("password_hash", Text, nullable=False),
    Column("created_at", String(32), nullable=False, server_default=_NOW),
    Column("updated_at", String(32), nullable=False, server_default=_NOW),
    Index("idx_users_email", "email"),
    sqlite_autoincrement=True,
)

# OLD.id scoping keeps the inner UPDATE to the changed row. SQLite does not
# fire triggers recursively unless recursive_triggers is enabled.
_UPDATED_AT_TRIGGER = """
CREATE TRIGGER IF NOT EXISTS trg_users_updated_at
AFTER UPDATE ON users
FOR EACH ROW
BEGIN
    UPDATE users SET updated_at = datetime('now') WHERE id = OLD.id;
END
"""


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class UserStore:
    """Repository for User entities.

    Usage:
        store = UserStore(create_db_engine("sqlite:///auth.sqlite"))
        user = store.create_user("a@example.com", hash_password("secret1"))
        same = store.find_by_email("a@example.com")

    The engine is owned by the caller (the app lifespan); this class never
    disposes it.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine
        _metadata.create_all(self.engine)
        self._ensure_updated_at_trigger()

    def _ensure_updated_at_trigger(self) -> None:
        """Create the updated_at trigger. IF NOT EXISTS makes this safe on every startup."""
        with self.engine.connect() as conn:
            conn.execute(text(_UPDATED_AT_TRIGGER))
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[Connection]:
        try:
            with self.engine.connect() as conn:
                yield conn
        except SQLAlchemyError as exc:
            logger.error("User store failure: %s", exc.__class__.__name__)
            raise InternalError("User store failure") from exc

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def find_by_email(self, email: str) -> User | None:
        """Look up a user by exact (already normalized) email. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.email == email)).fetchone()
        return _row_to_user(row) if row is not None else None

    def find_by_id(self, user_id: int) -> User | None:
        """Look up a user by primary key. Returns None if not found."""
        with self._connect() as conn:
            row = conn.execute(_users.select().where(_users.c.id == user_id)).fetchone()
        return _row_to_user(row) if row is not None else None

    def create_user(self, email: str, password_hash: str) -> User:
        """Insert a new user and return the stored row.

        The row is read back by its generated id so the caller sees the
        server-assigned id and timestamps, not just what was inserted.

        Raises ConflictError if the email already exists.
        """
        with self._connect() as conn:
            try:
                result = conn.execute(_users.insert().values(email=email, password_hash=password_hash))
                conn.commit()
            except IntegrityError as exc:
                conn.rollback()
                raise ConflictError("Email already registered") from exc
            user_id = result.inserted_primary_key[0]

        created = self.find_by_id(user_id)
        if created is None:
            raise InternalError(f"User {user_id} not found after insert")
        return created

    def ping(self) -> bool:
        """Return True if the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.warning("Database ping failed", exc_info=True)
            return False
        return True


# ---------------------------------------------------------------------------
# Mappers
# ---------------------------------------------------------------------------


def _row_to_user(row) -> User:
    return User(
        id=row.id,
        email=row.email,
        password_hash=row.password_hash,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
