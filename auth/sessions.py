"""
auth/sessions.py -- Server-side session records and their SQLAlchemy store.

A session is a row keyed by an opaque random id (sid). The browser only ever
holds the sid, signed with SECRET_KEY so a forged or truncated cookie is
rejected before it reaches the database. The row holds a small JSON dict;
the authentication workflow only reads and writes its "user_id" field.

Lifecycle:
  - ServerSessionMiddleware (api/middleware.py) calls load() for every
    request and save() after the handler if the session was modified.
  - Logout calls destroy(), which deletes the row and marks the in-memory
    Session so the middleware does not write it back.
  - purge_expired() runs periodically from the app lifespan.

Layer rule: no imports from api/. Import from core/ is allowed.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from dataclasses import dataclass, field
from typing import Any

from itsdangerous import BadSignature, Signer
from sqlalchemy import Column, Float, Index, MetaData, String, Table, Text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core.errors import InternalError

logger = logging.getLogger("sessionauth.auth.sessions")

_metadata = MetaData()

_sessions = Table(
    "sessions",
    _metadata,
    Column("sid", String(64), primary_key=True),
    Column("data", Text, nullable=False),  # JSON object
    Column("expires_at", Float, nullable=False),  # unix epoch seconds
    Index("idx_sessions_expires_at", "expires_at"),
)


def new_sid() -> str:
    """Return a fresh session id with 256 bits of entropy."""
    return secrets.token_urlsafe(32)


@dataclass
class Session:
    """In-memory view of one session for the duration of a request.

    is_new: no row exists yet for this sid.
    modified: data changed and must be written back.
    destroyed: the row was deleted; never write it back.
    """

    sid: str
    data: dict[str, Any] = field(default_factory=dict)
    is_new: bool = True
    modified: bool = False
    destroyed: bool = False

    @property
    def user_id(self) -> int | None:
        return self.data.get("user_id")

    @user_id.setter
    def user_id(self, value: int) -> None:
        self.data["user_id"] = value
        self.modified = True


class SessionCookieSigner:
    """Signs and verifies the sid carried in the session cookie."""

    def __init__(self, secret_key: str) -> None:
        self._signer = Signer(secret_key, salt="sessionauth.session")

    def sign(self, sid: str) -> str:
        return self._signer.sign(sid).decode("utf-8")

    def unsign(self, value: str) -> str | None:
        """Return the sid, or None if the signature does not verify."""
        try:
            return self._signer.unsign(value).decode("utf-8")
        except BadSignature:
            return None


class SessionStore:
    """Repository for session rows.

    Usage:
        store = SessionStore(engine, max_age_seconds=3600)
        session = store.load(sid)          # fresh Session if sid unknown/expired
        session.user_id = 42
        store.save(session)
        store.destroy(session)
    """

    def __init__(self, engine: Engine, max_age_seconds: int) -> None:
        self.engine = engine
        self.max_age_seconds = max_age_seconds
        _metadata.create_all(self.engine)

    def load(self, sid: str | None) -> Session:
        """Return the live session for sid, or a new unsaved session.

        Expired rows are deleted on sight.
        """
        if not sid:
            return Session(sid=new_sid())
        try:
            with self.engine.connect() as conn:
                row = conn.execute(_sessions.select().where(_sessions.c.sid == sid)).fetchone()
                if row is not None and row.expires_at <= time.time():
                    conn.execute(_sessions.delete().where(_sessions.c.sid == sid))
                    conn.commit()
                    row = None
        except SQLAlchemyError as exc:
            logger.error("Session load failed: %s", exc.__class__.__name__)
            raise InternalError("Failed to load session") from exc
        if row is None:
            return Session(sid=new_sid())
        return Session(sid=row.sid, data=json.loads(row.data), is_new=False)

    def save(self, session: Session) -> None:
        """Write the session row and push its expiry forward by max_age_seconds."""
        try:
            with self.engine.connect() as conn:
                conn.execute(
                    _sessions.insert()
                    .prefix_with("OR REPLACE")
                    .values(
                        sid=session.sid,
                        data=json.dumps(session.data),
                        expires_at=time.time() + self.max_age_seconds,
                    )
                )
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("Session save failed: %s", exc.__class__.__name__)
            raise InternalError("Failed to save session") from exc
        session.is_new = False
        session.modified = False

    def destroy(self, session: Session) -> None:
        """Delete the session row. Deleting a never-saved session is a no-op.

        The in-memory Session is marked destroyed only after the delete
        commits, so a failed destroy leaves it intact.
        """
        try:
            with self.engine.connect() as conn:
                conn.execute(_sessions.delete().where(_sessions.c.sid == session.sid))
                conn.commit()
        except SQLAlchemyError as exc:
            logger.error("Session destroy failed: %s", exc.__class__.__name__)
            raise InternalError("Failed to destroy session") from exc
        session.data.clear()
        session.destroyed = True

    def regenerate(self, session: Session) -> None:
        """Move the session to a fresh sid, deleting the old row.

        Called when a user authenticates so a sid planted before login
        never becomes an authenticated one.
        """
        if not session.is_new:
            try:
                with self.engine.connect() as conn:
                    conn.execute(_sessions.delete().where(_sessions.c.sid == session.sid))
                    conn.commit()
            except SQLAlchemyError as exc:
                logger.error("Session regenerate failed: %s", exc.__class__.__name__)
                raise InternalError("Failed to regenerate session") from exc
        session.sid = new_sid()
        session.is_new = True
        session.modified = True

    def purge_expired(self) -> int:
        """Delete all expired rows. Returns number of rows removed."""
        try:
            with self.engine.connect() as conn:
                result = conn.execute(_sessions.delete().where(_sessions.c.expires_at <= time.time()))
                conn.commit()
        except SQLAlchemyError as exc:
            raise InternalError("Failed to purge sessions") from exc
        return result.rowcount
