"""Unit tests for auth/sessions.py -- session records, store and cookie signing.

Covers:
- load() of an unknown/missing sid yields a fresh unsaved session
- save() then load() round-trips data and clears the dirty flags
- Setting user_id marks the session modified
- destroy() deletes the row, marks the session, and tolerates unsaved sessions
- Expired rows are invisible to load() and removed by purge_expired()
- Signed cookie values verify; tampered or foreign-key values do not
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from auth.sessions import Session, SessionCookieSigner, SessionStore
from core.errors import InternalError


def _expire(store: SessionStore, sid: str) -> None:
    with store.engine.connect() as conn:
        conn.execute(text("UPDATE sessions SET expires_at = 0 WHERE sid = :sid"), {"sid": sid})
        conn.commit()


class TestSession:
    def test_new_session_defaults(self) -> None:
        session = Session(sid="abc")
        assert session.is_new is True
        assert session.modified is False
        assert session.user_id is None

    def test_setting_user_id_marks_modified(self) -> None:
        session = Session(sid="abc")
        session.user_id = 7
        assert session.user_id == 7
        assert session.modified is True


class TestSessionStore:
    def test_load_without_sid_is_fresh(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        assert session.is_new is True
        assert session.data == {}
        assert session.sid

    def test_load_unknown_sid_is_fresh_with_new_sid(self, session_store: SessionStore) -> None:
        session = session_store.load("does-not-exist")
        assert session.is_new is True
        assert session.sid != "does-not-exist"

    def test_fresh_sids_are_unique(self, session_store: SessionStore) -> None:
        assert session_store.load(None).sid != session_store.load(None).sid

    def test_save_then_load(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 42
        session_store.save(session)
        assert session.is_new is False
        assert session.modified is False

        loaded = session_store.load(session.sid)
        assert loaded.sid == session.sid
        assert loaded.user_id == 42
        assert loaded.is_new is False
        assert loaded.modified is False

    def test_save_overwrites(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 1
        session_store.save(session)
        session.user_id = 2
        session_store.save(session)
        assert session_store.load(session.sid).user_id == 2

    def test_destroy_removes_row(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 42
        session_store.save(session)

        session_store.destroy(session)
        assert session.destroyed is True
        assert session.user_id is None
        assert session_store.load(session.sid).is_new is True

    def test_destroy_unsaved_session_is_noop(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session_store.destroy(session)
        assert session.destroyed is True

    def test_destroy_twice(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 1
        session_store.save(session)
        session_store.destroy(session)
        session_store.destroy(session)
        assert session.destroyed is True

    def test_expired_session_not_loaded(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 42
        session_store.save(session)
        _expire(session_store, session.sid)

        loaded = session_store.load(session.sid)
        assert loaded.is_new is True
        assert loaded.user_id is None

    def test_purge_expired(self, session_store: SessionStore) -> None:
        live = session_store.load(None)
        live.user_id = 1
        session_store.save(live)
        stale = session_store.load(None)
        stale.user_id = 2
        session_store.save(stale)
        _expire(session_store, stale.sid)

        assert session_store.purge_expired() == 1
        assert session_store.load(live.sid).user_id == 1

    def test_regenerate_moves_to_new_sid(self, session_store: SessionStore) -> None:
        session = session_store.load(None)
        session.user_id = 1
        session_store.save(session)
        old_sid = session.sid

        session_store.regenerate(session)
        assert session.sid != old_sid
        assert session.is_new is True
        assert session.modified is True
        assert session_store.load(old_sid).is_new is True

    def test_destroy_failure_raises_internal_error(self, session_store: SessionStore, monkeypatch) -> None:
        session = session_store.load(None)

        def broken_connect():
            raise OperationalError("DELETE", {}, Exception("database is locked"))

        monkeypatch.setattr(session_store.engine, "connect", broken_connect)
        with pytest.raises(InternalError) as exc_info:
            session_store.destroy(session)
        assert exc_info.value.message == "Failed to destroy session"
        assert session.destroyed is False


class TestSessionCookieSigner:
    def test_round_trip(self) -> None:
        signer = SessionCookieSigner("k" * 32)
        assert signer.unsign(signer.sign("abc123")) == "abc123"

    def test_signed_value_differs_from_sid(self) -> None:
        signer = SessionCookieSigner("k" * 32)
        assert signer.sign("abc123") != "abc123"

    def test_tampered_value_rejected(self) -> None:
        signer = SessionCookieSigner("k" * 32)
        signed = signer.sign("abc123")
        assert signer.unsign("abc124" + signed[len("abc123") :]) is None

    def test_unsigned_value_rejected(self) -> None:
        assert SessionCookieSigner("k" * 32).unsign("abc123") is None

    def test_other_key_rejected(self) -> None:
        signed = SessionCookieSigner("k" * 32).sign("abc123")
        assert SessionCookieSigner("j" * 32).unsign(signed) is None
