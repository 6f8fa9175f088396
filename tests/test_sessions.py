"""
tests/test_sessions.py — Session Manager Tests
================================================
Covers token issue, lazy expiry on resolve, revoke, and the purge sweep.
"""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import patch

from civicvoice.constants import SESSIONS
from civicvoice.engine.records import utcnow
from civicvoice.engine.sessions import SessionManager


def _later(days: float):
    """Patch the session clock *days* into the future."""
    return patch(
        "civicvoice.engine.sessions.utcnow",
        return_value=utcnow() + timedelta(days=days),
    )


class TestCreateAndResolve:
    def test_create_session_persists_record(self, sessions, store):
        session = sessions.create_session("u1")
        assert session.user_id == "u1"
        assert len(session.token) >= 32
        assert store.get((SESSIONS, session.token))["user_id"] == "u1"

    def test_default_ttl_is_seven_days(self, sessions):
        before = utcnow()
        session = sessions.create_session("u1")
        assert timedelta(days=7) <= session.expires_at - before < timedelta(days=7, minutes=1)

    def test_tokens_are_unique(self, sessions):
        tokens = {sessions.create_session("u1").token for _ in range(10)}
        assert len(tokens) == 10

    def test_resolve_live_session(self, sessions):
        session = sessions.create_session("u1")
        assert sessions.resolve_session(session.token) == session

    def test_resolve_unknown_token(self, sessions):
        assert sessions.resolve_session("not-a-token") is None

    def test_custom_ttl(self, store):
        manager = SessionManager(store, ttl=timedelta(hours=1))
        session = manager.create_session("u1")
        with _later(days=0.5):
            assert manager.resolve_session(session.token) is None


class TestExpiry:
    def test_expired_session_is_deleted_on_resolve(self, sessions, store):
        session = sessions.create_session("u1")
        with _later(days=8):
            assert sessions.resolve_session(session.token) is None
        assert store.get((SESSIONS, session.token)) is None
        # Stays gone once the clock is back
        assert sessions.resolve_session(session.token) is None

    def test_session_valid_just_before_expiry(self, sessions):
        session = sessions.create_session("u1")
        with _later(days=6.9):
            assert sessions.resolve_session(session.token) is not None


class TestRevoke:
    def test_delete_session(self, sessions):
        session = sessions.create_session("u1")
        sessions.delete_session(session.token)
        assert sessions.resolve_session(session.token) is None

    def test_delete_unknown_session_is_harmless(self, sessions):
        sessions.delete_session("not-a-token")

    def test_purge_expired_only_removes_expired(self, store):
        short = SessionManager(store, ttl=timedelta(days=1))
        long = SessionManager(store, ttl=timedelta(days=30))
        stale = short.create_session("u1")
        fresh = long.create_session("u2")

        with _later(days=2):
            assert long.purge_expired() == 1

        assert store.get((SESSIONS, stale.token)) is None
        assert long.resolve_session(fresh.token) is not None
