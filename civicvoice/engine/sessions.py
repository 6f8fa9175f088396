"""
civicvoice.engine.sessions — Opaque Session Tokens
===================================================

Tokens are random, URL-safe strings stored under the ``auth`` collection
with the owning user id and a fixed expiry.  Expiry is lazy: an expired
session is deleted the first time someone tries to resolve it.
:meth:`SessionManager.purge_expired` exists for an optional periodic sweep
but request handling never calls it.
"""

from __future__ import annotations

import logging
import secrets
from datetime import timedelta

from civicvoice.constants import SESSION_EXPIRY_DAYS, SESSIONS
from civicvoice.database.store import KVStore
from civicvoice.engine.records import SessionRecord, utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


class SessionManager:
    """Issue, resolve and revoke session tokens."""

    def __init__(self, store: KVStore, ttl: timedelta = timedelta(days=SESSION_EXPIRY_DAYS)) -> None:
        self.store = store
        self.ttl = ttl

    def create_session(self, user_id: str) -> SessionRecord:
        session = SessionRecord(
            token=secrets.token_urlsafe(TOKEN_BYTES),
            user_id=user_id,
            expires_at=utcnow() + self.ttl,
        )
        self.store.set((SESSIONS, session.token), session.to_doc())
        return session

    def resolve_session(self, token: str) -> SessionRecord | None:
        """Return the live session for *token*, or ``None``.

        An expired session is deleted on the spot.
        """
        doc = self.store.get((SESSIONS, token))
        if doc is None:
            return None
        session = SessionRecord.from_doc(doc)
        if session.is_expired(utcnow()):
            self.store.delete((SESSIONS, token))
            logger.debug("Session for user %s expired", session.user_id)
            return None
        return session

    def delete_session(self, token: str) -> None:
        self.store.delete((SESSIONS, token))

    def purge_expired(self) -> int:
        now = utcnow()
        removed = 0
        with self.store.transaction(lock_rows=False) as tx:
            for key, doc in tx.list((SESSIONS,)):
                if SessionRecord.from_doc(doc).is_expired(now):
                    tx.delete(key)
                    removed += 1
        if removed:
            logger.info("Purged %d expired sessions", removed)
        return removed
