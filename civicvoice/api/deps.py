"""
civicvoice.api.deps — FastAPI dependency injection
====================================================

Wires the engine, store, repository, voting engine and session manager into
route handlers, and resolves the ``session_id`` cookie to the current user.

Access gates:
  * :func:`require_user` — any signed-in account (401 otherwise).
  * :func:`require_participant` — approved and not blocked (403).
  * :func:`require_admin` — ``is_admin`` and not blocked (403).
"""

from __future__ import annotations

import os
from datetime import timedelta
from functools import lru_cache
from typing import Annotated

from fastapi import Cookie, Depends, HTTPException, status
from sqlalchemy import Engine

from civicvoice.config import PortalConfig, load_config
from civicvoice.database.engine import create_db_engine
from civicvoice.database.store import KVStore
from civicvoice.engine.records import User
from civicvoice.engine.sessions import SessionManager
from civicvoice.engine.voting import KeyedLocks, VotingEngine
from civicvoice.services.repository import Repository

# Per-suggestion locks shared by every Repository and VotingEngine in this
# process, so counter changes and suggestion updates never interleave.
SUGGESTION_LOCKS = KeyedLocks()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> PortalConfig:
    return load_config(os.getenv("CIVICVOICE_CONFIG", "config.yaml"))


def get_store(engine: Annotated[Engine, Depends(get_engine)]) -> KVStore:
    return KVStore(engine)


def get_repository(store: Annotated[KVStore, Depends(get_store)]) -> Repository:
    return Repository(store, SUGGESTION_LOCKS)


def get_voting(store: Annotated[KVStore, Depends(get_store)]) -> VotingEngine:
    return VotingEngine(store, SUGGESTION_LOCKS)


def get_sessions(
    store: Annotated[KVStore, Depends(get_store)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
) -> SessionManager:
    return SessionManager(store, ttl=timedelta(days=cfg.session_ttl_days))


# ---------------------------------------------------------------------------
# Current user
# ---------------------------------------------------------------------------

def get_current_user(
    sessions: Annotated[SessionManager, Depends(get_sessions)],
    repo: Annotated[Repository, Depends(get_repository)],
    session_id: Annotated[str | None, Cookie()] = None,
) -> User | None:
    """Resolve the session cookie; ``None`` for anonymous or expired."""
    if not session_id:
        return None
    session = sessions.resolve_session(session_id)
    if session is None:
        return None
    return repo.get_user_by_id(session.user_id)


def require_user(user: Annotated[User | None, Depends(get_current_user)]) -> User:
    if user is None:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Not signed in")
    return user


def require_participant(user: Annotated[User, Depends(require_user)]) -> User:
    if user.is_blocked:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "account_blocked")
    if not user.is_approved:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "pending_approval")
    return user


def require_admin(user: Annotated[User, Depends(require_user)]) -> User:
    if user.is_blocked:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "account_blocked")
    if not user.is_admin:
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Not admin")
    return user


def user_dict(user: User) -> dict:
    """Public view of a user — never includes the password hash."""
    return user.model_dump(mode="json", exclude={"password"})
