"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from civicvoice.config import PortalConfig
from civicvoice.database.engine import init_db
from civicvoice.database.store import KVStore
from civicvoice.engine.records import User
from civicvoice.engine.sessions import SessionManager
from civicvoice.engine.voting import KeyedLocks, VotingEngine
from civicvoice.services.auth_service import hash_password
from civicvoice.services.repository import Repository

TEST_PASSWORD = "Passw0rdOK"


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with the ``kv_entries`` table.

    Uses StaticPool so every thread shares the same in-memory database
    (required by ``asyncio.to_thread`` / FastAPI's threadpool).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def store(db_engine: Engine) -> KVStore:
    return KVStore(db_engine)


@pytest.fixture
def locks() -> KeyedLocks:
    return KeyedLocks()


@pytest.fixture
def repo(store: KVStore, locks: KeyedLocks) -> Repository:
    return Repository(store, locks)


@pytest.fixture
def voting(store: KVStore, locks: KeyedLocks) -> VotingEngine:
    return VotingEngine(store, locks)


@pytest.fixture
def sessions(store: KVStore) -> SessionManager:
    return SessionManager(store)


@pytest.fixture
def portal_config() -> PortalConfig:
    return PortalConfig(
        site_name="Citizen Suggestion Platform",
        lawmakers_email="lawmakers@example.gov",
    )


@pytest.fixture
def make_user(repo: Repository):
    """Factory: create a credentialed account with the given flags."""

    def _make(
        email: str = "citizen@example.com",
        *,
        name: str = "Juan dela Cruz",
        approved: bool = True,
        admin: bool = False,
        blocked: bool = False,
        password: str | None = TEST_PASSWORD,
    ) -> User:
        user = repo.create_user(
            email=email,
            name=name,
            password=hash_password(password) if password else None,
        )
        return repo.update_user(
            user.id, is_approved=approved, is_admin=admin, is_blocked=blocked
        )

    return _make


@pytest.fixture
def make_suggestion(repo: Repository, make_user):
    """Factory: create a suggestion, optionally forcing status and counters."""

    def _make(
        title: str = "Fix the road to the barangay hall",
        *,
        description: str = "The main road floods every rainy season and needs drainage.",
        category: str = "Transportation",
        author: User | None = None,
        **fields,
    ):
        author = author or repo.get_user_by_email("author@example.com") or make_user(
            "author@example.com", name="Maria Clara"
        )
        suggestion = repo.create_suggestion(
            title=title,
            description=description,
            category=category,
            author=author,
        )
        if fields:
            suggestion = repo.update_suggestion(suggestion.id, **fields)
        return suggestion

    return _make


@pytest.fixture
def client(db_engine: Engine, portal_config: PortalConfig):
    """FastAPI TestClient wired to the in-memory engine."""
    from fastapi.testclient import TestClient

    from civicvoice.api.deps import get_config, get_engine
    from civicvoice.api.main import app

    app.dependency_overrides[get_engine] = lambda: db_engine
    app.dependency_overrides[get_config] = lambda: portal_config

    yield TestClient(app, raise_server_exceptions=False)

    app.dependency_overrides.clear()
