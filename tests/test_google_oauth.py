"""
tests/test_google_oauth.py — Google Sign-In Tests
===================================================
Covers the environment check, consent URL, one-time state tokens, and the
code → profile → account flow against a mocked Google (httpx.MockTransport).
"""

from __future__ import annotations

import asyncio
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest

from civicvoice.constants import OAUTH_STATES
from civicvoice.engine.records import utcnow
from civicvoice.services import google_oauth

CFG = google_oauth.GoogleOAuthConfig(
    client_id="client-123",
    client_secret="secret-456",
    redirect_uri="http://localhost:8000/api/auth/google/callback",
)

PROFILE = {
    "id": "g-1",
    "email": "maria@example.com",
    "name": "Maria Clara",
    "picture": "https://example.com/maria.png",
}


def _google(profile=PROFILE, token_status=200, userinfo_status=200):
    """MockTransport standing in for Google's token + userinfo endpoints."""
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if request.url.host == "oauth2.googleapis.com":
            if token_status != 200:
                return httpx.Response(token_status, json={"error": "invalid_grant"})
            return httpx.Response(200, json={"access_token": "tok", "token_type": "Bearer"})
        assert request.headers["Authorization"] == "Bearer tok"
        return httpx.Response(userinfo_status, json=profile)

    return httpx.MockTransport(handler), calls


# ===========================================================================
# Configuration
# ===========================================================================
class TestOAuthEnv:
    def test_missing_variables_are_named(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "abc")
        monkeypatch.delenv("GOOGLE_CLIENT_SECRET", raising=False)
        monkeypatch.delenv("GOOGLE_REDIRECT_URI", raising=False)
        with pytest.raises(RuntimeError, match="GOOGLE_CLIENT_SECRET, GOOGLE_REDIRECT_URI"):
            google_oauth.oauth_env()

    def test_reads_all_three(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_CLIENT_ID", "abc")
        monkeypatch.setenv("GOOGLE_CLIENT_SECRET", "shh")
        monkeypatch.setenv("GOOGLE_REDIRECT_URI", "http://x/cb")
        assert google_oauth.oauth_env() == google_oauth.GoogleOAuthConfig("abc", "shh", "http://x/cb")

    def test_authorization_url(self):
        url = urlparse(google_oauth.authorization_url(CFG, "state-xyz"))
        query = parse_qs(url.query)
        assert url.netloc == "accounts.google.com"
        assert query["client_id"] == ["client-123"]
        assert query["redirect_uri"] == [CFG.redirect_uri]
        assert query["state"] == ["state-xyz"]
        assert query["scope"] == ["email profile"]
        assert query["response_type"] == ["code"]


# ===========================================================================
# State tokens
# ===========================================================================
class TestStateTokens:
    def test_state_is_single_use(self, store):
        google_oauth.store_state(store, "s1")
        assert google_oauth.consume_state(store, "s1") is True
        assert google_oauth.consume_state(store, "s1") is False

    def test_unknown_state(self, store):
        assert google_oauth.consume_state(store, "never-issued") is False

    def test_stale_state_is_rejected(self, store):
        stale = utcnow() - timedelta(seconds=google_oauth.OAUTH_STATE_TTL_SECONDS + 5)
        store.set((OAUTH_STATES, "old"), {"created_at": stale.isoformat()})
        assert google_oauth.consume_state(store, "old") is False
        assert store.get((OAUTH_STATES, "old")) is None


# ===========================================================================
# Profile fetch
# ===========================================================================
class TestFetchProfile:
    def test_success(self):
        transport, calls = _google()
        profile = asyncio.run(google_oauth.fetch_profile(CFG, "code-1", transport=transport))
        assert profile == PROFILE
        assert [c.url.host for c in calls] == ["oauth2.googleapis.com", "www.googleapis.com"]
        assert b"grant_type=authorization_code" in calls[0].content

    def test_token_exchange_failure(self):
        transport, calls = _google(token_status=400)
        assert asyncio.run(google_oauth.fetch_profile(CFG, "bad", transport=transport)) is None
        assert len(calls) == 1

    def test_userinfo_failure(self):
        transport, _ = _google(userinfo_status=401)
        assert asyncio.run(google_oauth.fetch_profile(CFG, "code", transport=transport)) is None


# ===========================================================================
# Account linking
# ===========================================================================
class TestHandleCallback:
    def test_new_profile_creates_unapproved_account(self, repo):
        transport, _ = _google()
        user = asyncio.run(google_oauth.handle_callback(repo, CFG, "code", transport=transport))
        assert user.email == "maria@example.com"
        assert user.name == "Maria Clara"
        assert user.profile_image == PROFILE["picture"]
        assert user.password is None
        assert user.is_approved is False

    def test_existing_account_is_linked(self, repo, make_user):
        existing = make_user("maria@example.com", name="Maria")
        transport, _ = _google()
        user = asyncio.run(google_oauth.handle_callback(repo, CFG, "code", transport=transport))
        assert user.id == existing.id
        assert user.name == "Maria"
        assert user.profile_image == PROFILE["picture"]
        assert user.last_login is not None
        assert len(repo.get_all_users()) == 1

    def test_profile_without_email(self, repo):
        transport, _ = _google(profile={"id": "g-2", "name": "No Email"})
        assert asyncio.run(google_oauth.handle_callback(repo, CFG, "code", transport=transport)) is None
        assert repo.get_all_users() == []

    def test_name_falls_back_to_email(self, repo):
        user = google_oauth.link_or_create_user(repo, {"email": "anon@example.com"})
        assert user.name == "anon@example.com"
        assert user.profile_image is None
