"""
civicvoice.services.google_oauth — Google Sign-In
==================================================

Authorization-code flow against Google's OAuth2 endpoints:

  1. :func:`authorization_url` builds the consent URL; its ``state`` is
     stored with a 10 minute TTL.
  2. Google redirects back with ``code`` + ``state``.
     :func:`consume_state` validates the state exactly once.
  3. :func:`handle_callback` exchanges the code, fetches the profile and
     links it to an existing account by email, or creates a new
     (unapproved) one.

Only the profile is used; access tokens are never persisted.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from civicvoice.constants import OAUTH_STATES
from civicvoice.database.engine import run_db
from civicvoice.database.store import KVStore
from civicvoice.engine.records import User, utcnow
from civicvoice.services.repository import Repository

logger = logging.getLogger(__name__)

GOOGLE_AUTH_URL = "https://accounts.google.com/o/oauth2/v2/auth"
GOOGLE_TOKEN_URL = "https://oauth2.googleapis.com/token"
GOOGLE_USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

OAUTH_STATE_TTL_SECONDS = 600


@dataclass(frozen=True, slots=True)
class GoogleOAuthConfig:
    client_id: str
    client_secret: str
    redirect_uri: str


def oauth_env() -> GoogleOAuthConfig:
    """Read the Google client settings from the environment.

    Raises
    ------
    RuntimeError
        Naming every missing variable.
    """
    values = {
        name: os.getenv(name, "").strip()
        for name in ("GOOGLE_CLIENT_ID", "GOOGLE_CLIENT_SECRET", "GOOGLE_REDIRECT_URI")
    }
    missing = [name for name, value in values.items() if not value]
    if missing:
        raise RuntimeError("Google OAuth is not configured: missing " + ", ".join(missing))
    return GoogleOAuthConfig(
        client_id=values["GOOGLE_CLIENT_ID"],
        client_secret=values["GOOGLE_CLIENT_SECRET"],
        redirect_uri=values["GOOGLE_REDIRECT_URI"],
    )


def authorization_url(cfg: GoogleOAuthConfig, state: str) -> str:
    query = urlencode(
        {
            "client_id": cfg.client_id,
            "redirect_uri": cfg.redirect_uri,
            "response_type": "code",
            "scope": "email profile",
            "state": state,
            "access_type": "offline",
            "prompt": "consent",
        }
    )
    return f"{GOOGLE_AUTH_URL}?{query}"


# ---------------------------------------------------------------------------
# One-time state tokens
# ---------------------------------------------------------------------------

def _prune_states(tx, cutoff: datetime) -> None:
    for key, doc in tx.list((OAUTH_STATES,)):
        if datetime.fromisoformat(doc["created_at"]) < cutoff:
            tx.delete(key)


def store_state(store: KVStore, state: str) -> None:
    """Persist an OAuth state token and prune stale entries."""
    now = datetime.now(UTC)
    with store.transaction(lock_rows=False) as tx:
        _prune_states(tx, now - timedelta(seconds=OAUTH_STATE_TTL_SECONDS))
        tx.set((OAUTH_STATES, state), {"created_at": now.isoformat()})


def consume_state(store: KVStore, state: str) -> bool:
    """Consume a one-time OAuth state token if valid and unexpired."""
    with store.transaction() as tx:
        _prune_states(tx, datetime.now(UTC) - timedelta(seconds=OAUTH_STATE_TTL_SECONDS))
        if tx.get((OAUTH_STATES, state)) is None:
            return False
        tx.delete((OAUTH_STATES, state))
        return True


# ---------------------------------------------------------------------------
# Callback
# ---------------------------------------------------------------------------

async def fetch_profile(
    cfg: GoogleOAuthConfig,
    code: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> dict[str, Any] | None:
    """Exchange *code* and return Google's userinfo, or ``None`` on failure."""
    transport = transport or httpx.AsyncHTTPTransport(retries=1)
    async with httpx.AsyncClient(timeout=10, transport=transport) as client:
        token_resp = await client.post(
            GOOGLE_TOKEN_URL,
            data={
                "code": code,
                "client_id": cfg.client_id,
                "client_secret": cfg.client_secret,
                "redirect_uri": cfg.redirect_uri,
                "grant_type": "authorization_code",
            },
        )
        if token_resp.status_code != 200:
            logger.warning("Google token exchange failed (%d)", token_resp.status_code)
            return None

        access_token = token_resp.json().get("access_token")
        if not access_token:
            logger.warning("Google token response had no access_token")
            return None

        user_resp = await client.get(
            GOOGLE_USERINFO_URL,
            headers={"Authorization": f"Bearer {access_token}"},
        )

    if user_resp.status_code != 200:
        logger.warning("Google userinfo request failed (%d)", user_resp.status_code)
        return None
    return user_resp.json()


def link_or_create_user(repo: Repository, profile: dict[str, Any]) -> User:
    """Attach a Google profile to the account with the same email, or create one.

    Existing accounts get ``last_login`` stamped and their picture refreshed
    if Google's differs.  New accounts start unapproved, like any sign-up.
    """
    email = profile["email"]
    picture = profile.get("picture")
    user = repo.get_user_by_email(email)

    if user is None:
        logger.info("Creating federated account for %s", email)
        return repo.create_user(
            email=email,
            name=profile.get("name") or email,
            profile_image=picture,
        )

    fields: dict[str, Any] = {"last_login": utcnow()}
    if picture and picture != user.profile_image:
        fields["profile_image"] = picture
    return repo.update_user(user.id, **fields) or user


async def handle_callback(
    repo: Repository,
    cfg: GoogleOAuthConfig,
    code: str,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> User | None:
    profile = await fetch_profile(cfg, code, transport=transport)
    if profile is None or not profile.get("email"):
        return None
    return await run_db(link_or_create_user, repo, profile)
