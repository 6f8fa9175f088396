"""
civicvoice.api.auth — Sign-up, sign-in, sign-out, Google login
================================================================
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import UTC
from typing import Annotated

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse
from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from civicvoice.api.deps import (
    get_config,
    get_repository,
    get_sessions,
    get_store,
    require_user,
    user_dict,
)
from civicvoice.config import PortalConfig
from civicvoice.constants import SESSION_COOKIE_NAME
from civicvoice.database.engine import run_db
from civicvoice.database.store import KVStore
from civicvoice.engine.records import SessionRecord, User
from civicvoice.engine.sessions import SessionManager
from civicvoice.services import auth_service, google_oauth
from civicvoice.services.repository import Repository

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["auth"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class SignInRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class SignUpRequest(SignInRequest):
    name: str = Field(min_length=2, max_length=50)
    password: str = Field(min_length=8)
    confirm_password: str

    @field_validator("password")
    @classmethod
    def _strong_password(cls, v: str) -> str:
        if not re.search(r"[A-Z]", v):
            raise ValueError("Password must contain at least one uppercase letter")
        if not re.search(r"[a-z]", v):
            raise ValueError("Password must contain at least one lowercase letter")
        if not re.search(r"[0-9]", v):
            raise ValueError("Password must contain at least one number")
        return v

    @model_validator(mode="after")
    def _passwords_match(self) -> SignUpRequest:
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------
def set_session_cookie(response: Response, session: SessionRecord, *, secure: bool) -> None:
    response.set_cookie(
        SESSION_COOKIE_NAME,
        session.token,
        expires=session.expires_at.astimezone(UTC),
        httponly=True,
        path="/",
        samesite="lax",
        secure=secure,
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(SESSION_COOKIE_NAME, path="/")


async def _signed_in(
    user: User, sessions: SessionManager, cfg: PortalConfig, response: Response
) -> dict:
    session = await run_db(sessions.create_session, user.id)
    set_session_cookie(response, session, secure=cfg.cookie_secure)
    return {"user": user_dict(user), "expires_at": session.expires_at.isoformat()}


# ---------------------------------------------------------------------------
# Credentialed accounts
# ---------------------------------------------------------------------------
@router.post("/signup", status_code=status.HTTP_201_CREATED)
async def signup(
    body: SignUpRequest,
    response: Response,
    repo: Annotated[Repository, Depends(get_repository)],
    sessions: Annotated[SessionManager, Depends(get_sessions)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
):
    """Register and sign in.  The account stays pending until an admin approves it."""
    user = await run_db(
        auth_service.sign_up, repo, email=body.email, password=body.password, name=body.name
    )
    if user is None:
        raise HTTPException(status.HTTP_409_CONFLICT, "An account with this email already exists.")
    return await _signed_in(user, sessions, cfg, response)


@router.post("/signin")
async def signin(
    body: SignInRequest,
    response: Response,
    repo: Annotated[Repository, Depends(get_repository)],
    sessions: Annotated[SessionManager, Depends(get_sessions)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
):
    user = await run_db(auth_service.sign_in, repo, email=body.email, password=body.password)
    if user is None:
        raise HTTPException(
            status.HTTP_401_UNAUTHORIZED,
            "Invalid email or password. Or your account may not be approved yet.",
        )
    return await _signed_in(user, sessions, cfg, response)


@router.post("/signout")
async def signout(
    response: Response,
    sessions: Annotated[SessionManager, Depends(get_sessions)],
    session_id: Annotated[str | None, Cookie()] = None,
):
    if session_id:
        await run_db(sessions.delete_session, session_id)
    clear_session_cookie(response)
    return {"status": "signed_out"}


@router.get("/me")
def me(user: Annotated[User, Depends(require_user)]):
    """Current account, including approval state for the pending-approval page."""
    return {**user_dict(user), "can_participate": user.can_participate}


# ---------------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------------
def _google_cfg() -> google_oauth.GoogleOAuthConfig:
    try:
        return google_oauth.oauth_env()
    except RuntimeError as exc:
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc)) from exc


@router.get("/google/login")
async def google_login(store: Annotated[KVStore, Depends(get_store)]):
    """Redirect to Google's consent screen."""
    oauth_cfg = _google_cfg()
    state = secrets.token_urlsafe(32)
    await run_db(google_oauth.store_state, store, state)
    return RedirectResponse(google_oauth.authorization_url(oauth_cfg, state))


@router.get("/google/callback")
async def google_callback(
    code: str,
    state: str,
    store: Annotated[KVStore, Depends(get_store)],
    repo: Annotated[Repository, Depends(get_repository)],
    sessions: Annotated[SessionManager, Depends(get_sessions)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
):
    oauth_cfg = _google_cfg()
    if not await run_db(google_oauth.consume_state, store, state):
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Invalid or expired OAuth state")

    user = await google_oauth.handle_callback(repo, oauth_cfg, code)
    if user is None:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Google sign-in failed")
    if user.is_blocked:
        return RedirectResponse("/account-blocked", status_code=status.HTTP_303_SEE_OTHER)

    target = "/" if user.is_approved else "/pending-approval"
    response = RedirectResponse(target, status_code=status.HTTP_303_SEE_OTHER)
    session = await run_db(sessions.create_session, user.id)
    set_session_cookie(response, session, secure=cfg.cookie_secure)
    logger.info("Google sign-in for user %s", user.id)
    return response
