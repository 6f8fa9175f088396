"""
civicvoice.services.auth_service — Credentials, Sign-Up & Sign-In
==================================================================

Passwords are hashed with bcrypt.  Sign-in refuses unapproved and blocked
accounts with the same ``None`` as a bad password so the login form never
leaks which one it was.
"""

from __future__ import annotations

import logging

import bcrypt

from civicvoice.engine.records import User, utcnow
from civicvoice.services.repository import Repository

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("ascii")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("ascii"))
    except ValueError:
        # Malformed hash in storage
        logger.warning("Stored password hash could not be parsed")
        return False


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

def sign_up(repo: Repository, *, email: str, password: str, name: str) -> User | None:
    """Register a credentialed account pending admin approval.

    Returns ``None`` if *email* is already registered.
    """
    if repo.get_user_by_email(email) is not None:
        return None
    user = repo.create_user(
        email=email,
        name=name,
        password=hash_password(password),
        profile_image=None,
    )
    logger.info("New sign-up %s awaiting approval", user.id)
    return user


def sign_in(repo: Repository, *, email: str, password: str) -> User | None:
    """Check credentials and stamp ``last_login``.

    Returns ``None`` for an unknown email, a federated account without a
    password, an unapproved or blocked account, or a wrong password.
    """
    user = repo.get_user_by_email(email)
    if user is None or not user.password:
        return None
    if not user.is_approved or user.is_blocked:
        return None
    if not verify_password(password, user.password):
        return None
    return repo.update_user(user.id, last_login=utcnow())


def can_participate(user: User | None) -> bool:
    """Approved and not blocked.  ``None`` (anonymous) never participates."""
    return user is not None and user.can_participate
