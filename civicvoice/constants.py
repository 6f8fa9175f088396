"""
civicvoice.constants — Shared Constants
========================================

Single source of truth for store collection names, session defaults and the
stock suggestion categories.  Import from here instead of repeating string
literals across services and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Key-value collections
# ---------------------------------------------------------------------------
USERS = "users"
USERS_BY_EMAIL = "users_by_email"
SUGGESTIONS = "suggestions"
VOTES = "votes"
SESSIONS = "auth"
OAUTH_STATES = "oauth_states"

# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
SESSION_COOKIE_NAME = "session_id"
SESSION_EXPIRY_DAYS = 7

# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------
DEFAULT_CATEGORIES: tuple[str, ...] = (
    "Education",
    "Healthcare",
    "Environment",
    "Transportation",
    "Economy",
    "Technology",
    "Agriculture",
    "Public Safety",
    "Social Welfare",
    "Governance",
    "Other",
)

DEFAULT_PAGE_SIZE = 10


def vote_key(user_id: str, suggestion_id: str) -> str:
    """Composite store key for the vote a user holds on a suggestion."""
    return f"{user_id}:{suggestion_id}"
