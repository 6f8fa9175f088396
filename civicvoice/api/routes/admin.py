"""
civicvoice.api.routes.admin — Account approval & suggestion triage
====================================================================

All endpoints require an admin session.  Status changes are not checked
against a transition graph; admins may move a suggestion to any status.
Notifications are fire-and-forget and never fail the request.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from civicvoice.api.deps import (
    get_config,
    get_repository,
    get_voting,
    require_admin,
    user_dict,
)
from civicvoice.config import PortalConfig
from civicvoice.engine.records import SortOrder, SuggestionStatus, User
from civicvoice.engine.voting import VotingEngine
from civicvoice.services import email_service
from civicvoice.services.repository import Repository, SuggestionFilters

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/admin", tags=["admin"])

DASHBOARD_LIST_SIZE = 5


class StatusUpdate(BaseModel):
    status: SuggestionStatus


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------
@router.get("/dashboard")
def dashboard(
    repo: Annotated[Repository, Depends(get_repository)],
    admin: Annotated[User, Depends(require_admin)],
):
    """Pending accounts, the newest pending suggestions and the most-upvoted
    approved ones."""
    pending_users = repo.get_pending_users()
    pending_filter = SuggestionFilters(status=SuggestionStatus.PENDING)

    pending_suggestions = repo.get_suggestions(
        DASHBOARD_LIST_SIZE, 0, pending_filter, SortOrder.NEWEST
    )
    popular_suggestions = repo.get_suggestions(
        DASHBOARD_LIST_SIZE, 0, SuggestionFilters(status=SuggestionStatus.APPROVED),
        SortOrder.MOST_UPVOTED,
    )
    return {
        "pending_users": [user_dict(u) for u in pending_users],
        "pending_approval_count": len(pending_users),
        "pending_suggestions": [s.to_doc() for s in pending_suggestions],
        "pending_suggestions_count": repo.count_suggestions(pending_filter),
        "popular_suggestions": [s.to_doc() for s in popular_suggestions],
        "total_users": len(repo.get_all_users()),
        "total_suggestions": repo.count_suggestions(),
    }


@router.get("/users")
def list_users(
    repo: Annotated[Repository, Depends(get_repository)],
    admin: Annotated[User, Depends(require_admin)],
):
    return [user_dict(u) for u in repo.get_all_users()]


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------
def _update_user_or_404(repo: Repository, user_id: str, **fields) -> User:
    user = repo.update_user(user_id, **fields)
    if user is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "User not found")
    return user


@router.post("/users/{user_id}/approve")
def approve_user(
    user_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
    admin: Annotated[User, Depends(require_admin)],
):
    user = _update_user_or_404(repo, user_id, is_approved=True)
    email_service.send_email(email_service.user_approval_email(user, site_name=cfg.site_name))
    logger.info("Admin %s approved user %s", admin.id, user_id)
    return user_dict(user)


@router.post("/users/{user_id}/block")
def block_user(
    user_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
    admin: Annotated[User, Depends(require_admin)],
):
    if user_id == admin.id:
        raise HTTPException(status.HTTP_400_BAD_REQUEST, "Admins cannot block themselves")
    user = _update_user_or_404(repo, user_id, is_blocked=True)
    logger.info("Admin %s blocked user %s", admin.id, user_id)
    return user_dict(user)


@router.post("/users/{user_id}/unblock")
def unblock_user(
    user_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
    admin: Annotated[User, Depends(require_admin)],
):
    user = _update_user_or_404(repo, user_id, is_blocked=False)
    logger.info("Admin %s unblocked user %s", admin.id, user_id)
    return user_dict(user)


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------
@router.post("/suggestions/{suggestion_id}/status")
def set_suggestion_status(
    suggestion_id: str,
    body: StatusUpdate,
    repo: Annotated[Repository, Depends(get_repository)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
    admin: Annotated[User, Depends(require_admin)],
):
    """Set the triage status.

    ``approved`` emails the author; ``sent`` forwards the suggestion to the
    lawmakers inbox.
    """
    suggestion = repo.update_suggestion(suggestion_id, status=body.status)
    if suggestion is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Suggestion not found")

    if body.status is SuggestionStatus.APPROVED:
        author = repo.get_user_by_id(suggestion.author_id)
        if author is not None:
            email_service.send_email(email_service.suggestion_approval_email(author, suggestion))
    elif body.status is SuggestionStatus.SENT:
        email_service.send_email(
            email_service.suggestion_to_lawmakers_email(suggestion, to=cfg.lawmakers_email)
        )

    logger.info("Admin %s set suggestion %s → %s", admin.id, suggestion_id, body.status)
    return suggestion.to_doc()


@router.post("/suggestions/{suggestion_id}/recount")
def recount_votes(
    suggestion_id: str,
    voting: Annotated[VotingEngine, Depends(get_voting)],
    admin: Annotated[User, Depends(require_admin)],
):
    """Rebuild the suggestion's counters from its vote records."""
    suggestion = voting.recount(suggestion_id)
    if suggestion is None:
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Suggestion not found")
    return suggestion.to_doc()
