"""
civicvoice.api.routes.suggestions — Browse, submit and vote
=============================================================

Visibility: anyone sees ``approved`` and ``sent`` suggestions.  ``pending``
and ``rejected`` ones are visible to admins and to their own author only.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from civicvoice.api.deps import (
    get_config,
    get_current_user,
    get_repository,
    get_voting,
    require_participant,
    require_user,
)
from civicvoice.config import PortalConfig
from civicvoice.constants import DEFAULT_PAGE_SIZE
from civicvoice.engine.records import (
    Attachment,
    AttachmentType,
    SortOrder,
    Suggestion,
    SuggestionStatus,
    User,
    VoteType,
    new_id,
)
from civicvoice.engine.voting import VotingEngine
from civicvoice.services.repository import Repository, SuggestionFilters

router = APIRouter(tags=["suggestions"])

MAX_ATTACHMENT_SIZE = 10 * 1024 * 1024  # 10 MB
_HIDDEN_STATUSES = frozenset({SuggestionStatus.PENDING, SuggestionStatus.REJECTED})


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class AttachmentIn(BaseModel):
    type: AttachmentType
    url: str = Field(min_length=1)
    filename: str = Field(min_length=1, max_length=255)
    size: int = Field(ge=0, le=MAX_ATTACHMENT_SIZE)


class SuggestionCreate(BaseModel):
    title: str = Field(min_length=5, max_length=100)
    description: str = Field(min_length=20, max_length=2000)
    category: str = Field(min_length=1)
    attachments: list[AttachmentIn] = Field(default_factory=list)


class VoteIn(BaseModel):
    type: VoteType


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _visible_to(s: Suggestion, user: User | None) -> bool:
    if s.status not in _HIDDEN_STATUSES:
        return True
    return user is not None and (user.is_admin or user.id == s.author_id)


def _get_visible(repo: Repository, suggestion_id: str, user: User | None) -> Suggestion:
    suggestion = repo.get_suggestion_by_id(suggestion_id)
    if suggestion is None or not _visible_to(suggestion, user):
        raise HTTPException(status.HTTP_404_NOT_FOUND, "Suggestion not found")
    return suggestion


# ---------------------------------------------------------------------------
# Browse
# ---------------------------------------------------------------------------
@router.get("/suggestions")
def list_suggestions(
    repo: Annotated[Repository, Depends(get_repository)],
    user: Annotated[User | None, Depends(get_current_user)],
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=100),
    offset: int = Query(0, ge=0),
    category: str | None = None,
    status_filter: SuggestionStatus | None = Query(None, alias="status"),
    author_id: str | None = None,
    search: str | None = None,
    sort: SortOrder = SortOrder.NEWEST,
):
    """Filtered, sorted, paginated suggestions.

    Without ``status`` non-admins get approved suggestions.  Asking for a
    hidden status is only allowed for one's own suggestions.
    """
    is_admin = user is not None and user.is_admin
    if status_filter is None and not is_admin:
        status_filter = SuggestionStatus.APPROVED
    if status_filter in _HIDDEN_STATUSES and not is_admin:
        if user is None or author_id != user.id:
            raise HTTPException(status.HTTP_403_FORBIDDEN, "Only the author or an admin may list these")

    filters = SuggestionFilters(
        category=category,
        status=status_filter,
        author_id=author_id,
        search=search,
    )
    items = repo.get_suggestions(limit=limit, offset=offset, filters=filters, sort=sort)
    return {
        "items": [s.to_doc() for s in items],
        "limit": limit,
        "offset": offset,
    }


@router.get("/suggestions/{suggestion_id}")
def get_suggestion(
    suggestion_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
    user: Annotated[User | None, Depends(get_current_user)],
):
    return _get_visible(repo, suggestion_id, user).to_doc()


@router.get("/categories")
def list_categories(cfg: Annotated[PortalConfig, Depends(get_config)]):
    return {"categories": list(cfg.categories)}


# ---------------------------------------------------------------------------
# Submit
# ---------------------------------------------------------------------------
@router.post("/suggestions", status_code=status.HTTP_201_CREATED)
def create_suggestion(
    body: SuggestionCreate,
    repo: Annotated[Repository, Depends(get_repository)],
    cfg: Annotated[PortalConfig, Depends(get_config)],
    user: Annotated[User, Depends(require_participant)],
):
    if body.category not in cfg.categories:
        raise HTTPException(422, "Unknown category")

    attachments = [Attachment(id=new_id(), **a.model_dump()) for a in body.attachments]
    suggestion = repo.create_suggestion(
        title=body.title,
        description=body.description,
        category=body.category,
        author=user,
        attachments=attachments,
    )
    return suggestion.to_doc()


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------
@router.put("/suggestions/{suggestion_id}/vote")
def cast_vote(
    suggestion_id: str,
    body: VoteIn,
    repo: Annotated[Repository, Depends(get_repository)],
    voting: Annotated[VotingEngine, Depends(get_voting)],
    user: Annotated[User, Depends(require_participant)],
):
    _get_visible(repo, suggestion_id, user)
    vote = voting.cast_vote(user.id, suggestion_id, body.type)
    return {
        "vote": vote.to_doc(),
        "suggestion": repo.get_suggestion_by_id(suggestion_id).to_doc(),
    }


@router.delete("/suggestions/{suggestion_id}/vote")
def remove_vote(
    suggestion_id: str,
    repo: Annotated[Repository, Depends(get_repository)],
    voting: Annotated[VotingEngine, Depends(get_voting)],
    user: Annotated[User, Depends(require_participant)],
):
    _get_visible(repo, suggestion_id, user)
    removed = voting.remove_vote(user.id, suggestion_id)
    return {
        "removed": removed,
        "suggestion": repo.get_suggestion_by_id(suggestion_id).to_doc(),
    }


@router.get("/me/votes")
def my_votes(
    voting: Annotated[VotingEngine, Depends(get_voting)],
    user: Annotated[User, Depends(require_user)],
):
    """``{suggestion_id: vote_type}`` for rendering per-card vote state."""
    return {v.suggestion_id: v.type.value for v in voting.list_votes_for_user(user.id)}
