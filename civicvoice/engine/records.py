"""
civicvoice.engine.records — Stored Record Types
================================================

Pydantic models for everything the portal persists.  Records travel through
the store as JSON (``to_doc`` / ``from_doc``); timestamps are always
timezone-aware UTC.
"""

from __future__ import annotations

import enum
import uuid
from datetime import UTC, datetime
from typing import Any, ClassVar, Self

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(UTC)


def new_id() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class SuggestionStatus(enum.StrEnum):
    """Triage state.  Transitions are enforced by callers, not the store."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SENT = "sent"


class VoteType(enum.StrEnum):
    UPVOTE = "upvote"
    DOWNVOTE = "downvote"


class AttachmentType(enum.StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"


class SortOrder(enum.StrEnum):
    NEWEST = "newest"
    OLDEST = "oldest"
    MOST_UPVOTED = "most-upvoted"
    MOST_DOWNVOTED = "most-downvoted"


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Record(BaseModel):
    """Shared JSON round-trip and partial-update merge for stored records."""

    # Identity fields a partial update may never overwrite
    frozen_fields: ClassVar[frozenset[str]] = frozenset({"id", "created_at"})

    def to_doc(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_doc(cls, doc: dict[str, Any]) -> Self:
        return cls.model_validate(doc)

    def merged(self, **fields: Any) -> Self:
        """Return a copy with *fields* applied, re-validated.

        Frozen fields are dropped; unknown fields are ignored.
        """
        changes = {k: v for k, v in fields.items() if k not in self.frozen_fields}
        return type(self).model_validate({**self.model_dump(), **changes})


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------
class User(Record):
    id: str
    email: str
    name: str
    profile_image: str | None = None
    password: str | None = None  # bcrypt hash; None for federated accounts
    is_admin: bool = False
    is_approved: bool = False
    is_blocked: bool = False
    created_at: datetime
    last_login: datetime | None = None

    @property
    def can_participate(self) -> bool:
        """Approved and not blocked — gates every authenticated feature."""
        return self.is_approved and not self.is_blocked


# ---------------------------------------------------------------------------
# Suggestions
# ---------------------------------------------------------------------------
class Attachment(Record):
    """Metadata only; binary content is never stored."""
    id: str
    type: AttachmentType
    url: str
    filename: str
    size: int = Field(ge=0)


class Suggestion(Record):
    id: str
    title: str
    description: str
    category: str
    attachments: list[Attachment] = Field(default_factory=list)
    author_id: str
    # Snapshot of the author at submission time; not kept in sync.
    author_name: str
    author_profile_image: str | None = None
    upvotes: int = Field(default=0, ge=0)
    downvotes: int = Field(default=0, ge=0)
    status: SuggestionStatus = SuggestionStatus.PENDING
    created_at: datetime
    updated_at: datetime

    def merged(self, **fields: Any) -> Self:
        """Apply *fields* and stamp a fresh ``updated_at``."""
        fields["updated_at"] = utcnow()
        return super().merged(**fields)


# ---------------------------------------------------------------------------
# Votes
# ---------------------------------------------------------------------------
class Vote(Record):
    user_id: str
    suggestion_id: str
    type: VoteType
    created_at: datetime = Field(default_factory=utcnow)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
class SessionRecord(Record):
    token: str
    user_id: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) > self.expires_at
