"""
civicvoice.services.repository — Record Repository
===================================================

Typed CRUD + query operations for Users and Suggestions, layered on the
key-value store via collection prefixes.  Votes and sessions have their own
owners (:mod:`civicvoice.engine.voting`, :mod:`civicvoice.engine.sessions`).

Conventions:
  * ``get_*`` / ``update_*`` return ``None`` for a missing id — callers check.
  * ``update_*`` is a read-modify-write inside one store transaction.
  * ``id`` and ``created_at`` are never overwritten by an update.

Email lookups go through the ``users_by_email`` secondary index, written in
the same transaction as the user record.  Suggestion queries still load the
whole collection and filter in memory; fine at portal scale, revisit with a
real query layer if the collection grows past a few thousand rows.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from civicvoice.constants import (
    DEFAULT_PAGE_SIZE,
    SUGGESTIONS,
    USERS,
    USERS_BY_EMAIL,
)
from civicvoice.database.store import KVStore, KVTransaction
from civicvoice.engine.records import (
    Attachment,
    SortOrder,
    Suggestion,
    SuggestionStatus,
    User,
    new_id,
    utcnow,
)
from civicvoice.engine.voting import KeyedLocks

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SuggestionFilters:
    """Conjunctive filters for :meth:`Repository.get_suggestions`."""

    category: str | None = None
    status: SuggestionStatus | str | None = None
    author_id: str | None = None
    search: str | None = None  # case-insensitive, title OR description

    def matches(self, s: Suggestion) -> bool:
        if self.category and s.category != self.category:
            return False
        if self.status and s.status != self.status:
            return False
        if self.author_id and s.author_id != self.author_id:
            return False
        if self.search:
            needle = self.search.lower()
            if needle not in s.title.lower() and needle not in s.description.lower():
                return False
        return True


_SORT_KEYS = {
    SortOrder.NEWEST: (lambda s: s.created_at, True),
    SortOrder.OLDEST: (lambda s: s.created_at, False),
    SortOrder.MOST_UPVOTED: (lambda s: s.upvotes, True),
    SortOrder.MOST_DOWNVOTED: (lambda s: s.downvotes, True),
}


class Repository:
    """CRUD + queries over an injected :class:`KVStore`.

    *locks* must be the same :class:`KeyedLocks` the voting engine uses so a
    suggestion update cannot interleave with a counter change.
    """

    def __init__(self, store: KVStore, locks: KeyedLocks | None = None) -> None:
        self.store = store
        self._locks = locks or KeyedLocks()

    # -----------------------------------------------------------------------
    # Users
    # -----------------------------------------------------------------------

    def get_user_by_id(self, user_id: str) -> User | None:
        doc = self.store.get((USERS, user_id))
        return User.from_doc(doc) if doc else None

    def get_user_by_email(self, email: str) -> User | None:
        """Exact, case-sensitive match on the stored email."""
        ref = self.store.get((USERS_BY_EMAIL, email))
        if ref is None:
            return None
        user = self.get_user_by_id(ref["user_id"])
        if user is None or user.email != email:
            logger.warning("Stale email index entry for %s", email)
            return None
        return user

    def create_user(
        self,
        *,
        email: str,
        name: str,
        password: str | None = None,
        profile_image: str | None = None,
    ) -> User:
        """Insert a new, unapproved user.

        Email uniqueness is the caller's job (see
        :func:`civicvoice.services.auth_service.sign_up`).
        """
        user = User(
            id=new_id(),
            email=email,
            name=name,
            password=password,
            profile_image=profile_image,
            is_admin=False,
            is_approved=False,
            is_blocked=False,
            created_at=utcnow(),
        )
        with self.store.transaction() as tx:
            if tx.get((USERS_BY_EMAIL, email)) is not None:
                logger.warning("Email index for %s re-pointed to new user %s", email, user.id)
            tx.set((USERS, user.id), user.to_doc())
            tx.set((USERS_BY_EMAIL, email), {"user_id": user.id})
        logger.info("Created user %s", user.id)
        return user

    def update_user(self, user_id: str, **fields: Any) -> User | None:
        with self.store.transaction() as tx:
            doc = tx.get((USERS, user_id))
            if doc is None:
                return None
            before = User.from_doc(doc)
            after = before.merged(**fields)
            tx.set((USERS, user_id), after.to_doc())
            if after.email != before.email:
                self._move_email_index(tx, before, after)
        return after

    def get_all_users(self) -> list[User]:
        return [User.from_doc(doc) for _, doc in self.store.list((USERS,))]

    def get_pending_users(self) -> list[User]:
        """Users waiting on admin approval (blocked users excluded)."""
        return [u for u in self.get_all_users() if not u.is_approved and not u.is_blocked]

    @staticmethod
    def _move_email_index(tx: KVTransaction, before: User, after: User) -> None:
        ref = tx.get((USERS_BY_EMAIL, before.email))
        if ref is not None and ref.get("user_id") == before.id:
            tx.delete((USERS_BY_EMAIL, before.email))
        tx.set((USERS_BY_EMAIL, after.email), {"user_id": after.id})

    # -----------------------------------------------------------------------
    # Suggestions
    # -----------------------------------------------------------------------

    def get_suggestion_by_id(self, suggestion_id: str) -> Suggestion | None:
        doc = self.store.get((SUGGESTIONS, suggestion_id))
        return Suggestion.from_doc(doc) if doc else None

    def create_suggestion(
        self,
        *,
        title: str,
        description: str,
        category: str,
        author: User,
        attachments: list[Attachment] | None = None,
    ) -> Suggestion:
        """Insert a pending suggestion with zeroed counters.

        The author's name and picture are copied onto the record as they
        are right now.
        """
        now = utcnow()
        suggestion = Suggestion(
            id=new_id(),
            title=title,
            description=description,
            category=category,
            attachments=attachments or [],
            author_id=author.id,
            author_name=author.name,
            author_profile_image=author.profile_image,
            upvotes=0,
            downvotes=0,
            status=SuggestionStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self.store.set((SUGGESTIONS, suggestion.id), suggestion.to_doc())
        logger.info("Created suggestion %s by %s", suggestion.id, author.id)
        return suggestion

    def update_suggestion(self, suggestion_id: str, **fields: Any) -> Suggestion | None:
        """Merge *fields* and stamp ``updated_at`` under the suggestion lock."""
        with self._locks.hold(suggestion_id), self.store.transaction() as tx:
            doc = tx.get((SUGGESTIONS, suggestion_id))
            if doc is None:
                return None
            updated = Suggestion.from_doc(doc).merged(**fields)
            tx.set((SUGGESTIONS, suggestion_id), updated.to_doc())
        return updated

    def get_suggestions(
        self,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        filters: SuggestionFilters | None = None,
        sort: SortOrder | str = SortOrder.NEWEST,
    ) -> list[Suggestion]:
        """Filter, sort, then slice ``[offset, offset + limit)``.

        Raises
        ------
        ValueError
            If *sort* is not a known :class:`SortOrder` or the window is
            negative.
        """
        if limit < 0 or offset < 0:
            raise ValueError("limit and offset must be non-negative")
        key, reverse = _SORT_KEYS[SortOrder(sort)]

        rows = self._filtered(filters)
        rows.sort(key=key, reverse=reverse)
        return rows[offset:offset + limit]

    def count_suggestions(self, filters: SuggestionFilters | None = None) -> int:
        return len(self._filtered(filters))

    def _filtered(self, filters: SuggestionFilters | None) -> list[Suggestion]:
        filters = filters or SuggestionFilters()
        suggestions = (Suggestion.from_doc(doc) for _, doc in self.store.list((SUGGESTIONS,)))
        return [s for s in suggestions if filters.matches(s)]
