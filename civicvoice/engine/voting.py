"""
civicvoice.engine.voting — Vote Casting & Counter Maintenance
==============================================================

Each suggestion carries denormalised ``upvotes`` / ``downvotes`` counters
that must equal the number of Vote records of each type for it.  A user
holds at most one vote per suggestion; re-voting the other way flips it.

Every mutation runs:
  1. under an in-process lock keyed by suggestion id, and
  2. inside one store transaction that reads the suggestion row
     ``FOR UPDATE`` (PostgreSQL) before touching the vote,

so two workers voting on the same suggestion cannot lose an increment.

If the suggestion does not exist the vote is still recorded and the
counters are left alone; a WARNING is logged.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from civicvoice.constants import SUGGESTIONS, VOTES, vote_key
from civicvoice.database.store import KVStore, KVTransaction
from civicvoice.engine.records import Suggestion, Vote, VoteType

logger = logging.getLogger(__name__)


def counter_delta(previous: VoteType | None, current: VoteType | None) -> tuple[int, int]:
    """Return ``(d_upvotes, d_downvotes)`` for moving from *previous* to *current*.

    ``None`` means "no vote".  Same-type re-votes are ``(0, 0)``.
    """
    if previous == current:
        return 0, 0
    up = down = 0
    if previous is VoteType.UPVOTE:
        up -= 1
    elif previous is VoteType.DOWNVOTE:
        down -= 1
    if current is VoteType.UPVOTE:
        up += 1
    elif current is VoteType.DOWNVOTE:
        down += 1
    return up, down


class KeyedLocks:
    """One :class:`threading.Lock` per key, created on first use.

    Locks are never evicted; keys are suggestion ids, so the map grows with
    the suggestion collection and no further.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            lock = self._locks.setdefault(key, threading.Lock())
        with lock:
            yield


class VotingEngine:
    """Keeps Vote records and suggestion counters in step."""

    def __init__(self, store: KVStore, locks: KeyedLocks | None = None) -> None:
        self.store = store
        self._locks = locks or KeyedLocks()

    # -----------------------------------------------------------------------
    # Reads
    # -----------------------------------------------------------------------

    def get_vote(self, user_id: str, suggestion_id: str) -> Vote | None:
        doc = self.store.get((VOTES, vote_key(user_id, suggestion_id)))
        return Vote.from_doc(doc) if doc else None

    def list_votes_for_user(self, user_id: str) -> list[Vote]:
        """Every vote *user_id* holds, via a prefix scan on ``user_id:``."""
        rows = self.store.list((VOTES, f"{user_id}:"))
        return [v for v in (Vote.from_doc(doc) for _, doc in rows) if v.user_id == user_id]

    # -----------------------------------------------------------------------
    # Mutations
    # -----------------------------------------------------------------------

    def cast_vote(self, user_id: str, suggestion_id: str, vote_type: VoteType | str) -> Vote:
        """Record *user_id*'s vote on *suggestion_id*, replacing any earlier one.

        Raises
        ------
        ValueError
            If *vote_type* is not ``upvote`` or ``downvote``.
        """
        vote = Vote(user_id=user_id, suggestion_id=suggestion_id, type=VoteType(vote_type))
        key = (VOTES, vote_key(user_id, suggestion_id))

        with self._locks.hold(suggestion_id), self.store.transaction() as tx:
            suggestion = self._load_suggestion(tx, suggestion_id)
            existing = tx.get(key)
            previous = Vote.from_doc(existing).type if existing else None

            tx.set(key, vote.to_doc())

            if suggestion is None:
                logger.warning(
                    "Vote by %s recorded for missing suggestion %s; counters not updated",
                    user_id, suggestion_id,
                )
            else:
                self._apply_delta(tx, suggestion, counter_delta(previous, vote.type))

        logger.debug("Vote %s → %s by %s", vote.type, suggestion_id, user_id)
        return vote

    def remove_vote(self, user_id: str, suggestion_id: str) -> bool:
        """Delete the vote if present and decrement its counter.

        Returns ``False`` (and changes nothing) when no vote existed.
        """
        key = (VOTES, vote_key(user_id, suggestion_id))

        with self._locks.hold(suggestion_id), self.store.transaction() as tx:
            suggestion = self._load_suggestion(tx, suggestion_id)
            existing = tx.get(key)
            if existing is None:
                return False

            tx.delete(key)
            if suggestion is not None:
                previous = Vote.from_doc(existing).type
                self._apply_delta(tx, suggestion, counter_delta(previous, None))
        return True

    def recount(self, suggestion_id: str) -> Suggestion | None:
        """Rebuild both counters from the vote set.

        Repair tool for counters that drifted (e.g. rows imported from an
        older deployment).  Returns the corrected suggestion, or ``None``
        if it does not exist.
        """
        with self._locks.hold(suggestion_id), self.store.transaction() as tx:
            suggestion = self._load_suggestion(tx, suggestion_id)
            if suggestion is None:
                return None

            upvotes = downvotes = 0
            for _, doc in tx.list((VOTES,)):
                vote = Vote.from_doc(doc)
                if vote.suggestion_id != suggestion_id:
                    continue
                if vote.type is VoteType.UPVOTE:
                    upvotes += 1
                else:
                    downvotes += 1

            if (upvotes, downvotes) == (suggestion.upvotes, suggestion.downvotes):
                return suggestion

            logger.info(
                "Recounted %s: %d/%d → %d/%d", suggestion_id,
                suggestion.upvotes, suggestion.downvotes, upvotes, downvotes,
            )
            fixed = suggestion.merged(upvotes=upvotes, downvotes=downvotes)
            tx.set((SUGGESTIONS, suggestion_id), fixed.to_doc())
            return fixed

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    @staticmethod
    def _load_suggestion(tx: KVTransaction, suggestion_id: str) -> Suggestion | None:
        doc = tx.get((SUGGESTIONS, suggestion_id))
        return Suggestion.from_doc(doc) if doc else None

    @staticmethod
    def _apply_delta(tx: KVTransaction, suggestion: Suggestion, delta: tuple[int, int]) -> None:
        d_up, d_down = delta
        if d_up == 0 and d_down == 0:
            return
        updated = suggestion.merged(
            upvotes=max(0, suggestion.upvotes + d_up),
            downvotes=max(0, suggestion.downvotes + d_down),
        )
        tx.set((SUGGESTIONS, suggestion.id), updated.to_doc())
