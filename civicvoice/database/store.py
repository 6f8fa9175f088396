"""
civicvoice.database.store — Key-Value Store over ``kv_entries``
================================================================

A deliberately small store contract:

* ``get(key)`` / ``set(key, value)`` / ``delete(key)`` — single-key
  operations, each atomic on its own.
* ``list(prefix)`` — every entry whose key starts with *prefix*.
* ``transaction()`` — a context manager yielding the same four operations
  bound to one database transaction.  Rows read inside it are locked
  ``FOR UPDATE`` on dialects that support row locks.

Keys are ``(collection, name)`` tuples, e.g. ``("users", "<uuid>")``.
A prefix is ``(collection,)`` or ``(collection, name_prefix)``.
Values are JSON-serialisable dicts.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import Engine, delete, select
from sqlalchemy.orm import Session

from civicvoice.database.models import KVEntry


Key = tuple[str, str]
Prefix = tuple[str] | tuple[str, str]


class KVTransaction:
    """Store operations bound to an open :class:`Session`."""

    def __init__(self, session: Session, *, lock_rows: bool = True) -> None:
        self._session = session
        self._lock_rows = lock_rows

    def get(self, key: Key) -> dict[str, Any] | None:
        entry = self._session.get(KVEntry, key, with_for_update=self._lock_rows)
        if entry is None:
            return None
        return entry.value

    def set(self, key: Key, value: dict[str, Any]) -> None:
        entry = self._session.get(KVEntry, key)
        if entry is None:
            collection, name = key
            self._session.add(KVEntry(collection=collection, key=name, value=value))
        else:
            # Assign a new object so the JSON column is flagged dirty
            entry.value = dict(value)
        self._session.flush()

    def delete(self, key: Key) -> bool:
        collection, name = key
        result = self._session.execute(
            delete(KVEntry).where(
                KVEntry.collection == collection,
                KVEntry.key == name,
            )
        )
        return bool(result.rowcount)

    def list(self, prefix: Prefix) -> list[tuple[Key, dict[str, Any]]]:
        stmt = select(KVEntry).where(KVEntry.collection == prefix[0])
        if len(prefix) > 1 and prefix[1]:
            stmt = stmt.where(KVEntry.key.startswith(prefix[1], autoescape=True))
        stmt = stmt.order_by(KVEntry.key)
        return [
            ((row.collection, row.key), row.value)
            for row in self._session.scalars(stmt)
        ]


class KVStore:
    """Durable key-value store backed by a SQLAlchemy engine.

    The engine is injected so tests can hand in an in-memory SQLite engine.
    """

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    # -- single-key operations ------------------------------------------------

    def get(self, key: Key) -> dict[str, Any] | None:
        with Session(self.engine) as session:
            return KVTransaction(session, lock_rows=False).get(key)

    def set(self, key: Key, value: dict[str, Any]) -> None:
        with self.transaction(lock_rows=False) as tx:
            tx.set(key, value)

    def delete(self, key: Key) -> bool:
        with self.transaction(lock_rows=False) as tx:
            return tx.delete(key)

    def list(self, prefix: Prefix) -> list[tuple[Key, dict[str, Any]]]:
        with Session(self.engine) as session:
            return KVTransaction(session, lock_rows=False).list(prefix)

    # -- multi-key ------------------------------------------------------------

    @contextmanager
    def transaction(self, *, lock_rows: bool = True) -> Iterator[KVTransaction]:
        """Yield a :class:`KVTransaction` that commits on success and rolls
        back on exception.

        Usage::

            with store.transaction() as tx:
                doc = tx.get(("suggestions", sid))
                tx.set(("suggestions", sid), {**doc, "upvotes": doc["upvotes"] + 1})
        """
        session = Session(self.engine, expire_on_commit=False)
        try:
            yield KVTransaction(session, lock_rows=lock_rows)
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()
