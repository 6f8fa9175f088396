"""
civicvoice.database.models — SQLAlchemy 2.0 Data Models
========================================================

The portal keeps every record in one schemaless table that behaves as a
key-value store.  Records are grouped into *collections* (``users``,
``suggestions``, ``votes``, ``auth`` …) and addressed by a string key inside
the collection.

Tables:
- kv_entries — (collection, key) → JSON document
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all CivicVoice ORM models."""


# JSONB on PostgreSQL, plain JSON everywhere else (SQLite in tests).
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


# ---------------------------------------------------------------------------
# KVEntry — one stored record
# ---------------------------------------------------------------------------
class KVEntry(Base):
    __tablename__ = "kv_entries"

    collection: Mapped[str] = mapped_column(String(64), primary_key=True)
    key: Mapped[str] = mapped_column(String(255), primary_key=True)
    value: Mapped[dict[str, Any]] = mapped_column(JSONDocument, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_kv_entries_updated_at", "updated_at"),
    )

    def __repr__(self) -> str:
        return f"<KVEntry {self.collection}/{self.key}>"
