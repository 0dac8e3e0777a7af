"""
SQLAlchemy database models for Reprise.

The local key-value store keeps one row per key; values are whole-value
overwrites, matching the semantics of the remote Workers KV backend.
"""

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all database models."""

    pass


class KVEntry(Base):
    """Key-value entry - one stored blob (descriptor cache, Packages, Release...)."""

    __tablename__ = "kv_entries"

    key: Mapped[str] = mapped_column(String(512), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )

    def __repr__(self) -> str:
        return f"<KVEntry(key='{self.key}', size={len(self.value)})>"
