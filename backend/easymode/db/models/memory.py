"""Append-only user memory journal."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text

from easymode.db.base import Base
from easymode.db.types import JSONBCompat


class MemoryEntry(Base):
    __tablename__ = "memories"
    __table_args__ = (Index("ix_memories_user_created", "user_id", "created_at"),)

    id = Column(String(length=36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(length=128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    type = Column(String(length=20), nullable=False)
    content = Column(Text, nullable=False)
    # Column named "metadata" but attribute renamed to avoid Base.metadata collisions.
    metadata_json = Column("metadata", JSONBCompat, nullable=False, default=dict)
    importance = Column(Integer, nullable=False, server_default=sa_text("3"), default=3)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
