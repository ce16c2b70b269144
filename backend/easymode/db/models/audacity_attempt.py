"""Audacity attempt log entry."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Text

from easymode.db.base import Base


class AudacityAttempt(Base):
    __tablename__ = "audacity_attempts"
    __table_args__ = (Index("ix_audacity_attempts_user_id", "user_id"),)

    id = Column(String(length=36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(length=128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(String(length=128), nullable=True)
    outcome = Column(String(length=20), nullable=False)
    notes = Column(Text, nullable=True)
    attempt_date = Column(DateTime(timezone=True), nullable=True)
