"""Record of a task the user has worked through."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text, text as sa_text

from easymode.db.base import Base


class UserTask(Base):
    __tablename__ = "user_tasks"
    __table_args__ = (
        Index("ix_user_tasks_user_id", "user_id"),
        Index("ix_user_tasks_completed_at", "completed_at"),
    )

    id = Column(String(length=36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(length=128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    task_id = Column(String(length=128), nullable=True)
    type = Column(String(length=20), nullable=False)
    category = Column(String(length=50), nullable=True)
    # Seconds spent on the task as reported by the client.
    duration = Column(Integer, nullable=True)
    completed = Column(Boolean, nullable=False, server_default=sa_text("true"), default=True)
    outcome = Column(Text, nullable=True)
    xp_earned = Column(Integer, nullable=False, server_default=sa_text("0"), default=0)
    completed_at = Column(DateTime(timezone=True), nullable=True)
