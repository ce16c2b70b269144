"""Weekly plan ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, String, Text, func, text as sa_text

from easymode.db.base import Base
from easymode.db.types import JSONBCompat


class WeeklyPlan(Base):
    __tablename__ = "weekly_plans"
    __table_args__ = (Index("ix_weekly_plans_user_week", "user_id", "week_number", "start_date"),)

    id = Column(String(length=36), primary_key=True, default=lambda: str(uuid4()))
    user_id = Column(String(length=128), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    week_number = Column(Integer, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    user_goal = Column(Text, nullable=False, default="")
    milestones = Column(JSONBCompat, nullable=False, default=list)
    current_milestone = Column(Integer, nullable=False, server_default=sa_text("1"), default=1)
    difficulty_level = Column(Integer, nullable=False, server_default=sa_text("3"), default=3)
    completion_rate = Column(Integer, nullable=False, server_default=sa_text("0"), default=0)
    adjustment_history = Column(JSONBCompat, nullable=False, default=list)
    agent_reasoning = Column(Text, nullable=False, default="")
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
