"""User ORM model."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Integer, String, Text, func, text as sa_text

from easymode.db.base import Base
from easymode.db.types import JSONBCompat


class User(Base):
    __tablename__ = "users"

    # Ids are issued by the upstream auth provider.
    id = Column(String(length=128), primary_key=True)
    display_name = Column(Text, nullable=True)
    goal = Column(Text, nullable=True)
    pain_point = Column(Text, nullable=True)
    time_budget_minutes = Column(Integer, nullable=True)
    xp_total = Column(Integer, nullable=False, server_default=sa_text("0"), default=0)
    level = Column(Integer, nullable=False, server_default=sa_text("1"), default=1)
    streak = Column(Integer, nullable=False, server_default=sa_text("0"), default=0)
    last_activity = Column(DateTime(timezone=True), nullable=True)
    badges = Column(JSONBCompat, nullable=False, default=list)
    fcm_token = Column(Text, nullable=True)
    notifications_enabled = Column(Boolean, nullable=False, server_default=sa_text("false"), default=False)
    # Written by adaptive replanning, read by the next plan generation.
    next_plan_difficulty = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
