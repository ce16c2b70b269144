"""Analytics event ORM model."""
from __future__ import annotations

from uuid import uuid4

from sqlalchemy import Column, DateTime, Index, String, Text, func

from easymode.db.base import Base
from easymode.db.types import JSONBCompat


class AnalyticsEvent(Base):
    __tablename__ = "analytics_events"
    __table_args__ = (Index("ix_analytics_events_user_id", "user_id"),)

    id = Column(String(length=36), primary_key=True, default=lambda: str(uuid4()))
    event = Column(Text, nullable=False)
    user_id = Column(String(length=128), nullable=False)
    payload = Column(JSONBCompat, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
