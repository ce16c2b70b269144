"""Catalog of tasks available for recommendation."""
from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, String, Text, func, text as sa_text

from easymode.db.base import Base


class Task(Base):
    __tablename__ = "tasks"
    __table_args__ = (Index("ix_tasks_type", "type"),)

    id = Column(String(length=128), primary_key=True)
    title = Column(Text, nullable=False)
    description = Column(Text, nullable=False, default="")
    type = Column(String(length=20), nullable=False)
    category = Column(String(length=50), nullable=True)
    estimated_minutes = Column(Integer, nullable=False, server_default=sa_text("10"), default=10)
    active = Column(Boolean, nullable=False, server_default=sa_text("true"), default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
