"""Schemas for daily insights and resilience support."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class DailyInsightResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    insight: str
    request_id: str


class ResilienceRequest(BaseModel):
    outcome: Literal["partial", "fail"]
    task_title: Optional[str] = None
    notes: Optional[str] = None


class ResilienceResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    message: str
    request_id: str
