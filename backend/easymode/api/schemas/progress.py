"""Schemas for XP, level, streak and badge progress."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

TaskType = Literal["action", "audacity", "enjoy"]
AttemptOutcome = Literal["success", "partial", "fail"]


class TaskCompletionRequest(BaseModel):
    task_id: Optional[str] = None
    type: TaskType
    category: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Seconds spent on the task")
    completed: bool = True
    outcome: Optional[str] = None


class TaskCompletionResponse(BaseModel):
    user_task_id: Optional[str]
    xp_awarded: int
    xp_total: int
    level: int
    streak: int
    badges_awarded: List[str]
    plan_task_marked: bool = False
    request_id: str


class AudacityAttemptRequest(BaseModel):
    task_id: Optional[str] = None
    outcome: AttemptOutcome
    notes: Optional[str] = None


class AudacityAttemptResponse(BaseModel):
    id: str
    outcome: str
    attempt_date: datetime
    request_id: str


class BadgePayload(BaseModel):
    badge_id: str
    earned_at: Optional[str] = None


class ProgressResponse(BaseModel):
    user_id: str
    xp_total: int
    level: int
    xp_into_level: int
    xp_for_next_level: int
    streak: int
    last_activity: Optional[datetime]
    badges: List[BadgePayload]
    request_id: str
