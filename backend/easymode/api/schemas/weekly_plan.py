"""Schemas for weekly plans and the planner tool payloads."""
from __future__ import annotations

from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DayOfWeek = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]
TaskType = Literal["action", "audacity", "enjoy"]
FocusArea = Literal["action", "audacity", "enjoyment"]
AdjustmentType = Literal["simplify", "maintain", "increase"]


class DailyPlanTask(BaseModel):
    day_of_week: DayOfWeek
    title: str = Field(..., min_length=1)
    type: TaskType
    estimated_minutes: int = Field(..., ge=1, le=240)
    difficulty: int = Field(..., ge=1, le=5)
    why_today: str = ""
    completed: Optional[bool] = None

    @field_validator("day_of_week", "type", mode="before")
    @classmethod
    def _lowercase(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "enjoyment":
                return "enjoy"
        return value


class WeeklyMilestone(BaseModel):
    week_number: int = Field(..., ge=1, le=4)
    title: str = Field(..., min_length=1)
    description: str = ""
    focus_area: FocusArea
    difficulty_level: int = Field(..., ge=1, le=5)
    daily_tasks: List[DailyPlanTask] = Field(default_factory=list)

    @field_validator("focus_area", mode="before")
    @classmethod
    def _normalize_focus(cls, value):
        if isinstance(value, str):
            value = value.strip().lower()
            if value == "enjoy":
                return "enjoyment"
        return value


class DifficultyAdjustment(BaseModel):
    adjustment_type: AdjustmentType
    reason: str = ""
    new_difficulty_target: int = Field(..., ge=1, le=5)

    @field_validator("adjustment_type", mode="before")
    @classmethod
    def _lowercase(cls, value):
        return value.strip().lower() if isinstance(value, str) else value


class AdjustmentEntry(BaseModel):
    date: str
    type: AdjustmentType
    reason: str
    previous_difficulty: Optional[int] = None
    new_difficulty: Optional[int] = None


class WeeklyPlanRequest(BaseModel):
    week_number: int = Field(1, ge=1, le=4)
    force_regenerate: bool = False


class WeeklyPlanPayload(BaseModel):
    id: str
    user_id: str
    week_number: int
    start_date: date
    end_date: date
    user_goal: str
    milestones: List[WeeklyMilestone]
    current_milestone: int
    difficulty_level: int
    completion_rate: int
    adjustment_history: List[AdjustmentEntry]
    agent_reasoning: str
    created_at: str
    updated_at: str


class WeeklyPlanResponse(BaseModel):
    success: bool = True
    source: Literal["cached", "generated"]
    plan: WeeklyPlanPayload
    steps: int = 0
    iterations: int = 0
    request_id: str
