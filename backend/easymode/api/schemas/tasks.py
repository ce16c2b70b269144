"""Schemas for behavior profiles and task recommendations."""
from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel


class BehaviorProfilePayload(BaseModel):
    preferred_task_types: Dict[str, int]
    preferred_categories: Dict[str, int]
    success_rate_by_type: Dict[str, float]
    avg_completion_time: float
    total_tasks_completed: int
    recent_task_ids: List[str]
    peak_activity_hour: int


class BehaviorProfileResponse(BaseModel):
    user_id: str
    profile: BehaviorProfilePayload
    request_id: str


class ScoredTask(BaseModel):
    id: str
    title: str
    description: str
    type: str
    category: Optional[str] = None
    estimated_minutes: int
    score: int
    score_reasons: List[str]


class RecommendationsResponse(BaseModel):
    tasks: List[ScoredTask]
    current_hour: int
    request_id: str


class SmartRecommendationRequest(BaseModel):
    type: Optional[Literal["action", "audacity", "enjoy"]] = None


class SmartRecommendationResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    source: Literal["llm", "fallback"]
    task: ScoredTask
    reasoning: str
    request_id: str


class PersonalizedTaskResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    task_id: str
    title: str
    description: str
    original_title: str
    original_description: str
    request_id: str


class CoachDecisionResponse(BaseModel):
    success: bool
    error: Optional[str] = None
    source: Literal["llm", "fallback"]
    task: ScoredTask
    reasoning: str
    confidence: Optional[int] = None
    request_id: str
