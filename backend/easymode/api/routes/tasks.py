"""Behavior profile, task recommendation and Coach Decides endpoints."""
from __future__ import annotations

from time import perf_counter
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from easymode.api.deps import require_user_id
from easymode.api.schemas.tasks import (
    BehaviorProfilePayload,
    BehaviorProfileResponse,
    CoachDecisionResponse,
    PersonalizedTaskResponse,
    RecommendationsResponse,
    ScoredTask,
    SmartRecommendationRequest,
    SmartRecommendationResponse,
)
from easymode.db.deps import get_db
from easymode.observability.metrics import log_metric
from easymode.observability.tracing import trace
from easymode.services.behavior_profiler import SqlHistoryProvider, analyze_behavior
from easymode.services.coach import coach_decides
from easymode.services.coaching import personalize_task, smart_recommendation
from easymode.services.llm import LLMClient, get_llm_client
from easymode.services.task_catalog import recommend_tasks

router = APIRouter()


@router.get("/behavior/profile", response_model=BehaviorProfileResponse, tags=["tasks"])
def get_behavior_profile(
    request: Request,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> BehaviorProfileResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("behavior.profile", user_id=user_id, request_id=request_id):
        profile = analyze_behavior(user_id, SqlHistoryProvider(db))
    return BehaviorProfileResponse(
        user_id=user_id,
        profile=BehaviorProfilePayload(**profile.to_dict()),
        request_id=request_id or "",
    )


@router.get("/tasks/recommendations", response_model=RecommendationsResponse, tags=["tasks"])
def get_recommendations(
    request: Request,
    type: Optional[Literal["action", "audacity", "enjoy"]] = Query(None, description="Filter by task type"),
    limit: int = Query(10, ge=1, le=50),
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> RecommendationsResponse:
    request_id = getattr(request.state, "request_id", None)
    with trace("tasks.recommendations", metadata={"type": type, "limit": limit}, user_id=user_id, request_id=request_id):
        recommendations = recommend_tasks(db, user_id, task_type=type, limit=limit)
    return RecommendationsResponse(
        tasks=[ScoredTask(**candidate.to_dict()) for candidate in recommendations.candidates],
        current_hour=recommendations.current_hour,
        request_id=request_id or "",
    )


@router.post("/tasks/smart-recommendation", response_model=SmartRecommendationResponse, tags=["tasks"])
def post_smart_recommendation(
    request: Request,
    payload: SmartRecommendationRequest,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> SmartRecommendationResponse:
    request_id = getattr(request.state, "request_id", None)
    result = smart_recommendation(db, llm, user_id, task_type=payload.type, request_id=request_id)
    log_metric("tasks.smart_recommendation.success", 1 if result.success else 0)
    return SmartRecommendationResponse(
        success=result.success,
        error=result.error,
        source=result.source,
        task=ScoredTask(**result.task.to_dict()),
        reasoning=result.reasoning,
        request_id=request_id or "",
    )


@router.post("/tasks/{task_id}/personalize", response_model=PersonalizedTaskResponse, tags=["tasks"])
def post_personalize_task(
    request: Request,
    task_id: str,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> PersonalizedTaskResponse:
    request_id = getattr(request.state, "request_id", None)
    result = personalize_task(db, llm, user_id, task_id, request_id=request_id)
    log_metric("tasks.personalize.success", 1 if result.success else 0)
    return PersonalizedTaskResponse(
        success=result.success,
        error=result.error,
        task_id=result.task_id,
        title=result.title,
        description=result.description,
        original_title=result.original_title,
        original_description=result.original_description,
        request_id=request_id or "",
    )


@router.post("/coach/decide", response_model=CoachDecisionResponse, tags=["coach"])
def post_coach_decide(
    request: Request,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> CoachDecisionResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    decision = coach_decides(db, llm, user_id, request_id=request_id)
    log_metric("coach.decide.success", 1 if decision.success else 0, metadata={"source": decision.source})
    log_metric("coach.decide.latency_ms", (perf_counter() - start) * 1000)
    return CoachDecisionResponse(
        success=decision.success,
        error=decision.error,
        source=decision.source,
        task=ScoredTask(**decision.task.to_dict()),
        reasoning=decision.reasoning,
        confidence=decision.confidence,
        request_id=request_id or "",
    )
