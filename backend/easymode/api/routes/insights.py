"""Daily insight and resilience support endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from easymode.api.deps import require_user_id
from easymode.api.schemas.insights import DailyInsightResponse, ResilienceRequest, ResilienceResponse
from easymode.db.deps import get_db
from easymode.observability.metrics import log_metric
from easymode.services.coaching import generate_daily_insight, resilience_support
from easymode.services.llm import LLMClient, get_llm_client

router = APIRouter()


@router.get("/insights/daily", response_model=DailyInsightResponse, tags=["insights"])
def get_daily_insight(
    request: Request,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> DailyInsightResponse:
    request_id = getattr(request.state, "request_id", None)
    result = generate_daily_insight(db, llm, user_id, request_id=request_id)
    log_metric("insights.daily.success", 1 if result.success else 0)
    return DailyInsightResponse(
        success=result.success,
        error=result.error,
        insight=result.insight,
        request_id=request_id or "",
    )


@router.post("/resilience", response_model=ResilienceResponse, tags=["insights"])
def post_resilience(
    request: Request,
    payload: ResilienceRequest,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> ResilienceResponse:
    request_id = getattr(request.state, "request_id", None)
    result = resilience_support(
        db,
        llm,
        user_id,
        outcome=payload.outcome,
        task_title=payload.task_title,
        notes=payload.notes,
        request_id=request_id,
    )
    log_metric("insights.resilience.success", 1 if result.success else 0)
    return ResilienceResponse(
        success=result.success,
        error=result.error,
        message=result.message,
        request_id=request_id or "",
    )
