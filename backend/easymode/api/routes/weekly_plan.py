"""Weekly plan generation endpoints."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from easymode.api.deps import require_user_id
from easymode.api.schemas.weekly_plan import (
    WeeklyPlanPayload,
    WeeklyPlanRequest,
    WeeklyPlanResponse,
)
from easymode.db.deps import get_db
from easymode.db.models.weekly_plan import WeeklyPlan
from easymode.observability.metrics import log_metric
from easymode.services.llm import LLMClient, get_llm_client
from easymode.services.weekly_planner import PlanningAgent, load_current_plan

router = APIRouter()


def plan_to_payload(plan: WeeklyPlan) -> WeeklyPlanPayload:
    return WeeklyPlanPayload(
        id=plan.id,
        user_id=plan.user_id,
        week_number=plan.week_number,
        start_date=plan.start_date,
        end_date=plan.end_date,
        user_goal=plan.user_goal or "",
        milestones=plan.milestones or [],
        current_milestone=plan.current_milestone,
        difficulty_level=plan.difficulty_level,
        completion_rate=plan.completion_rate or 0,
        adjustment_history=plan.adjustment_history or [],
        agent_reasoning=plan.agent_reasoning or "",
        created_at=plan.created_at.isoformat() if plan.created_at else "",
        updated_at=plan.updated_at.isoformat() if plan.updated_at else "",
    )


@router.post("/weekly-plan", response_model=WeeklyPlanResponse, tags=["weekly-plan"])
def generate_weekly_plan(
    request: Request,
    payload: WeeklyPlanRequest,
    user_id: str = Depends(require_user_id),
    llm: LLMClient = Depends(get_llm_client),
    db: Session = Depends(get_db),
) -> WeeklyPlanResponse:
    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    result = PlanningAgent(db, llm).run(
        user_id,
        week_number=payload.week_number,
        force_regenerate=payload.force_regenerate,
        request_id=request_id,
    )
    latency_ms = (perf_counter() - start) * 1000
    log_metric("weekly_plan.generate.latency_ms", latency_ms, metadata={"source": result.source})
    log_metric("weekly_plan.generate.steps", result.steps, metadata={"source": result.source})
    return WeeklyPlanResponse(
        source=result.source,
        plan=plan_to_payload(result.plan),
        steps=result.steps,
        iterations=result.iterations,
        request_id=request_id or "",
    )


@router.get("/weekly-plan/current", response_model=WeeklyPlanResponse, tags=["weekly-plan"])
def get_current_weekly_plan(
    request: Request,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> WeeklyPlanResponse:
    request_id = getattr(request.state, "request_id", None)
    plan = load_current_plan(db, user_id)
    if plan is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No weekly plan for this week")
    return WeeklyPlanResponse(source="cached", plan=plan_to_payload(plan), request_id=request_id or "")
