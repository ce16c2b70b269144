"""Task completion, audacity attempts and progress endpoints."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from easymode.api.deps import require_user_id
from easymode.api.schemas.progress import (
    AudacityAttemptRequest,
    AudacityAttemptResponse,
    BadgePayload,
    ProgressResponse,
    TaskCompletionRequest,
    TaskCompletionResponse,
)
from easymode.db.deps import get_db
from easymode.observability.metrics import log_metric
from easymode.observability.tracing import record_output, trace
from easymode.services.progression import (
    XP_PER_LEVEL,
    TaskCompletion,
    record_audacity_attempt,
    record_task_completion,
)
from easymode.services.user_service import get_or_create_user

router = APIRouter()


@router.post("/progress/tasks", response_model=TaskCompletionResponse, tags=["progress"])
def complete_task(
    request: Request,
    payload: TaskCompletionRequest,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> TaskCompletionResponse:
    request_id = getattr(request.state, "request_id", None)
    get_or_create_user(db, user_id)
    with trace(
        "progress.task_complete",
        metadata={"task_type": payload.type, "completed": payload.completed},
        user_id=user_id,
        request_id=request_id,
        input=payload.model_dump(),
    ) as opik_trace:
        result = record_task_completion(db, user_id, TaskCompletion(**payload.model_dump()))
        record_output(opik_trace, {"xp_awarded": result.xp_awarded, "level": result.level, "streak": result.streak})

    log_metric("progress.xp_awarded", result.xp_awarded, metadata={"task_type": payload.type})
    return TaskCompletionResponse(
        user_task_id=result.user_task_id,
        xp_awarded=result.xp_awarded,
        xp_total=result.xp_total,
        level=result.level,
        streak=result.streak,
        badges_awarded=result.badges_awarded,
        plan_task_marked=result.plan_task_marked,
        request_id=request_id or "",
    )


@router.post(
    "/progress/audacity-attempts",
    response_model=AudacityAttemptResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["progress"],
)
def log_audacity_attempt(
    request: Request,
    payload: AudacityAttemptRequest,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> AudacityAttemptResponse:
    request_id = getattr(request.state, "request_id", None)
    get_or_create_user(db, user_id)
    attempt = record_audacity_attempt(
        db,
        user_id,
        outcome=payload.outcome,
        task_id=payload.task_id,
        notes=payload.notes,
    )
    log_metric("progress.audacity_attempt", 1, metadata={"outcome": payload.outcome})
    return AudacityAttemptResponse(
        id=attempt.id,
        outcome=attempt.outcome,
        attempt_date=attempt.attempt_date,
        request_id=request_id or "",
    )


@router.get("/progress", response_model=ProgressResponse, tags=["progress"])
def get_progress(
    request: Request,
    user_id: str = Depends(require_user_id),
    db: Session = Depends(get_db),
) -> ProgressResponse:
    request_id = getattr(request.state, "request_id", None)
    user = get_or_create_user(db, user_id)
    db.commit()
    xp_total = user.xp_total or 0
    return ProgressResponse(
        user_id=user_id,
        xp_total=xp_total,
        level=user.level or 1,
        xp_into_level=xp_total % XP_PER_LEVEL,
        xp_for_next_level=XP_PER_LEVEL,
        streak=user.streak or 0,
        last_activity=user.last_activity,
        badges=[
            BadgePayload(badge_id=badge["badgeId"], earned_at=badge.get("earnedAt"))
            for badge in user.badges or []
            if isinstance(badge, dict) and badge.get("badgeId")
        ],
        request_id=request_id or "",
    )
