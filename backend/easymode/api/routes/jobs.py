"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from dataclasses import asdict
from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from easymode.api.schemas.jobs import JobRunRequest, JobRunResponse
from easymode.core.config import settings
from easymode.db.deps import get_db
from easymode.observability.metrics import log_metric
from easymode.observability.tracing import trace
from easymode.services.job_runner import (
    run_weekly_replanning,
    send_daily_nudges,
    send_proactive_nudges,
)
from easymode.services.llm import get_llm_client

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "notifications_enabled": settings.notifications_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "daily_nudge_time": f"{settings.daily_nudge_hour:02d}:00",
                "proactive_nudge_hours": settings.proactive_nudge_hours_list,
                "replanning_day": settings.weekly_job_day,
                "replanning_time": f"{settings.weekly_job_hour:02d}:{settings.weekly_job_minute:02d}",
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    start = perf_counter()
    with trace("jobs.run_now", metadata={"job": payload.job}, request_id=request_id):
        if payload.job == "daily_nudge":
            result = send_daily_nudges(db)
        elif payload.job == "proactive_nudge":
            result = send_proactive_nudges(db, get_llm_client())
        else:
            result = run_weekly_replanning(db)

    log_metric("jobs.run_now.latency_ms", (perf_counter() - start) * 1000, metadata={"job": payload.job})
    return JobRunResponse(job=payload.job, counts=asdict(result), request_id=request_id or "")
