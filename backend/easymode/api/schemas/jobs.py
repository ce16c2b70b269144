"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Dict, Literal

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["daily_nudge", "proactive_nudge", "adaptive_replanning"]


class JobRunResponse(BaseModel):
    job: str
    counts: Dict[str, int]
    request_id: str
