"""Catalog lookups combined with behavior-based ranking."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, time, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from easymode.db.models.task import Task
from easymode.db.models.user_task import UserTask
from easymode.services.behavior_profiler import BehaviorProfile, SqlHistoryProvider, analyze_behavior
from easymode.services.task_scorer import TaskCandidate, candidates_from_catalog, score_tasks


@dataclass
class Recommendations:
    profile: BehaviorProfile
    candidates: List[TaskCandidate]
    current_hour: int


def list_active_tasks(db: Session, task_type: Optional[str] = None) -> List[Task]:
    query = db.query(Task).filter(Task.active.is_(True))
    if task_type:
        query = query.filter(Task.type == task_type)
    return query.order_by(Task.id).all()


def get_task(db: Session, task_id: str) -> Task | None:
    return db.get(Task, task_id)


def recommend_tasks(
    db: Session,
    user_id: str,
    *,
    now: Optional[datetime] = None,
    task_type: Optional[str] = None,
    limit: Optional[int] = None,
) -> Recommendations:
    now = now or datetime.now(timezone.utc)
    profile = analyze_behavior(user_id, SqlHistoryProvider(db), now=now)
    ranked = score_tasks(candidates_from_catalog(list_active_tasks(db, task_type)), profile, now.hour)
    if limit is not None:
        ranked = ranked[:limit]
    return Recommendations(profile=profile, candidates=ranked, current_hour=now.hour)


def tasks_completed_today(db: Session, user_id: str, now: Optional[datetime] = None) -> int:
    now = now or datetime.now(timezone.utc)
    start_of_day = datetime.combine(now.date(), time.min, tzinfo=timezone.utc)
    return (
        db.query(UserTask)
        .filter(
            UserTask.user_id == user_id,
            UserTask.completed.is_(True),
            UserTask.completed_at >= start_of_day,
        )
        .count()
    )
