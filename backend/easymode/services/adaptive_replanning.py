"""Weekly difficulty adjustment driven by plan completion."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from easymode.db.models.user import User
from easymode.db.models.user_task import UserTask
from easymode.db.models.weekly_plan import WeeklyPlan
from easymode.observability.metrics import log_metric
from easymode.services.weekly_planner import load_current_plan

logger = logging.getLogger(__name__)

SIMPLIFY_BELOW = 60
INCREASE_ABOVE = 80
MIN_DIFFICULTY = 1
MAX_DIFFICULTY = 5
DEFAULT_PLANNED_TASKS = 7


@dataclass
class ReplanDecision:
    adjustment_type: str
    previous_difficulty: int
    new_difficulty: int
    reason: str


@dataclass
class ReplanningRunResult:
    users_processed: int = 0
    plans_adjusted: int = 0
    users_skipped: int = 0
    users_failed: int = 0


def classify_completion(completion_rate: int, difficulty: int) -> ReplanDecision:
    """Below 60% eases off, above 80% steps up, anything between holds steady."""
    current = max(MIN_DIFFICULTY, min(MAX_DIFFICULTY, int(difficulty)))
    if completion_rate < SIMPLIFY_BELOW:
        return ReplanDecision(
            adjustment_type="simplify",
            previous_difficulty=current,
            new_difficulty=max(MIN_DIFFICULTY, current - 1),
            reason=f"Completion rate {completion_rate}% is below {SIMPLIFY_BELOW}%",
        )
    if completion_rate > INCREASE_ABOVE:
        return ReplanDecision(
            adjustment_type="increase",
            previous_difficulty=current,
            new_difficulty=min(MAX_DIFFICULTY, current + 1),
            reason=f"Completion rate {completion_rate}% is above {INCREASE_ABOVE}%",
        )
    return ReplanDecision(
        adjustment_type="maintain",
        previous_difficulty=current,
        new_difficulty=current,
        reason=f"Completion rate {completion_rate}% is on track",
    )


def planned_task_count(plan: WeeklyPlan) -> int:
    for milestone in plan.milestones or []:
        if milestone.get("week_number") == plan.current_milestone:
            tasks = milestone.get("daily_tasks") or []
            if tasks:
                return len(tasks)
    return DEFAULT_PLANNED_TASKS


def count_completed_tasks(db: Session, user_id: str, plan: WeeklyPlan) -> int:
    window_start = datetime.combine(plan.start_date, time.min, tzinfo=timezone.utc)
    window_end = datetime.combine(plan.end_date, time.min, tzinfo=timezone.utc) + timedelta(days=1)
    return (
        db.query(UserTask)
        .filter(
            UserTask.user_id == user_id,
            UserTask.completed.is_(True),
            UserTask.completed_at >= window_start,
            UserTask.completed_at < window_end,
        )
        .count()
    )


def replan_user(db: Session, user: User, now: Optional[datetime] = None) -> Optional[ReplanDecision]:
    """Returns None when the user has no plan covering this week."""
    now = now or datetime.now(timezone.utc)
    plan = load_current_plan(db, user.id, now=now)
    if plan is None:
        return None

    planned = planned_task_count(plan)
    completed = min(count_completed_tasks(db, user.id, plan), planned)
    completion_rate = int(completed / planned * 100 + 0.5)
    decision = classify_completion(completion_rate, plan.difficulty_level)

    history: List[Dict[str, Any]] = list(plan.adjustment_history or [])
    history.append(
        {
            "date": now.isoformat(),
            "type": decision.adjustment_type,
            "reason": decision.reason,
            "previous_difficulty": decision.previous_difficulty,
            "new_difficulty": decision.new_difficulty,
        }
    )
    plan.adjustment_history = history
    plan.completion_rate = completion_rate
    plan.difficulty_level = decision.new_difficulty
    plan.updated_at = now
    user.next_plan_difficulty = decision.new_difficulty
    db.commit()

    logger.info(
        "Replanned user %s: %s/%s tasks (%s%%) -> %s (difficulty %s -> %s)",
        user.id,
        completed,
        planned,
        completion_rate,
        decision.adjustment_type,
        decision.previous_difficulty,
        decision.new_difficulty,
    )
    return decision


def run_adaptive_replanning(db: Session, now: Optional[datetime] = None) -> ReplanningRunResult:
    now = now or datetime.now(timezone.utc)
    result = ReplanningRunResult()
    for user in db.query(User).order_by(User.id).all():
        user_id = user.id
        try:
            decision = replan_user(db, user, now=now)
        except Exception:
            db.rollback()
            logger.exception("Adaptive replanning failed for user %s", user_id)
            result.users_failed += 1
            continue
        if decision is None:
            result.users_skipped += 1
            continue
        result.users_processed += 1
        if decision.adjustment_type != "maintain":
            result.plans_adjusted += 1

    log_metric(
        "adaptive_replanning.run",
        result.plans_adjusted,
        metadata={
            "processed": result.users_processed,
            "skipped": result.users_skipped,
            "failed": result.users_failed,
        },
    )
    logger.info(
        "Adaptive replanning complete: processed=%s adjusted=%s skipped=%s failed=%s",
        result.users_processed,
        result.plans_adjusted,
        result.users_skipped,
        result.users_failed,
    )
    return result
