"""XP, level, streak and badge bookkeeping for completed tasks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy.orm import Session

from easymode.core.errors import NotFoundError
from easymode.db.models.analytics_event import AnalyticsEvent
from easymode.db.models.audacity_attempt import AudacityAttempt
from easymode.db.models.user import User
from easymode.db.models.user_task import UserTask
from easymode.db.types import as_utc
from easymode.services.weekly_planner import load_current_plan

logger = logging.getLogger(__name__)

XP_TASK_COMPLETE = 100
XP_AUDACITY_ATTEMPT = 200
XP_AUDACITY_SUCCESS = 100
XP_PER_LEVEL = 500
STREAK_BONUS_START_DAY = 3
STREAK_MULTIPLIER = 0.10
STREAK_MULTIPLIER_CAP = 0.5

LEVEL_BADGES = {5: "level_5", 10: "level_10", 25: "level_25", 50: "level_50"}
WEEK_WARRIOR_STREAK = 7


@dataclass
class TaskCompletion:
    task_id: Optional[str]
    type: str
    category: Optional[str] = None
    duration: Optional[int] = None
    completed: bool = True
    outcome: Optional[str] = None


@dataclass
class CompletionResult:
    xp_awarded: int
    xp_total: int
    level: int
    streak: int
    badges_awarded: List[str] = field(default_factory=list)
    user_task_id: Optional[str] = None
    plan_task_marked: bool = False


def calculate_xp_with_streak(base_xp: int, streak: int) -> int:
    """Apply the streak bonus: +10% per day from day 3, capped at +50%."""
    if streak < STREAK_BONUS_START_DAY:
        return base_xp
    bonus_days = streak - STREAK_BONUS_START_DAY + 1
    multiplier = min(bonus_days * STREAK_MULTIPLIER, STREAK_MULTIPLIER_CAP)
    # Round half up like the mobile client does; round() would bank to even.
    return int(base_xp * (1 + multiplier) + 0.5)


def calculate_level(xp_total: int) -> int:
    return xp_total // XP_PER_LEVEL + 1


def base_xp_for(task_type: str, outcome: Optional[str]) -> int:
    if task_type == "audacity":
        xp = XP_AUDACITY_ATTEMPT
        if outcome == "success":
            xp += XP_AUDACITY_SUCCESS
        return xp
    return XP_TASK_COMPLETE


def next_streak(current: int, last_activity: Optional[datetime], now: datetime) -> int:
    """Same day keeps the streak, the next calendar day extends it, any gap resets to 1."""
    last = as_utc(last_activity)
    if last is None:
        return 1
    days = (now.date() - last.date()).days
    if days == 0:
        return max(current, 1)
    if days == 1:
        return current + 1
    return 1


def badges_to_award(
    earned: Iterable[str],
    *,
    level: int,
    task_type: Optional[str],
    streak: int,
) -> List[str]:
    owned = set(earned)
    awards: List[str] = []
    if "first_step" not in owned:
        awards.append("first_step")
    for threshold, badge_id in LEVEL_BADGES.items():
        if level >= threshold and badge_id not in owned:
            awards.append(badge_id)
    if task_type == "audacity" and "bold_beginner" not in owned:
        awards.append("bold_beginner")
    if streak >= WEEK_WARRIOR_STREAK and "week_warrior" not in owned:
        awards.append("week_warrior")
    return awards


def mark_plan_task_completed(db: Session, user_id: str, task_type: str, now: datetime) -> bool:
    """Tick off the first open task of this type planned for today in the current week's milestone."""
    plan = load_current_plan(db, user_id, now=now)
    if plan is None:
        return False
    today = now.strftime("%A").lower()
    milestones = [dict(milestone) for milestone in plan.milestones or []]
    for milestone in milestones:
        if milestone.get("week_number") != plan.current_milestone:
            continue
        tasks = [dict(task) for task in milestone.get("daily_tasks") or []]
        for task in tasks:
            if task.get("day_of_week") == today and task.get("type") == task_type and not task.get("completed"):
                task["completed"] = True
                milestone["daily_tasks"] = tasks
                # Reassign so the JSON column is flagged dirty.
                plan.milestones = milestones
                plan.updated_at = now
                return True
    return False

def record_task_completion(
    db: Session,
    user_id: str,
    completion: TaskCompletion,
    now: Optional[datetime] = None,
) -> CompletionResult:
    """
    Store a task record and, when it is completed, award XP, level, streak and badges.

    XP uses the streak the user held before this completion; the streak is then
    advanced from the previous activity date.
    """
    now = now or datetime.now(timezone.utc)
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User not found", details={"user_id": user_id})

    record = UserTask(
        user_id=user_id,
        task_id=completion.task_id,
        type=completion.type,
        category=completion.category,
        duration=completion.duration,
        completed=completion.completed,
        outcome=completion.outcome,
        completed_at=now if completion.completed else None,
    )
    db.add(record)

    if not completion.completed:
        db.commit()
        return CompletionResult(
            xp_awarded=0,
            xp_total=user.xp_total or 0,
            level=user.level or 1,
            streak=user.streak or 0,
            user_task_id=record.id,
        )

    current_streak = user.streak or 0
    xp = calculate_xp_with_streak(base_xp_for(completion.type, completion.outcome), current_streak)
    record.xp_earned = xp

    xp_total = (user.xp_total or 0) + xp
    level = calculate_level(xp_total)
    streak = next_streak(current_streak, user.last_activity, now)

    user.xp_total = xp_total
    user.level = level
    if streak != current_streak:
        user.streak = streak
        db.add(AnalyticsEvent(event="streak_increase", user_id=user_id, payload={"newStreak": streak}))
    user.last_activity = now
    plan_task_marked = mark_plan_task_completed(db, user_id, completion.type, now)

    existing = list(user.badges or [])
    awarded = badges_to_award(
        (badge.get("badgeId") for badge in existing if isinstance(badge, dict)),
        level=level,
        task_type=completion.type,
        streak=streak,
    )
    if awarded:
        # Reassign so the JSON column is flagged dirty.
        user.badges = existing + [{"badgeId": badge_id, "earnedAt": now.isoformat()} for badge_id in awarded]
        for badge_id in awarded:
            db.add(AnalyticsEvent(event="badge_earned", user_id=user_id, payload={"badgeId": badge_id}))

    db.add(user)
    db.commit()
    logger.info("Awarded %s XP to user %s. New total: %s", xp, user_id, xp_total)
    return CompletionResult(
        xp_awarded=xp,
        xp_total=xp_total,
        level=level,
        streak=streak,
        badges_awarded=awarded,
        user_task_id=record.id,
        plan_task_marked=plan_task_marked,
    )


def record_audacity_attempt(
    db: Session,
    user_id: str,
    *,
    outcome: str,
    task_id: Optional[str] = None,
    notes: Optional[str] = None,
    now: Optional[datetime] = None,
) -> AudacityAttempt:
    if not db.get(User, user_id):
        raise NotFoundError("User not found", details={"user_id": user_id})
    attempt = AudacityAttempt(
        user_id=user_id,
        task_id=task_id,
        outcome=outcome,
        notes=notes,
        attempt_date=now or datetime.now(timezone.utc),
    )
    db.add(attempt)
    db.commit()
    db.refresh(attempt)
    return attempt
