"""Helpers for working with users."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from easymode.db.models.user import User

DEFAULT_GOAL = "Build confidence through small daily actions"
DEFAULT_PAIN_POINT = "Not specified"
DEFAULT_TIME_BUDGET_MINUTES = 15


@dataclass
class UserContext:
    """Profile fields the coaching prompts need, with defaults for missing data."""

    user_id: str
    name: str
    goal: str
    pain_point: str
    time_budget_minutes: int
    level: int
    streak: int
    xp_total: int
    next_plan_difficulty: Optional[int]

    def prompt_block(self) -> str:
        return (
            f"User: {self.name} (level {self.level}, {self.streak}-day streak, {self.xp_total} XP)\n"
            f"Goal: {self.goal}\n"
            f"Pain point: {self.pain_point}\n"
            f"Daily time budget: {self.time_budget_minutes} minutes"
        )


def get_or_create_user(db: Session, user_id: str) -> User:
    """Fetch an existing user or create a new row safely."""
    user = db.get(User, user_id)
    if user:
        return user

    user = User(id=user_id, badges=[])
    db.add(user)
    try:
        db.flush()
        return user
    except IntegrityError:
        db.rollback()
        existing = db.get(User, user_id)
        if existing:
            return existing
        raise


def load_user_context(db: Session, user_id: str) -> UserContext:
    """Missing users or fields fall back to an empty-profile default."""
    user = db.get(User, user_id)
    if user is None:
        return UserContext(
            user_id=user_id,
            name="Friend",
            goal=DEFAULT_GOAL,
            pain_point=DEFAULT_PAIN_POINT,
            time_budget_minutes=DEFAULT_TIME_BUDGET_MINUTES,
            level=1,
            streak=0,
            xp_total=0,
            next_plan_difficulty=None,
        )
    return UserContext(
        user_id=user_id,
        name=user.display_name or "Friend",
        goal=user.goal or DEFAULT_GOAL,
        pain_point=user.pain_point or DEFAULT_PAIN_POINT,
        time_budget_minutes=user.time_budget_minutes or DEFAULT_TIME_BUDGET_MINUTES,
        level=user.level or 1,
        streak=user.streak or 0,
        xp_total=user.xp_total or 0,
        next_plan_difficulty=user.next_plan_difficulty,
    )
