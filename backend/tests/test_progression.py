from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from easymode.core.errors import NotFoundError
from easymode.db.models.analytics_event import AnalyticsEvent
from easymode.db.models.user import User
from easymode.db.models.user_task import UserTask
from easymode.db.models.weekly_plan import WeeklyPlan
from easymode.services.progression import (
    TaskCompletion,
    badges_to_award,
    base_xp_for,
    calculate_level,
    calculate_xp_with_streak,
    next_streak,
    record_audacity_attempt,
    record_task_completion,
)

from conftest import seed_user

NOW = datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


@pytest.mark.parametrize("streak", [0, 1, 2])
def test_streak_bonus_starts_on_day_three(streak) -> None:
    assert calculate_xp_with_streak(100, streak) == 100


def test_streak_bonus_grows_then_caps() -> None:
    assert calculate_xp_with_streak(100, 3) == 110
    assert calculate_xp_with_streak(100, 4) == 120
    assert calculate_xp_with_streak(100, 7) == 150
    assert calculate_xp_with_streak(100, 10) == 150
    assert calculate_xp_with_streak(100, 20) == 150


def test_level_boundaries() -> None:
    assert calculate_level(0) == 1
    assert calculate_level(499) == 1
    assert calculate_level(500) == 2
    assert calculate_level(1499) == 3


def test_audacity_success_earns_bonus() -> None:
    assert base_xp_for("action", None) == 100
    assert base_xp_for("audacity", "partial") == 200
    assert base_xp_for("audacity", "success") == 300


def test_next_streak_rules() -> None:
    assert next_streak(0, None, NOW) == 1
    assert next_streak(4, NOW - timedelta(hours=2), NOW) == 4
    assert next_streak(4, NOW - timedelta(days=1), NOW) == 5
    assert next_streak(4, NOW - timedelta(days=3), NOW) == 1


def test_badges_only_awarded_once() -> None:
    awards = badges_to_award([], level=5, task_type="audacity", streak=7)
    assert awards == ["first_step", "level_5", "bold_beginner", "week_warrior"]
    assert badges_to_award(awards, level=5, task_type="audacity", streak=7) == []


def test_streak_of_four_pushes_user_to_level_two(db) -> None:
    seed_user(db, xp_total=380, level=1, streak=4, last_activity=NOW - timedelta(days=1))

    result = record_task_completion(db, "user-1", TaskCompletion(task_id="t1", type="action"), now=NOW)

    assert result.xp_awarded == 120
    assert result.xp_total == 500
    assert result.level == 2
    assert result.streak == 5
    user = db.get(User, "user-1")
    assert user.xp_total == 500
    assert user.level == 2
    stored = db.get(UserTask, result.user_task_id)
    assert stored.xp_earned == 120


def test_completion_records_badges_and_analytics(db) -> None:
    seed_user(db)

    result = record_task_completion(
        db,
        "user-1",
        TaskCompletion(task_id="a1", type="audacity", outcome="success"),
        now=NOW,
    )

    assert result.xp_awarded == 300
    assert set(result.badges_awarded) == {"first_step", "bold_beginner"}
    user = db.get(User, "user-1")
    assert {badge["badgeId"] for badge in user.badges} == {"first_step", "bold_beginner"}
    events = {event.event for event in db.query(AnalyticsEvent).all()}
    assert events == {"streak_increase", "badge_earned"}


def test_incomplete_task_earns_nothing(db) -> None:
    seed_user(db, xp_total=40)

    result = record_task_completion(db, "user-1", TaskCompletion(task_id="t1", type="action", completed=False), now=NOW)

    assert result.xp_awarded == 0
    assert result.xp_total == 40
    assert db.query(UserTask).count() == 1


def test_missing_user_is_reported(db) -> None:
    with pytest.raises(NotFoundError):
        record_task_completion(db, "ghost", TaskCompletion(task_id=None, type="action"), now=NOW)
    with pytest.raises(NotFoundError):
        record_audacity_attempt(db, "ghost", outcome="fail")


def test_audacity_attempt_is_stored(db) -> None:
    seed_user(db)

    attempt = record_audacity_attempt(db, "user-1", outcome="partial", task_id="a1", notes="Voice shook", now=NOW)

    assert attempt.id
    assert attempt.outcome == "partial"


def test_completion_ticks_off_todays_planned_task(db) -> None:
    seed_user(db)
    tasks = [
        {"day_of_week": "monday", "title": "Inbox zero", "type": "action", "estimated_minutes": 5, "difficulty": 2},
        {"day_of_week": "wednesday", "title": "Say hi", "type": "audacity", "estimated_minutes": 5, "difficulty": 2},
        {"day_of_week": "wednesday", "title": "Tidy desk", "type": "action", "estimated_minutes": 5, "difficulty": 2},
    ]
    plan = WeeklyPlan(
        user_id="user-1",
        week_number=1,
        start_date=date(2026, 3, 9),
        end_date=date(2026, 3, 15),
        user_goal="goal",
        milestones=[
            {"week_number": 1, "title": "W1", "description": "", "focus_area": "action", "difficulty_level": 2, "daily_tasks": tasks}
        ],
        current_milestone=1,
        difficulty_level=3,
        adjustment_history=[],
    )
    db.add(plan)
    db.commit()

    first = record_task_completion(db, "user-1", TaskCompletion(task_id=None, type="action"), now=NOW)
    second = record_task_completion(db, "user-1", TaskCompletion(task_id=None, type="action"), now=NOW)

    assert first.plan_task_marked is True
    assert second.plan_task_marked is False
    db.refresh(plan)
    marked = [task["title"] for task in plan.milestones[0]["daily_tasks"] if task.get("completed")]
    assert marked == ["Tidy desk"]


def test_completion_without_a_plan_marks_nothing(db) -> None:
    seed_user(db)

    result = record_task_completion(db, "user-1", TaskCompletion(task_id=None, type="enjoy"), now=NOW)

    assert result.plan_task_marked is False
