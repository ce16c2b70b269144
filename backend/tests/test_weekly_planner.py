from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from easymode.core.errors import LLMServiceError, PlanGenerationError
from easymode.db.models.weekly_plan import WeeklyPlan
from easymode.services.weekly_planner import PlanState, PlanningAgent, week_bounds

from conftest import FakeLLM, seed_user, tool_reply

NOW = datetime(2026, 3, 11, 10, 0, tzinfo=timezone.utc)


def _milestone(week: int, focus: str = "action", difficulty: int = 2) -> tuple:
    return (
        "create_milestone",
        {
            "week_number": week,
            "title": f"Week {week}",
            "description": "Small steps",
            "focus_area": focus,
            "difficulty_level": difficulty,
        },
    )


def _daily(day: str, task_type: str = "action") -> tuple:
    return (
        "create_daily_task",
        {
            "day_of_week": day,
            "title": f"{day} step",
            "type": task_type,
            "estimated_minutes": 10,
            "difficulty": 2,
            "why_today": "Keeps momentum",
        },
    )


def _full_script(adjust: bool = True) -> list:
    second = [_daily("monday"), _daily("Tuesday", "Enjoyment")]
    if adjust:
        second.append(
            ("adjust_difficulty", {"adjustment_type": "simplify", "reason": "Low completion", "new_difficulty_target": 2})
        )
    return [
        tool_reply(_milestone(1), _milestone(2, "audacity"), _milestone(3, "enjoy"), _milestone(4)),
        tool_reply(*second),
        "Plan built around small social wins.",
    ]


def test_week_bounds_run_monday_to_sunday() -> None:
    assert week_bounds(NOW) == (date(2026, 3, 9), date(2026, 3, 15))


def test_generates_and_persists_plan(db) -> None:
    seed_user(db, goal="Speak up at work")
    llm = FakeLLM(_full_script())

    result = PlanningAgent(db, llm).run("user-1", week_number=1, now=NOW)

    assert result.source == "generated"
    assert result.steps == 7
    assert result.iterations == 3
    assert result.daily_tasks_created == 2
    assert result.states == [
        PlanState.GATHER_CONTEXT,
        PlanState.MILESTONE_LOOP,
        PlanState.ASSIGN_CURRENT_WEEK_TASKS,
        PlanState.PERSIST,
        PlanState.DONE,
    ]
    plan = result.plan
    assert plan.user_goal == "Speak up at work"
    assert [m["week_number"] for m in plan.milestones] == [1, 2, 3, 4]
    assert plan.milestones[2]["focus_area"] == "enjoyment"
    assert [t["day_of_week"] for t in plan.milestones[0]["daily_tasks"]] == ["monday", "tuesday"]
    assert plan.milestones[0]["daily_tasks"][1]["type"] == "enjoy"
    assert plan.difficulty_level == 2
    assert plan.adjustment_history[0]["type"] == "simplify"
    assert plan.start_date == date(2026, 3, 9)
    assert plan.agent_reasoning == "Plan built around small social wins."
    assert llm.calls[0]["tools"]


def test_cached_plan_is_returned_without_calling_model(db) -> None:
    seed_user(db)
    PlanningAgent(db, FakeLLM(_full_script())).run("user-1", now=NOW)
    idle = FakeLLM()

    cached = PlanningAgent(db, idle).run("user-1", now=NOW)

    assert cached.source == "cached"
    assert cached.states == [PlanState.GATHER_CONTEXT, PlanState.DONE]
    assert idle.calls == []


def test_force_regenerate_writes_a_new_plan(db) -> None:
    seed_user(db)
    PlanningAgent(db, FakeLLM(_full_script())).run("user-1", now=NOW)

    result = PlanningAgent(db, FakeLLM(_full_script(adjust=False))).run("user-1", force_regenerate=True, now=NOW)

    assert result.source == "generated"
    assert db.query(WeeklyPlan).count() == 2


def test_difficulty_falls_back_to_stashed_value(db) -> None:
    seed_user(db, next_plan_difficulty=4)

    result = PlanningAgent(db, FakeLLM(_full_script(adjust=False))).run("user-1", now=NOW)

    assert result.plan.difficulty_level == 4
    assert result.plan.adjustment_history == []


def test_difficulty_defaults_to_three(db) -> None:
    result = PlanningAgent(db, FakeLLM(_full_script(adjust=False))).run("new-user", now=NOW)

    assert result.plan.difficulty_level == 3


def test_second_adjustment_is_ignored(db) -> None:
    seed_user(db)
    def adjust(target):
        return ("adjust_difficulty", {"adjustment_type": "increase", "reason": "r", "new_difficulty_target": target})

    llm = FakeLLM([tool_reply(_milestone(1), adjust(4), adjust(5)), "done"])

    result = PlanningAgent(db, llm).run("user-1", now=NOW)

    assert result.plan.difficulty_level == 4
    assert len(result.plan.adjustment_history) == 1


def test_tasks_without_matching_milestone_are_dropped(db) -> None:
    seed_user(db)
    llm = FakeLLM([tool_reply(_milestone(1), _daily("monday")), "done"])

    result = PlanningAgent(db, llm).run("user-1", week_number=2, now=NOW)

    assert result.steps == 2
    assert result.daily_tasks_created == 1
    assert all(not m["daily_tasks"] for m in result.plan.milestones)


def test_runaway_model_is_capped(db) -> None:
    seed_user(db)
    llm = FakeLLM(default=tool_reply(_milestone(1)))

    result = PlanningAgent(db, llm).run("user-1", now=NOW)

    assert result.iterations == 10
    assert len(llm.calls) == 10
    assert len(result.plan.milestones) == 1
    assert "stopped after 10 steps" in result.plan.agent_reasoning


def test_model_failure_surfaces_as_plan_error(db) -> None:
    seed_user(db)
    llm = FakeLLM([LLMServiceError("upstream down")])

    with pytest.raises(PlanGenerationError):
        PlanningAgent(db, llm).run("user-1", now=NOW)
    assert db.query(WeeklyPlan).count() == 0
