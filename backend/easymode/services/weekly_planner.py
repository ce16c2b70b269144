"""Agentic weekly planner: goal + behavior profile -> 4-week plan via tool calls."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy.orm import Session

from easymode.api.schemas.weekly_plan import (
    AdjustmentEntry,
    DailyPlanTask,
    DifficultyAdjustment,
    WeeklyMilestone,
)
from easymode.core.errors import LLMOutputError, LLMServiceError, PlanGenerationError
from easymode.db.models.weekly_plan import WeeklyPlan
from easymode.observability.evaluation import track_prompt_experiment
from easymode.observability.tracing import record_output, trace
from easymode.services.agent_loop import MAX_AGENT_ITERATIONS, ToolRegistry, run_tool_loop
from easymode.services.behavior_profiler import BehaviorProfile, SqlHistoryProvider, analyze_behavior
from easymode.services.llm import LLMClient
from easymode.services.user_service import UserContext, get_or_create_user, load_user_context

logger = logging.getLogger(__name__)

DEFAULT_DIFFICULTY = 3
PLAN_WEEKS = 4
HISTORY_PLANS = 4


class PlanState(str, Enum):
    GATHER_CONTEXT = "gather_context"
    MILESTONE_LOOP = "milestone_loop"
    ASSIGN_CURRENT_WEEK_TASKS = "assign_current_week_tasks"
    PERSIST = "persist"
    DONE = "done"


@dataclass
class PlanAccumulator:
    milestones: Dict[int, WeeklyMilestone] = field(default_factory=dict)
    daily_tasks: List[DailyPlanTask] = field(default_factory=list)
    adjustment: Optional[DifficultyAdjustment] = None


@dataclass
class PlanGenerationResult:
    plan: WeeklyPlan
    source: str
    steps: int = 0
    iterations: int = 0
    daily_tasks_created: int = 0
    states: List[PlanState] = field(default_factory=list)


MILESTONE_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "week_number": {"type": "integer", "minimum": 1, "maximum": 4},
        "title": {"type": "string"},
        "description": {"type": "string"},
        "focus_area": {"type": "string", "enum": ["action", "audacity", "enjoyment"]},
        "difficulty_level": {"type": "integer", "minimum": 1, "maximum": 5},
    },
    "required": ["week_number", "title", "description", "focus_area", "difficulty_level"],
}

DAILY_TASK_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "day_of_week": {
            "type": "string",
            "enum": ["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"],
        },
        "title": {"type": "string"},
        "type": {"type": "string", "enum": ["action", "audacity", "enjoy"]},
        "estimated_minutes": {"type": "integer", "minimum": 1},
        "difficulty": {"type": "integer", "minimum": 1, "maximum": 5},
        "why_today": {"type": "string"},
    },
    "required": ["day_of_week", "title", "type", "estimated_minutes", "difficulty", "why_today"],
}

ADJUST_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "adjustment_type": {"type": "string", "enum": ["simplify", "maintain", "increase"]},
        "reason": {"type": "string"},
        "new_difficulty_target": {"type": "integer", "minimum": 1, "maximum": 5},
    },
    "required": ["adjustment_type", "reason", "new_difficulty_target"],
}

SYSTEM_PROMPT = (
    "You are the Easy Mode Planner Agent. You build 4-week confidence-building plans out of three task types: "
    "action (small concrete steps), audacity (bold social or personal stretches) and enjoy (restorative, fun). "
    "Work only through the tools:\n"
    "1. Call create_milestone exactly 4 times, once per week (week_number 1-4), ramping difficulty gradually.\n"
    "2. Call create_daily_task once for each day of the week being planned (7 tasks, monday to sunday), "
    "respecting the user's daily time budget.\n"
    "3. Call adjust_difficulty at most once, only if the completion history shows the user is overwhelmed "
    "or under-challenged.\n"
    "When you are done, reply with a short explanation of your reasoning and no further tool calls."
)


def week_bounds(now: datetime) -> Tuple[date, date]:
    """Monday-Sunday window containing ``now``."""
    today = now.date()
    start = today - timedelta(days=today.weekday())
    return start, start + timedelta(days=6)


def find_cached_plan(db: Session, user_id: str, week_number: int, week_start: date) -> WeeklyPlan | None:
    return (
        db.query(WeeklyPlan)
        .filter(
            WeeklyPlan.user_id == user_id,
            WeeklyPlan.week_number == week_number,
            WeeklyPlan.start_date == week_start,
        )
        .order_by(WeeklyPlan.created_at.desc())
        .first()
    )


def load_current_plan(db: Session, user_id: str, now: Optional[datetime] = None) -> WeeklyPlan | None:
    """Latest plan whose Monday-Sunday window covers ``now``."""
    today = (now or datetime.now(timezone.utc)).date()
    return (
        db.query(WeeklyPlan)
        .filter(
            WeeklyPlan.user_id == user_id,
            WeeklyPlan.start_date <= today,
            WeeklyPlan.end_date >= today,
        )
        .order_by(WeeklyPlan.created_at.desc())
        .first()
    )


class PlanningAgent:
    """
    Runs GATHER_CONTEXT -> MILESTONE_LOOP -> ASSIGN_CURRENT_WEEK_TASKS -> PERSIST -> DONE.

    A cached plan for the same user, week number and calendar week short-circuits
    straight to DONE unless ``force_regenerate`` is set. Unlike the other AI
    features there is no fallback plan: LLM failures raise PlanGenerationError.
    """

    def __init__(
        self,
        db: Session,
        llm: LLMClient,
        *,
        max_iterations: int = MAX_AGENT_ITERATIONS,
    ) -> None:
        self.db = db
        self.llm = llm
        self.max_iterations = max_iterations

    def run(
        self,
        user_id: str,
        *,
        week_number: int = 1,
        force_regenerate: bool = False,
        now: Optional[datetime] = None,
        request_id: Optional[str] = None,
    ) -> PlanGenerationResult:
        now = now or datetime.now(timezone.utc)
        states = [PlanState.GATHER_CONTEXT]
        week_start, week_end = week_bounds(now)

        if not force_regenerate:
            cached = find_cached_plan(self.db, user_id, week_number, week_start)
            if cached:
                states.append(PlanState.DONE)
                return PlanGenerationResult(plan=cached, source="cached", states=states)

        context = load_user_context(self.db, user_id)
        profile = analyze_behavior(user_id, SqlHistoryProvider(self.db), now=now)
        history = self._completion_history(user_id)
        baseline = _clamp_difficulty(context.next_plan_difficulty or DEFAULT_DIFFICULTY)

        states.append(PlanState.MILESTONE_LOOP)
        accumulator = PlanAccumulator()
        registry = self._build_registry(accumulator)
        user_prompt = _build_user_prompt(context, profile, history, week_number, baseline)
        messages = [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": user_prompt},
        ]

        with trace(
            "weekly_plan.generate",
            metadata={"week_number": week_number, "baseline_difficulty": baseline, "force": force_regenerate},
            user_id=user_id,
            request_id=request_id,
            input={"goal": context.goal, "week_number": week_number},
            tags=["agent"],
        ) as planning_trace:
            track_prompt_experiment(planning_trace, "weekly_plan", SYSTEM_PROMPT, user_prompt)
            try:
                loop = run_tool_loop(self.llm, messages, registry, max_iterations=self.max_iterations)
            except (LLMServiceError, LLMOutputError) as exc:
                raise PlanGenerationError("Failed to generate weekly plan", details={"reason": exc.message}) from exc
            record_output(
                planning_trace,
                {
                    "milestones": len(accumulator.milestones),
                    "daily_tasks": len(accumulator.daily_tasks),
                    "adjustment": accumulator.adjustment.adjustment_type if accumulator.adjustment else None,
                    "iterations": loop.iterations,
                    "hit_iteration_cap": loop.hit_iteration_cap,
                },
            )

        states.append(PlanState.ASSIGN_CURRENT_WEEK_TASKS)
        milestones = [accumulator.milestones[key] for key in sorted(accumulator.milestones)]
        target = next((m for m in milestones if m.week_number == week_number), None)
        if target is not None:
            target.daily_tasks = list(accumulator.daily_tasks)
        elif accumulator.daily_tasks:
            logger.warning(
                "No milestone for week %s; dropping %s daily tasks for user %s",
                week_number,
                len(accumulator.daily_tasks),
                user_id,
            )

        states.append(PlanState.PERSIST)
        adjustment_history: List[Dict[str, Any]] = []
        difficulty = baseline
        if accumulator.adjustment is not None:
            difficulty = accumulator.adjustment.new_difficulty_target
            adjustment_history.append(
                AdjustmentEntry(
                    date=now.isoformat(),
                    type=accumulator.adjustment.adjustment_type,
                    reason=accumulator.adjustment.reason,
                    previous_difficulty=baseline,
                    new_difficulty=difficulty,
                ).model_dump()
            )

        reasoning = (loop.final_message or "").strip()
        if loop.hit_iteration_cap:
            reasoning = (reasoning + " " if reasoning else "") + f"(Planner stopped after {loop.iterations} steps.)"

        get_or_create_user(self.db, user_id)
        plan = WeeklyPlan(
            user_id=user_id,
            week_number=week_number,
            start_date=week_start,
            end_date=week_end,
            user_goal=context.goal,
            milestones=[milestone.model_dump() for milestone in milestones],
            current_milestone=week_number,
            difficulty_level=difficulty,
            completion_rate=0,
            adjustment_history=adjustment_history,
            agent_reasoning=reasoning,
            created_at=now,
            updated_at=now,
        )
        self.db.add(plan)
        self.db.commit()
        self.db.refresh(plan)
        states.append(PlanState.DONE)
        logger.info(
            "Weekly plan %s generated for user %s (milestones=%s, tasks=%s, steps=%s)",
            plan.id,
            user_id,
            len(milestones),
            len(accumulator.daily_tasks),
            loop.tool_calls_executed,
        )
        return PlanGenerationResult(
            plan=plan,
            source="generated",
            steps=loop.tool_calls_executed,
            iterations=loop.iterations,
            daily_tasks_created=len(accumulator.daily_tasks),
            states=states,
        )

    def _build_registry(self, accumulator: PlanAccumulator) -> ToolRegistry:
        def create_milestone(arguments: Dict[str, Any]) -> str:
            milestone = WeeklyMilestone.model_validate(arguments)
            replaced = milestone.week_number in accumulator.milestones
            accumulator.milestones[milestone.week_number] = milestone
            verb = "Replaced" if replaced else "Created"
            return f"{verb} milestone for week {milestone.week_number}: {milestone.title}"

        def create_daily_task(arguments: Dict[str, Any]) -> str:
            task = DailyPlanTask.model_validate(arguments)
            accumulator.daily_tasks.append(task)
            return f"Added {task.type} task for {task.day_of_week}: {task.title}"

        def adjust_difficulty(arguments: Dict[str, Any]) -> str:
            if accumulator.adjustment is not None:
                return "Difficulty was already adjusted for this plan; ignoring the second adjustment."
            accumulator.adjustment = DifficultyAdjustment.model_validate(arguments)
            return (
                f"Difficulty {accumulator.adjustment.adjustment_type} recorded "
                f"(target {accumulator.adjustment.new_difficulty_target})."
            )

        registry = ToolRegistry()
        registry.register(
            "create_milestone",
            "Create the milestone for one week of the 4-week plan.",
            MILESTONE_SCHEMA,
            create_milestone,
        )
        registry.register(
            "create_daily_task",
            "Add one task to a day of the week currently being planned.",
            DAILY_TASK_SCHEMA,
            create_daily_task,
        )
        registry.register(
            "adjust_difficulty",
            "Change the plan difficulty when completion history warrants it. Call at most once.",
            ADJUST_SCHEMA,
            adjust_difficulty,
        )
        return registry

    def _completion_history(self, user_id: str) -> List[Dict[str, Any]]:
        plans = (
            self.db.query(WeeklyPlan)
            .filter(WeeklyPlan.user_id == user_id)
            .order_by(WeeklyPlan.start_date.desc(), WeeklyPlan.created_at.desc())
            .limit(HISTORY_PLANS)
            .all()
        )
        return [
            {
                "week_start": plan.start_date.isoformat(),
                "completion_rate": plan.completion_rate,
                "difficulty": plan.difficulty_level,
            }
            for plan in plans
        ]


def _build_user_prompt(
    context: UserContext,
    profile: BehaviorProfile,
    history: List[Dict[str, Any]],
    week_number: int,
    baseline_difficulty: int,
) -> str:
    if history:
        history_lines = "\n".join(
            f"- week of {entry['week_start']}: {entry['completion_rate']}% complete at difficulty {entry['difficulty']}"
            for entry in history
        )
    else:
        history_lines = "- no previous plans"
    return (
        f"{context.prompt_block()}\n\n"
        f"Behavior profile: {profile.summary()}\n\n"
        f"Recent plan completion:\n{history_lines}\n\n"
        f"Current difficulty target: {baseline_difficulty} (1-5).\n"
        f"Plan all {PLAN_WEEKS} milestones and the daily tasks for week {week_number}."
    )


def _clamp_difficulty(value: int) -> int:
    return max(1, min(5, int(value)))
