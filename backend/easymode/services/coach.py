"""Coach Decides: one LLM pick among the top-scored tasks, with a graceful fallback."""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from easymode.core.errors import EasyModeError, NotFoundError
from easymode.observability.evaluation import DECISION_CONFIDENCE, run_evaluations, track_prompt_experiment
from easymode.observability.tracing import record_output, trace
from easymode.services.llm import LLMClient
from easymode.services.task_catalog import recommend_tasks, tasks_completed_today
from easymode.services.task_scorer import TaskCandidate
from easymode.services.user_service import load_user_context
from easymode.services.weekly_planner import load_current_plan

logger = logging.getLogger(__name__)

TOP_CANDIDATES = 5

SYSTEM_PROMPT = (
    "You are the Easy Mode coach. The user has asked you to decide what they should do right now. "
    "Pick exactly ONE task from the candidate list, using their behavior profile, this week's plan and the "
    "current moment. Respond with JSON: "
    '{"task_id": "<id from the list>", "reasoning": "<2-3 sentences addressed to the user>"}'
)


@dataclass
class CoachDecision:
    task: TaskCandidate
    reasoning: str
    source: str
    success: bool = True
    error: Optional[str] = None
    confidence: Optional[int] = None


def coach_decides(
    db: Session,
    llm: LLMClient,
    user_id: str,
    *,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
    evaluate: bool = True,
) -> CoachDecision:
    now = now or datetime.now(timezone.utc)
    recommendations = recommend_tasks(db, user_id, now=now, limit=TOP_CANDIDATES)
    candidates = recommendations.candidates
    if not candidates:
        raise NotFoundError("No tasks are available to choose from")

    context = load_user_context(db, user_id)
    user_prompt = _build_prompt(
        context.prompt_block(),
        recommendations.profile.summary(),
        _plan_snapshot(db, user_id, now),
        _moment(db, user_id, now),
        candidates,
    )

    with trace(
        "coach.decide",
        metadata={"candidates": len(candidates)},
        user_id=user_id,
        request_id=request_id,
        input={"candidate_ids": [c.id for c in candidates]},
        tags=["decision"],
    ) as decision_trace:
        track_prompt_experiment(decision_trace, "coach_decides", SYSTEM_PROMPT, user_prompt)
        decision = _decide(llm, user_prompt, candidates)

        scores: List[Dict[str, Any]] = []
        if evaluate and decision_trace is not None and decision.success:
            scores = run_evaluations(
                llm,
                [
                    (
                        DECISION_CONFIDENCE,
                        {
                            "task": decision.task.title,
                            "reasoning": decision.reasoning,
                            "context": context.goal,
                        },
                    )
                ],
            )
            decision.confidence = scores[0]["value"]
        record_output(
            decision_trace,
            {"task_id": decision.task.id, "source": decision.source, "success": decision.success},
            scores=scores,
        )

    logger.info("Coach picked task %s for user %s (source=%s)", decision.task.id, user_id, decision.source)
    return decision


def _decide(llm: LLMClient, user_prompt: str, candidates: List[TaskCandidate]) -> CoachDecision:
    top = candidates[0]
    try:
        payload = llm.complete_json(SYSTEM_PROMPT, user_prompt)
    except EasyModeError as exc:
        logger.warning("Coach decision failed, using top candidate: %s", exc)
        return CoachDecision(
            task=top,
            reasoning=_fallback_reasoning(top),
            source="fallback",
            success=False,
            error=exc.message,
        )

    chosen_id = str(payload.get("task_id") or "")
    chosen = next((candidate for candidate in candidates if candidate.id == chosen_id), None)
    if chosen is None:
        logger.warning("Coach chose unknown task id %r, using top candidate", chosen_id)
        return CoachDecision(
            task=top,
            reasoning=_fallback_reasoning(top),
            source="fallback",
            success=False,
            error=f"Model chose unknown task id '{chosen_id}'",
        )
    reasoning = str(payload.get("reasoning") or "").strip() or _fallback_reasoning(chosen)
    return CoachDecision(task=chosen, reasoning=reasoning, source="llm")


def _fallback_reasoning(candidate: TaskCandidate) -> str:
    why = ", ".join(candidate.score_reasons[:2]).lower()
    if why:
        return f"'{candidate.title}' is your best match right now ({why})."
    return f"'{candidate.title}' is your best match right now."


def _plan_snapshot(db: Session, user_id: str, now: datetime) -> str:
    plan = load_current_plan(db, user_id, now=now)
    if plan is None:
        return "No weekly plan for this week."
    milestone = next(
        (m for m in plan.milestones or [] if m.get("week_number") == plan.current_milestone),
        None,
    )
    if milestone is None:
        return f"Week {plan.week_number} plan at difficulty {plan.difficulty_level}."
    today = now.strftime("%A").lower()
    todays = [t["title"] for t in milestone.get("daily_tasks") or [] if t.get("day_of_week") == today]
    planned = f" Planned for today: {', '.join(todays)}." if todays else ""
    return (
        f"Week {milestone['week_number']} milestone '{milestone['title']}' "
        f"(focus {milestone['focus_area']}, difficulty {plan.difficulty_level}).{planned}"
    )


def _moment(db: Session, user_id: str, now: datetime) -> str:
    return f"{now.strftime('%A')} at {now.hour}:00 UTC, {tasks_completed_today(db, user_id, now)} tasks done today."


def _build_prompt(
    user_block: str,
    profile_summary: str,
    plan_snapshot: str,
    moment: str,
    candidates: List[TaskCandidate],
) -> str:
    listing = json.dumps(
        [
            {
                "id": c.id,
                "title": c.title,
                "type": c.type,
                "category": c.category,
                "estimated_minutes": c.estimated_minutes,
                "score": c.score,
                "why": c.score_reasons,
            }
            for c in candidates
        ],
        indent=2,
    )
    return (
        f"{user_block}\n\nBehavior profile: {profile_summary}\n\n"
        f"This week: {plan_snapshot}\n\nRight now: {moment}\n\n"
        f"Candidates (best-scored first):\n{listing}"
    )
