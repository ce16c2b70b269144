"""
Single-shot coaching features.

Each feature makes one LLM call and, when the call fails or returns something
unusable, answers with a documented fallback in the same shape as a success,
flagged ``success=False`` with an ``error`` string. Configuration errors are
raised earlier by the ``get_llm_client`` dependency and never reach here.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from easymode.core.errors import EasyModeError, NotFoundError
from easymode.db.models.user import User
from easymode.observability.evaluation import (
    ENGAGEMENT_POTENTIAL,
    SAFETY,
    TASK_RELEVANCE,
    run_evaluations,
    track_prompt_experiment,
)
from easymode.observability.tracing import record_output, trace
from easymode.services.behavior_profiler import BehaviorProfile, SqlHistoryProvider, analyze_behavior
from easymode.services.llm import LLMClient
from easymode.services.task_catalog import get_task, recommend_tasks, tasks_completed_today
from easymode.services.task_scorer import TaskCandidate
from easymode.services.user_service import load_user_context

logger = logging.getLogger(__name__)

SMART_POOL_SIZE = 3
MAX_INSIGHT_CHARS = 280
MAX_NUDGE_BODY_CHARS = 140

COACH_VOICE = (
    "You are Easy Mode, a warm and practical confidence coach. You favour small, concrete steps "
    "and celebrate effort over outcome."
)

DEFAULT_RESILIENCE_MESSAGE = (
    "Showing up for something bold takes courage, and you did that. "
    "Every attempt makes the next one a little easier. Take a breath, and try a smaller version tomorrow."
)
DEFAULT_NUDGE_TITLE = "Easy Mode Moment"
DEFAULT_NUDGE_BODY = "A tiny step today keeps your momentum going. Ready for a 5-minute win?"


@dataclass
class PersonalizedTask:
    task_id: str
    title: str
    description: str
    original_title: str
    original_description: str
    success: bool = True
    error: Optional[str] = None


@dataclass
class DailyInsight:
    insight: str
    success: bool = True
    error: Optional[str] = None


@dataclass
class SmartRecommendation:
    task: TaskCandidate
    reasoning: str
    source: str
    success: bool = True
    error: Optional[str] = None


@dataclass
class ResilienceMessage:
    message: str
    success: bool = True
    error: Optional[str] = None


@dataclass
class NudgeCopy:
    title: str
    body: str
    success: bool = True
    error: Optional[str] = None


def personalize_task(
    db: Session,
    llm: LLMClient,
    user_id: str,
    task_id: str,
    *,
    request_id: Optional[str] = None,
) -> PersonalizedTask:
    task = get_task(db, task_id)
    if task is None:
        raise NotFoundError("Task not found", details={"task_id": task_id})

    context = load_user_context(db, user_id)
    fallback = PersonalizedTask(
        task_id=task.id,
        title=task.title,
        description=task.description or "",
        original_title=task.title,
        original_description=task.description or "",
    )
    system_prompt = (
        f"{COACH_VOICE} Rewrite the task so it speaks directly to this user's goal and pain point while "
        f"keeping the same type ({task.type}) and fitting their time budget. "
        'Respond with JSON: {"title": "...", "description": "..."}'
    )
    user_prompt = (
        f"{context.prompt_block()}\n\nTask ({task.type}, ~{task.estimated_minutes} min):\n"
        f"Title: {task.title}\nDescription: {task.description}"
    )

    with trace(
        "coaching.personalize_task",
        metadata={"task_id": task.id, "task_type": task.type},
        user_id=user_id,
        request_id=request_id,
        input={"task_id": task.id},
    ) as opik_trace:
        track_prompt_experiment(opik_trace, "personalize_task", system_prompt, user_prompt)
        try:
            payload = llm.complete_json(system_prompt, user_prompt)
            title = str(payload.get("title") or "").strip()
            description = str(payload.get("description") or "").strip()
            if not title:
                raise ValueError("personalized task has no title")
        except (EasyModeError, ValueError) as exc:
            logger.warning("Task personalization failed for user %s: %s", user_id, exc)
            fallback.success = False
            fallback.error = str(exc)
            record_output(opik_trace, {"success": False, "error": fallback.error})
            return fallback

        result = PersonalizedTask(
            task_id=task.id,
            title=title,
            description=description or fallback.description,
            original_title=task.title,
            original_description=task.description or "",
        )
        scores: List[Dict[str, Any]] = []
        if opik_trace is not None:
            scores = run_evaluations(
                llm,
                [
                    (
                        TASK_RELEVANCE,
                        {"goal": context.goal, "pain": context.pain_point, "task": f"{title}: {result.description}"},
                    )
                ],
            )
        record_output(opik_trace, {"title": result.title, "description": result.description}, scores=scores)
    return result


def default_insight(profile: BehaviorProfile) -> str:
    if profile.total_tasks_completed == 0:
        return "Every journey starts with one small step. Pick any task today and you're already on your way."
    best_type = max(profile.preferred_task_types.items(), key=lambda item: item[1])[0]
    return (
        f"You've completed {profile.total_tasks_completed} tasks this month, mostly {best_type}. "
        f"You tend to be most active around {profile.peak_activity_hour}:00, so that's a great time for today's step."
    )


def generate_daily_insight(
    db: Session,
    llm: LLMClient,
    user_id: str,
    *,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
) -> DailyInsight:
    now = now or datetime.now(timezone.utc)
    profile = analyze_behavior(user_id, SqlHistoryProvider(db), now=now)
    context = load_user_context(db, user_id)
    system_prompt = (
        f"{COACH_VOICE} Write one short, encouraging insight (2 sentences, under 250 characters) "
        "based on the user's recent behavior. Mention one concrete pattern you see."
    )
    user_prompt = f"{context.prompt_block()}\n\nBehavior profile: {profile.summary()}"

    with trace(
        "coaching.daily_insight",
        metadata={"total_tasks": profile.total_tasks_completed},
        user_id=user_id,
        request_id=request_id,
    ) as opik_trace:
        track_prompt_experiment(opik_trace, "daily_insight", system_prompt, user_prompt)
        try:
            text = llm.complete_text(system_prompt, user_prompt, max_tokens=150)
        except EasyModeError as exc:
            logger.warning("Daily insight generation failed for user %s: %s", user_id, exc)
            record_output(opik_trace, {"success": False, "error": exc.message})
            return DailyInsight(insight=default_insight(profile), success=False, error=exc.message)

        insight = text[:MAX_INSIGHT_CHARS]
        scores: List[Dict[str, Any]] = []
        if opik_trace is not None:
            scores = run_evaluations(
                llm,
                [(ENGAGEMENT_POTENTIAL, {"response": insight, "context": context.goal})],
            )
        record_output(opik_trace, {"insight": insight}, scores=scores)
    return DailyInsight(insight=insight)


def smart_recommendation(
    db: Session,
    llm: LLMClient,
    user_id: str,
    *,
    task_type: Optional[str] = None,
    now: Optional[datetime] = None,
    request_id: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> SmartRecommendation:
    """Let the model pick from the scored list; on failure pick randomly among the top few."""
    now = now or datetime.now(timezone.utc)
    recommendations = recommend_tasks(db, user_id, now=now, task_type=task_type)
    candidates = recommendations.candidates
    if not candidates:
        raise NotFoundError("No tasks are available to recommend", details={"type": task_type})

    context = load_user_context(db, user_id)
    pool = candidates[:SMART_POOL_SIZE]
    system_prompt = (
        f"{COACH_VOICE} Choose the single best task for the user right now from the candidates. "
        'Respond with JSON: {"task_id": "<id>", "reasoning": "<one sentence>"}'
    )
    listing = "\n".join(
        f"- {c.id}: {c.title} ({c.type}, {c.estimated_minutes} min, score {c.score})" for c in candidates[:10]
    )
    user_prompt = (
        f"{context.prompt_block()}\n\nBehavior profile: {recommendations.profile.summary()}\n\n"
        f"It is {now.hour}:00 and the user has finished {tasks_completed_today(db, user_id, now)} tasks today.\n\n"
        f"Candidates:\n{listing}"
    )

    with trace(
        "coaching.smart_recommendation",
        metadata={"candidates": len(candidates), "task_type": task_type},
        user_id=user_id,
        request_id=request_id,
    ) as opik_trace:
        track_prompt_experiment(opik_trace, "smart_recommendation", system_prompt, user_prompt)
        error: Optional[str] = None
        chosen: Optional[TaskCandidate] = None
        reasoning = ""
        try:
            payload = llm.complete_json(system_prompt, user_prompt)
            chosen_id = str(payload.get("task_id") or "")
            chosen = next((c for c in candidates if c.id == chosen_id), None)
            reasoning = str(payload.get("reasoning") or "").strip()
            if chosen is None:
                error = f"Model chose unknown task id '{chosen_id}'"
        except EasyModeError as exc:
            error = exc.message

        if chosen is None:
            logger.warning("Smart recommendation fell back for user %s: %s", user_id, error)
            pick = (rng or random).choice(pool)
            record_output(opik_trace, {"task_id": pick.id, "source": "fallback", "error": error})
            return SmartRecommendation(
                task=pick,
                reasoning="A great next step based on your recent activity.",
                source="fallback",
                success=False,
                error=error,
            )

        record_output(opik_trace, {"task_id": chosen.id, "source": "llm"})
    return SmartRecommendation(task=chosen, reasoning=reasoning or "Picked for you right now.", source="llm")


def resilience_support(
    db: Session,
    llm: LLMClient,
    user_id: str,
    *,
    outcome: str,
    task_title: Optional[str] = None,
    notes: Optional[str] = None,
    request_id: Optional[str] = None,
) -> ResilienceMessage:
    context = load_user_context(db, user_id)
    system_prompt = (
        f"{COACH_VOICE} The user just tried something bold and it did not go as hoped. Reply with a short "
        "(under 80 words), compassionate message that normalises the setback, names what they did well, "
        "and suggests one smaller follow-up step."
    )
    user_prompt = (
        f"{context.prompt_block()}\n\nAttempt: {task_title or 'an audacity task'}\n"
        f"Outcome: {outcome}\nTheir notes: {notes or 'none'}"
    )

    with trace(
        "coaching.resilience",
        metadata={"outcome": outcome},
        user_id=user_id,
        request_id=request_id,
    ) as opik_trace:
        try:
            message = llm.complete_text(system_prompt, user_prompt, max_tokens=200)
        except EasyModeError as exc:
            logger.warning("Resilience support failed for user %s: %s", user_id, exc)
            record_output(opik_trace, {"success": False, "error": exc.message})
            return ResilienceMessage(message=DEFAULT_RESILIENCE_MESSAGE, success=False, error=exc.message)

        scores: List[Dict[str, Any]] = []
        if opik_trace is not None:
            scores = run_evaluations(llm, [(SAFETY, {"response": message})])
        record_output(opik_trace, {"message": message}, scores=scores)
    return ResilienceMessage(message=message)


def proactive_nudge(
    db: Session,
    llm: LLMClient,
    user: User,
    *,
    now: Optional[datetime] = None,
) -> NudgeCopy:
    now = now or datetime.now(timezone.utc)
    context = load_user_context(db, user.id)
    system_prompt = (
        f"{COACH_VOICE} Write push notification copy nudging the user to do one small task today. "
        'Respond with JSON: {"title": "<max 40 chars>", "body": "<max 120 chars>"}'
    )
    user_prompt = f"{context.prompt_block()}\n\nLocal time: {now.strftime('%A %H:%M')} UTC. No tasks done today yet."

    with trace("coaching.proactive_nudge", user_id=user.id, metadata={"hour": now.hour}) as opik_trace:
        try:
            payload = llm.complete_json(system_prompt, user_prompt, max_tokens=120)
            title = str(payload.get("title") or "").strip()
            body = str(payload.get("body") or "").strip()
            if not body:
                raise ValueError("nudge has no body")
        except (EasyModeError, ValueError) as exc:
            logger.warning("Proactive nudge copy failed for user %s: %s", user.id, exc)
            record_output(opik_trace, {"success": False, "error": str(exc)})
            return NudgeCopy(title=DEFAULT_NUDGE_TITLE, body=DEFAULT_NUDGE_BODY, success=False, error=str(exc))

        copy = NudgeCopy(title=title or DEFAULT_NUDGE_TITLE, body=body[:MAX_NUDGE_BODY_CHARS])
        record_output(opik_trace, {"title": copy.title, "body": copy.body})
    return copy
