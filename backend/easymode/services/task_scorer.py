"""Deterministic ranking of candidate tasks against a behavior profile."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional

from easymode.services.behavior_profiler import BehaviorProfile

BASE_SCORE = 50
RECENT_PENALTY = 30
PREFERRED_TYPE_BONUS = 15
PREFERRED_TYPE_MIN_COUNT = 3
HIGH_SUCCESS_BONUS = 10
HIGH_SUCCESS_RATE = 0.7
LOW_SUCCESS_PENALTY = 5
LOW_SUCCESS_RATE = 0.3
LOW_SUCCESS_MIN_HISTORY = 5
CATEGORY_BONUS = 10
CATEGORY_MIN_COUNT = 2
PEAK_HOUR_BONUS = 5
PEAK_HOUR_WINDOW = 2
DURATION_BONUS = 5
DURATION_TOLERANCE_SECONDS = 120
VARIETY_BONUS = 8
VARIETY_MIN_HISTORY = 10
VARIETY_MAX_SHARE = 0.2


@dataclass
class TaskCandidate:
    id: str
    title: str
    description: str
    type: str
    estimated_minutes: int
    category: Optional[str] = None
    score: int = BASE_SCORE
    score_reasons: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "type": self.type,
            "category": self.category,
            "estimated_minutes": self.estimated_minutes,
            "score": self.score,
            "score_reasons": list(self.score_reasons),
        }


def candidates_from_catalog(tasks: Iterable[Any]) -> List[TaskCandidate]:
    return [
        TaskCandidate(
            id=str(task.id),
            title=task.title,
            description=task.description or "",
            type=task.type,
            category=task.category,
            estimated_minutes=task.estimated_minutes or 0,
        )
        for task in tasks
    ]


def score_tasks(
    candidates: Iterable[TaskCandidate],
    profile: BehaviorProfile,
    current_hour: int,
) -> List[TaskCandidate]:
    """Score every candidate and return them best first; ties keep input order."""
    scored = [_score_candidate(candidate, profile, current_hour) for candidate in candidates]
    # sorted() is stable, so equal scores keep their original relative order.
    return sorted(scored, key=lambda candidate: -candidate.score)


def _score_candidate(candidate: TaskCandidate, profile: BehaviorProfile, current_hour: int) -> TaskCandidate:
    score = BASE_SCORE
    reasons: List[str] = []
    task_type = candidate.type

    if candidate.id in profile.recent_task_ids:
        score -= RECENT_PENALTY
        reasons.append("Recently completed")

    if profile.preferred_task_types.get(task_type, 0) > PREFERRED_TYPE_MIN_COUNT:
        score += PREFERRED_TYPE_BONUS
        reasons.append(f"User prefers {task_type} tasks")

    success_rate = profile.success_rate_by_type.get(task_type, 0.0)
    if success_rate > HIGH_SUCCESS_RATE:
        score += HIGH_SUCCESS_BONUS
        reasons.append(f"High success rate with {task_type}")
    elif success_rate < LOW_SUCCESS_RATE and profile.total_tasks_completed > LOW_SUCCESS_MIN_HISTORY:
        score -= LOW_SUCCESS_PENALTY
        reasons.append(f"Building skills in {task_type}")

    if candidate.category and profile.preferred_categories.get(candidate.category, 0) > CATEGORY_MIN_COUNT:
        score += CATEGORY_BONUS
        reasons.append(f"Enjoys {candidate.category} category")

    if abs(current_hour - profile.peak_activity_hour) <= PEAK_HOUR_WINDOW:
        score += PEAK_HOUR_BONUS
        reasons.append("Peak activity time")

    if (
        profile.avg_completion_time > 0
        and abs(candidate.estimated_minutes * 60 - profile.avg_completion_time) < DURATION_TOLERANCE_SECONDS
    ):
        score += DURATION_BONUS
        reasons.append("Matches typical task duration")

    total_completions = sum(profile.preferred_task_types.values())
    if total_completions > VARIETY_MIN_HISTORY:
        share = profile.preferred_task_types.get(task_type, 0) / total_completions
        if share < VARIETY_MAX_SHARE:
            score += VARIETY_BONUS
            reasons.append(f"Encourages variety with {task_type}")

    return TaskCandidate(
        id=candidate.id,
        title=candidate.title,
        description=candidate.description,
        type=candidate.type,
        category=candidate.category,
        estimated_minutes=candidate.estimated_minutes,
        score=score,
        score_reasons=reasons,
    )
