"""
Behavior profiler.

Folds a user's trailing 30-day history (completed tasks plus audacity
attempts) into a compact statistical profile consumed by the task scorer,
the planning agent and the coaching prompts. Pure aggregation: malformed or
missing optional fields are skipped, never raised.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Protocol, Set

from sqlalchemy.orm import Session

from easymode.db.models.audacity_attempt import AudacityAttempt
from easymode.db.models.user_task import UserTask
from easymode.db.types import as_utc

logger = logging.getLogger(__name__)

TASK_TYPES = ("action", "audacity", "enjoy")
HISTORY_WINDOW_DAYS = 30
DEFAULT_PEAK_HOUR = 9


@dataclass
class CompletedTaskRecord:
    type: str
    task_id: Optional[str] = None
    category: Optional[str] = None
    duration: Any = None
    completed_at: Any = None


@dataclass
class AttemptRecord:
    outcome: Optional[str] = None
    attempt_date: Any = None


@dataclass
class BehaviorProfile:
    preferred_task_types: Dict[str, int] = field(default_factory=lambda: {t: 0 for t in TASK_TYPES})
    preferred_categories: Dict[str, int] = field(default_factory=dict)
    success_rate_by_type: Dict[str, float] = field(default_factory=lambda: {t: 0.0 for t in TASK_TYPES})
    avg_completion_time: float = 0.0
    total_tasks_completed: int = 0
    recent_task_ids: Set[str] = field(default_factory=set)
    peak_activity_hour: int = DEFAULT_PEAK_HOUR

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["recent_task_ids"] = sorted(self.recent_task_ids)
        return payload

    def summary(self) -> str:
        """One-paragraph rendering for LLM prompts."""
        rates = ", ".join(f"{t} {round(r * 100)}%" for t, r in self.success_rate_by_type.items())
        counts = ", ".join(f"{t} {c}" for t, c in self.preferred_task_types.items())
        top_categories = sorted(self.preferred_categories.items(), key=lambda item: -item[1])[:3]
        categories = ", ".join(name for name, _ in top_categories) or "none yet"
        return (
            f"Completed {self.total_tasks_completed} tasks in the last {HISTORY_WINDOW_DAYS} days "
            f"(by type: {counts}). Success rates: {rates}. "
            f"Favourite categories: {categories}. Most active around {self.peak_activity_hour}:00. "
            f"Average completion time {round(self.avg_completion_time / 60, 1)} min."
        )


class HistoryProvider(Protocol):
    def completed_tasks(self, user_id: str, since: datetime) -> Iterable[CompletedTaskRecord]:
        ...

    def attempts(self, user_id: str, since: datetime) -> Iterable[AttemptRecord]:
        ...


class SqlHistoryProvider:
    """Reads the trailing history slice from the relational store."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def completed_tasks(self, user_id: str, since: datetime) -> List[CompletedTaskRecord]:
        rows = (
            self.db.query(UserTask)
            .filter(
                UserTask.user_id == user_id,
                UserTask.completed.is_(True),
                UserTask.completed_at >= since,
            )
            .order_by(UserTask.completed_at.asc())
            .all()
        )
        return [
            CompletedTaskRecord(
                type=row.type,
                task_id=row.task_id,
                category=row.category,
                duration=row.duration,
                completed_at=row.completed_at,
            )
            for row in rows
        ]

    def attempts(self, user_id: str, since: datetime) -> List[AttemptRecord]:
        rows = (
            self.db.query(AudacityAttempt)
            .filter(AudacityAttempt.user_id == user_id, AudacityAttempt.attempt_date >= since)
            .order_by(AudacityAttempt.attempt_date.asc())
            .all()
        )
        return [AttemptRecord(outcome=row.outcome, attempt_date=row.attempt_date) for row in rows]


def analyze_behavior(
    user_id: str,
    history_provider: HistoryProvider,
    now: Optional[datetime] = None,
) -> BehaviorProfile:
    now = now or datetime.now(timezone.utc)
    since = now - timedelta(days=HISTORY_WINDOW_DAYS)
    profile = build_behavior_profile(
        history_provider.completed_tasks(user_id, since),
        history_provider.attempts(user_id, since),
    )
    logger.debug(
        "Behavior profile for %s: %s tasks, peak hour %s",
        user_id,
        profile.total_tasks_completed,
        profile.peak_activity_hour,
    )
    return profile


def build_behavior_profile(
    completed_tasks: Iterable[CompletedTaskRecord],
    attempts: Iterable[AttemptRecord],
) -> BehaviorProfile:
    profile = BehaviorProfile()
    attempt_counts: Dict[str, int] = {t: 0 for t in TASK_TYPES}
    success_counts: Dict[str, int] = {t: 0 for t in TASK_TYPES}
    hour_histogram: Dict[int, int] = {}
    total_duration = 0.0

    for task in completed_tasks:
        task_type = task.type if isinstance(task.type, str) and task.type else None
        if task_type is None:
            continue
        profile.total_tasks_completed += 1
        profile.preferred_task_types[task_type] = profile.preferred_task_types.get(task_type, 0) + 1
        attempt_counts[task_type] = attempt_counts.get(task_type, 0) + 1
        success_counts[task_type] = success_counts.get(task_type, 0) + 1

        if isinstance(task.category, str) and task.category:
            profile.preferred_categories[task.category] = profile.preferred_categories.get(task.category, 0) + 1
        duration = _as_number(task.duration)
        if duration is not None:
            total_duration += duration
        if task.task_id:
            profile.recent_task_ids.add(str(task.task_id))
        _bump_hour(hour_histogram, task.completed_at)

    for attempt in attempts:
        attempt_counts["audacity"] += 1
        if attempt.outcome == "success":
            success_counts["audacity"] += 1
        _bump_hour(hour_histogram, attempt.attempt_date)

    for task_type, count in attempt_counts.items():
        profile.success_rate_by_type[task_type] = success_counts.get(task_type, 0) / count if count else 0.0
        profile.preferred_task_types.setdefault(task_type, 0)

    if profile.total_tasks_completed:
        profile.avg_completion_time = total_duration / profile.total_tasks_completed

    if hour_histogram:
        # Ties go to the earliest hour of the day.
        best = max(hour_histogram.values())
        profile.peak_activity_hour = min(hour for hour, count in hour_histogram.items() if count == best)

    return profile


def _bump_hour(histogram: Dict[int, int], value: Any) -> None:
    moment = _as_datetime(value)
    if moment is None:
        return
    histogram[moment.hour] = histogram.get(moment.hour, 0) + 1


def _as_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, str) and value:
        try:
            return as_utc(datetime.fromisoformat(value.replace("Z", "+00:00")))
        except ValueError:
            return None
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None
