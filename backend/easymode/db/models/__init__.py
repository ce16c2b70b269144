"""ORM models exposed for metadata discovery."""
from easymode.db.models.analytics_event import AnalyticsEvent
from easymode.db.models.audacity_attempt import AudacityAttempt
from easymode.db.models.memory import MemoryEntry
from easymode.db.models.task import Task
from easymode.db.models.user import User
from easymode.db.models.user_task import UserTask
from easymode.db.models.weekly_plan import WeeklyPlan

__all__ = [
    "AnalyticsEvent",
    "AudacityAttempt",
    "MemoryEntry",
    "Task",
    "User",
    "UserTask",
    "WeeklyPlan",
]
