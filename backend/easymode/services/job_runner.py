"""Batch job runners for nudges and adaptive replanning."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from easymode.db.models.user import User
from easymode.db.types import as_utc
from easymode.observability.metrics import log_metric
from easymode.services.adaptive_replanning import ReplanningRunResult, run_adaptive_replanning
from easymode.services.coaching import proactive_nudge
from easymode.services.llm import LLMClient
from easymode.services.notifications.base import NotificationService
from easymode.services.notifications.factory import get_notification_service


logger = logging.getLogger(__name__)

DAILY_NUDGE_TITLE = "Easy Mode Moment"
DAILY_NUDGE_BODY = "Your daily task is ready! Let's make today count."


@dataclass
class JobRunResult:
    recipients: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0


def _nudge_recipients(db: Session) -> List[User]:
    return (
        db.query(User)
        .filter(User.notifications_enabled.is_(True), User.fcm_token.isnot(None), User.fcm_token != "")
        .order_by(User.id)
        .all()
    )


def send_daily_nudges(db: Session, *, service: Optional[NotificationService] = None) -> JobRunResult:
    service = service or get_notification_service()
    result = JobRunResult()
    for user in _nudge_recipients(db):
        result.recipients += 1
        try:
            outcome = service.send(token=user.fcm_token, title=DAILY_NUDGE_TITLE, body=DAILY_NUDGE_BODY)
        except Exception:
            logger.exception("Daily nudge failed for user %s", user.id)
            result.failed += 1
            continue
        if outcome.delivered:
            result.sent += 1
        else:
            logger.warning("Daily nudge not delivered to user %s: %s", user.id, outcome.reason)
            result.failed += 1
    logger.info("Daily nudges: recipients=%s sent=%s failed=%s", result.recipients, result.sent, result.failed)
    log_metric("jobs.daily_nudge.sent", result.sent, metadata={"failed": result.failed})
    return result


def send_proactive_nudges(
    db: Session,
    llm: LLMClient,
    *,
    now: Optional[datetime] = None,
    service: Optional[NotificationService] = None,
) -> JobRunResult:
    """Personalised nudges for opted-in users with no activity yet today."""
    now = now or datetime.now(timezone.utc)
    service = service or get_notification_service()
    result = JobRunResult()
    for user in _nudge_recipients(db):
        last = as_utc(user.last_activity)
        if last is not None and last.date() == now.date():
            result.skipped += 1
            continue
        result.recipients += 1
        try:
            copy = proactive_nudge(db, llm, user, now=now)
            outcome = service.send(token=user.fcm_token, title=copy.title, body=copy.body)
        except Exception:
            logger.exception("Proactive nudge failed for user %s", user.id)
            result.failed += 1
            continue
        if outcome.delivered:
            result.sent += 1
        else:
            logger.warning("Proactive nudge not delivered to user %s: %s", user.id, outcome.reason)
            result.failed += 1
    logger.info(
        "Proactive nudges: recipients=%s sent=%s failed=%s skipped=%s",
        result.recipients,
        result.sent,
        result.failed,
        result.skipped,
    )
    log_metric("jobs.proactive_nudge.sent", result.sent, metadata={"failed": result.failed, "skipped": result.skipped})
    return result


def run_weekly_replanning(db: Session, *, now: Optional[datetime] = None) -> ReplanningRunResult:
    return run_adaptive_replanning(db, now=now)
