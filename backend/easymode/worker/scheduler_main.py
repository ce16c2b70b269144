"""Dedicated APScheduler worker process."""
from __future__ import annotations

import logging
import signal
import threading

from apscheduler.schedulers.background import BackgroundScheduler

from easymode.core.config import settings
from easymode.core.errors import LLMConfigurationError
from easymode.core.logging import configure_logging
from easymode.db.session import SessionLocal
from easymode.observability.best_effort import flush_opik
from easymode.observability.client import init_opik
from easymode.services.job_runner import (
    run_weekly_replanning,
    send_daily_nudges,
    send_proactive_nudges,
)
from easymode.services.llm import get_llm_client


logger = logging.getLogger(__name__)


def main() -> None:
    configure_logging(log_level=settings.log_level)
    init_opik()
    logger.info("Scheduler worker starting (enabled=%s)", settings.scheduler_enabled)

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)

    if settings.scheduler_enabled:
        register_jobs(scheduler)
        scheduler.start()
        if settings.jobs_run_on_startup:
            logger.info("Running replanning once on startup")
            run_replanning_job()
    else:
        logger.warning("Scheduler disabled via config; worker will idle")

    stop_event = threading.Event()

    def shutdown(signum, frame):  # pragma: no cover - signal handler
        logger.info("Scheduler worker shutting down (signal=%s)", signum)
        if scheduler.running:
            scheduler.shutdown(wait=False)
        flush_opik()
        stop_event.set()

    signal.signal(signal.SIGINT, shutdown)
    signal.signal(signal.SIGTERM, shutdown)

    try:
        stop_event.wait()
    except KeyboardInterrupt:  # pragma: no cover - manual stop
        shutdown(signal.SIGINT, None)


def register_jobs(scheduler: BackgroundScheduler) -> list[str]:
    job_ids: list[str] = []
    if settings.notifications_enabled:
        scheduler.add_job(
            run_daily_nudge_job,
            trigger="cron",
            hour=settings.daily_nudge_hour,
            minute=0,
            id="daily_nudge_job",
            replace_existing=True,
        )
        job_ids.append("daily_nudge_job")
        for hour in settings.proactive_nudge_hours_list:
            job_id = f"proactive_nudge_job_{hour:02d}"
            scheduler.add_job(
                run_proactive_nudge_job,
                trigger="cron",
                hour=hour,
                minute=0,
                id=job_id,
                replace_existing=True,
            )
            job_ids.append(job_id)
    else:
        logger.info("Notifications disabled; nudge jobs not registered")

    scheduler.add_job(
        run_replanning_job,
        trigger="cron",
        day_of_week=str(settings.weekly_job_day),
        hour=settings.weekly_job_hour,
        minute=settings.weekly_job_minute,
        id="adaptive_replanning_job",
        replace_existing=True,
    )
    job_ids.append("adaptive_replanning_job")
    logger.info(
        "Registered scheduler jobs %s (replanning day=%s, time=%02d:%02d %s)",
        ", ".join(job_ids),
        settings.weekly_job_day,
        settings.weekly_job_hour,
        settings.weekly_job_minute,
        settings.scheduler_timezone,
    )
    return job_ids


def run_daily_nudge_job() -> None:
    session = SessionLocal()
    try:
        send_daily_nudges(session)
    except Exception:  # pragma: no cover
        logger.exception("Daily nudge job failed")
    finally:
        session.close()
        flush_opik()


def run_proactive_nudge_job() -> None:
    try:
        llm = get_llm_client()
    except LLMConfigurationError as exc:
        logger.warning("Skipping proactive nudges: %s", exc.message)
        return
    session = SessionLocal()
    try:
        send_proactive_nudges(session, llm)
    except Exception:  # pragma: no cover
        logger.exception("Proactive nudge job failed")
    finally:
        session.close()
        flush_opik()


def run_replanning_job() -> None:
    session = SessionLocal()
    try:
        run_weekly_replanning(session)
    except Exception:  # pragma: no cover
        logger.exception("Adaptive replanning job failed")
    finally:
        session.close()
        flush_opik()


if __name__ == "__main__":  # pragma: no cover - manual launch
    main()
