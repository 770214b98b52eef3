import logging
from collections.abc import Callable
from datetime import datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from streakify.services.escalation import EscalationScheduler
from streakify.services.local_time import parse_clock_time
from streakify.settings import Settings


logger = logging.getLogger(__name__)


def _daily_at(raw_time: str, zone: ZoneInfo) -> CronTrigger:
    hour, minute = parse_clock_time(raw_time)
    return CronTrigger(hour=hour, minute=minute, timezone=zone)


def run_job(job_id: str, func: Callable[[datetime], int], zone: ZoneInfo) -> None:
    """Invoke one escalation trigger with the current reference-zone time."""

    now = datetime.now(zone)
    logger.info("Running %s at %s", job_id, now.strftime("%Y-%m-%d %H:%M:%S"))
    result = func(now)
    logger.info("Finished %s (%d)", job_id, result)


def build_scheduler(
    escalation: EscalationScheduler, settings: Settings
) -> BackgroundScheduler:
    """Create the background scheduler with the four escalation jobs.

    Each job runs at most once at a time; a run that is still busy when the
    next one is due causes the next one to be skipped.
    """

    zone = ZoneInfo(settings.reference_timezone)
    scheduler = BackgroundScheduler(timezone=zone)

    jobs: list[tuple[str, Callable[[datetime], int], CronTrigger]] = [
        ("due_check", escalation.run_due_check, CronTrigger(minute="*", timezone=zone)),
        (
            "urgent_check",
            escalation.run_urgent_check,
            _daily_at(settings.urgent_cutoff, zone),
        ),
        (
            "boundary_sync",
            escalation.run_boundary_sync,
            _daily_at(settings.boundary_sync_time, zone),
        ),
        (
            "link_code_cleanup",
            escalation.run_cleanup,
            _daily_at(settings.cleanup_time, zone),
        ),
    ]

    for job_id, func, trigger in jobs:
        scheduler.add_job(
            run_job,
            trigger=trigger,
            args=[job_id, func, zone],
            id=job_id,
            name=job_id,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )

    return scheduler
