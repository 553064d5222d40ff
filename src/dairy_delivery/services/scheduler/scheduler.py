"""Process-wide recurring scheduler."""

from __future__ import annotations

import logging
from typing import Mapping

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from ...config import settings
from .jobs import Job, run_job

logger = logging.getLogger(__name__)


def job_triggers(timezone: str | None = None) -> dict[str, CronTrigger | IntervalTrigger]:
    tz = timezone or settings.scheduler_timezone
    return {
        "generate_tomorrow_routes": CronTrigger(hour=23, minute=0, timezone=tz),
        "weekly_invoices": CronTrigger(day_of_week="mon", hour=6, minute=0, timezone=tz),
        "monthly_invoices": CronTrigger(day=1, hour=6, minute=0, timezone=tz),
        "expand_subscriptions": CronTrigger(hour=0, minute=0, timezone=tz),
        "mark_overdue_invoices": CronTrigger(hour=9, minute=0, timezone=tz),
        "cleanup_old_data": CronTrigger(day_of_week="sun", hour=2, minute=0, timezone=tz),
        "sweep_otps": IntervalTrigger(minutes=settings.otp_sweep_minutes, timezone=tz),
    }


HOUSEKEEPING_JOBS = frozenset({"sweep_otps"})


def build_scheduler(jobs: Mapping[str, Job], *, cron_enabled: bool = True) -> BackgroundScheduler:
    """Register the recurring jobs present in ``jobs``.

    Housekeeping jobs are always scheduled; the cron jobs that touch the
    store only when ``cron_enabled``.
    """

    scheduler = BackgroundScheduler(timezone=settings.scheduler_timezone)
    for name, trigger in job_triggers().items():
        if name not in jobs:
            continue
        if not cron_enabled and name not in HOUSEKEEPING_JOBS:
            continue
        scheduler.add_job(
            run_job,
            trigger=trigger,
            args=[name, jobs],
            id=name,
            name=name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
    logger.info(f"Scheduled {len(scheduler.get_jobs())} recurring jobs ({settings.scheduler_timezone})")
    return scheduler
