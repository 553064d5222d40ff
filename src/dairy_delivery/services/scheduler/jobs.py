"""Registry of recurring jobs and their isolated runner.

Jobs are independent: a failing job is logged and reported, never raised to
the scheduler, and never blocks the next job.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Callable, Mapping, Optional
from zoneinfo import ZoneInfo

from ...config import settings
from ...errors import NotFoundError
from ..billing.invoices import generate_monthly_invoices, generate_weekly_invoices, mark_overdue_invoices
from ..maintenance.cleanup import cleanup_old_data
from ..otp.service import OTPService
from ..routing.service import generate_routes
from ..subscriptions.expansion import expand_subscriptions

logger = logging.getLogger(__name__)

Job = Callable[[], Any]


@dataclass(slots=True)
class JobRun:
    name: str
    ok: bool
    started_at: datetime
    finished_at: datetime
    result: Any = None
    error: Optional[str] = None


def local_today() -> date:
    return datetime.now(ZoneInfo(settings.scheduler_timezone)).date()


def build_jobs(otp_service: OTPService | None = None) -> dict[str, Job]:
    jobs: dict[str, Job] = {
        "generate_today_routes": lambda: generate_routes(local_today()),
        "generate_tomorrow_routes": lambda: generate_routes(local_today() + timedelta(days=1)),
        "weekly_invoices": lambda: generate_weekly_invoices(today=local_today()),
        "monthly_invoices": lambda: generate_monthly_invoices(today=local_today()),
        "expand_subscriptions": lambda: expand_subscriptions(local_today()),
        "mark_overdue_invoices": lambda: mark_overdue_invoices(local_today()),
        "cleanup_old_data": lambda: cleanup_old_data(local_today()),
    }
    if otp_service is not None:
        jobs["sweep_otps"] = otp_service.sweep
    return jobs


def _lookup(name: str, jobs: Mapping[str, Job]) -> Job:
    try:
        return jobs[name]
    except KeyError:
        raise NotFoundError("Job", name) from None


def run_job(name: str, jobs: Mapping[str, Job]) -> JobRun:
    """Run one job from the scheduler, logging instead of raising on failure."""

    started_at = datetime.now()
    logger.info(f"Running job '{name}'")
    try:
        result = _lookup(name, jobs)()
    except Exception as exc:
        logger.exception(f"Job '{name}' failed")
        return JobRun(name=name, ok=False, started_at=started_at, finished_at=datetime.now(), error=str(exc))
    logger.info(f"Job '{name}' completed")
    return JobRun(name=name, ok=True, started_at=started_at, finished_at=datetime.now(), result=result)


def trigger_job(name: str, jobs: Mapping[str, Job]) -> Any:
    """Run a job synchronously for an admin request; errors reach the caller."""

    job = _lookup(name, jobs)
    logger.info(f"Manually triggered job '{name}'")
    return job()
