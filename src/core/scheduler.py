"""Scheduler for background planner jobs."""

import logging

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from src.core.config import settings
from src.core.scheduler_tracker import retry_job_with_backoff
from src.domain.common import utc_now
from src.services import goal_service


logger = logging.getLogger(__name__)

GOAL_STATUS_JOB = "goal_status_refresh"
JOB_NAMES = (GOAL_STATUS_JOB,)

# Global scheduler instance
scheduler = AsyncIOScheduler()


async def refresh_goal_statuses() -> int:
    """Recompute the cached status of every goal.

    Goal status depends on the clock (a goal turns at-risk or overdue without
    any write), so the stored copy is refreshed daily.
    """
    logger.info("Running goal status refresh job")
    updated = await goal_service.refresh_all_goal_statuses(now=utc_now())
    logger.info("Completed goal status refresh job", extra={"updated": updated})
    return updated


async def _run_goal_status_refresh() -> None:
    await retry_job_with_backoff(refresh_goal_statuses, GOAL_STATUS_JOB)


def start_scheduler() -> None:
    """Register jobs and start the scheduler.

    This should be called during FastAPI app startup.
    """
    logger.info("Starting scheduler")

    scheduler.add_job(
        _run_goal_status_refresh,
        trigger=CronTrigger(hour=settings.goal_status_refresh_hour, minute=0),
        id=GOAL_STATUS_JOB,
        name="Refresh Cached Goal Statuses",
        replace_existing=True,
    )
    logger.info("Scheduled goal status refresh job: daily at %d:00", settings.goal_status_refresh_hour)

    scheduler.start()
    logger.info("Scheduler started successfully")


def stop_scheduler() -> None:
    """Stop the scheduler.

    This should be called during FastAPI app shutdown.
    """
    if not scheduler.running:
        return
    logger.info("Stopping scheduler")
    scheduler.shutdown(wait=True)
    logger.info("Scheduler stopped")
