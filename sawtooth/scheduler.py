"""
Scheduled tasks for the storefront.

The sold-out archive sweep runs inside the FastAPI process on an
APScheduler cron trigger (every 6 hours by default).
"""

import logging
from typing import Any, Dict, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from sawtooth.core.config import get_settings
from sawtooth.database import async_session
from sawtooth.services.archival import ArchivalService

logger = logging.getLogger(__name__)

ARCHIVE_JOB_ID = "archive_sold_out"

# Global scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


async def run_sold_out_sweep() -> Dict[str, int]:
    """Entry point for the timer: archive long sold-out products, return counts."""
    settings = get_settings()
    async with async_session() as db:
        result = await ArchivalService(
            db, archive_after_days=settings.SOLD_OUT_ARCHIVE_DAYS
        ).sweep_sold_out()
    return {
        "archived_count": result["archived_count"],
        "deleted_images": result["deleted_images"],
    }


def job_listener(event):
    """Listen to job events for logging"""
    if event.exception:
        logger.error("Job %s crashed: %s", event.job_id, event.exception)
    else:
        logger.info("Job %s finished: %s", event.job_id, event.retval)


def create_scheduler() -> AsyncIOScheduler:
    global scheduler

    if scheduler is not None:
        return scheduler

    settings = get_settings()
    scheduler = AsyncIOScheduler(timezone="UTC")
    scheduler.add_listener(job_listener, EVENT_JOB_EXECUTED | EVENT_JOB_ERROR)

    if settings.ARCHIVE_SCHEDULE_ENABLED:
        scheduler.add_job(
            run_sold_out_sweep,
            CronTrigger.from_crontab(settings.ARCHIVE_SCHEDULE, timezone="UTC"),
            id=ARCHIVE_JOB_ID,
            name="Archive Sold-Out Products",
            replace_existing=True,
            max_instances=1,
            misfire_grace_time=3600,
        )
        logger.info("Archive sweep scheduled: %s", settings.ARCHIVE_SCHEDULE)
    else:
        logger.info("Archive sweep is disabled. Set ARCHIVE_SCHEDULE_ENABLED=true to enable")

    return scheduler


async def start_scheduler():
    global scheduler

    if scheduler is None:
        scheduler = create_scheduler()

    if not scheduler.running:
        scheduler.start()
        for job in scheduler.get_jobs():
            logger.info("  - %s: %s", job.name, job.trigger)


async def stop_scheduler():
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    scheduler = None


def get_scheduler_status() -> Dict[str, Any]:
    if scheduler is None:
        return {"status": "not_initialized", "jobs": []}

    return {
        "status": "running" if scheduler.running else "stopped",
        "jobs": [
            {
                "id": job.id,
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in scheduler.get_jobs()
        ],
    }
