"""
Background Job Scheduler.

WHAT: Configures and manages APScheduler for background tasks.

WHY: Notification delivery runs outside request handling. The outbox poller
drains rows written by ticket and comment transactions on a fixed interval.

HOW: Uses APScheduler with AsyncIOScheduler so jobs run on the application's
event loop. Jobs live in memory; the outbox table itself is the durable
state, so nothing is lost across restarts.

Example:
    # In main.py startup:
    from helpdesk.services.scheduler import start_scheduler, shutdown_scheduler

    @app.on_event("startup")
    async def startup():
        await start_scheduler()
"""

import logging
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.jobstores.memory import MemoryJobStore
from apscheduler.executors.asyncio import AsyncIOExecutor
from apscheduler.triggers.interval import IntervalTrigger

from helpdesk.core.config import settings
from helpdesk.services.outbox_service import get_notification_processor


logger = logging.getLogger(__name__)


OUTBOX_JOB_ID = "notification_outbox"

# Global scheduler instance
_scheduler: Optional[AsyncIOScheduler] = None


def get_scheduler() -> Optional[AsyncIOScheduler]:
    """Get the global scheduler instance."""
    return _scheduler


async def start_scheduler() -> None:
    """
    Start the background job scheduler.

    HOW:
    1. Creates AsyncIOScheduler with memory job store
    2. Registers the outbox job when OUTBOX_ENABLED
    3. Starts the scheduler

    Note: Call this from FastAPI startup event.
    """
    global _scheduler

    if _scheduler is not None and _scheduler.running:
        logger.warning("Scheduler already running")
        return

    jobstores = {
        "default": MemoryJobStore()
    }

    executors = {
        "default": AsyncIOExecutor()
    }

    job_defaults = {
        "coalesce": True,  # Combine multiple missed runs into one
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 60,  # Allow 60s late execution
    }

    _scheduler = AsyncIOScheduler(
        jobstores=jobstores,
        executors=executors,
        job_defaults=job_defaults,
        timezone="UTC",
    )

    if settings.OUTBOX_ENABLED:
        _register_outbox_job()
    else:
        logger.info("Notification outbox disabled; poller not registered")

    _scheduler.start()
    logger.info("Scheduler started")


def _register_outbox_job() -> None:
    """
    Register the notification outbox poller.

    HOW: Runs NotificationProcessor.run_tick every
    OUTBOX_POLL_INTERVAL_SECONDS. The processor skips a tick when the
    previous one (or an admin-triggered run) is still in progress.
    """
    if _scheduler is None:
        logger.error("Cannot register job: scheduler not initialized")
        return

    processor = get_notification_processor()

    _scheduler.add_job(
        func=processor.run_tick,
        trigger=IntervalTrigger(seconds=settings.OUTBOX_POLL_INTERVAL_SECONDS),
        id=OUTBOX_JOB_ID,
        name="Notification Outbox",
        replace_existing=True,
    )

    logger.info(
        f"Registered notification outbox job "
        f"(interval: {settings.OUTBOX_POLL_INTERVAL_SECONDS}s)"
    )


async def shutdown_scheduler() -> None:
    """
    Shut down the background job scheduler.

    Note: Call this from FastAPI shutdown event.
    """
    global _scheduler

    if _scheduler is None:
        logger.info("Scheduler not running")
        return

    if not _scheduler.running:
        logger.info("Scheduler already stopped")
        return

    logger.info("Shutting down scheduler...")
    _scheduler.shutdown(wait=True)
    _scheduler = None
    logger.info("Scheduler shut down successfully")


def get_scheduler_status() -> dict:
    """
    Get scheduler status information.

    WHY: Exposed on /health so operators can see whether the poller runs.

    Returns:
        Dict with scheduler status and job details
    """
    if _scheduler is None:
        return {
            "running": False,
            "jobs": [],
            "message": "Scheduler not initialized",
        }

    jobs = []
    for job in _scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "name": job.name,
            "next_run_time": str(job.next_run_time) if job.next_run_time else None,
            "trigger": str(job.trigger),
        })

    return {
        "running": _scheduler.running,
        "jobs": jobs,
        "message": "Scheduler is running" if _scheduler.running else "Scheduler is paused",
    }
