"""Maintenance job scheduling for the alert engine."""

from typing import List, Optional

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_EXECUTED
from apscheduler.schedulers.asyncio import AsyncIOScheduler

from .config.logging import get_logger
from .config.settings import Settings, get_settings
from .engine import AlertEngine

logger = get_logger(__name__)

CLEANUP_JOB_ID = "alert_cleanup"
PENDING_NOTIFICATIONS_JOB_ID = "pending_notifications"
RECONCILE_JOB_ID = "snapshot_reconcile"


def create_scheduler() -> AsyncIOScheduler:
    """
    Create and configure an AsyncIOScheduler.

    Jobs are bound engine coroutines, so they live in the default memory
    job store and are registered again on every start.
    """
    job_defaults = {
        "coalesce": True,  # Run a missed job once, not once per missed slot
        "max_instances": 1,  # Only one instance of each job at a time
        "misfire_grace_time": 30,  # 30 seconds grace period for missed jobs
    }

    scheduler = AsyncIOScheduler(job_defaults=job_defaults, timezone="UTC")

    # Add event listeners for logging
    scheduler.add_listener(job_executed_listener, EVENT_JOB_EXECUTED)
    scheduler.add_listener(job_error_listener, EVENT_JOB_ERROR)

    return scheduler


def job_executed_listener(event):
    """Log successful job executions."""
    logger.info(
        "Scheduled job executed",
        job_id=event.job_id,
        scheduled_run_time=str(event.scheduled_run_time),
        result=event.retval,
    )


def job_error_listener(event):
    """Log job execution errors."""
    logger.error(
        "Scheduled job crashed",
        job_id=event.job_id,
        error=str(event.exception),
        traceback=event.traceback,
    )


def add_maintenance_jobs(
    scheduler: AsyncIOScheduler,
    engine: AlertEngine,
    settings: Optional[Settings] = None,
) -> List[str]:
    """
    Register the engine maintenance jobs.

    - retention cleanup, daily at ``cleanup_hour`` UTC
    - pending notification processing, every ``pending_notification_interval_minutes``
    - snapshot reconcile for cold items, every ``reconcile_interval_minutes``,
      only when the engine has a snapshot provider

    Returns:
        Ids of the registered jobs
    """
    settings = settings or get_settings()
    job_ids = []

    scheduler.add_job(
        func=engine.cleanup,
        kwargs={"retention_days": settings.alert_retention_days},
        trigger="cron",
        hour=settings.cleanup_hour,
        id=CLEANUP_JOB_ID,
        name="Alert Retention Cleanup",
        replace_existing=True,
    )
    job_ids.append(CLEANUP_JOB_ID)

    scheduler.add_job(
        func=engine.process_pending_notifications,
        trigger="interval",
        minutes=settings.pending_notification_interval_minutes,
        id=PENDING_NOTIFICATIONS_JOB_ID,
        name="Pending Alert Notifications",
        replace_existing=True,
    )
    job_ids.append(PENDING_NOTIFICATIONS_JOB_ID)

    if engine.snapshot_provider is not None:
        scheduler.add_job(
            func=engine.reconcile_snapshots,
            trigger="interval",
            minutes=settings.reconcile_interval_minutes,
            id=RECONCILE_JOB_ID,
            name="Cold Item Auto-Resolve Reconcile",
            replace_existing=True,
        )
        job_ids.append(RECONCILE_JOB_ID)

    logger.info(
        "Maintenance jobs scheduled",
        jobs=job_ids,
        cleanup_hour=settings.cleanup_hour,
        retention_days=settings.alert_retention_days,
    )
    return job_ids


def list_scheduled_jobs(scheduler: AsyncIOScheduler) -> List[dict]:
    """Describe the scheduled jobs."""
    return [
        {
            "id": job.id,
            "name": job.name,
            "trigger": str(job.trigger),
            "next_run_time": (
                job.next_run_time.isoformat()
                if getattr(job, "next_run_time", None)
                else None
            ),
        }
        for job in scheduler.get_jobs()
    ]
