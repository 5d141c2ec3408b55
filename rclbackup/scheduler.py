"""
APScheduler configuration for running backups on a cron schedule.

Used when BACKUP_SCHEDULE (or --schedule) is set: the process stays in the
foreground and runs one backup per trigger instead of exiting after one.
"""

import logging
from typing import Callable, Optional

from apscheduler.schedulers.blocking import BlockingScheduler
from apscheduler.triggers.cron import CronTrigger

from rclbackup.backup.executor import BackupExecutor
from rclbackup.config import BackupConfig
from rclbackup.models import BackupRun

logger = logging.getLogger(__name__)

BACKUP_JOB_ID = 'backup'

# Global scheduler instance
scheduler = None


def run_backup(config: BackupConfig) -> BackupRun:
    """
    Run one scheduled backup.

    A failed run is logged; the scheduler keeps running.
    """
    run = BackupExecutor(config).execute()
    if not run.succeeded:
        logger.error(f"Scheduled backup failed: {run.error_message}")
    return run


def init_scheduler(config: BackupConfig, job: Optional[Callable] = None):
    """
    Initialize and configure APScheduler.

    Args:
        config: Resolved configuration with a crontab schedule
        job: Callable run on each trigger (defaults to run_backup)
    """
    global scheduler

    if scheduler is not None:
        return scheduler

    job_defaults = {
        'coalesce': True,  # Combine multiple pending instances into one
        'max_instances': 1,  # Only one backup at a time
        'misfire_grace_time': 300  # 5 minutes grace period for misfires
    }

    scheduler = BlockingScheduler(job_defaults=job_defaults)

    scheduler.add_job(
        func=job or run_backup,
        trigger=CronTrigger.from_crontab(config.schedule),
        args=[config],
        id=BACKUP_JOB_ID,
        name='Scheduled Backup',
        replace_existing=True
    )

    return scheduler


def start_scheduler():
    """
    Start the scheduler; blocks until it is shut down.
    """
    if scheduler is None:
        raise RuntimeError("Scheduler not initialized. Call init_scheduler() first.")

    job = scheduler.get_job(BACKUP_JOB_ID)
    logger.info(f"Backups scheduled with trigger {job.trigger}")

    try:
        scheduler.start()
    except (KeyboardInterrupt, SystemExit):
        logger.info("Scheduler interrupted")


def stop_scheduler():
    """Stop the APScheduler."""
    global scheduler

    if scheduler and scheduler.running:
        scheduler.shutdown(wait=False)
        logger.info("Scheduler stopped")
    scheduler = None
