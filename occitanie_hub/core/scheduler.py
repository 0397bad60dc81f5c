"""
Quality standard: Smart automation.
Reason: Optionally refresh the events during low-traffic hours without
anyone pressing the refresh button.
"""
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from occitanie_hub.core.logger import log

JOB_ID = "refresh_events"

scheduler = AsyncIOScheduler()


def start_scheduler(controller, cron: Optional[str]) -> bool:
    """Schedules `controller.refresh_events` with a crontab expression. No cron, no job."""
    if not cron:
        log.info("Scheduler disabled (no refresh cron configured).")
        return False

    scheduler.add_job(
        controller.refresh_events,
        CronTrigger.from_crontab(cron),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
    )
    scheduler.start()
    log.info(f"Scheduler started ({cron}).")
    return True


def stop_scheduler():
    if scheduler.running:
        scheduler.shutdown(wait=False)
