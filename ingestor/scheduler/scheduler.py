from datetime import datetime
from typing import Any, Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from ingestor.core.config import IngestSettings, get_settings
from ingestor.core.errors import ConfigurationError
from ingestor.scheduler.jobs import is_run_in_progress, monthly_ingestion_job
from ingestor.utils.logger import get_logger

log = get_logger(__name__)

JOB_ID = "monthly_ingestion"

# Single scheduler instance
scheduler: Optional[AsyncIOScheduler] = None


def build_trigger(settings: IngestSettings) -> CronTrigger:
    try:
        return CronTrigger.from_crontab(settings.cron_schedule, timezone=settings.cron_timezone)
    except ValueError as exc:
        raise ConfigurationError(
            f"Invalid cron schedule {settings.cron_schedule!r} ({settings.cron_timezone}): {exc}",
            key="CRON_SCHEDULE",
            section="scheduler",
        ) from exc


def build_scheduler(settings: Optional[IngestSettings] = None) -> AsyncIOScheduler:
    settings = settings or get_settings()
    trigger = build_trigger(settings)
    instance = AsyncIOScheduler(timezone=settings.cron_timezone)

    if settings.cron_enabled:
        instance.add_job(
            monthly_ingestion_job,
            trigger=trigger,
            kwargs={"settings": settings},
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            misfire_grace_time=settings.misfire_grace_time,
            replace_existing=True,
        )
        log.info("✅ Monthly data ingestion cron is ENABLED")
        log.info(f"📅 Schedule: {settings.cron_schedule} ({settings.cron_timezone})")
    else:
        log.warning("⚠️ Monthly data ingestion cron is DISABLED")
    return instance


def start_scheduler(settings: Optional[IngestSettings] = None) -> AsyncIOScheduler:
    """Start the background scheduler. Must be called from a running event loop."""
    global scheduler
    if scheduler is None:
        scheduler = build_scheduler(settings)
    if not scheduler.running:
        scheduler.start()
        log.info("🚀 Ingestion scheduler started")
    return scheduler


def shutdown_scheduler() -> None:
    global scheduler
    if scheduler is not None and scheduler.running:
        scheduler.shutdown(wait=False)
        log.info("Ingestion scheduler stopped")
    scheduler = None


def get_trigger_status(settings: Optional[IngestSettings] = None) -> Dict[str, Any]:
    """Cron switch, schedule and next fire time, for health/status output."""
    settings = settings or get_settings()

    next_run: Optional[datetime] = None
    job = scheduler.get_job(JOB_ID) if scheduler is not None else None
    if job is not None:
        next_run = getattr(job, "next_run_time", None)
    elif settings.cron_enabled:
        trigger = build_trigger(settings)
        next_run = trigger.get_next_fire_time(None, datetime.now(trigger.timezone))

    return {
        "cron_enabled": settings.cron_enabled,
        "schedule": settings.cron_schedule,
        "timezone": settings.cron_timezone,
        "next_run": next_run.isoformat() if next_run else None,
        "running": is_run_in_progress(),
        "source_api": "configured" if settings.source_configured else "not configured",
    }


__all__ = ["JOB_ID", "build_scheduler", "get_trigger_status", "shutdown_scheduler", "start_scheduler"]
