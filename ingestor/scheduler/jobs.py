"""Scheduled and manual triggers for the monthly ingestion run."""

import asyncio
from typing import Callable, Optional

from ingestor.core.config import IngestSettings, get_settings
from ingestor.core.errors import IngestorError
from ingestor.core.fetcher import SourceFetcher
from ingestor.core.ingestion import AsOf, IngestionOrchestrator, run_monthly_ingestion
from ingestor.core.mongo_repository import MongoFundRepository
from ingestor.core.repository import FundRepository
from ingestor.utils.logger import get_logger
from models.result import BatchResult

log = get_logger(__name__)

RepositoryFactory = Callable[[IngestSettings], FundRepository]
FetcherFactory = Callable[[IngestSettings], SourceFetcher]

# One run at a time per process; a trigger arriving mid-run is dropped.
_run_lock = asyncio.Lock()


def is_run_in_progress() -> bool:
    return _run_lock.locked()


async def monthly_ingestion_job(
    as_of: AsOf = None,
    *,
    manual: bool = False,
    settings: Optional[IngestSettings] = None,
    repository_factory: Optional[RepositoryFactory] = None,
    fetcher_factory: Optional[FetcherFactory] = None,
) -> Optional[BatchResult]:
    """
    Scheduler job for the monthly run.
    This function should contain no business logic beyond orchestration.

    Returns None when the run was skipped (cron disabled or a run in flight).
    Manual triggers ignore CRON_ENABLED.
    """
    settings = settings or get_settings()

    if not manual and not settings.cron_enabled:
        log.info("⏸️ Cron is disabled, skipping...")
        return None

    if _run_lock.locked():
        log.warning("⚠️ Monthly ingestion already running, skipping trigger")
        return None

    async with _run_lock:
        trigger = "manual" if manual else "scheduled"
        log.info(f"[Scheduler] Starting {trigger} monthly ingestion")

        repository = (repository_factory or MongoFundRepository.from_settings)(settings)
        fetcher = (fetcher_factory or SourceFetcher.from_settings)(settings)
        try:
            result = await run_monthly_ingestion(
                fetcher, IngestionOrchestrator(repository), as_of, settings=settings
            )
        except IngestorError as exc:
            log.error("========================================")
            log.error("💥 INGESTION FAILED")
            log.error("========================================")
            log.error(f"Error: {exc.message}")
            log.error(f"Details: {exc.as_dict()}")
            raise
        finally:
            await fetcher.close()
            await repository.close()

        log.info(f"[Scheduler] Completed {trigger} monthly ingestion")
        return result


async def trigger_manual_ingestion(as_of: AsOf = None, **kwargs) -> Optional[BatchResult]:
    """Run the monthly ingestion now, regardless of the cron switch."""
    log.info("🔧 Manual ingestion triggered")
    return await monthly_ingestion_job(as_of, manual=True, **kwargs)


__all__ = ["is_run_in_progress", "monthly_ingestion_job", "trigger_manual_ingestion"]
