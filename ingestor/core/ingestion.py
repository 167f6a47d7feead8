"""Monthly batch ingestion into the fund registry and the snapshot series."""

from __future__ import annotations

import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable, Mapping, Optional, Union

from ingestor.core.config import IngestSettings, get_settings
from ingestor.core.errors import StoreUnavailableError
from ingestor.core.fetcher import SourceFetcher
from ingestor.core.repository import FundRepository
from ingestor.core.validators import RecordValidator
from ingestor.sources.morningstar_parser import RawPayload, parse_file, parse_payload
from ingestor.utils.dates import DateLike, format_date, last_month_timestamp, normalize_to_start_of_month
from ingestor.utils.logger import get_logger
from models.fund import FundRecord
from models.result import BatchResult, RecordOutcome, RecordStatus

log = get_logger(__name__)

BatchRecord = Union[FundRecord, Mapping[str, Any]]
AsOf = Optional[DateLike]


def _label_for(raw: Any, index: int) -> str:
    if isinstance(raw, FundRecord):
        return raw.fund_name or raw.fund_id
    if isinstance(raw, Mapping):
        for key in ("fund_name", "fund_id"):
            value = raw.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if value is not None and not isinstance(value, str):
                return str(value)
    return f"record at index {index}"


class IngestionOrchestrator:
    """
    Folds a batch of fund records into the registry and the monthly series.

    Records are handled one after another; a failing record becomes an error
    string on the result and the batch carries on. Only a store that has gone
    away entirely aborts the run.
    """

    def __init__(self, repository: FundRepository, validator: Optional[RecordValidator] = None):
        self.repository = repository
        self.validator = validator or RecordValidator()
        self._stop_requested = False

    def request_stop(self) -> None:
        """Abandon the current run after the record in flight completes."""
        self._stop_requested = True

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    async def ingest(self, records: Iterable[BatchRecord], as_of: AsOf = None) -> BatchResult:
        timestamp = normalize_to_start_of_month(as_of if as_of is not None else datetime.now(timezone.utc))
        batch = list(records)
        result = BatchResult(timestamp=timestamp, batch_size=len(batch))
        log.info(f"Ingesting {len(batch)} funds for {format_date(timestamp)}")

        try:
            for index, raw in enumerate(batch):
                if self._stop_requested:
                    result.cancelled = True
                    log.warning(f"Stop requested, abandoning run after {index}/{len(batch)} records")
                    break
                result.absorb(await self._process_record(index, raw, timestamp))
        finally:
            self._stop_requested = False

        log.info(
            f"Ingestion finished: processed={result.processed}, added={result.added}, "
            f"updated={result.updated}, errors={len(result.errors)}"
        )
        return result

    async def _process_record(self, index: int, raw: BatchRecord, timestamp: datetime) -> RecordOutcome:
        label = _label_for(raw, index)

        if isinstance(raw, FundRecord):
            record, warnings = raw, []
        else:
            try:
                validation = self.validator.validate(raw)
            except Exception as exc:  # noqa: BLE001
                log.error(f"Validator crashed on {label}: {exc}")
                return RecordOutcome.rejected(label, f"Unreadable record: {exc}")
            if not validation.is_valid:
                return RecordOutcome.rejected(label, "; ".join(validation.errors), validation.warnings)
            record, warnings = validation.record, validation.warnings

        label = record.fund_name or record.fund_id
        try:
            status = await self._persist(record, timestamp)
        except StoreUnavailableError:
            raise
        except Exception as exc:  # noqa: BLE001
            log.error(f"Error processing fund {label}: {exc}")
            return RecordOutcome.failed(label, str(exc), warnings)
        return RecordOutcome(status, label, warnings=warnings)

    async def _persist(self, record: FundRecord, timestamp: datetime) -> RecordStatus:
        master = await self.repository.upsert_master(record.fund_id, record.master_fields())
        payload = record.to_payload()

        existing = await self.repository.find_snapshot(master.ref, timestamp)
        if existing is not None:
            await self.repository.update_snapshot(existing.ref, payload)
            # no-op when the month is already linked
            await self.repository.append_back_reference_if_absent(master.ref, timestamp, existing.ref)
            log.debug(f"Updated snapshot for {record.fund_name} ({format_date(timestamp)})")
            return RecordStatus.UPDATED

        snapshot_ref = await self.repository.create_snapshot(master.ref, timestamp, payload)
        await self.repository.append_back_reference_if_absent(master.ref, timestamp, snapshot_ref)
        log.debug(f"Created snapshot for {record.fund_name} ({format_date(timestamp)})")
        return RecordStatus.ADDED


def log_batch_report(
    result: BatchResult,
    *,
    fetched: Optional[int] = None,
    duration: Optional[float] = None,
    error_limit: int = 10,
) -> None:
    """Write the end-of-run summary in the layout operators grep for."""
    log.info("========================================")
    log.info("📊 INGESTION RESULTS")
    log.info("========================================")
    log.info(f"Status: {'✅ SUCCESS' if result.success else '❌ FAILED'}")
    if fetched is not None:
        log.info(f"Funds Fetched: {fetched}")
    log.info(f"Funds Validated: {result.batch_size - result.rejected}")
    log.info(f"Funds Processed: {result.processed}")
    log.info(f"Funds Added: {result.added}")
    log.info(f"Funds Updated: {result.updated}")
    log.info(f"Errors: {len(result.errors)}")
    log.info(f"Warnings: {len(result.warnings)}")
    if duration is not None:
        log.info(f"Duration: {duration:.2f}s")
    log.info(f"Timestamp: {result.timestamp.isoformat()}")
    if result.cancelled:
        log.warning("Run was cancelled before the batch completed")
    log.info("========================================")

    if result.errors:
        log.error("⚠️ Errors encountered:")
        for err in result.errors[:error_limit]:
            log.error(f"  - {err}")
        if len(result.errors) > error_limit:
            log.error(f"  ... and {len(result.errors) - error_limit} more")

    if result.success:
        log.info("✅ Monthly ingestion completed successfully")
    else:
        log.error("❌ Monthly ingestion completed with errors")


def _check_failure_rate(result: BatchResult, threshold: float) -> None:
    if result.validation_failure_rate > threshold:
        message = (
            f"High validation failure rate: {result.rejected}/{result.batch_size} "
            f"({result.validation_failure_rate:.0%}) records rejected"
        )
        log.warning(message)
        result.warnings.append(message)


async def run_monthly_ingestion(
    fetcher: SourceFetcher,
    orchestrator: IngestionOrchestrator,
    as_of: AsOf = None,
    *,
    settings: Optional[IngestSettings] = None,
) -> BatchResult:
    """
    Fetch the latest provider batch and ingest it.

    Without ``as_of`` the batch is filed under the last completed month.
    Fetch-stage errors propagate untouched; nothing is written in that case.
    """
    settings = settings or get_settings()
    started = time.perf_counter()
    timestamp = normalize_to_start_of_month(as_of) if as_of is not None else last_month_timestamp()

    log.info("🚀 ========================================")
    log.info("🚀 MONTHLY DATA INGESTION STARTED")
    log.info("🚀 ========================================")
    log.info(f"📅 Data timestamp: {timestamp.isoformat()}")

    records = await fetcher.fetch_batch()
    result = await orchestrator.ingest(records, timestamp)
    if not records:
        result.warnings.append(f"{fetcher.source_name} returned an empty batch")
    _check_failure_rate(result, settings.failure_rate_alert)

    log_batch_report(
        result,
        fetched=len(records),
        duration=time.perf_counter() - started,
        error_limit=settings.report_error_limit,
    )
    return result


async def ingest_payload(
    payload: RawPayload,
    orchestrator: IngestionOrchestrator,
    as_of: AsOf = None,
    *,
    source: str = "manual",
) -> BatchResult:
    """On-demand ingestion of a raw JSON document or an already decoded list."""
    records = parse_payload(payload, source=source)
    result = await orchestrator.ingest(records, as_of)
    log_batch_report(result, fetched=len(records))
    return result


async def ingest_file(
    path: Union[str, Path],
    orchestrator: IngestionOrchestrator,
    as_of: AsOf = None,
) -> BatchResult:
    records = parse_file(path)
    result = await orchestrator.ingest(records, as_of)
    log_batch_report(result, fetched=len(records))
    return result


__all__ = [
    "IngestionOrchestrator",
    "ingest_file",
    "ingest_payload",
    "log_batch_report",
    "run_monthly_ingestion",
]
