#!/usr/bin/env python3
"""
Mutual Fund Snapshot Ingestor - Main Entry Point
================================================

Usage:
    python -m ingestor.main run                      # Ingest the last completed month
    python -m ingestor.main run --as-of 2025-09      # Ingest under an explicit month
    python -m ingestor.main file funds.json          # Ingest a JSON export
    python -m ingestor.main scheduler                # Run the monthly cron
    python -m ingestor.main health                   # Probe source API and MongoDB
    python -m ingestor.main status                   # Registry counts and cron status
    python -m ingestor.main --dry-run run            # Keep everything in memory
"""

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from ingestor.core.config import IngestSettings, get_settings
from ingestor.core.db import check_connection, close_client, init_indexes
from ingestor.core.errors import IngestorError
from ingestor.core.fetcher import SourceFetcher
from ingestor.core.ingestion import IngestionOrchestrator, ingest_file
from ingestor.core.mongo_repository import MongoFundRepository
from ingestor.core.queries import FundQueryService
from ingestor.core.repository import FundRepository, MemoryFundRepository
from ingestor.scheduler.jobs import trigger_manual_ingestion
from ingestor.scheduler.scheduler import get_trigger_status, shutdown_scheduler, start_scheduler
from ingestor.utils.dates import parse_as_of
from ingestor.utils.logger import get_logger, setup_logging


def _print_json(payload: Dict[str, Any]) -> None:
    print(json.dumps(payload, indent=2, default=str, ensure_ascii=False))


async def _open_repository(args, settings: IngestSettings) -> FundRepository:
    if args.dry_run:
        get_logger(__name__).warning("Dry run: results are kept in memory and discarded on exit")
        return MemoryFundRepository()
    await init_indexes(settings)
    return MongoFundRepository.from_settings(settings)


async def _cmd_run(args, settings: IngestSettings) -> int:
    repository = await _open_repository(args, settings)
    result = await trigger_manual_ingestion(
        args.as_of,
        settings=settings,
        repository_factory=lambda _settings: repository,
    )
    if result is None:
        return 1
    _print_json(result.as_dict())
    return 0 if result.success else 1


async def _cmd_file(args, settings: IngestSettings) -> int:
    repository = await _open_repository(args, settings)
    try:
        result = await ingest_file(args.path, IngestionOrchestrator(repository), args.as_of)
    finally:
        await repository.close()
    _print_json(result.as_dict())
    return 0 if result.success else 1


async def _cmd_scheduler(args, settings: IngestSettings) -> int:
    log = get_logger(__name__)
    await init_indexes(settings)
    start_scheduler(settings)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # add_signal_handler is unavailable on Windows event loops
            pass

    log.info("Scheduler running, press Ctrl+C to stop")
    await stop.wait()
    shutdown_scheduler()
    return 0


async def _cmd_health(args, settings: IngestSettings) -> int:
    async with SourceFetcher.from_settings(settings) as fetcher:
        source = await fetcher.health_check()

    database: Dict[str, Any] = {"configured": bool(settings.mongo_uri), "reachable": False}
    if settings.mongo_uri and not args.dry_run:
        database["reachable"] = await check_connection()

    _print_json({"source": source, "database": database, "scheduler": get_trigger_status(settings)})
    healthy = source["reachable"] and (args.dry_run or database["reachable"])
    return 0 if healthy else 1


async def _cmd_status(args, settings: IngestSettings) -> int:
    repository = await _open_repository(args, settings)
    try:
        summary = await FundQueryService(repository).summary()
    finally:
        await repository.close()
    _print_json({"registry": summary, "scheduler": get_trigger_status(settings)})
    return 0


COMMANDS = {
    "run": _cmd_run,
    "file": _cmd_file,
    "scheduler": _cmd_scheduler,
    "health": _cmd_health,
    "status": _cmd_status,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mf-ingest",
        description="Monthly mutual fund snapshot ingestion",
    )
    parser.add_argument("--dry-run", action="store_true", help="Use an in-memory store instead of MongoDB")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL (DEBUG, INFO, ...)")
    parser.add_argument("--no-file-logs", action="store_true", help="Log to the console only")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Fetch from the source API and ingest")
    run_parser.add_argument("--as-of", type=parse_as_of, default=None, help="Target month (YYYY-MM or YYYY-MM-DD)")

    file_parser = subparsers.add_parser("file", help="Ingest a JSON file exported from the source")
    file_parser.add_argument("path", help="Path to a JSON array or envelope")
    file_parser.add_argument("--as-of", type=parse_as_of, default=None, help="Target month (YYYY-MM or YYYY-MM-DD)")

    subparsers.add_parser("scheduler", help="Run the monthly cron in the foreground")
    subparsers.add_parser("health", help="Check source API and MongoDB connectivity")
    subparsers.add_parser("status", help="Show registry counts and cron status")
    return parser


async def _dispatch(args, settings: IngestSettings) -> int:
    try:
        return await COMMANDS[args.command](args, settings)
    finally:
        close_client()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)

    settings = get_settings()
    setup_logging(args.log_level or settings.log_level, file_logging=not args.no_file_logs)
    log = get_logger(__name__)

    if args.command == "scheduler" and args.dry_run:
        log.error("The scheduler always writes to MongoDB; --dry-run is not supported")
        return 1

    try:
        return asyncio.run(_dispatch(args, settings))
    except IngestorError as exc:
        log.error(f"{type(exc).__name__}: {exc.message}")
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted")
        return 1


if __name__ == "__main__":
    sys.exit(main())
