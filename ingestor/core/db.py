"""
MongoDB Database Connection and Collections

This module provides the async MongoDB client and collection references
for the ingestion service.
"""

from datetime import timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError

from ingestor.core.config import IngestSettings, get_settings
from ingestor.utils.logger import get_logger

log = get_logger(__name__)

_client: Optional[AsyncIOMotorClient] = None
_db = None


def get_client(settings: Optional[IngestSettings] = None) -> AsyncIOMotorClient:
    """Get MongoDB client (singleton)"""
    global _client
    if _client is None:
        settings = settings or get_settings()
        _client = AsyncIOMotorClient(
            settings.require_mongo_uri(),
            tz_aware=True,
            tzinfo=timezone.utc,
            maxPoolSize=settings.max_pool_size,
            serverSelectionTimeoutMS=settings.server_selection_timeout_ms,
        )
        log.info("MongoDB client initialized")
    return _client


def get_db(settings: Optional[IngestSettings] = None):
    """Get the fund database"""
    global _db
    if _db is None:
        settings = settings or get_settings()
        _db = get_client(settings)[settings.mongo_db_name]
        log.info(f"Connected to {settings.mongo_db_name} database")
    return _db


def get_masters_col(settings: Optional[IngestSettings] = None):
    """Fund master registry collection"""
    settings = settings or get_settings()
    return get_db(settings)[settings.masters_collection]


def get_snapshots_col(settings: Optional[IngestSettings] = None):
    """Monthly snapshot collection"""
    settings = settings or get_settings()
    return get_db(settings)[settings.snapshots_collection]


async def check_connection() -> bool:
    try:
        await get_client().admin.command("ping")
        return True
    except PyMongoError as exc:
        log.error(f"MongoDB ping failed: {exc}")
        return False


async def init_indexes(settings: Optional[IngestSettings] = None):
    """
    Create indexes backing the uniqueness invariants and the read queries.

    Safe to run on every start-up; existing indexes are left untouched.
    """
    log.info("Creating MongoDB indexes...")

    masters = get_masters_col(settings)
    await masters.create_index("fund_id", unique=True)
    await masters.create_index("fund_name")
    await masters.create_index("fund_category")
    await masters.create_index("status")
    log.info("Fund master indexes created")

    snapshots = get_snapshots_col(settings)
    await snapshots.create_index([("fund_ref", ASCENDING), ("timestamp", ASCENDING)], unique=True)
    await snapshots.create_index([("fund_ref", ASCENDING), ("timestamp", DESCENDING)])
    await snapshots.create_index([("fund_category", ASCENDING), ("timestamp", DESCENDING)])
    await snapshots.create_index([("fund_id", ASCENDING), ("timestamp", DESCENDING)])
    await snapshots.create_index([("timestamp", DESCENDING)])
    log.info("Monthly snapshot indexes created")


def close_client() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
        log.info("MongoDB client closed")
    _client = None
    _db = None
