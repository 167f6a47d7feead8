"""
MongoDB Repository - Data Access Layer

Motor-backed implementation of :class:`FundRepository`. Writes that depend on
an existence check are single conditional updates.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from pymongo import ReturnDocument
from pymongo.errors import ConnectionFailure, DuplicateKeyError, PyMongoError, ServerSelectionTimeoutError

from ingestor.core.config import IngestSettings
from ingestor.core.db import get_db
from ingestor.core.errors import PersistenceError, StoreUnavailableError
from ingestor.core.repository import FundRepository
from ingestor.utils.logger import get_logger
from models.fund import EntityRef, FundMaster, FundStatus, MonthlySnapshot, MonthTrack

log = get_logger(__name__)

# Fields only ever written on insert; never merged from a record.
_INSERT_ONLY_FIELDS = {"_id", "fund_id", "status", "month_track", "created_at"}
_SNAPSHOT_META_FIELDS = ("_id", "fund_ref", "timestamp", "created_at")


def _master_from_doc(doc: Mapping[str, Any]) -> FundMaster:
    return FundMaster(
        ref=doc["_id"],
        fund_id=doc["fund_id"],
        fund_name=doc.get("fund_name", ""),
        fund_category=doc.get("fund_category", ""),
        status=doc.get("status", FundStatus.ACTIVE.value),
        amc=doc.get("amc"),
        scheme_code=doc.get("scheme_code"),
        isin=doc.get("isin"),
        month_track=[
            MonthTrack(timestamp=track["timestamp"], snapshot_ref=track["snapshot_ref"])
            for track in doc.get("month_track", [])
        ],
        created_at=doc.get("created_at"),
        updated_at=doc.get("updated_at"),
    )


def _snapshot_from_doc(doc: Mapping[str, Any]) -> MonthlySnapshot:
    payload = {key: value for key, value in doc.items() if key not in _SNAPSHOT_META_FIELDS}
    return MonthlySnapshot(
        ref=doc["_id"],
        fund_ref=doc["fund_ref"],
        timestamp=doc["timestamp"],
        payload=payload,
        created_at=doc.get("created_at"),
    )


class MongoFundRepository(FundRepository):
    """MongoDB data access layer for fund masters and monthly snapshots"""

    def __init__(self, db, *, masters_collection: str = "mfSchemeTrackRecord", snapshots_collection: str = "mfSchemeDataMonthwise"):
        self._db = db
        self._masters = self._db[masters_collection]
        self._snapshots = self._db[snapshots_collection]

    @classmethod
    def from_settings(cls, settings: IngestSettings) -> "MongoFundRepository":
        return cls(
            get_db(settings),
            masters_collection=settings.masters_collection,
            snapshots_collection=settings.snapshots_collection,
        )

    @asynccontextmanager
    async def _guard(self, operation: str, collection: str):
        try:
            yield
        except (ConnectionFailure, ServerSelectionTimeoutError) as exc:
            log.error(f"MongoDB unreachable during {operation}: {exc}")
            raise StoreUnavailableError(
                f"Store unavailable: {exc}", collection=collection, operation=operation
            ) from exc
        except PyMongoError as exc:
            raise PersistenceError(
                f"{operation} failed: {exc}", collection=collection, operation=operation
            ) from exc

    # ==================== MASTERS ====================

    async def find_master_by_identifier(self, fund_id: str) -> Optional[FundMaster]:
        async with self._guard("find_master", "masters"):
            doc = await self._masters.find_one({"fund_id": fund_id})
        return _master_from_doc(doc) if doc else None

    async def upsert_master(self, fund_id: str, fields: Mapping[str, Any]) -> FundMaster:
        """
        Create-or-merge a fund master keyed by ``fund_id``.

        Two concurrent upserts of a new fund can both miss and both insert; the
        unique index rejects the loser, whose retry then matches the winner.
        """
        now = datetime.now(timezone.utc)
        to_set: Dict[str, Any] = {k: v for k, v in fields.items() if k not in _INSERT_ONLY_FIELDS}
        to_set["updated_at"] = now
        update = {
            "$set": to_set,
            "$setOnInsert": {
                "fund_id": fund_id,
                "status": FundStatus.ACTIVE.value,
                "month_track": [],
                "created_at": now,
            },
        }

        for attempt in range(2):
            try:
                async with self._guard("upsert_master", "masters"):
                    doc = await self._masters.find_one_and_update(
                        {"fund_id": fund_id},
                        update,
                        upsert=True,
                        return_document=ReturnDocument.AFTER,
                    )
                return _master_from_doc(doc)
            except PersistenceError as exc:
                if attempt == 0 and isinstance(exc.__cause__, DuplicateKeyError):
                    log.debug(f"Concurrent insert for {fund_id}, retrying upsert")
                    continue
                raise
        raise PersistenceError(f"Could not upsert master {fund_id}", collection="masters", operation="upsert_master")

    async def append_back_reference_if_absent(
        self, fund_ref: EntityRef, timestamp: datetime, snapshot_ref: EntityRef
    ) -> None:
        now = datetime.now(timezone.utc)
        async with self._guard("append_reference", "masters"):
            pushed = await self._masters.update_one(
                {"_id": fund_ref, "month_track.timestamp": {"$ne": timestamp}},
                {
                    "$push": {"month_track": {"timestamp": timestamp, "snapshot_ref": snapshot_ref}},
                    "$set": {"updated_at": now},
                },
            )
            if pushed.matched_count:
                return

            repointed = await self._masters.update_one(
                {"_id": fund_ref, "month_track.timestamp": timestamp},
                {"$set": {"month_track.$.snapshot_ref": snapshot_ref, "updated_at": now}},
            )
        if not repointed.matched_count:
            raise PersistenceError(f"Fund not found: {fund_ref}", collection="masters", operation="append_reference")

    async def get_master(self, fund_ref: EntityRef) -> Optional[FundMaster]:
        async with self._guard("get_master", "masters"):
            doc = await self._masters.find_one({"_id": fund_ref})
        return _master_from_doc(doc) if doc else None

    async def list_masters(
        self, *, status: Optional[str] = None, category: Optional[str] = None
    ) -> List[FundMaster]:
        query: Dict[str, Any] = {}
        if status is not None:
            query["status"] = status
        if category is not None:
            query["fund_category"] = category
        async with self._guard("list_masters", "masters"):
            docs = await self._masters.find(query).sort("fund_name", 1).to_list(length=None)
        return [_master_from_doc(doc) for doc in docs]

    async def count_masters(self, *, status: Optional[str] = None) -> int:
        query = {"status": status} if status is not None else {}
        async with self._guard("count_masters", "masters"):
            return await self._masters.count_documents(query)

    # ==================== SNAPSHOTS ====================

    async def find_snapshot(self, fund_ref: EntityRef, timestamp: datetime) -> Optional[MonthlySnapshot]:
        async with self._guard("find_snapshot", "snapshots"):
            doc = await self._snapshots.find_one({"fund_ref": fund_ref, "timestamp": timestamp})
        return _snapshot_from_doc(doc) if doc else None

    async def create_snapshot(
        self, fund_ref: EntityRef, timestamp: datetime, payload: Mapping[str, Any]
    ) -> EntityRef:
        doc = {
            **payload,
            "fund_ref": fund_ref,
            "timestamp": timestamp,
            "created_at": datetime.now(timezone.utc),
        }
        try:
            async with self._guard("create_snapshot", "snapshots"):
                result = await self._snapshots.insert_one(doc)
            return result.inserted_id
        except PersistenceError as exc:
            if not isinstance(exc.__cause__, DuplicateKeyError):
                raise

        # A concurrent run inserted the same month first; merge into its document.
        log.debug(f"Snapshot for {fund_ref} at {timestamp.isoformat()} already exists, updating it")
        existing = await self.find_snapshot(fund_ref, timestamp)
        if existing is None:
            raise PersistenceError(
                f"Snapshot vanished after duplicate insert: {fund_ref}",
                collection="snapshots",
                operation="create_snapshot",
            )
        await self.update_snapshot(existing.ref, payload)
        return existing.ref

    async def update_snapshot(self, snapshot_ref: EntityRef, payload: Mapping[str, Any]) -> None:
        to_set = {k: v for k, v in payload.items() if k not in _SNAPSHOT_META_FIELDS}
        async with self._guard("update_snapshot", "snapshots"):
            result = await self._snapshots.update_one({"_id": snapshot_ref}, {"$set": to_set})
        if not result.matched_count:
            raise PersistenceError(
                f"Snapshot not found: {snapshot_ref}", collection="snapshots", operation="update_snapshot"
            )

    async def fund_history(
        self,
        fund_ref: EntityRef,
        *,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[MonthlySnapshot]:
        query: Dict[str, Any] = {"fund_ref": fund_ref}
        if from_date or to_date:
            query["timestamp"] = {}
            if from_date:
                query["timestamp"]["$gte"] = from_date
            if to_date:
                query["timestamp"]["$lte"] = to_date
        async with self._guard("fund_history", "snapshots"):
            docs = await self._snapshots.find(query).sort("timestamp", -1).to_list(length=None)
        return [_snapshot_from_doc(doc) for doc in docs]

    async def snapshots_for_month(
        self, timestamp: datetime, *, category: Optional[str] = None
    ) -> List[MonthlySnapshot]:
        query: Dict[str, Any] = {"timestamp": timestamp}
        if category is not None:
            query["fund_category"] = category
        async with self._guard("snapshots_for_month", "snapshots"):
            docs = await self._snapshots.find(query).to_list(length=None)
        return [_snapshot_from_doc(doc) for doc in docs]

    async def latest_by_category(self, category: str) -> List[MonthlySnapshot]:
        pipeline = [
            {"$match": {"fund_category": category}},
            {"$sort": {"timestamp": -1}},
            {"$group": {"_id": "$fund_ref", "latest": {"$first": "$$ROOT"}}},
            {"$replaceRoot": {"newRoot": "$latest"}},
        ]
        async with self._guard("latest_by_category", "snapshots"):
            docs = await self._snapshots.aggregate(pipeline).to_list(length=None)
        return [_snapshot_from_doc(doc) for doc in docs]

    async def count_snapshots(self, *, timestamp: Optional[datetime] = None) -> int:
        query = {"timestamp": timestamp} if timestamp is not None else {}
        async with self._guard("count_snapshots", "snapshots"):
            return await self._snapshots.count_documents(query)


__all__ = ["MongoFundRepository"]
