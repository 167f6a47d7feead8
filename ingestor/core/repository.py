"""Storage contract for fund masters and monthly snapshots.

The orchestrator only talks to :class:`FundRepository`. Identifiers handed out
by an implementation are opaque: callers compare them and pass them back, they
never inspect them.
"""

from __future__ import annotations

import copy
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Tuple

from ingestor.core.errors import PersistenceError
from models.fund import EntityRef, FundMaster, FundStatus, MonthlySnapshot, MonthTrack


class FundRepository(ABC):
    """Async repository over the master registry and the snapshot series."""

    # ---- ingestion contract ----

    @abstractmethod
    async def find_master_by_identifier(self, fund_id: str) -> Optional[FundMaster]:
        ...

    @abstractmethod
    async def upsert_master(self, fund_id: str, fields: Mapping[str, Any]) -> FundMaster:
        """Create the master if absent (status Active), else merge ``fields``."""

    @abstractmethod
    async def find_snapshot(self, fund_ref: EntityRef, timestamp: datetime) -> Optional[MonthlySnapshot]:
        ...

    @abstractmethod
    async def create_snapshot(
        self, fund_ref: EntityRef, timestamp: datetime, payload: Mapping[str, Any]
    ) -> EntityRef:
        ...

    @abstractmethod
    async def update_snapshot(self, snapshot_ref: EntityRef, payload: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    async def append_back_reference_if_absent(
        self, fund_ref: EntityRef, timestamp: datetime, snapshot_ref: EntityRef
    ) -> None:
        """Add (timestamp -> snapshot_ref) unless that month is already tracked.

        An existing entry for the same month is repointed to ``snapshot_ref``.
        """

    # ---- read side ----

    @abstractmethod
    async def get_master(self, fund_ref: EntityRef) -> Optional[FundMaster]:
        ...

    @abstractmethod
    async def list_masters(
        self, *, status: Optional[str] = None, category: Optional[str] = None
    ) -> List[FundMaster]:
        ...

    @abstractmethod
    async def fund_history(
        self,
        fund_ref: EntityRef,
        *,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[MonthlySnapshot]:
        """Snapshots of one fund, newest first."""

    @abstractmethod
    async def snapshots_for_month(
        self, timestamp: datetime, *, category: Optional[str] = None
    ) -> List[MonthlySnapshot]:
        ...

    @abstractmethod
    async def latest_by_category(self, category: str) -> List[MonthlySnapshot]:
        """Most recent snapshot of every fund in ``category``."""

    @abstractmethod
    async def count_masters(self, *, status: Optional[str] = None) -> int:
        ...

    @abstractmethod
    async def count_snapshots(self, *, timestamp: Optional[datetime] = None) -> int:
        ...

    async def close(self) -> None:
        return None


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class MemoryFundRepository(FundRepository):
    """Process-local repository used for dry runs and tests."""

    def __init__(self) -> None:
        self._masters: Dict[EntityRef, FundMaster] = {}
        self._master_by_fund_id: Dict[str, EntityRef] = {}
        self._snapshots: Dict[EntityRef, MonthlySnapshot] = {}
        self._snapshot_index: Dict[Tuple[EntityRef, datetime], EntityRef] = {}

    @staticmethod
    def _new_ref() -> str:
        return uuid.uuid4().hex

    async def find_master_by_identifier(self, fund_id: str) -> Optional[FundMaster]:
        ref = self._master_by_fund_id.get(fund_id)
        return copy.deepcopy(self._masters[ref]) if ref is not None else None

    async def upsert_master(self, fund_id: str, fields: Mapping[str, Any]) -> FundMaster:
        now = _utc_now()
        ref = self._master_by_fund_id.get(fund_id)
        if ref is None:
            ref = self._new_ref()
            master = FundMaster(
                ref=ref,
                fund_id=fund_id,
                fund_name=fields.get("fund_name", ""),
                fund_category=fields.get("fund_category", ""),
                status=FundStatus.ACTIVE.value,
                created_at=now,
            )
            self._masters[ref] = master
            self._master_by_fund_id[fund_id] = ref
        master = self._masters[ref]
        for key, value in fields.items():
            if key in ("ref", "fund_id", "month_track", "created_at"):
                continue
            if hasattr(master, key):
                setattr(master, key, value)
        master.updated_at = now
        return copy.deepcopy(master)

    async def find_snapshot(self, fund_ref: EntityRef, timestamp: datetime) -> Optional[MonthlySnapshot]:
        ref = self._snapshot_index.get((fund_ref, timestamp))
        return copy.deepcopy(self._snapshots[ref]) if ref is not None else None

    async def create_snapshot(
        self, fund_ref: EntityRef, timestamp: datetime, payload: Mapping[str, Any]
    ) -> EntityRef:
        if fund_ref not in self._masters:
            raise PersistenceError(f"Fund not found: {fund_ref}", collection="snapshots", operation="create")
        key = (fund_ref, timestamp)
        if key in self._snapshot_index:
            raise PersistenceError(
                f"Snapshot already exists for {fund_ref} at {timestamp.isoformat()}",
                collection="snapshots",
                operation="create",
            )
        ref = self._new_ref()
        self._snapshots[ref] = MonthlySnapshot(
            ref=ref,
            fund_ref=fund_ref,
            timestamp=timestamp,
            payload=dict(payload),
            created_at=_utc_now(),
        )
        self._snapshot_index[key] = ref
        return ref

    async def update_snapshot(self, snapshot_ref: EntityRef, payload: Mapping[str, Any]) -> None:
        snapshot = self._snapshots.get(snapshot_ref)
        if snapshot is None:
            raise PersistenceError(f"Snapshot not found: {snapshot_ref}", collection="snapshots", operation="update")
        snapshot.payload.update(payload)

    async def append_back_reference_if_absent(
        self, fund_ref: EntityRef, timestamp: datetime, snapshot_ref: EntityRef
    ) -> None:
        master = self._masters.get(fund_ref)
        if master is None:
            raise PersistenceError(f"Fund not found: {fund_ref}", collection="masters", operation="append_reference")
        existing = master.track_for(timestamp)
        if existing is None:
            master.month_track.append(MonthTrack(timestamp=timestamp, snapshot_ref=snapshot_ref))
        else:
            existing.snapshot_ref = snapshot_ref
        master.updated_at = _utc_now()

    async def get_master(self, fund_ref: EntityRef) -> Optional[FundMaster]:
        master = self._masters.get(fund_ref)
        return copy.deepcopy(master) if master is not None else None

    async def list_masters(
        self, *, status: Optional[str] = None, category: Optional[str] = None
    ) -> List[FundMaster]:
        masters = [
            master
            for master in self._masters.values()
            if (status is None or master.status == status)
            and (category is None or master.fund_category == category)
        ]
        return [copy.deepcopy(master) for master in sorted(masters, key=lambda m: m.fund_name)]

    async def fund_history(
        self,
        fund_ref: EntityRef,
        *,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None,
    ) -> List[MonthlySnapshot]:
        history = [
            snapshot
            for snapshot in self._snapshots.values()
            if snapshot.fund_ref == fund_ref
            and (from_date is None or snapshot.timestamp >= from_date)
            and (to_date is None or snapshot.timestamp <= to_date)
        ]
        history.sort(key=lambda s: s.timestamp, reverse=True)
        return [copy.deepcopy(snapshot) for snapshot in history]

    async def snapshots_for_month(
        self, timestamp: datetime, *, category: Optional[str] = None
    ) -> List[MonthlySnapshot]:
        return [
            copy.deepcopy(snapshot)
            for snapshot in self._snapshots.values()
            if snapshot.timestamp == timestamp and (category is None or snapshot.fund_category == category)
        ]

    async def latest_by_category(self, category: str) -> List[MonthlySnapshot]:
        latest: Dict[EntityRef, MonthlySnapshot] = {}
        for snapshot in self._snapshots.values():
            if snapshot.fund_category != category:
                continue
            current = latest.get(snapshot.fund_ref)
            if current is None or snapshot.timestamp > current.timestamp:
                latest[snapshot.fund_ref] = snapshot
        return [copy.deepcopy(snapshot) for snapshot in latest.values()]

    async def count_masters(self, *, status: Optional[str] = None) -> int:
        return sum(1 for master in self._masters.values() if status is None or master.status == status)

    async def count_snapshots(self, *, timestamp: Optional[datetime] = None) -> int:
        return sum(1 for snapshot in self._snapshots.values() if timestamp is None or snapshot.timestamp == timestamp)


__all__ = ["FundRepository", "MemoryFundRepository"]
