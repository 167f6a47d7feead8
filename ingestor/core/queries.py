"""Read access to the registry and the monthly series."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from ingestor.core.categories import normalize_category
from ingestor.core.repository import FundRepository
from ingestor.utils.dates import DateLike, normalize_to_start_of_month
from ingestor.utils.logger import get_logger
from models.fund import FundMaster, FundStatus, MonthlySnapshot

log = get_logger(__name__)


class FundQueryService:
    """
    Thin query layer over a :class:`FundRepository`.

    Category arguments go through the same alias table as ingestion, and
    every date filter is snapped to the month it falls in.
    """

    def __init__(self, repository: FundRepository):
        self.repository = repository

    async def active_funds(self, category: Optional[str] = None) -> List[FundMaster]:
        return await self.repository.list_masters(
            status=FundStatus.ACTIVE.value,
            category=normalize_category(category) if category else None,
        )

    async def fund_by_id(self, fund_id: str) -> Optional[FundMaster]:
        return await self.repository.find_master_by_identifier(fund_id)

    async def fund_history(
        self,
        fund_id: str,
        *,
        from_date: Optional[DateLike] = None,
        to_date: Optional[DateLike] = None,
    ) -> List[MonthlySnapshot]:
        """Snapshots of one fund, newest first. Unknown funds yield an empty list."""
        master = await self.repository.find_master_by_identifier(fund_id)
        if master is None:
            log.debug(f"No fund registered under {fund_id}")
            return []
        return await self.repository.fund_history(
            master.ref,
            from_date=normalize_to_start_of_month(from_date) if from_date is not None else None,
            to_date=normalize_to_start_of_month(to_date) if to_date is not None else None,
        )

    async def master_for_snapshot(self, snapshot: MonthlySnapshot) -> Optional[FundMaster]:
        return await self.repository.get_master(snapshot.fund_ref)

    async def funds_for_month(self, month: DateLike, category: Optional[str] = None) -> List[MonthlySnapshot]:
        return await self.repository.snapshots_for_month(
            normalize_to_start_of_month(month),
            category=normalize_category(category) if category else None,
        )

    async def latest_by_category(self, category: str) -> List[MonthlySnapshot]:
        return await self.repository.latest_by_category(normalize_category(category))

    async def summary(self) -> Dict[str, Any]:
        return {
            "funds": await self.repository.count_masters(),
            "active_funds": await self.repository.count_masters(status=FundStatus.ACTIVE.value),
            "snapshots": await self.repository.count_snapshots(),
        }


__all__ = ["FundQueryService"]
