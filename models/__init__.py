"""Model exports for the fund ingestion service."""

from .fund import (
    FUND_CATEGORIES,
    FUND_STATUSES,
    NUMERIC_FIELDS,
    RECORD_FIELDS,
    TEXT_FIELDS,
    EntityRef,
    FundCategory,
    FundMaster,
    FundRecord,
    FundStatus,
    MonthlySnapshot,
    MonthTrack,
)
from .result import BatchResult, RecordOutcome, RecordStatus

__all__ = [
    "FUND_CATEGORIES",
    "FUND_STATUSES",
    "NUMERIC_FIELDS",
    "RECORD_FIELDS",
    "TEXT_FIELDS",
    "EntityRef",
    "FundCategory",
    "FundMaster",
    "FundRecord",
    "FundStatus",
    "MonthlySnapshot",
    "MonthTrack",
    "BatchResult",
    "RecordOutcome",
    "RecordStatus",
]
