"""Domain model for the fund registry and its monthly snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Hashable, List, Mapping, Optional

# Store-assigned identifier. Only equality and round-tripping through the
# repository are relied upon.
EntityRef = Hashable


class FundCategory(str, Enum):
    LARGE_CAP = "Large Cap Equity"
    MID_CAP = "Mid Cap Equity"
    SMALL_CAP = "Small Cap Equity"
    FLEXI_CAP = "Flexi-Cap / MultiCap"
    INDEX_ETF = "Index / ETF"
    INTERNATIONAL = "International Equity"
    HYBRID_CONSERVATIVE = "Hybrid – Conservative"
    HYBRID_EQUITY = "Hybrid – Equity-Oriented"
    DEBT_CORPORATE = "Debt – Corporate"
    DEBT_SHORT = "Debt – Short/Ultra Short"
    DEBT_BANKING_PSU = "Debt – Banking / PSU"
    DEBT_GILT = "Debt – Gilt"


FUND_CATEGORIES: List[str] = [category.value for category in FundCategory]


class FundStatus(str, Enum):
    ACTIVE = "Active"
    CLOSED = "Closed"
    MERGED = "Merged"
    SUSPENDED = "Suspended"


FUND_STATUSES: List[str] = [status.value for status in FundStatus]

IDENTITY_FIELDS = ("fund_id", "fund_name", "fund_category")
METADATA_FIELDS = ("amc", "scheme_code", "isin", "risk_profile")

QUANTITATIVE_FIELDS = (
    "five_year_cagr_equity",
    "five_year_cagr_debt_hybrid",
    "three_year_rolling_consistency",
    "sharpe_ratio",
    "sortino_ratio",
    "alpha",
    "beta",
    "std_dev_equity",
    "std_dev_debt_hybrid",
    "max_drawdown",
    "recovery_period",
    "downside_capture_ratio",
    "expense_ratio_equity",
    "expense_ratio_debt",
    "aum_equity",
    "aum_debt",
    "liquidity_risk",
    "portfolio_turnover_ratio",
    "concentration_sector_fit",
    "style_fit",
)
QUALITATIVE_FIELDS = (
    "fund_house_reputation",
    "fund_manager_tenure",
    "fund_manager_track_record",
    "amc_risk_management",
    "esg_governance",
)
FORWARD_LOOKING_FIELDS = (
    "benchmark_consistency",
    "peer_comparison",
    "tax_efficiency",
    "fund_innovation",
    "forward_risk_mitigation",
)

NUMERIC_FIELDS = QUANTITATIVE_FIELDS + QUALITATIVE_FIELDS + FORWARD_LOOKING_FIELDS
TEXT_FIELDS = IDENTITY_FIELDS + METADATA_FIELDS
RECORD_FIELDS = TEXT_FIELDS + NUMERIC_FIELDS


@dataclass(slots=True)
class FundRecord:
    """A validated fund record. Field names follow the provider schema."""

    fund_id: str
    fund_name: str
    fund_category: str
    amc: Optional[str] = None
    scheme_code: Optional[str] = None
    isin: Optional[str] = None
    risk_profile: Optional[str] = None
    five_year_cagr_equity: Optional[float] = None
    five_year_cagr_debt_hybrid: Optional[float] = None
    three_year_rolling_consistency: Optional[float] = None
    sharpe_ratio: Optional[float] = None
    sortino_ratio: Optional[float] = None
    alpha: Optional[float] = None
    beta: Optional[float] = None
    std_dev_equity: Optional[float] = None
    std_dev_debt_hybrid: Optional[float] = None
    max_drawdown: Optional[float] = None
    recovery_period: Optional[float] = None
    downside_capture_ratio: Optional[float] = None
    expense_ratio_equity: Optional[float] = None
    expense_ratio_debt: Optional[float] = None
    aum_equity: Optional[float] = None
    aum_debt: Optional[float] = None
    liquidity_risk: Optional[float] = None
    portfolio_turnover_ratio: Optional[float] = None
    concentration_sector_fit: Optional[float] = None
    style_fit: Optional[float] = None
    fund_house_reputation: Optional[float] = None
    fund_manager_tenure: Optional[float] = None
    fund_manager_track_record: Optional[float] = None
    amc_risk_management: Optional[float] = None
    esg_governance: Optional[float] = None
    benchmark_consistency: Optional[float] = None
    peer_comparison: Optional[float] = None
    tax_efficiency: Optional[float] = None
    fund_innovation: Optional[float] = None
    forward_risk_mitigation: Optional[float] = None

    def to_payload(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    def master_fields(self) -> Dict[str, Any]:
        """Attributes copied onto the registry entry on every sighting."""
        payload: Dict[str, Any] = {
            "fund_name": self.fund_name,
            "fund_category": self.fund_category,
        }
        for name in ("amc", "scheme_code", "isin"):
            value = getattr(self, name)
            if value is not None:
                payload[name] = value
        return payload

    @classmethod
    def from_mapping(cls, payload: Mapping[str, Any]) -> "FundRecord":
        known = {name: payload.get(name) for name in RECORD_FIELDS}
        return cls(**known)


@dataclass(slots=True)
class MonthTrack:
    timestamp: datetime
    snapshot_ref: EntityRef

    def to_dict(self) -> Dict[str, Any]:
        return {"timestamp": self.timestamp, "snapshot_ref": self.snapshot_ref}


@dataclass(slots=True)
class FundMaster:
    """Registry entry: one per external fund identifier."""

    ref: EntityRef
    fund_id: str
    fund_name: str
    fund_category: str
    status: str = FundStatus.ACTIVE.value
    amc: Optional[str] = None
    scheme_code: Optional[str] = None
    isin: Optional[str] = None
    month_track: List[MonthTrack] = field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def track_for(self, timestamp: datetime) -> Optional[MonthTrack]:
        for track in self.month_track:
            if track.timestamp == timestamp:
                return track
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ref": self.ref,
            "fund_id": self.fund_id,
            "fund_name": self.fund_name,
            "fund_category": self.fund_category,
            "status": self.status,
            "amc": self.amc,
            "scheme_code": self.scheme_code,
            "isin": self.isin,
            "month_track": [track.to_dict() for track in self.month_track],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }


@dataclass(slots=True)
class MonthlySnapshot:
    """Point-in-time metrics of one fund for one calendar month."""

    ref: EntityRef
    fund_ref: EntityRef
    timestamp: datetime
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[datetime] = None

    @property
    def fund_category(self) -> Optional[str]:
        return self.payload.get("fund_category")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ref": self.ref,
            "fund_ref": self.fund_ref,
            "timestamp": self.timestamp,
            "created_at": self.created_at,
            **self.payload,
        }
