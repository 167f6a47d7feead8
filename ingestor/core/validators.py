"""Per-record validation for provider fund data.

Structural problems (missing identity, wrong types, values outside declared
bounds) reject the record. Plausibility problems (missing critical metrics,
statistical outliers) only produce warnings so that downstream consumers still
see unusual-but-valid data.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ingestor.core.categories import is_canonical_category, normalize_category
from ingestor.core.errors import ValidationError
from ingestor.utils.logger import get_logger
from models.fund import FUND_CATEGORIES, IDENTITY_FIELDS, NUMERIC_FIELDS, RECORD_FIELDS, TEXT_FIELDS, FundRecord

log = get_logger(__name__)

Bound = Tuple[Optional[float], Optional[float]]

REQUIRED_FIELDS: Tuple[str, ...] = IDENTITY_FIELDS
CRITICAL_FIELDS: Tuple[str, ...] = ("sharpe_ratio", "expense_ratio_equity", "aum_equity")

_NON_NEGATIVE: Bound = (0, None)
_SCORE: Bound = (1, 5)

# (min, max); None leaves that side open. Fields absent here are unbounded.
FIELD_BOUNDS: Dict[str, Bound] = {
    "five_year_cagr_equity": (-50, 100),
    "five_year_cagr_debt_hybrid": (-10, 20),
    "three_year_rolling_consistency": (0, 100),
    "beta": _NON_NEGATIVE,
    "std_dev_equity": _NON_NEGATIVE,
    "std_dev_debt_hybrid": _NON_NEGATIVE,
    "max_drawdown": (None, 0),
    "recovery_period": _NON_NEGATIVE,
    "downside_capture_ratio": _NON_NEGATIVE,
    "expense_ratio_equity": (0, 5),
    "expense_ratio_debt": (0, 5),
    "aum_equity": _NON_NEGATIVE,
    "aum_debt": _NON_NEGATIVE,
    "liquidity_risk": _SCORE,
    "portfolio_turnover_ratio": _NON_NEGATIVE,
    "concentration_sector_fit": _SCORE,
    "style_fit": _SCORE,
    "fund_house_reputation": _SCORE,
    "fund_manager_tenure": _NON_NEGATIVE,
    "fund_manager_track_record": _SCORE,
    "amc_risk_management": _SCORE,
    "esg_governance": _SCORE,
    "benchmark_consistency": _SCORE,
    "peer_comparison": _SCORE,
    "tax_efficiency": _SCORE,
    "fund_innovation": _SCORE,
    "forward_risk_mitigation": _SCORE,
}

# Sane ranges; values outside are kept but flagged.
OUTLIER_RANGES: Dict[str, Bound] = {
    "five_year_cagr_equity": (-50, 100),
    "expense_ratio_equity": (0.1, 3),
}

_NUMERIC_NOISE = re.compile(r"[%,₹\s]")


def _clean_numeric(value: Any) -> Any:
    """Convert numeric strings to numbers; leave anything else untouched."""
    if not isinstance(value, str):
        return value
    cleaned = _NUMERIC_NOISE.sub("", value)
    if cleaned in ("", "-", "N/A", "NA"):
        return None
    try:
        return float(cleaned)
    except ValueError:
        return value


def clean_raw_record(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Whitelist known fields, trim strings and coerce ``""`` to ``None``."""
    cleaned: Dict[str, Any] = {}
    for name in RECORD_FIELDS:
        value = raw.get(name)
        if isinstance(value, str):
            value = value.strip()
            if value == "":
                value = None
        if name in NUMERIC_FIELDS:
            value = _clean_numeric(value)
        elif isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        cleaned[name] = value
    return cleaned


@dataclass(slots=True)
class ValidationOutcome:
    record: Optional[FundRecord]
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return self.record is not None

    def raise_for_errors(self) -> FundRecord:
        if self.record is None:
            raise ValidationError("; ".join(self.errors) or "Validation failed")
        return self.record


def _describe_bound(bound: Bound) -> str:
    low, high = bound
    if low is not None and high is not None:
        return f"between {low:g} and {high:g}"
    if low is not None:
        return f">= {low:g}"
    return f"<= {high:g}"


def _is_finite(value: float) -> bool:
    try:
        return math.isfinite(value)
    except OverflowError:
        return False


def _within(value: float, bound: Bound) -> bool:
    low, high = bound
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


class RecordValidator:
    """
    Validation engine for provider fund records.
    Normalises the category before checking it.
    """

    def __init__(
        self,
        *,
        field_bounds: Optional[Dict[str, Bound]] = None,
        outlier_ranges: Optional[Dict[str, Bound]] = None,
        critical_fields: Tuple[str, ...] = CRITICAL_FIELDS,
    ) -> None:
        self.field_bounds = FIELD_BOUNDS if field_bounds is None else field_bounds
        self.outlier_ranges = OUTLIER_RANGES if outlier_ranges is None else outlier_ranges
        self.critical_fields = critical_fields

    def validate(self, raw: Union[Mapping[str, Any], FundRecord]) -> ValidationOutcome:
        if isinstance(raw, FundRecord):
            raw = raw.to_payload()
        if not isinstance(raw, Mapping):
            return ValidationOutcome(None, errors=[f"Expected an object, got {type(raw).__name__}"])

        data = clean_raw_record(raw)

        missing = self.missing_required_fields(data)
        if missing:
            log.debug(f"Missing required fields: {', '.join(missing)}")
            return ValidationOutcome(None, errors=[f"Missing required fields: {', '.join(missing)}"])

        errors: List[str] = self.check_types(data)
        if isinstance(data["fund_category"], str):
            data["fund_category"] = normalize_category(data["fund_category"])
            errors.extend(self.check_category(data))
        if not errors:
            errors.extend(self.check_ranges(data))

        label = data.get("fund_name") or data.get("fund_id")
        if errors:
            log.warning(f"Validation errors for {label}: {'; '.join(errors)}")
            return ValidationOutcome(None, errors=errors)

        record = FundRecord.from_mapping(data)
        warnings = self.check_critical_fields(record) + self.detect_outliers(record)
        for warning in warnings:
            log.warning(warning)
        return ValidationOutcome(record, warnings=warnings)

    def validate_record(self, raw: Union[Mapping[str, Any], FundRecord]) -> Optional[FundRecord]:
        return self.validate(raw).record

    @staticmethod
    def missing_required_fields(data: Mapping[str, Any]) -> List[str]:
        return [name for name in REQUIRED_FIELDS if not data.get(name)]

    @staticmethod
    def check_category(data: Mapping[str, Any]) -> List[str]:
        category = data.get("fund_category")
        if is_canonical_category(category):
            return []
        return [f"Invalid fund_category '{category}' (expected one of {len(FUND_CATEGORIES)} canonical categories)"]

    @staticmethod
    def check_types(data: Mapping[str, Any]) -> List[str]:
        errors: List[str] = []
        for name in TEXT_FIELDS:
            value = data.get(name)
            if value is not None and not isinstance(value, str):
                errors.append(f"{name} must be a string")
        for name in NUMERIC_FIELDS:
            value = data.get(name)
            if value is None:
                continue
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                errors.append(f"{name} must be a number")
            elif not _is_finite(value):
                errors.append(f"{name} must be a finite number")
        return errors

    def check_ranges(self, data: Mapping[str, Any]) -> List[str]:
        errors: List[str] = []
        for name, bound in self.field_bounds.items():
            value = data.get(name)
            if value is None:
                continue
            if not _within(value, bound):
                errors.append(f"{name} must be {_describe_bound(bound)} (got {value:g})")
        return errors

    def check_critical_fields(self, record: FundRecord) -> List[str]:
        missing = [name for name in self.critical_fields if getattr(record, name) is None]
        if not missing:
            return []
        return [f"Missing critical fields for {record.fund_name}: {', '.join(missing)}"]

    def detect_outliers(self, record: FundRecord) -> List[str]:
        outliers: List[str] = []
        for name, bound in self.outlier_ranges.items():
            value = getattr(record, name)
            if value is not None and not _within(value, bound):
                outliers.append(f"{name}={value:g}")
        if not outliers:
            return []
        return [f"Outliers in {record.fund_name}: {', '.join(outliers)}"]


__all__ = [
    "CRITICAL_FIELDS",
    "FIELD_BOUNDS",
    "OUTLIER_RANGES",
    "REQUIRED_FIELDS",
    "RecordValidator",
    "ValidationOutcome",
    "clean_raw_record",
]
