"""Calendar helpers for month-keyed snapshots. All results are UTC-aware."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Union

DateLike = Union[date, datetime, str]


def _as_utc_datetime(value: DateLike) -> datetime:
    if isinstance(value, str):
        value = parse_as_of(value)
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def normalize_to_start_of_month(value: DateLike) -> datetime:
    """First instant of the UTC calendar month containing ``value``.

    Naive datetimes are taken to be UTC already.
    """
    moment = _as_utc_datetime(value)
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def last_month_timestamp(now: Optional[datetime] = None) -> datetime:
    """Start of the last completed month, e.g. 2025-10-01 -> 2025-09-01."""
    current = normalize_to_start_of_month(now or datetime.now(timezone.utc))
    return normalize_to_start_of_month(current - timedelta(days=1))


def format_date(value: DateLike) -> str:
    return _as_utc_datetime(value).date().isoformat()


def parse_as_of(value: str) -> datetime:
    """Parse ``YYYY-MM``, ``YYYY-MM-DD`` or a full ISO-8601 timestamp."""
    cleaned = value.strip()
    if not cleaned:
        raise ValueError("as-of date must not be empty")
    if len(cleaned) == 7:
        cleaned = f"{cleaned}-01"
    try:
        parsed = datetime.fromisoformat(cleaned.replace("Z", "+00:00"))
    except ValueError as exc:
        raise ValueError(f"Invalid as-of date: {value!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


__all__ = [
    "normalize_to_start_of_month",
    "last_month_timestamp",
    "format_date",
    "parse_as_of",
]
