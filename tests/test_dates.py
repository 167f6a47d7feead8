from datetime import date, datetime, timedelta, timezone

import pytest

from ingestor.utils.dates import (
    format_date,
    last_month_timestamp,
    normalize_to_start_of_month,
    parse_as_of,
)

IST = timezone(timedelta(hours=5, minutes=30))


def test_normalize_to_start_of_month():
    assert normalize_to_start_of_month(datetime(2025, 9, 15, 13, 45, 12, 999)) == datetime(
        2025, 9, 1, tzinfo=timezone.utc
    )


def test_normalize_converts_to_utc_first():
    # 02:00 IST on Oct 1 is still Sep 30 in UTC
    assert normalize_to_start_of_month(datetime(2025, 10, 1, 2, 0, tzinfo=IST)).month == 9


def test_normalize_accepts_dates_and_strings():
    expected = datetime(2025, 2, 1, tzinfo=timezone.utc)
    assert normalize_to_start_of_month(date(2025, 2, 28)) == expected
    assert normalize_to_start_of_month("2025-02") == expected


def test_last_month_timestamp_crosses_year():
    assert last_month_timestamp(datetime(2025, 1, 15, tzinfo=timezone.utc)) == datetime(
        2024, 12, 1, tzinfo=timezone.utc
    )


def test_format_date():
    assert format_date(datetime(2025, 9, 1, tzinfo=timezone.utc)) == "2025-09-01"
    assert format_date("2025-09-15T23:30:00Z") == "2025-09-15"


def test_parse_as_of_formats():
    assert parse_as_of("2025-09") == datetime(2025, 9, 1, tzinfo=timezone.utc)
    assert parse_as_of("2025-09-15") == datetime(2025, 9, 15, tzinfo=timezone.utc)
    assert parse_as_of("2025-09-15T10:00:00Z") == datetime(2025, 9, 15, 10, tzinfo=timezone.utc)


@pytest.mark.parametrize("value", ["", "September", "2025-13"])
def test_parse_as_of_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_as_of(value)
