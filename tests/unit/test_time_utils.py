# tests/unit/test_time_utils.py
from datetime import datetime, timedelta, timezone

from app.utils.time import ensure_utc, parse_local_timestamp, whole_days_between

UTC = timezone.utc


def test_gateway_local_time_converted_to_utc():
    assert parse_local_timestamp("2026-05-01 10:00:00", "Asia/Jakarta") == datetime(2026, 5, 1, 3, 0, tzinfo=UTC)
    # explicit offsets are kept
    assert parse_local_timestamp("2026-05-01T10:00:00+00:00", "Asia/Jakarta") == datetime(2026, 5, 1, 10, 0, tzinfo=UTC)


def test_unparseable_timestamps_are_none():
    assert parse_local_timestamp(None, "Asia/Jakarta") is None
    assert parse_local_timestamp("", "Asia/Jakarta") is None
    assert parse_local_timestamp("yesterday", "Asia/Jakarta") is None


def test_whole_days_floor_and_naive_as_utc():
    start = datetime(2026, 5, 1, 12, 0)
    assert whole_days_between(start, datetime(2026, 5, 8, 11, 59, tzinfo=UTC)) == 6
    assert whole_days_between(start, datetime(2026, 5, 8, 12, 0, tzinfo=UTC)) == 7
    assert ensure_utc(start) == start.replace(tzinfo=UTC)
    assert ensure_utc(datetime(2026, 5, 1, 19, 0, tzinfo=timezone(timedelta(hours=7)))) == datetime(2026, 5, 1, 12, 0, tzinfo=UTC)
