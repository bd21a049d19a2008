# app/utils/time.py
from __future__ import annotations

from datetime import datetime, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; they were written as UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_local_timestamp(raw: str | None, tz_name: str) -> datetime | None:
    """
    Parse 'YYYY-MM-DD HH:MM:SS' (or ISO 8601) reported in `tz_name` into UTC.
    Unparseable or empty input yields None.
    """
    if not raw:
        return None
    try:
        dt = datetime.fromisoformat(raw.strip().replace(" ", "T", 1))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=ZoneInfo(tz_name))
    return dt.astimezone(timezone.utc)


def whole_days_between(start: datetime, end: datetime) -> int:
    """Floor of elapsed days from start to end."""
    delta = ensure_utc(end) - ensure_utc(start)
    return int(delta.total_seconds() // 86400)
