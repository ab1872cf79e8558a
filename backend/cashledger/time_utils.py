# Overview: UTC clock, ISO-8601 parsing/serialization and calendar-day bounds for ledger timestamps.

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Ledger clock. Timestamps are stored naive and always mean UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_naive_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp from a request into naive UTC.

    Blank input means "no value". A trailing Z or an explicit offset is
    converted; a timestamp without offset is taken to be UTC already.
    Raises ValueError on malformed input.
    """
    text = (value or "").strip()
    if not text:
        return None
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    return _as_naive_utc(datetime.fromisoformat(text))


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """Second-precision ISO-8601 with a trailing Z, as the API returns timestamps."""
    if dt is None:
        return None
    return _as_naive_utc(dt).replace(microsecond=0).isoformat() + "Z"


def day_start(value: date | datetime) -> datetime:
    """Midnight (UTC) opening the calendar day that contains value."""
    day = value.date() if isinstance(value, datetime) else value
    return datetime.combine(day, time.min)


def next_day_start(value: date | datetime) -> datetime:
    """Exclusive upper bound for an inclusive day filter."""
    return day_start(value) + timedelta(days=1)
