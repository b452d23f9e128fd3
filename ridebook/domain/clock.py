"""
India-local time helpers.

Departure instants are compared in India Standard Time (UTC+05:30, no DST).
Naive datetimes -- what clients send without an offset, and what SQLite
hands back -- are read as IST wall-clock time, so an early-morning
departure (00:00-05:29 IST) stays on its own calendar day.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

UTC = timezone.utc
IST = timezone(timedelta(hours=5, minutes=30), name="IST")


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


def to_ist(dt: datetime) -> datetime:
    """Return *dt* as an aware IST datetime; naive values are taken as IST."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=IST)
    return dt.astimezone(IST)


def has_departed(departure: datetime, now: datetime | None = None) -> bool:
    """True once *now* (IST) has reached *departure* (IST)."""
    current = to_ist(now) if now is not None else utc_now().astimezone(IST)
    return current >= to_ist(departure)
