"""Timezone helpers.

Timestamps are stored timezone-aware on Postgres; SQLite hands them back
naive, so anything compared in Python goes through ``as_utc``.
"""

from datetime import date, datetime, time, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes; convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def end_of_day(day: date) -> datetime:
    """23:59:59 on the given day, inclusive upper bound for date ranges."""
    return datetime.combine(day, time(23, 59, 59), tzinfo=timezone.utc)
