from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes read back from the store as UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def to_query_datetime(value: datetime) -> datetime:
    """Naive UTC datetime for use in store filters (BSON dates carry no zone)."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def day_range(day: date | datetime | str) -> tuple[datetime, datetime]:
    """Return the first and last instant of a calendar day as query datetimes."""
    if isinstance(day, str):
        day = date.fromisoformat(day[:10])
    if isinstance(day, datetime):
        day = day.date()
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1) - timedelta(milliseconds=1)
    return start, end
