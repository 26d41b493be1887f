"""Date-time helpers for timestamps stored as naive UTC."""

from datetime import datetime, timedelta, timezone


def utcnow() -> datetime:
    """Return the current time as a naive UTC datetime, matching stored columns."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime | None) -> datetime:
    """Normalise an optional timestamp to naive UTC, defaulting to now."""

    if value is None:
        return utcnow()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def add_days(value: datetime, days: int) -> datetime:
    return value + timedelta(days=days)
