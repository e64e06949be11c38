"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def hours_from(start: datetime, hours: int) -> datetime:
    return start + timedelta(hours=hours)


def days_from(start: datetime, days: int) -> datetime:
    return start + timedelta(days=days)
