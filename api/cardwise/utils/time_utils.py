"""
Utility functions for timestamps.

All persisted timestamps are naive datetimes in UTC.
"""
from datetime import datetime, timezone
from typing import Optional

SECONDS_PER_DAY = 86400.0


def utc_now() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: Optional[datetime]) -> datetime:
    """
    Normalize a datetime to naive UTC.

    Aware datetimes are converted to UTC; naive ones are assumed to already be UTC.
    None means "now".

    Args:
        value: Datetime to normalize, or None

    Returns:
        Naive datetime in UTC
    """
    if value is None:
        return utc_now()
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def days_between(start: datetime, end: datetime) -> float:
    """Fractional days from start to end (negative if end precedes start)."""
    return (end - start).total_seconds() / SECONDS_PER_DAY
