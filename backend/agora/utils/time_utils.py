"""
Time Utilities

All timestamps are UTC. Some backends (SQLite) hand back naive datetimes;
``ensure_utc`` normalizes them before comparison.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes, convert aware ones."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def deadline_from(start: datetime, duration_minutes: Optional[int]) -> Optional[datetime]:
    """Absolute deadline for a duration, or None for capacity-only events."""
    if not duration_minutes:
        return None
    return start + timedelta(minutes=duration_minutes)
