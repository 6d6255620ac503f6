"""
Clock abstraction so round deadlines can be driven deterministically.
"""
from datetime import datetime, timezone
from typing import Optional


class Clock:
    """Wall clock returning timezone-aware UTC datetimes."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


system_clock = Clock()


def get_clock() -> Clock:
    """FastAPI dependency returning the process clock."""
    return system_clock


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def seconds_remaining(ends_at: Optional[datetime], now: datetime) -> Optional[int]:
    """Whole seconds left until ``ends_at``, floored at zero."""
    if ends_at is None:
        return None
    return max(0, int((ensure_utc(ends_at) - now).total_seconds()))
