from datetime import datetime, timezone
from typing import Callable

# All persisted timestamps are naive UTC, matching what SQLite hands back.
Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: datetime) -> datetime:
    """Drop tzinfo after converting to UTC; PostgreSQL may return aware values."""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def as_aware_utc(value: datetime) -> datetime:
    """Attach UTC to a naive-UTC value; aware values are converted."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
