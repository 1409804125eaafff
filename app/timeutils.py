"""UTC time helpers shared by the realm services."""

import math
from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive datetimes read back from the database."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_epoch_ms(value: datetime | None) -> int | None:
    """Milliseconds since the Unix epoch, or None."""
    value = as_utc(value)
    if value is None:
        return None
    return int(value.timestamp() * 1000)


def minutes_remaining(until: datetime, now: datetime) -> int:
    """Whole minutes (rounded up) from *now* until *until*, never below 1."""
    seconds = (until - now).total_seconds()
    return max(1, math.ceil(seconds / 60))


def window_ends(started_at: datetime | None, window: timedelta) -> datetime | None:
    started_at = as_utc(started_at)
    if started_at is None:
        return None
    return started_at + window
