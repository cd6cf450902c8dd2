"""Date manipulation utilities"""

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def from_epoch_millis(millis: int) -> datetime:
    return datetime.fromtimestamp(millis / 1000, tz=timezone.utc)


def to_epoch_millis(value: datetime) -> int:
    return int(ensure_utc(value).timestamp() * 1000)


def window_start(days: int, now: Optional[datetime] = None) -> datetime:
    """Start of the trailing window of `days` days ending at `now`"""
    return ensure_utc(now or utc_now()) - timedelta(days=days)


def is_within_window(value: datetime, days: int, now: Optional[datetime] = None) -> bool:
    """Inside the trailing window; future-dated values are excluded"""
    now = ensure_utc(now or utc_now())
    return window_start(days, now) <= ensure_utc(value) <= now
