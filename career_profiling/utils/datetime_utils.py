"""
Datetime helpers

All timestamps are stored as naive UTC so that PostgreSQL and SQLite
round-trip them identically.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current UTC time as a naive datetime.

    Services call this instead of datetime.utcnow() so tests can patch
    the clock at the call site.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def elapsed_seconds(since: Optional[datetime], now: datetime) -> int:
    """Whole seconds between two naive UTC datetimes, never negative"""
    if since is None:
        return 0
    if since.tzinfo is not None:
        since = since.astimezone(timezone.utc).replace(tzinfo=None)
    return max(0, int((now - since).total_seconds()))
