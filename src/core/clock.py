"""
Timestamp helpers

All interaction timestamps are unix epoch milliseconds (UTC).
"""

import time
from datetime import datetime, timezone


def now_ms() -> int:
    """Current UTC time in milliseconds since the unix epoch."""
    return time.time_ns() // 1_000_000


def seconds_to_ms(seconds: int | float) -> int:
    """Convert a unix-seconds timestamp to milliseconds."""
    return int(round(seconds * 1000))


def ms_to_datetime(timestamp_ms: int) -> datetime:
    """Convert a millisecond timestamp to an aware UTC datetime."""
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=timezone.utc)
