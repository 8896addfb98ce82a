"""Timestamp helpers for pool mutations and CLI date arguments."""

import time
from datetime import UTC, datetime

_MS_PER_SECOND = 1000


def now_ms() -> int:
    """Return the current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def parse_timestamp(value: str) -> int:
    """Parse a date string or raw integer into a Unix timestamp in milliseconds.

    Accept ISO 8601 date strings (``2024-01-01``, ``2024-01-01T12:00:00``)
    or raw integer Unix timestamps in seconds.

    Args:
        value: Date string or integer timestamp.

    Returns:
        Epoch milliseconds.

    Raises:
        ValueError: If the value cannot be parsed.

    """
    try:
        return int(value) * _MS_PER_SECOND
    except ValueError:
        pass

    for fmt in ("%Y-%m-%d", "%Y-%m-%dT%H:%M:%S"):
        try:
            dt = datetime.strptime(value, fmt).replace(tzinfo=UTC)
            return int(dt.timestamp()) * _MS_PER_SECOND
        except ValueError:
            continue

    msg = f"Cannot parse timestamp: {value!r}. Use ISO 8601 (YYYY-MM-DD) or a Unix timestamp."
    raise ValueError(msg)


def format_timestamp(timestamp_ms: int) -> str:
    """Format epoch milliseconds as a UTC ``YYYY-MM-DD HH:MM:SS`` string."""
    dt = datetime.fromtimestamp(timestamp_ms / _MS_PER_SECOND, tz=UTC)
    return dt.strftime("%Y-%m-%d %H:%M:%S")
