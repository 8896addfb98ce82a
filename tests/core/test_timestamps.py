"""Tests for timestamp helpers."""

import pytest

from prediction_amm.core.timestamps import format_timestamp, now_ms, parse_timestamp

_JAN_1_2024_MS = 1704067200000
_NOON_MS = 43200000
_YEAR_2020_MS = 1577836800000


class TestParseTimestamp:
    """Tests for parse_timestamp."""

    def test_iso_date(self) -> None:
        """Parse an ISO 8601 date string."""
        assert parse_timestamp("2024-01-01") == _JAN_1_2024_MS

    def test_iso_datetime(self) -> None:
        """Parse an ISO 8601 datetime string."""
        assert parse_timestamp("2024-01-01T12:00:00") == _JAN_1_2024_MS + _NOON_MS

    def test_unix_seconds(self) -> None:
        """Scale a raw Unix timestamp in seconds to milliseconds."""
        assert parse_timestamp("1704067200") == _JAN_1_2024_MS

    def test_invalid_raises(self) -> None:
        """Raise ValueError for unparseable input."""
        with pytest.raises(ValueError, match="Cannot parse timestamp"):
            parse_timestamp("not-a-date")


class TestFormatTimestamp:
    """Tests for format_timestamp and now_ms."""

    def test_formats_utc(self) -> None:
        """Render epoch milliseconds as a UTC date and time."""
        assert format_timestamp(_JAN_1_2024_MS + _NOON_MS) == "2024-01-01 12:00:00"

    def test_now_is_epoch_milliseconds(self) -> None:
        """Return a millisecond timestamp after 2020."""
        assert now_ms() > _YEAR_2020_MS
