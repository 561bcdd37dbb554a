"""Unit tests for timestamp utilities."""

from datetime import datetime, timedelta, timezone

import pytest

from listing_alerts.utils.timestamps import (
    ensure_utc,
    format_timestamp,
    format_timestamp_for_log,
    from_storage,
    to_storage,
    utc_now,
)

DHAKA = timezone(timedelta(hours=6))


class TestUtcNow:
    def test_returns_aware_utc(self):
        now = utc_now()
        assert now.tzinfo == timezone.utc

    def test_is_recent(self):
        assert abs(datetime.now(timezone.utc) - utc_now()) < timedelta(seconds=1)


class TestEnsureUtc:
    def test_none(self):
        assert ensure_utc(None) is None

    def test_naive_is_treated_as_utc(self):
        assert ensure_utc(datetime(2025, 3, 1, 12)) == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_other_timezone_is_converted(self):
        converted = ensure_utc(datetime(2025, 3, 1, 18, tzinfo=DHAKA))
        assert converted.tzinfo == timezone.utc
        assert converted.hour == 12


class TestStorageFormat:
    def test_fixed_width_with_microseconds(self):
        value = to_storage(datetime(2025, 3, 1, 12, 0, 0, tzinfo=timezone.utc))
        assert value == "2025-03-01T12:00:00.000000Z"

    def test_round_trip_preserves_instant(self):
        original = datetime(2025, 3, 1, 18, 30, 15, 123456, tzinfo=DHAKA)
        assert from_storage(to_storage(original)) == original

    def test_lexicographic_order_is_chronological(self):
        earlier = to_storage(datetime(2025, 3, 1, 9, 59, 59, 999999, tzinfo=timezone.utc))
        later = to_storage(datetime(2025, 3, 1, 10, 0, 0, 1, tzinfo=timezone.utc))
        assert earlier < later

    def test_none_passes_through(self):
        assert to_storage(None) is None
        assert from_storage(None) is None
        assert from_storage("") is None

    def test_parses_value_without_microseconds(self):
        assert from_storage("2025-03-01T12:00:00Z") == datetime(2025, 3, 1, 12, tzinfo=timezone.utc)

    def test_invalid_value_raises(self):
        with pytest.raises(ValueError):
            from_storage("yesterday")


class TestFormatting:
    def test_format_timestamp(self):
        dt = datetime(2025, 3, 1, 18, 0, 0, 500, tzinfo=DHAKA)
        assert format_timestamp(dt) == "2025-03-01T12:00:00Z"
        assert format_timestamp(dt, include_microseconds=True) == "2025-03-01T12:00:00.000500Z"

    def test_format_for_log(self):
        assert format_timestamp_for_log(None) is None
        assert format_timestamp_for_log(datetime(2025, 3, 1)) == "2025-03-01T00:00:00Z"
