"""Unit tests for digest window computation."""

from datetime import datetime, timedelta, timezone

from listing_alerts.alerts.window import compute_window_start
from tests.helpers import BASE_TIME


def test_never_alerted_search_looks_back_one_period():
    assert compute_window_start(None, BASE_TIME, timedelta(hours=24)) == BASE_TIME - timedelta(
        hours=24
    )


def test_alerted_search_resumes_from_last_alert():
    last = BASE_TIME - timedelta(hours=3)
    assert compute_window_start(last, BASE_TIME, timedelta(hours=24)) == last


def test_old_last_alert_is_not_clamped_to_period():
    last = BASE_TIME - timedelta(days=40)
    assert compute_window_start(last, BASE_TIME, timedelta(days=7)) == last


def test_naive_timestamps_are_treated_as_utc():
    naive = datetime(2025, 3, 1, 9, 0)
    start = compute_window_start(naive, BASE_TIME, timedelta(hours=24))
    assert start == datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)
