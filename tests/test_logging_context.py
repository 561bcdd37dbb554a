"""Tests for logging context propagation."""

import threading

from listing_alerts.logging.context import (
    get_log_context,
    log_context,
    pop_log_context,
    push_log_context,
)


def test_empty_context():
    assert get_log_context() == {}


def test_nested_push_and_pop():
    outer = push_log_context(run_id="run-1", frequency="daily")
    inner = push_log_context(search_id="S1")
    assert get_log_context() == {"run_id": "run-1", "frequency": "daily", "search_id": "S1"}

    pop_log_context(inner)
    assert get_log_context() == {"run_id": "run-1", "frequency": "daily"}

    pop_log_context(outer)
    assert get_log_context() == {}


def test_inner_scope_overrides_then_restores():
    with log_context(search_id="S1"):
        with log_context(search_id="S2"):
            assert get_log_context()["search_id"] == "S2"
        assert get_log_context()["search_id"] == "S1"


def test_context_manager_restores_on_exception():
    try:
        with log_context(listing_id="L1"):
            raise RuntimeError("boom")
    except RuntimeError:
        pass
    assert get_log_context() == {}


def test_get_returns_copy():
    with log_context(run_id="run-1"):
        snapshot = get_log_context()
        snapshot["run_id"] = "mutated"
        assert get_log_context()["run_id"] == "run-1"


def test_threads_do_not_share_context():
    seen = {}

    def worker():
        seen["inside"] = get_log_context()

    with log_context(run_id="main-thread"):
        thread = threading.Thread(target=worker)
        thread.start()
        thread.join()

    assert seen["inside"] == {}
    assert get_log_context() == {}
