"""Tests for logging configuration and formatters."""

import io
import json
import logging

import pytest

from listing_alerts.logging import ComponentLoggerAdapter, get_logger
from listing_alerts.logging.config import (
    ContextualFilter,
    JSONFormatter,
    KeyValueFormatter,
    configure_logging,
)
from listing_alerts.logging.context import log_context


@pytest.fixture
def logger():
    test_logger = logging.getLogger("test_logger")
    test_logger.setLevel(logging.DEBUG)
    test_logger.handlers.clear()
    yield test_logger
    test_logger.handlers.clear()


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def make_record(logger, extra=None):
    return logger.makeRecord("test", logging.INFO, "test.py", 1, "Digest sent", (), None, extra=extra)


def test_json_formatter_fields(logger):
    record = make_record(logger, extra={"event": "alert.dispatched", "listing_count": 3})

    payload = json.loads(JSONFormatter().format(record))

    assert payload["message"] == "Digest sent"
    assert payload["level"] == "INFO"
    assert payload["event"] == "alert.dispatched"
    assert payload["listing_count"] == 3
    assert "name" not in payload
    assert payload["timestamp"].endswith("Z")
    assert len(payload["timestamp"]) == 24


def test_json_formatter_stringifies_unknown_types(logger):
    record = make_record(logger, extra={"ids": ("L1", "L2"), "frozen": frozenset({"a"})})

    payload = json.loads(JSONFormatter().format(record))

    assert isinstance(payload["frozen"], str)


def test_contextual_filter_adds_static_and_context_fields(logger):
    record = make_record(logger)
    with log_context(run_id="run-1", search_id="S1"):
        ContextualFilter(environment="test").filter(record)

    assert record.service == "listing-alert-engine"
    assert record.environment == "test"
    assert record.run_id == "run-1"
    assert record.search_id == "S1"


def test_explicit_extra_wins_over_context(logger):
    record = make_record(logger, extra={"search_id": "explicit"})
    with log_context(search_id="from-context"):
        ContextualFilter().filter(record)

    assert record.search_id == "explicit"


def test_key_value_formatter(logger):
    formatter = KeyValueFormatter("%(levelname)s %(message)s")
    record = make_record(
        logger, extra={"event": "digest.run.completed", "dispatched": 2, "ok": True, "note": "a b"}
    )

    output = formatter.format(record)

    assert output.startswith("INFO Digest sent ")
    assert "dispatched=2" in output
    assert "event=digest.run.completed" in output
    assert "ok=true" in output
    assert 'note="a b"' in output


def test_component_adapter_merges_extra(caplog):
    adapter = get_logger("listing_alerts.test", component="digest")
    assert isinstance(adapter, ComponentLoggerAdapter)

    with caplog.at_level(logging.INFO):
        adapter.info("hello", extra={"event": "x"})

    record = caplog.records[-1]
    assert record.component == "digest"
    assert record.event == "x"


def test_get_logger_without_component_is_plain():
    assert isinstance(get_logger("listing_alerts.test"), logging.Logger)


def test_configure_logging_invalid_level():
    with pytest.raises(ValueError, match="Invalid log level"):
        configure_logging(level="INVALID")


def test_configure_logging_invalid_format():
    with pytest.raises(ValueError, match="Invalid log format"):
        configure_logging(format_type="invalid")


@pytest.mark.parametrize("format_type,formatter_type", [("json", JSONFormatter), ("key-value", KeyValueFormatter)])
def test_configure_logging_installs_single_handler(restore_root_logger, format_type, formatter_type):
    configure_logging(level="DEBUG", format_type=format_type, environment="test", stream=io.StringIO())

    assert len(restore_root_logger.handlers) == 1
    assert isinstance(restore_root_logger.handlers[0].formatter, formatter_type)
    assert restore_root_logger.level == logging.DEBUG
    assert logging.getLogger("apscheduler").level == logging.WARNING


def test_configure_logging_writes_json_lines(restore_root_logger):
    stream = io.StringIO()
    configure_logging(level="INFO", format_type="json", environment="ci", stream=stream)

    with log_context(run_id="run-9"):
        logging.getLogger("listing_alerts.test").info("done", extra={"event": "test.done"})

    lines = [json.loads(line) for line in stream.getvalue().splitlines()]
    assert lines[-1]["event"] == "test.done"
    assert lines[-1]["run_id"] == "run-9"
    assert lines[-1]["environment"] == "ci"
