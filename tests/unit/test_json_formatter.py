"""Unit tests for JSON formatter."""

import json
import logging
import sys

import pytest

from peer_server.bootstrap.logging_setup import JsonFormatter


def _record(level: int = logging.INFO, exc_info=None) -> logging.LogRecord:
    return logging.LogRecord(
        name="peer_server.test",
        level=level,
        pathname="test.py",
        lineno=1,
        msg="Test message",
        args=(),
        exc_info=exc_info,
    )


@pytest.fixture(name="json_formatter")
def json_formatter_fixture():
    """Create a JSON formatter instance."""
    return JsonFormatter("%Y-%m-%d %H:%M:%S")


def test_json_formatter_basic_fields(json_formatter):
    """Required fields are always present."""
    record = _record()
    record.correlation_id = "test-correlation-id"
    record.component = "test"

    log_data = json.loads(json_formatter.format(record))

    assert log_data["level"] == "INFO"
    assert log_data["correlation_id"] == "test-correlation-id"
    assert log_data["component"] == "test"
    assert log_data["message"] == "Test message"
    assert "timestamp" in log_data


def test_json_formatter_defaults_missing_context(json_formatter):
    """Bare records get '-' for the correlation id and 'unknown' component."""
    log_data = json.loads(json_formatter.format(_record()))

    assert log_data["correlation_id"] == "-"
    assert log_data["component"] == "unknown"


def test_json_formatter_includes_simulation_fields(json_formatter):
    """Fields passed through ``extra`` are copied into the output."""
    record = _record()
    record.event = "stream_complete"
    record.mode = "size"
    record.units = 5
    record.duration_ms = 52.5
    record.error_kind = "malformed_parameter"
    record.headers = ["X-One", "X-Two"]
    record._private = "hidden"

    log_data = json.loads(json_formatter.format(record))

    assert log_data["event"] == "stream_complete"
    assert log_data["mode"] == "size"
    assert log_data["units"] == 5
    assert log_data["duration_ms"] == 52.5
    assert log_data["error_kind"] == "malformed_parameter"
    assert log_data["headers"] == ["X-One", "X-Two"]
    assert "_private" not in log_data
    assert "lineno" not in log_data and "args" not in log_data


def test_json_formatter_stable_key_ordering(json_formatter):
    """Output is byte-for-byte stable with sorted keys."""
    record = _record()
    record.event = "test_event"
    record.client = "127.0.0.1:8080"

    output1 = json_formatter.format(record)
    output2 = json_formatter.format(record)

    assert output1 == output2
    keys = list(json.loads(output1).keys())
    assert keys == sorted(keys)


def test_json_formatter_with_exception(json_formatter):
    """Exception tracebacks are rendered into the record."""
    try:
        raise ValueError("Test error")
    except ValueError:
        record = _record(logging.ERROR, sys.exc_info())

    log_data = json.loads(json_formatter.format(record))

    assert "ValueError: Test error" in log_data["exception"]
