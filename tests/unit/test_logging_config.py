"""Tests for logging configuration helpers."""

import json
import logging
from pathlib import Path

import pytest

from peer_server.bootstrap.logging_setup import (
    BelowErrorFilter,
    CorrelationIdFilter,
    configure_logging,
)


@pytest.fixture(autouse=True)
def detach_handlers():
    """Close handlers attached by configure_logging after each test."""
    yield
    logger = logging.getLogger("peer_server")
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


def _flush(logger: logging.Logger) -> None:
    for handler in logger.handlers:
        handler.flush()


def test_configure_logging_stream_handlers():
    """Both channels may go to stdout; the level applies to each."""
    logger = configure_logging("DEBUG", "stdout", "stdout")

    assert logger.logger.name == "peer_server"
    assert logger.logger.level == logging.DEBUG
    assert len(logger.logger.handlers) == 2
    assert all(
        isinstance(handler, logging.StreamHandler) for handler in logger.logger.handlers
    )


def test_configure_logging_splits_channels(tmp_path: Path):
    """Informational records and errors land in separate files."""
    info_log = tmp_path / "peer_server.log"
    error_log = tmp_path / "peer_server_error.log"
    logger = configure_logging("INFO", info_log.as_posix(), error_log.as_posix())

    component = logging.getLogger("peer_server.handlers.content")
    component.info("served a file")
    component.error("handler exploded")
    _flush(logger.logger)

    info_contents = info_log.read_text()
    error_contents = error_log.read_text()
    assert "served a file" in info_contents
    assert "handler exploded" not in info_contents
    assert "handler exploded" in error_contents
    assert "served a file" not in error_contents


def test_configure_logging_appends_to_existing_file(tmp_path: Path):
    """Log files are opened for appending, never truncated."""
    info_log = tmp_path / "peer_server.log"
    info_log.write_text("previous run\n")

    logger = configure_logging("INFO", info_log.as_posix(), None)
    _flush(logger.logger)

    contents = info_log.read_text()
    assert contents.startswith("previous run\n")
    assert "Logging configured" in contents


def test_configure_logging_emits_event(tmp_path: Path):
    """The first line written describes the configuration."""
    info_log = tmp_path / "peer_server.log"
    error_log = tmp_path / "peer_server_error.log"
    logger = configure_logging("INFO", info_log.as_posix(), error_log.as_posix())
    _flush(logger.logger)

    first_line = json.loads(info_log.read_text().splitlines()[0])
    assert first_line["event"] == "logging_configured"
    assert first_line["log_level"] == "INFO"
    assert first_line["log_destination"] == info_log.as_posix()
    assert first_line["error_log_destination"] == error_log.as_posix()


def test_text_format_uses_plain_lines(tmp_path: Path):
    info_log = tmp_path / "peer_server.log"
    logger = configure_logging("INFO", info_log.as_posix(), None, use_json=False)
    logging.getLogger("peer_server.main").info("plain line")
    _flush(logger.logger)

    assert "INFO [-] peer_server.main :: plain line" in info_log.read_text()


def test_correlation_id_filter_inserts_placeholder_when_missing():
    """Filter should default correlation_id to '-' for bare records."""

    record = logging.LogRecord(
        name="peer_server.main",
        level=logging.INFO,
        pathname=__file__,
        lineno=0,
        msg="missing id",
        args=(),
        exc_info=None,
    )

    assert not hasattr(record, "correlation_id")
    assert CorrelationIdFilter().filter(record)
    assert record.correlation_id == "-"


def test_below_error_filter_rejects_errors():
    log_filter = BelowErrorFilter()
    warning = logging.LogRecord("peer_server", logging.WARNING, "", 0, "w", (), None)
    error = logging.LogRecord("peer_server", logging.ERROR, "", 0, "e", (), None)

    assert log_filter.filter(warning)
    assert not log_filter.filter(error)
