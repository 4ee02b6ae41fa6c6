"""Golden unit tests validating CLI parsing behavior."""

from pathlib import Path
from typing import TYPE_CHECKING

from peer_server.bootstrap.config import (
    DEFAULT_ERROR_LOG_DESTINATION,
    DEFAULT_LOG_DESTINATION,
    DEFAULT_SHUTDOWN_GRACE_SECONDS,
    DEFAULT_SOCKET_TIMEOUT,
    parse_cli_args,
)

if TYPE_CHECKING:
    from _pytest.monkeypatch import MonkeyPatch


def test_parse_cli_args_uses_defaults(monkeypatch: "MonkeyPatch") -> None:
    """Defaults match the fixed port and the two log files."""
    monkeypatch.delenv("PEER_SERVER_LOG_LEVEL", raising=False)
    monkeypatch.delenv("PEER_SERVER_LOG_DESTINATION", raising=False)
    monkeypatch.delenv("PEER_SERVER_ERROR_LOG_DESTINATION", raising=False)

    args = parse_cli_args([])

    assert args.directory == "."
    assert args.host == "0.0.0.0"
    assert args.port == 8089
    assert args.log_level == "INFO"
    assert args.log_destination == DEFAULT_LOG_DESTINATION == "peer_server.log"
    assert (
        args.error_log_destination
        == DEFAULT_ERROR_LOG_DESTINATION
        == "peer_server_error.log"
    )
    assert args.log_format == "json"
    assert args.socket_timeout == DEFAULT_SOCKET_TIMEOUT
    assert args.shutdown_grace_seconds == DEFAULT_SHUTDOWN_GRACE_SECONDS


def test_parse_cli_args_honors_overrides(tmp_path: Path) -> None:
    """Overrides should replace defaults when flags are present."""
    override_dir = tmp_path.as_posix()

    args = parse_cli_args(
        [
            "--verbose",
            "--directory",
            override_dir,
            "--host",
            "127.0.0.1",
            "--port",
            "9090",
            "--log-level",
            "debug",
            "--log-destination",
            "stdout",
            "--error-log-destination",
            "errors.log",
            "--log-format",
            "TEXT",
            "--socket-timeout",
            "5",
            "--shutdown-grace-seconds",
            "1",
        ]
    )

    assert args.verbose is True
    assert args.directory == override_dir
    assert args.host == "127.0.0.1"
    assert args.port == 9090
    assert args.log_level == "DEBUG"
    assert args.log_destination == "stdout"
    assert args.error_log_destination == "errors.log"
    assert args.log_format == "text"
    assert args.socket_timeout == 5
    assert args.shutdown_grace_seconds == 1


def test_verbose_flag_can_be_negated() -> None:
    assert parse_cli_args(["--no-verbose"]).verbose is False


def test_parse_cli_args_honors_environment(monkeypatch: "MonkeyPatch") -> None:
    """Environment variables should seed default logging configuration."""

    monkeypatch.setenv("PEER_SERVER_LOG_LEVEL", "warning")
    monkeypatch.setenv("PEER_SERVER_LOG_DESTINATION", "app.log")
    monkeypatch.setenv("PEER_SERVER_ERROR_LOG_DESTINATION", "app_error.log")

    args = parse_cli_args([])

    assert args.log_level == "WARNING"
    assert args.log_destination == "app.log"
    assert args.error_log_destination == "app_error.log"
