"""Server configuration and CLI argument parsing."""

import argparse
import os
from dataclasses import dataclass


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value is not None else default


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.lower() in {"1", "true", "yes", "on"}


MAX_BODY_BYTES = _env_int("PEER_SERVER_MAX_BODY_BYTES", 5 * 1024 * 1024)
DEFAULT_SOCKET_TIMEOUT = _env_int("PEER_SERVER_SOCKET_TIMEOUT", 60)
DEFAULT_SHUTDOWN_GRACE_SECONDS = _env_int("PEER_SERVER_SHUTDOWN_GRACE_SECONDS", 30)
DEFAULT_VERBOSE = _env_bool("PEER_SERVER_VERBOSE", False)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8089
DEFAULT_LOG_DESTINATION = "peer_server.log"
DEFAULT_ERROR_LOG_DESTINATION = "peer_server_error.log"

HEADER_DELIMITER = b"\r\n\r\n"
GET_CONTENT_PREFIX = "/getContent/"
CACHE_TESTS_PREFIX = "/cacheTests/"
TEMPLATE_NAME = "main.html"
DEFAULT_CONTENT_NAME = "sampleData.json"
CACHE_TEST_MAX_AGE = "max-age=10"


@dataclass(frozen=True)
class ServerConfig:
    """Server configuration including timeouts and shutdown settings."""

    socket_timeout: int
    shutdown_grace_seconds: int
    max_body_bytes: int = MAX_BODY_BYTES


def parse_cli_args(argv: list[str]) -> argparse.Namespace:
    """Return parsed CLI arguments for server configuration."""
    parser = argparse.ArgumentParser(
        description="Configurable HTTP peer for exercising HTTP clients"
    )
    parser.add_argument(
        "--verbose",
        action=argparse.BooleanOptionalAction,
        default=DEFAULT_VERBOSE,
        help="Log a full dump of every request before handling it",
    )
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument(
        "--directory",
        default=".",
        help="Directory holding the index template and servable content",
    )
    default_log_level = os.getenv("PEER_SERVER_LOG_LEVEL", "INFO").upper()
    default_destination = os.getenv(
        "PEER_SERVER_LOG_DESTINATION", DEFAULT_LOG_DESTINATION
    )
    default_error_destination = os.getenv(
        "PEER_SERVER_ERROR_LOG_DESTINATION", DEFAULT_ERROR_LOG_DESTINATION
    )
    parser.add_argument(
        "--log-level",
        default=default_log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        type=str.upper,
    )
    parser.add_argument(
        "--log-destination",
        default=default_destination,
        help="stdout or a file path for the informational log",
    )
    parser.add_argument(
        "--error-log-destination",
        default=default_error_destination,
        help="stdout or a file path for the error log",
    )
    parser.add_argument(
        "--log-format",
        default="json",
        choices=["json", "text"],
        type=str.lower,
    )
    parser.add_argument(
        "--socket-timeout",
        type=int,
        default=DEFAULT_SOCKET_TIMEOUT,
        help="Socket timeout in seconds while reading requests",
    )
    parser.add_argument(
        "--shutdown-grace-seconds",
        type=int,
        default=DEFAULT_SHUTDOWN_GRACE_SECONDS,
        help="Grace period in seconds for graceful shutdown",
    )
    return parser.parse_args(argv)
