"""Query-string parameter extraction and numeric parameter parsing."""

import logging
import re
import urllib.parse
from decimal import Decimal

from peer_server.domain.correlation_id import component_logger
from peer_server.domain.errors import MalformedParameter
from peer_server.domain.http_types import HttpRequest

PARAMS_LOGGER = component_logger("domain.params")

_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")
_DECIMAL_RE = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)$")
_INTEGER_RE = re.compile(r"^[+-]?\d+$")
# Durations are nanosecond counts in a signed 64-bit integer.
MAX_DURATION_MS = Decimal(2**63 - 1) / 1_000_000


def parse_query(query: str) -> dict[str, str]:
    """Parse a raw query string into a first-value-wins mapping.

    A malformed query (bad percent escape, ``;`` separators, bytes that are
    not UTF-8) yields an empty mapping instead of an error.
    """
    if not query:
        return {}
    if ";" in query or _BAD_ESCAPE_RE.search(query):
        _log_malformed(query)
        return {}
    try:
        pairs = urllib.parse.parse_qsl(query, keep_blank_values=True, errors="strict")
    except ValueError:
        _log_malformed(query)
        return {}

    params: dict[str, str] = {}
    for key, value in pairs:
        params.setdefault(key, value)
    return params


def _log_malformed(query: str) -> None:
    if PARAMS_LOGGER.logger.isEnabledFor(logging.DEBUG):
        PARAMS_LOGGER.debug(
            "Ignoring malformed query string",
            extra={"event": "query_malformed", "query_length": len(query)},
        )


def retrieve_param(request: HttpRequest, name: str) -> str:
    """Return the first value of ``name`` in the request query, or ``""``."""
    return parse_query(request.query).get(name, "")


def parse_duration_ms(name: str, raw: str) -> float:
    """Parse a millisecond count such as ``"50"`` or ``"2.5"`` into seconds."""
    if not _DECIMAL_RE.match(raw):
        raise MalformedParameter(name, raw, "expected a number of milliseconds")
    if abs(Decimal(raw)) > MAX_DURATION_MS:
        raise MalformedParameter(name, raw, "duration out of range")
    return float(raw) / 1000.0


def parse_int(name: str, raw: str) -> int:
    """Parse a plain decimal integer with an optional sign."""
    if not _INTEGER_RE.match(raw):
        raise MalformedParameter(name, raw, "expected an integer")
    return int(raw)
