"""Shared HTTP type definitions to avoid circular imports."""

import http
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

# RFC 7230 token characters allowed in a header field name.
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


@dataclass
class HttpRequest:
    """Represents a parsed HTTP request.

    ``headers`` is keyed by lowercase name and keeps the first value seen.
    ``header_items`` preserves the names, values and order of the wire form,
    and ``raw_head``/``raw_body`` keep the exact bytes as transmitted.
    """

    method: str
    path: str
    headers: dict[str, str]
    body: bytes
    query: str = ""
    version: str = "HTTP/1.1"
    target: str = ""
    header_items: list[tuple[str, str]] = field(default_factory=list)
    raw_head: bytes = b""
    raw_body: Optional[bytes] = None

    def header_pairs(self) -> list[tuple[str, str]]:
        """Return the headers in arrival order with their original names."""
        if self.header_items:
            return list(self.header_items)
        return list(self.headers.items())

    def header_values(self, name: str) -> list[str]:
        """Return every value sent for ``name``, in arrival order."""
        wanted = name.lower()
        return [value for key, value in self.header_pairs() if key.lower() == wanted]

    @property
    def wire_body(self) -> bytes:
        """Body bytes exactly as they arrived on the connection."""
        return self.raw_body if self.raw_body is not None else self.body


@dataclass
class HttpResponse:
    """Represents an HTTP response to be sent to a client.

    When ``body_iter`` is set the body is produced lazily; each produced unit
    is flushed to the client as its own chunk when ``use_chunked`` is true.
    """

    status_code: int
    headers: dict[str, str]
    body: bytes
    close_connection: bool
    body_iter: Optional[Iterable[bytes]] = None
    use_chunked: bool = False

    @property
    def status_line(self) -> str:
        return f"HTTP/1.1 {self.status_code} {reason_phrase(self.status_code)}"

    def set_header(self, name: str, value: str) -> None:
        """Set a header, replacing any value stored under another casing."""
        canonical = canonical_header_key(name)
        for existing in [key for key in self.headers if key.lower() == name.lower()]:
            del self.headers[existing]
        self.headers[canonical] = value


def reason_phrase(status_code: int) -> str:
    """Return the standard reason phrase, or a generic one for unknown codes."""
    try:
        return http.HTTPStatus(status_code).phrase
    except ValueError:
        return f"status code {status_code}"


def canonical_header_key(name: str) -> str:
    """Capitalize each dash-separated word: ``x-my-header`` -> ``X-My-Header``."""
    if not is_valid_header_name(name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


def is_valid_header_name(name: str) -> bool:
    return bool(_TOKEN_RE.match(name))


def should_close(request: Optional[HttpRequest]) -> bool:
    """Determine whether the connection should be closed after responding."""
    if request is None:
        return True
    connection = request.headers.get("connection", "").lower()
    if request.version == "HTTP/1.0":
        return connection != "keep-alive"
    return connection == "close"


def supports_streaming(request: Optional[HttpRequest]) -> bool:
    """Chunked transfer coding, and with it incremental flushing, needs HTTP/1.1."""
    return request is not None and request.version != "HTTP/1.0"
