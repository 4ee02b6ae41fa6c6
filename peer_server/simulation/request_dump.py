"""Human-readable dump of an incoming request."""

from datetime import datetime
from typing import Optional

from peer_server.domain.http_types import HttpRequest

HEAD_TERMINATOR = b"\r\n\r\n"


def flatten_headers(request: HttpRequest) -> bytes:
    """Render one ``Name:firstValue`` line per distinct header name."""
    lines = []
    seen = set()
    for name, value in request.header_pairs():
        key = name.lower()
        if key in seen:
            continue
        seen.add(key)
        lines.append(f"{name}:{value}\n")
    return "".join(lines).encode("utf-8", errors="replace")


def parse_cookies(request: HttpRequest) -> list[tuple[str, str]]:
    """Return ``(name, value)`` pairs from every Cookie header, in order."""
    cookies = []
    for header in request.header_values("cookie"):
        for part in header.split(";"):
            name, sep, value = part.strip().partition("=")
            if not sep or not name.strip():
                continue
            cookies.append((name.strip(), value.strip().strip('"')))
    return cookies


def render_cookies(request: HttpRequest) -> bytes:
    lines = [f"{name} : {value}\n" for name, value in parse_cookies(request)]
    return "".join(lines).encode("utf-8", errors="replace")


def raw_request(request: HttpRequest) -> bytes:
    """Return the request exactly as transmitted: head, blank line, body."""
    head = request.raw_head
    if not head:
        lines = [f"{request.method} {request.target or request.path} {request.version}"]
        lines.extend(f"{name}: {value}" for name, value in request.header_pairs())
        head = "\r\n".join(lines).encode("utf-8", errors="replace")
    return head + HEAD_TERMINATOR + request.wire_body


def dump_request(request: HttpRequest, now: Optional[datetime] = None) -> bytes:
    """Serialize ``request`` for diagnostic echoing.

    The timestamp is taken when the dump is built, not when the request
    arrived.
    """
    current = now if now is not None else datetime.now().astimezone()
    parts = [
        b"\n",
        f"Current Time: {current.strftime('%Y-%m-%d %H:%M:%S.%f %z %Z')}\n".encode(),
        f"Method: {request.method}\n".encode(),
        b"Headers:\n",
        flatten_headers(request),
        b"Cookies:\n",
        render_cookies(request),
        b"Raw Request:\n",
        raw_request(request),
    ]
    return b"".join(parts)
