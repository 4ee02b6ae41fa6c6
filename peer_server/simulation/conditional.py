"""Conditional GET: validators, preconditions and byte ranges.

Content is always described by the process-wide baseline timestamp, so every
file reports the same Last-Modified and ETag. Preconditions are evaluated in
the order RFC 7232 section 6 gives: If-Match, If-Unmodified-Since,
If-None-Match, If-Modified-Since, then Range/If-Range.
"""

import enum
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Optional

from peer_server.domain.http_types import HttpRequest, HttpResponse, should_close

OCTET_STREAM = "application/octet-stream"
TEXT_PLAIN = "text/plain; charset=utf-8"


class Precondition(enum.Enum):
    NONE = "none"
    TRUE = "true"
    FALSE = "false"


@dataclass(frozen=True)
class Validators:
    """Last-Modified and ETag values derived from the baseline timestamp."""

    modified: datetime

    @property
    def modified_seconds(self) -> datetime:
        return self.modified.astimezone(timezone.utc).replace(microsecond=0)

    @property
    def last_modified(self) -> str:
        return format_datetime(self.modified_seconds, usegmt=True)

    @property
    def etag(self) -> str:
        return f'"{int(self.modified_seconds.timestamp()):x}"'


@dataclass(frozen=True)
class ByteRange:
    start: int
    length: int

    def content_range(self, size: int) -> str:
        return f"bytes {self.start}-{self.start + self.length - 1}/{size}"


class UnsatisfiableRange(ValueError):
    """Raised when no requested range overlaps the content."""


def parse_http_date(value: str) -> Optional[datetime]:
    """Parse an HTTP-date header; unparseable values yield None."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _etag_list(header: str) -> list[str]:
    return [tag.strip() for tag in header.split(",") if tag.strip()]


def _opaque(tag: str) -> str:
    return tag[2:] if tag.startswith("W/") else tag


def _strong_match(tag: str, etag: str) -> bool:
    return not tag.startswith("W/") and not etag.startswith("W/") and tag == etag


def _weak_match(tag: str, etag: str) -> bool:
    return _opaque(tag) == _opaque(etag)


def check_if_match(request: HttpRequest, validators: Validators) -> Precondition:
    header = request.headers.get("if-match", "")
    if not header:
        return Precondition.NONE
    for tag in _etag_list(header):
        if tag == "*" or _strong_match(tag, validators.etag):
            return Precondition.TRUE
    return Precondition.FALSE


def check_if_unmodified_since(
    request: HttpRequest, validators: Validators
) -> Precondition:
    since = parse_http_date(request.headers.get("if-unmodified-since", ""))
    if since is None:
        return Precondition.NONE
    if validators.modified_seconds <= since:
        return Precondition.TRUE
    return Precondition.FALSE


def check_if_none_match(request: HttpRequest, validators: Validators) -> Precondition:
    header = request.headers.get("if-none-match", "")
    if not header:
        return Precondition.NONE
    for tag in _etag_list(header):
        if tag == "*" or _weak_match(tag, validators.etag):
            return Precondition.FALSE
    return Precondition.TRUE


def check_if_modified_since(
    request: HttpRequest, validators: Validators
) -> Precondition:
    if request.method not in ("GET", "HEAD"):
        return Precondition.NONE
    since = parse_http_date(request.headers.get("if-modified-since", ""))
    if since is None:
        return Precondition.NONE
    if validators.modified_seconds <= since:
        return Precondition.FALSE
    return Precondition.TRUE


def check_if_range(request: HttpRequest, validators: Validators) -> Precondition:
    header = request.headers.get("if-range", "").strip()
    if not header:
        return Precondition.NONE
    if header.startswith('"') or header.startswith("W/"):
        if _strong_match(header, validators.etag):
            return Precondition.TRUE
        return Precondition.FALSE
    since = parse_http_date(header)
    if since is not None and since == validators.modified_seconds:
        return Precondition.TRUE
    return Precondition.FALSE


def evaluate_preconditions(
    request: HttpRequest, validators: Validators
) -> Optional[int]:
    """Return 304 or 412 when a precondition short-circuits the request."""
    match = check_if_match(request, validators)
    if match is Precondition.NONE:
        match = check_if_unmodified_since(request, validators)
    if match is Precondition.FALSE:
        return 412

    none_match = check_if_none_match(request, validators)
    if none_match is Precondition.FALSE:
        return 304 if request.method in ("GET", "HEAD") else 412
    if none_match is Precondition.NONE:
        if check_if_modified_since(request, validators) is Precondition.FALSE:
            return 304
    return None


def parse_range(header: str, size: int) -> Optional[list[ByteRange]]:
    """Parse a ``bytes=`` Range header.

    Returns None when the header is absent or not a byte range, and raises
    UnsatisfiableRange when none of the ranges overlaps the content.
    """
    if not header:
        return None
    unit, _, byte_ranges = header.partition("=")
    if unit.strip().lower() != "bytes" or not byte_ranges:
        return None

    ranges = []
    for raw in byte_ranges.split(","):
        raw = raw.strip()
        if not raw:
            continue
        first, dash, last = raw.partition("-")
        first, last = first.strip(), last.strip()
        if not dash or not (first or last):
            return None
        if (first and not first.isdigit()) or (last and not last.isdigit()):
            return None
        if not first:
            suffix = int(last)
            if suffix == 0 or size == 0:
                continue
            length = min(suffix, size)
            ranges.append(ByteRange(size - length, length))
            continue
        start = int(first)
        if start >= size:
            continue
        if last:
            if int(last) < start:
                return None
            end = min(int(last), size - 1)
        else:
            end = size - 1
        ranges.append(ByteRange(start, end - start + 1))
    if not ranges:
        raise UnsatisfiableRange(header)
    return ranges


SNIFF_LENGTH = 512
_SNIFF_WHITESPACE = b"\t\n\x0c\r "

# Tags that mark a document as HTML when followed by a space or ">".
_HTML_TAGS = (
    b"<!DOCTYPE HTML",
    b"<HTML",
    b"<HEAD",
    b"<SCRIPT",
    b"<IFRAME",
    b"<H1",
    b"<DIV",
    b"<FONT",
    b"<TABLE",
    b"<A",
    b"<STYLE",
    b"<TITLE",
    b"<B",
    b"<BODY",
    b"<BR",
    b"<P",
    b"<!--",
)

_MAGIC_PREFIXES = (
    (b"%PDF-", "application/pdf"),
    (b"%!PS-Adobe-", "application/postscript"),
    (b"\xfe\xff", "text/plain; charset=utf-16be"),
    (b"\xff\xfe", "text/plain; charset=utf-16le"),
    (b"\xef\xbb\xbf", TEXT_PLAIN),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"PK\x03\x04", "application/zip"),
    (b"\x1f\x8b\x08", "application/x-gzip"),
)

_BINARY_BYTES = frozenset(
    [*range(0x00, 0x09), 0x0B, *range(0x0E, 0x1B), *range(0x1C, 0x20)]
)


def sniff_content_type(content: bytes) -> str:
    """Pick a media type from the leading bytes of ``content``.

    File names are never consulted: the same bytes always get the same
    type, and anything free of control bytes is plain UTF-8 text.
    """
    head = content[:SNIFF_LENGTH]
    markup = head.lstrip(_SNIFF_WHITESPACE)
    for tag in _HTML_TAGS:
        prefix = markup[: len(tag)]
        terminator = markup[len(tag) : len(tag) + 1]
        if prefix.upper() == tag and terminator in (b" ", b">"):
            return "text/html; charset=utf-8"
    if markup.startswith(b"<?xml"):
        return "text/xml; charset=utf-8"
    for magic, media_type in _MAGIC_PREFIXES:
        if head.startswith(magic):
            return media_type
    if any(byte in _BINARY_BYTES for byte in head):
        return OCTET_STREAM
    return TEXT_PLAIN


def serve_content(
    request: HttpRequest,
    content: bytes,
    validators: Validators,
    extra_headers: Optional[dict[str, str]] = None,
) -> HttpResponse:
    """Answer ``request`` for ``content`` honoring conditional headers."""
    headers = dict(extra_headers or {})
    headers["Last-Modified"] = validators.last_modified
    headers["ETag"] = validators.etag
    close = should_close(request)

    status = evaluate_preconditions(request, validators)
    if status == 304:
        return HttpResponse(304, headers, b"", close)
    if status == 412:
        return HttpResponse(412, headers, b"", close)

    headers["Accept-Ranges"] = "bytes"
    headers["Content-Type"] = sniff_content_type(content)
    size = len(content)

    if request.method == "GET" and check_if_range(
        request, validators
    ) is not Precondition.FALSE:
        try:
            ranges = parse_range(request.headers.get("range", ""), size)
        except UnsatisfiableRange:
            headers["Content-Range"] = f"bytes */{size}"
            return HttpResponse(416, headers, b"", close)
        # Multi-range requests are answered with the full representation.
        if ranges is not None and len(ranges) == 1:
            byte_range = ranges[0]
            headers["Content-Range"] = byte_range.content_range(size)
            body = content[byte_range.start : byte_range.start + byte_range.length]
            return HttpResponse(206, headers, body, close)

    return HttpResponse(200, headers, content, close)
