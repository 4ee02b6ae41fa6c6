"""HTTP Input/Output operations."""

import logging
import re
import socket
import urllib.parse
from email.utils import formatdate
from typing import Iterable, Optional, Tuple

from peer_server.bootstrap.config import HEADER_DELIMITER, MAX_BODY_BYTES
from peer_server.domain.correlation_id import (
    adopt_incoming_id,
    component_logger,
    get_correlation_id,
)
from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.pipeline.validation import RequestEntityTooLarge

IO_LOGGER = component_logger("io")

CRLF = b"\r\n"
MAX_HEAD_BYTES = 64 * 1024
CONTINUE_RESPONSE = b"HTTP/1.1 100 Continue\r\n\r\n"
BODYLESS_STATUSES = {204, 304}

_CHUNK_SIZE_RE = re.compile(r"^[0-9A-Fa-f]+$")


class _ClientClosed(Exception):
    """The peer closed the connection before a full request arrived."""


def _recv_more(client_socket: socket.socket, buffer: bytes) -> bytes:
    chunk = client_socket.recv(4096)
    if not chunk:
        raise _ClientClosed
    return buffer + chunk


def parse_request_line(request_line: str) -> Tuple[str, str, str]:
    """Split the request line into method, target and protocol version."""
    parts = request_line.split(" ")
    if len(parts) != 3 or not all(parts):
        raise ValueError("Invalid request line")
    method, target, version = parts
    if not version.startswith("HTTP/1."):
        raise ValueError("Unsupported protocol version")
    return method, target, version


def split_target(target: str) -> Tuple[str, str]:
    """Return the unescaped path and the raw query string of a target."""
    parsed_target = urllib.parse.urlsplit(target)
    return urllib.parse.unquote(parsed_target.path), parsed_target.query


def parse_headers(lines: Iterable[str]) -> list[tuple[str, str]]:
    """Parse header lines into ``(name, value)`` pairs, skipping invalid ones."""
    parsed = []
    for line in lines:
        name, sep, value = line.partition(":")
        if not sep or not name or name != name.strip():
            continue
        parsed.append((name, value.strip()))
    return parsed


def index_headers(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Map lowercase header names to the first value received."""
    indexed: dict[str, str] = {}
    for name, value in pairs:
        indexed.setdefault(name.lower(), value)
    return indexed


def determine_content_length(headers: dict[str, str], max_body_bytes: int) -> int:
    """Validate and return the declared Content-Length for the request."""
    header_value = headers.get("content-length")
    if header_value is None:
        return 0
    if not header_value.isdigit():
        raise ValueError("Invalid Content-Length")
    content_length = int(header_value)
    if content_length > max_body_bytes:
        raise RequestEntityTooLarge
    return content_length


def is_chunked(headers: dict[str, str]) -> bool:
    codings = headers.get("transfer-encoding", "")
    return codings.split(",")[-1].strip().lower() == "chunked"


def _read_line_end(client_socket: socket.socket, buffer: bytes, start: int):
    while True:
        index = buffer.find(CRLF, start)
        if index != -1:
            return index, buffer
        buffer = _recv_more(client_socket, buffer)


def read_chunked_body(
    client_socket: socket.socket, buffer: bytes, max_body_bytes: int
) -> Tuple[bytes, bytes, bytes]:
    """Decode a chunked body; return the body, its wire bytes and the leftover."""
    body = bytearray()
    position = 0
    while True:
        line_end, buffer = _read_line_end(client_socket, buffer, position)
        size_field = buffer[position:line_end].split(b";", 1)[0].strip()
        size_text = size_field.decode("ascii")
        if not _CHUNK_SIZE_RE.match(size_text):
            raise ValueError("Invalid chunk size")
        size = int(size_text, 16)
        position = line_end + len(CRLF)

        if size == 0:
            # Skip trailer fields up to the terminating empty line.
            while True:
                line_end, buffer = _read_line_end(client_socket, buffer, position)
                empty = line_end == position
                position = line_end + len(CRLF)
                if empty:
                    return bytes(body), buffer[:position], buffer[position:]

        if len(body) + size > max_body_bytes:
            raise RequestEntityTooLarge
        while len(buffer) < position + size + len(CRLF):
            buffer = _recv_more(client_socket, buffer)
        body += buffer[position : position + size]
        if buffer[position + size : position + size + len(CRLF)] != CRLF:
            raise ValueError("Chunk data not terminated by CRLF")
        position += size + len(CRLF)


def _expects_continue(version: str, headers: dict[str, str]) -> bool:
    return (
        version == "HTTP/1.1"
        and headers.get("expect", "").lower() == "100-continue"
    )


def receive_request(
    client_socket: socket.socket,
    buffer: bytes,
    max_body_bytes: int = MAX_BODY_BYTES,
) -> Tuple[Optional[HttpRequest], bytes]:
    """Read bytes from the socket until a complete request is available.

    Returns ``(None, b"")`` when the client closes the connection first.
    """
    try:
        return _receive_request(client_socket, buffer, max_body_bytes)
    except _ClientClosed:
        return None, b""


def _receive_request(
    client_socket: socket.socket, buffer: bytes, max_body_bytes: int
) -> Tuple[HttpRequest, bytes]:
    while True:
        buffer = buffer.lstrip(CRLF)
        if HEADER_DELIMITER in buffer:
            break
        if len(buffer) > MAX_HEAD_BYTES:
            raise ValueError("Request head too large")
        buffer = _recv_more(client_socket, buffer)

    raw_head, remainder = buffer.split(HEADER_DELIMITER, 1)
    header_lines = raw_head.decode("utf-8", errors="replace").split("\r\n")
    method, target, version = parse_request_line(header_lines[0])
    path, query = split_target(target)
    header_items = parse_headers(header_lines[1:])
    headers = index_headers(header_items)

    adopt_incoming_id(headers.get("x-request-id"))

    chunked = is_chunked(headers)
    content_length = 0 if chunked else determine_content_length(headers, max_body_bytes)
    if (chunked or content_length) and not remainder and _expects_continue(
        version, headers
    ):
        client_socket.sendall(CONTINUE_RESPONSE)

    raw_body = None
    if chunked:
        body, raw_body, leftover = read_chunked_body(
            client_socket, remainder, max_body_bytes
        )
    else:
        while len(remainder) < content_length:
            remainder = _recv_more(client_socket, remainder)
        body = remainder[:content_length]
        leftover = remainder[content_length:]

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Parsed request",
            extra={"event": "request_parsed", "method": method, "route": path},
        )
    request = HttpRequest(
        method,
        path,
        headers,
        body,
        query=query,
        version=version,
        target=target,
        header_items=header_items,
        raw_head=raw_head,
        raw_body=raw_body,
    )
    return request, leftover


def _try_send(client_socket: socket.socket, data: bytes) -> bool:
    try:
        client_socket.sendall(data)
    except OSError as error:
        IO_LOGGER.info(
            "Client stopped receiving mid-stream",
            extra={"event": "stream_write_failed", "error_type": type(error).__name__},
        )
        return False
    return True


def _send_chunked(
    client_socket: socket.socket,
    header_block: bytes,
    body_iter: Iterable[bytes],
    head_only: bool,
) -> bool:
    """Send each produced unit as its own chunk, flushing it immediately.

    The iterator is always exhausted, even after the client has gone away, so
    a simulation runs to completion; writes after a failure are dropped.
    """
    delivered = _try_send(client_socket, header_block)
    for unit in body_iter:
        if not unit or not delivered or head_only:
            continue
        frame = f"{len(unit):X}".encode() + CRLF + unit + CRLF
        delivered = _try_send(client_socket, frame)
    if delivered and not head_only:
        delivered = _try_send(client_socket, b"0" + CRLF + CRLF)
    return delivered


def send_response(
    client_socket: socket.socket,
    response: HttpResponse,
    request: Optional[HttpRequest] = None,
) -> bool:
    """Serialize and send the HTTP response over the socket.

    Returns False when a streamed body could not be fully delivered.
    """
    headers = dict(response.headers)
    headers.setdefault("Date", formatdate(usegmt=True))

    correlation_id = get_correlation_id()
    if correlation_id:
        headers["X-Request-ID"] = correlation_id

    body = response.body
    streaming = response.body_iter is not None and response.use_chunked
    if response.body_iter is not None and not streaming:
        # The connection cannot carry chunks; every unit still gets written.
        body = b"".join(response.body_iter)

    bodyless = response.status_code in BODYLESS_STATUSES
    if streaming:
        headers["Transfer-Encoding"] = "chunked"
    elif not bodyless:
        headers["Content-Length"] = str(len(body))
    if response.close_connection:
        headers["Connection"] = "close"

    header_lines = [response.status_line]
    header_lines.extend(f"{name}: {value}" for name, value in headers.items())
    header_block = "\r\n".join(header_lines).encode("utf-8") + HEADER_DELIMITER

    head_only = request is not None and request.method == "HEAD"
    if streaming:
        delivered = _send_chunked(
            client_socket, header_block, response.body_iter, head_only
        )
    else:
        payload = b"" if head_only or bodyless else body
        client_socket.sendall(header_block + payload)
        delivered = True

    if IO_LOGGER.logger.isEnabledFor(logging.DEBUG):
        IO_LOGGER.debug(
            "Sent response",
            extra={
                "event": "response_sent",
                "status_code": response.status_code,
                "use_chunked": streaming,
                "delivered": delivered,
            },
        )
    return delivered
