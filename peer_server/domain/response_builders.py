"""Pure HTTP response builders."""

from typing import Iterable, Optional

from peer_server.domain.errors import SimulationError
from peer_server.domain.http_types import (
    HttpRequest,
    HttpResponse,
    should_close,
    supports_streaming,
)

TEXT_PLAIN = "text/plain; charset=utf-8"


def empty_response(request: HttpRequest, status_code: int = 200) -> HttpResponse:
    """Return a response with the given status and no body."""
    return HttpResponse(status_code, {}, b"", should_close(request))


def bytes_response(
    request: HttpRequest,
    payload: bytes,
    content_type: str,
    status_code: int = 200,
) -> HttpResponse:
    """Return a fixed-length response carrying ``payload``."""
    return HttpResponse(
        status_code,
        {"Content-Type": content_type},
        payload,
        should_close(request),
    )


def streaming_response(
    request: HttpRequest,
    body_iter: Iterable[bytes],
    content_type: str = TEXT_PLAIN,
) -> HttpResponse:
    """Return a response whose body units are flushed one by one when possible."""
    return HttpResponse(
        200,
        {"Content-Type": content_type},
        b"",
        should_close(request),
        body_iter=body_iter,
        use_chunked=supports_streaming(request),
    )


def not_found_response(request: HttpRequest) -> HttpResponse:
    """Return a 404 response reusing the connection preference."""
    return HttpResponse(404, {}, b"", should_close(request))


def bad_request_response(request: Optional[HttpRequest] = None) -> HttpResponse:
    """Produce a 400 response honoring the caller's connection preference."""
    return HttpResponse(400, {}, b"", should_close(request))


def entity_too_large_response() -> HttpResponse:
    """Produce a 413 response that always closes the connection."""
    return HttpResponse(413, {}, b"", True)


def error_response(request: HttpRequest, error: SimulationError) -> HttpResponse:
    """Answer a tagged failure with the status its kind maps to."""
    return HttpResponse(error.status_code, {}, b"", should_close(request))


def redirect_response(request: HttpRequest, location: str) -> HttpResponse:
    """Produce a 301 pointing the client at ``location``."""
    body = f'<a href="{location}">Moved Permanently</a>.\n\n'.encode()
    headers = {"Location": location, "Content-Type": "text/html; charset=utf-8"}
    return HttpResponse(301, headers, body, should_close(request))


def draining_response() -> HttpResponse:
    """Produce a 503 response indicating the server is draining."""
    return HttpResponse(
        503,
        {"Connection": "close", "Content-Type": TEXT_PLAIN},
        b"draining",
        True,
    )
