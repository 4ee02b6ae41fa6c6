"""Request validation utilities for the peer server."""

from typing import Optional

from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.domain.response_builders import bad_request_response


class RequestEntityTooLarge(Exception):
    """Raised when a request body exceeds configured limits."""


def enforce_origin_form(request: HttpRequest) -> Optional[HttpResponse]:
    """Only origin-form targets (``/path?query``) are routable."""
    if not request.path.startswith("/") or "\x00" in request.path:
        return bad_request_response(request)
    return None


def validate_request(request: HttpRequest) -> Optional[HttpResponse]:
    """Return an error response when the request fails validation checks."""
    return enforce_origin_form(request)
