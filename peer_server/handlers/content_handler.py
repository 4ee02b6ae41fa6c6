"""Conditional content handlers for /getContent/ and /cacheTests/."""

from typing import Optional

from peer_server.bootstrap.config import (
    CACHE_TEST_MAX_AGE,
    CACHE_TESTS_PREFIX,
    GET_CONTENT_PREFIX,
)
from peer_server.domain.correlation_id import component_logger
from peer_server.domain.errors import ResourceNotFound
from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.domain.response_builders import not_found_response
from peer_server.domain.sandbox import ForbiddenPath, resolve_content_path
from peer_server.simulation.conditional import Validators, serve_content
from peer_server.transport.context import ServerContext

CONTENT_LOGGER = component_logger("handlers.content")


def load_content(directory: str, name: str) -> bytes:
    """Read ``name`` from the content directory or raise ResourceNotFound."""
    try:
        path = resolve_content_path(directory, name)
        with open(path, "rb") as file_handle:
            return file_handle.read()
    except (ForbiddenPath, OSError) as exc:
        raise ResourceNotFound(name, exc) from exc


def serve_named_content(
    request: HttpRequest,
    context: ServerContext,
    prefix: str,
    extra_headers: Optional[dict[str, str]] = None,
) -> HttpResponse:
    """Serve the file named by the path after ``prefix``."""
    name = request.path[len(prefix) :] or context.default_content_name
    try:
        content = load_content(context.directory, name)
    except ResourceNotFound as missing:
        CONTENT_LOGGER.info(
            "Content not found",
            extra={
                "event": "content_not_found",
                "path": name,
                "error_type": type(missing.cause).__name__,
            },
        )
        response = not_found_response(request)
        response.headers.update(extra_headers or {})
        return response

    response = serve_content(
        request,
        content,
        Validators(context.content_modified),
        extra_headers,
    )
    CONTENT_LOGGER.info(
        "Content served",
        extra={
            "event": "content_served",
            "path": name,
            "status_code": response.status_code,
            "bytes_out": len(response.body),
        },
    )
    return response


def handle_get_content(request: HttpRequest, context: ServerContext) -> HttpResponse:
    return serve_named_content(request, context, GET_CONTENT_PREFIX)


def handle_cache_test(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Like /getContent/ but always marks the response cacheable for 10s."""
    return serve_named_content(
        request,
        context,
        CACHE_TESTS_PREFIX,
        {"Cache-Control": CACHE_TEST_MAX_AGE},
    )
