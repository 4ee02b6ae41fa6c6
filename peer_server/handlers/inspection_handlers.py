"""Handlers for the index page, request dumps and JSON validation."""

import string
from pathlib import Path

from peer_server.domain.correlation_id import component_logger
from peer_server.domain.errors import InvalidPayload
from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.domain.response_builders import (
    TEXT_PLAIN,
    bad_request_response,
    bytes_response,
)
from peer_server.simulation.json_validator import canonicalize_json
from peer_server.simulation.request_dump import dump_request
from peer_server.transport.context import ServerContext

INSPECTION_LOGGER = component_logger("handlers.inspection")


def render_template(path: Path) -> bytes:
    """Render the template at ``path`` with no data.

    Any ``$placeholder`` in the template is an error since nothing is
    supplied to fill it.
    """
    with open(path, encoding="utf-8") as template_file:
        template = string.Template(template_file.read())
    return template.substitute({}).encode("utf-8")


def handle_index(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Handle / and every unmatched path by rendering the index template."""
    page = render_template(Path(context.directory) / context.template_name)
    return bytes_response(request, page, "text/html; charset=utf-8")


def handle_dump_request(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Handle /dumpRequest by echoing a readable dump of the request."""
    return bytes_response(request, dump_request(request), TEXT_PLAIN)


def handle_validate_json(
    request: HttpRequest, context: ServerContext
) -> HttpResponse:
    """Handle /validateJson: pretty JSON on success, empty 400 otherwise."""
    try:
        canonical = canonicalize_json(request.body)
    except InvalidPayload as invalid:
        INSPECTION_LOGGER.info(
            "Rejected invalid JSON payload",
            extra={
                "event": "json_invalid",
                "bytes_in": len(request.body),
                "error": str(invalid),
            },
        )
        return bad_request_response(request)
    return bytes_response(request, canonical, "application/json")
