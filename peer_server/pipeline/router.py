"""Flat route table and the recovery wrapper around every handler."""

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from peer_server.bootstrap.config import CACHE_TESTS_PREFIX, GET_CONTENT_PREFIX
from peer_server.domain.correlation_id import component_logger
from peer_server.domain.errors import SimulationError, Unrecoverable
from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.domain.response_builders import (
    error_response,
    not_found_response,
    redirect_response,
)
from peer_server.handlers.content_handler import handle_cache_test, handle_get_content
from peer_server.handlers.inspection_handlers import (
    handle_dump_request,
    handle_index,
    handle_validate_json,
)
from peer_server.handlers.simulation_handlers import (
    handle_add_header,
    handle_delay,
    handle_return_status,
    handle_sample_response,
)
from peer_server.simulation.request_dump import dump_request
from peer_server.transport.context import ServerContext

ROUTER_LOGGER = component_logger("pipeline.router")

Handler = Callable[[HttpRequest, ServerContext], HttpResponse]


@dataclass(frozen=True)
class Route:
    """A path pattern; patterns ending in ``/`` match their whole subtree."""

    pattern: str
    handler: Handler

    @property
    def is_subtree(self) -> bool:
        return self.pattern.endswith("/")

    def matches(self, path: str) -> bool:
        if self.is_subtree:
            return path.startswith(self.pattern)
        return path == self.pattern


ROUTES: tuple[Route, ...] = (
    Route("/", handle_index),
    Route("/delay", handle_delay),
    Route("/returnStatus", handle_return_status),
    Route("/sampleResponse", handle_sample_response),
    Route("/addHeader", handle_add_header),
    Route("/dumpRequest", handle_dump_request),
    Route(CACHE_TESTS_PREFIX, handle_cache_test),
    Route(GET_CONTENT_PREFIX, handle_get_content),
    Route("/validateJson", handle_validate_json),
)


def match_route(path: str, routes: tuple[Route, ...] = ROUTES) -> Optional[Route]:
    """Return the route with the longest pattern matching ``path``."""
    best: Optional[Route] = None
    for route in routes:
        if not route.matches(path):
            continue
        if best is None or len(route.pattern) > len(best.pattern):
            best = route
    return best


def subtree_redirect(
    path: str, routes: tuple[Route, ...] = ROUTES
) -> Optional[str]:
    """Return ``path + "/"`` when that names a subtree route and ``path`` does not."""
    if path.endswith("/"):
        return None
    candidate = f"{path}/"
    for route in routes:
        if route.is_subtree and route.pattern == candidate:
            return candidate
    return None


def run_handler(
    handler: Handler, request: HttpRequest, context: ServerContext
) -> HttpResponse:
    """Invoke ``handler`` and turn any escaping failure into a response.

    This is the only place handler failures are recovered: each one is logged
    on the error channel and answered with the status its kind maps to.
    """
    if context.verbose:
        ROUTER_LOGGER.info(
            dump_request(request).decode("utf-8", errors="replace"),
            extra={"event": "request_dump", "route": request.path},
        )
    try:
        return handler(request, context)
    except SimulationError as error:
        failure = error
    except Exception as exc:  # pylint: disable=broad-except
        failure = Unrecoverable(exc)

    ROUTER_LOGGER.error(
        "Handler failed",
        extra={
            "event": "handler_failed",
            "route": request.path,
            "method": request.method,
            "error_kind": failure.kind.value,
            "status_code": failure.status_code,
            "error": str(failure),
        },
        exc_info=failure.cause if isinstance(failure, Unrecoverable) else None,
    )
    return error_response(request, failure)


def route_request(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Route the request to the appropriate handler and return a response."""
    location = subtree_redirect(request.path)
    if location is not None:
        if request.query:
            location = f"{location}?{request.query}"
        ROUTER_LOGGER.info(
            "Redirecting to subtree root",
            extra={"event": "route_redirect", "route": request.path},
        )
        return redirect_response(request, location)

    route = match_route(request.path)
    if route is None:
        return not_found_response(request)
    if ROUTER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ROUTER_LOGGER.debug(
            "Route matched",
            extra={"event": "route_matched", "route": route.pattern},
        )
    return run_handler(route.handler, request, context)
