"""Handlers that bend response timing, status and headers on request."""

import logging
import time
from typing import Iterator

from peer_server.domain.correlation_id import component_logger
from peer_server.domain.http_types import HttpRequest, HttpResponse
from peer_server.domain.params import retrieve_param
from peer_server.domain.response_builders import empty_response, streaming_response
from peer_server.simulation.delay import Delay, delay
from peer_server.simulation.overrides import HeaderSet, StatusOverride
from peer_server.simulation.staged_output import (
    StreamDirective,
    TimedStream,
    parse_stream_directive,
    staged_output,
)
from peer_server.transport.context import ServerContext

SIMULATION_LOGGER = component_logger("handlers.simulation")


def handle_delay(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Handle /delay by sleeping ``sleep`` milliseconds before answering."""
    directive = Delay.parse(retrieve_param(request, "sleep"))
    SIMULATION_LOGGER.info(
        "Delaying response",
        extra={"event": "delay_started", "duration_ms": directive.seconds * 1000},
    )
    delay(directive)
    return empty_response(request)


def handle_return_status(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Handle /returnStatus by answering with the requested code."""
    override = StatusOverride.parse(retrieve_param(request, "status"))
    SIMULATION_LOGGER.info(
        "Returning requested status",
        extra={"event": "status_override", "status_code": override.code},
    )
    return empty_response(request, override.code)


def handle_sample_response(
    request: HttpRequest, context: ServerContext
) -> HttpResponse:
    """Handle /sampleResponse by streaming dots over time or by count."""
    directive = parse_stream_directive(
        retrieve_param(request, "time"),
        retrieve_param(request, "size"),
        retrieve_param(request, "latency"),
    )
    return streaming_response(request, _logged_stream(directive))


def _logged_stream(directive: StreamDirective) -> Iterator[bytes]:
    mode = "time" if isinstance(directive, TimedStream) else "size"
    SIMULATION_LOGGER.info(
        "Staged output started",
        extra={"event": "stream_started", "mode": mode},
    )
    started = time.monotonic()
    units = 0
    for unit in staged_output(directive):
        units += 1
        if SIMULATION_LOGGER.logger.isEnabledFor(logging.DEBUG):
            SIMULATION_LOGGER.debug(
                "Staged output unit", extra={"event": "stream_unit", "units": units}
            )
        yield unit
    SIMULATION_LOGGER.info(
        "Staged output complete",
        extra={
            "event": "stream_complete",
            "mode": mode,
            "units": units,
            "duration_ms": round((time.monotonic() - started) * 1000, 3),
        },
    )


def handle_add_header(request: HttpRequest, context: ServerContext) -> HttpResponse:
    """Handle /addHeader by setting each ``name[i]: value[i]`` pair."""
    header_set = HeaderSet.parse(
        retrieve_param(request, "name"), retrieve_param(request, "value")
    )
    response = empty_response(request)
    applied = header_set.apply(response)
    SIMULATION_LOGGER.info(
        "Added response headers",
        extra={"event": "headers_added", "headers": applied},
    )
    return response
