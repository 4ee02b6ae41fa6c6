"""Worker thread logic for handling individual client connections."""

import logging
import socket
import threading
from typing import Optional

from peer_server.bootstrap.config import MAX_BODY_BYTES
from peer_server.domain.correlation_id import (
    clear_correlation_id,
    component_logger,
    generate_correlation_id,
    set_correlation_id,
)
from peer_server.domain.http_types import HttpRequest, should_close
from peer_server.domain.response_builders import (
    bad_request_response,
    draining_response,
    entity_too_large_response,
)
from peer_server.lifecycle.state import ServerLifecycle
from peer_server.pipeline.io import receive_request, send_response
from peer_server.pipeline.router import route_request
from peer_server.pipeline.validation import RequestEntityTooLarge, validate_request
from peer_server.transport.context import ServerContext

WORKER_LOGGER = component_logger("transport.worker")


def _read_request_with_validation(
    client_socket: socket.socket,
    buffer: bytes,
    client_addr_str: str,
    max_body_bytes: int,
) -> tuple[Optional[HttpRequest], bytes, bool]:
    """Read a request from the socket while enforcing size and syntax limits."""

    try:
        request, buffer = receive_request(client_socket, buffer, max_body_bytes)
    except RequestEntityTooLarge:
        WORKER_LOGGER.warning(
            "Request body size exceeded limit",
            extra={
                "event": "body_size_exceeded",
                "client": client_addr_str,
                "limit": max_body_bytes,
            },
        )
        send_response(client_socket, entity_too_large_response())
        return None, b"", True
    except ValueError:
        WORKER_LOGGER.warning(
            "Malformed request received",
            extra={"event": "malformed_request", "client": client_addr_str},
        )
        send_response(client_socket, bad_request_response())
        return None, b"", True

    if request is None:
        if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
            WORKER_LOGGER.debug(
                "Client disconnected during request",
                extra={"event": "client_disconnected", "client": client_addr_str},
            )
        return None, buffer, True
    return request, buffer, False


def _process_request(
    request: HttpRequest,
    context: ServerContext,
    client_socket: socket.socket,
) -> bool:
    """Answer one request; return True when the connection must be closed."""
    if context.lifecycle is not None and context.lifecycle.is_draining():
        send_response(client_socket, draining_response(), request)
        return True

    response = validate_request(request)
    if response is None:
        response = route_request(request, context)
    if should_close(request):
        response.close_connection = True

    delivered = send_response(client_socket, response, request)
    return response.close_connection or not delivered


def _cleanup_worker(
    lifecycle: Optional[ServerLifecycle],
    thread: threading.Thread,
    client_socket: socket.socket,
    client_addr_str: str,
) -> None:
    if lifecycle is not None:
        lifecycle.cleanup_worker(thread)

    try:
        client_socket.shutdown(socket.SHUT_WR)
    except OSError:
        pass
    client_socket.close()

    if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
        WORKER_LOGGER.debug(
            "Socket closed",
            extra={"event": "socket_closed", "client": client_addr_str},
        )
    clear_correlation_id()


def handle_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: ServerContext,
) -> None:
    """Process requests on a client socket until the connection is closed."""
    buffer = b""
    current_thread = threading.current_thread()
    lifecycle = context.lifecycle
    if lifecycle is not None:
        lifecycle.register_worker(current_thread)
    max_body_bytes = MAX_BODY_BYTES
    if context.config is not None:
        max_body_bytes = context.config.max_body_bytes
    client_addr_str = f"{client_address[0]}:{client_address[1]}"

    try:
        # Each staged output unit must leave as its own segment.
        client_socket.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        if context.config is not None:
            client_socket.settimeout(context.config.socket_timeout)
        while True:
            set_correlation_id(generate_correlation_id())

            request, buffer, should_terminate = _read_request_with_validation(
                client_socket, buffer, client_addr_str, max_body_bytes
            )
            if should_terminate:
                break

            if WORKER_LOGGER.logger.isEnabledFor(logging.DEBUG):
                WORKER_LOGGER.debug(
                    "Request line parsed",
                    extra={
                        "event": "request_line_parsed",
                        "method": request.method,
                        "route": request.path,
                    },
                )

            should_terminate_connection = _process_request(
                request, context, client_socket
            )
            clear_correlation_id()
            if should_terminate_connection:
                break
    except TimeoutError:
        # Raised when a kept-alive connection sits idle past socket_timeout.
        WORKER_LOGGER.info(
            "Connection idle past socket timeout",
            extra={"event": "connection_timed_out", "client": client_addr_str},
        )
    except OSError as error:
        WORKER_LOGGER.error(
            "Connection failed while serving client",
            extra={
                "event": "connection_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
            },
        )
    except Exception as error:  # pylint: disable=broad-except
        WORKER_LOGGER.error(
            "Unexpected error in worker",
            extra={
                "event": "worker_error",
                "client": client_addr_str,
                "error_type": type(error).__name__,
                "error": str(error),
            },
            exc_info=True,
        )
    finally:
        _cleanup_worker(lifecycle, current_thread, client_socket, client_addr_str)
