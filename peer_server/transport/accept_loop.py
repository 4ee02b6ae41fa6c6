"""Main connection acceptance loop."""

import argparse
import logging
import socket
import threading

from peer_server.bootstrap.config import ServerConfig
from peer_server.bootstrap.socket_factory import create_server_socket
from peer_server.domain.correlation_id import component_logger
from peer_server.domain.response_builders import draining_response
from peer_server.lifecycle.state import ServerLifecycle
from peer_server.pipeline.io import send_response
from peer_server.transport.context import ServerContext
from peer_server.transport.worker import handle_client

ACCEPT_LOGGER = component_logger("transport.accept")


def _handle_accepted_client(
    client_socket: socket.socket,
    client_address: tuple[str, int],
    context: ServerContext,
) -> None:
    """Hand a newly accepted connection to its own worker thread."""
    if ACCEPT_LOGGER.logger.isEnabledFor(logging.DEBUG):
        ACCEPT_LOGGER.debug(
            "Client connection accepted",
            extra={
                "event": "client_accepted",
                "client": f"{client_address[0]}:{client_address[1]}",
            },
        )
    thread = threading.Thread(
        target=handle_client,
        args=(client_socket, client_address, context),
        daemon=False,
    )
    thread.start()


def run_server(
    args: argparse.Namespace,
    config: ServerConfig,
    lifecycle: ServerLifecycle,
    context: ServerContext,
) -> None:
    """Create listening socket and serve connections until draining begins."""

    server_socket = create_server_socket(args)

    ACCEPT_LOGGER.info(
        "Server listening for connections",
        extra={"event": "server_listening", "host": args.host, "port": args.port},
    )

    try:
        while not lifecycle.is_draining():
            try:
                client_socket, client_address = server_socket.accept()
            except socket.timeout:
                continue
            except OSError as error:
                if lifecycle.is_draining():
                    break
                ACCEPT_LOGGER.error(
                    "Socket accept failed",
                    extra={"event": "accept_error", "error_type": type(error).__name__},
                )
                continue

            if lifecycle.is_draining():
                send_response(client_socket, draining_response())
                client_socket.close()
                break

            _handle_accepted_client(client_socket, client_address, context)
    finally:
        server_socket.close()
        ACCEPT_LOGGER.info(
            "Waiting for active connections to complete",
            extra={
                "event": "shutdown_waiting",
                "shutdown_grace_seconds": config.shutdown_grace_seconds,
            },
        )
        lifecycle.wait_for_workers(config.shutdown_grace_seconds)
        ACCEPT_LOGGER.info(
            "Server shutdown complete", extra={"event": "server_stopped"}
        )
