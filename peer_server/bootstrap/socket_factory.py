"""Listening socket creation."""

import argparse
import socket
import sys

from peer_server.domain.correlation_id import component_logger

SOCKET_LOGGER = component_logger("socket")

ACCEPT_POLL_SECONDS = 0.5


def create_server_socket(args: argparse.Namespace) -> socket.socket:
    """Bind the listening socket; exit when the address is unavailable.

    The short accept timeout lets the accept loop notice shutdown promptly.
    """
    try:
        server_socket = socket.create_server((args.host, args.port))
    except OSError as error:
        SOCKET_LOGGER.critical(
            "Failed to bind listening socket",
            extra={
                "event": "bind_failed",
                "host": args.host,
                "port": args.port,
                "error": str(error),
            },
        )
        sys.exit(1)
    server_socket.settimeout(ACCEPT_POLL_SECONDS)
    return server_socket
