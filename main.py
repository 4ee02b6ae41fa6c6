"""Entry point for the configurable HTTP peer server."""

import signal
import sys

from peer_server.bootstrap.config import ServerConfig, parse_cli_args
from peer_server.bootstrap.logging_setup import configure_logging
from peer_server.domain.correlation_id import component_logger
from peer_server.lifecycle.state import ServerLifecycle
from peer_server.transport.accept_loop import run_server
from peer_server.transport.context import ServerContext

SERVER_LOGGER = component_logger("main")


def main() -> None:
    """Start the peer server and spawn worker threads per connection."""
    args = parse_cli_args(sys.argv[1:])
    configure_logging(
        args.log_level,
        args.log_destination,
        args.error_log_destination,
        use_json=args.log_format == "json",
    )

    config = ServerConfig(
        socket_timeout=args.socket_timeout,
        shutdown_grace_seconds=args.shutdown_grace_seconds,
    )
    lifecycle = ServerLifecycle()
    context = ServerContext(
        directory=args.directory,
        verbose=args.verbose,
        lifecycle=lifecycle,
        config=config,
    )

    def shutdown_handler(signum: int, _frame) -> None:
        SERVER_LOGGER.info(
            "Received shutdown signal",
            extra={"event": "signal_received", "signal": signum},
        )
        lifecycle.begin_draining()

    signal.signal(signal.SIGTERM, shutdown_handler)
    signal.signal(signal.SIGINT, shutdown_handler)

    SERVER_LOGGER.info(
        "Starting peer server",
        extra={
            "event": "server_starting",
            "host": args.host,
            "port": args.port,
            "directory": args.directory,
            "verbose": args.verbose,
            "socket_timeout": config.socket_timeout,
            "shutdown_grace_seconds": config.shutdown_grace_seconds,
        },
    )
    run_server(args, config, lifecycle, context)


if __name__ == "__main__":
    main()
