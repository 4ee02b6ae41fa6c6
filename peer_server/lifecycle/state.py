"""Draining flag and in-flight worker bookkeeping for graceful shutdown."""

import threading
import time

from peer_server.domain.correlation_id import component_logger

LIFECYCLE_LOGGER = component_logger("lifecycle")
IDLE_POLL_SECONDS = 0.1


class ServerLifecycle:
    """Shared between the signal handlers, the accept loop and the workers.

    Once draining starts the accept loop stops taking connections and
    workers answer any further request on their connection with a 503.
    """

    def __init__(self) -> None:
        self._draining = threading.Event()
        self._idle = threading.Condition()
        self._workers: set[threading.Thread] = set()

    def is_draining(self) -> bool:
        return self._draining.is_set()

    def begin_draining(self) -> None:
        """Flip the server into draining mode; repeated calls are ignored."""
        if self._draining.is_set():
            return
        self._draining.set()
        LIFECYCLE_LOGGER.info(
            "Beginning graceful shutdown", extra={"event": "shutdown_started"}
        )

    def register_worker(self, thread: threading.Thread) -> None:
        with self._idle:
            self._workers.add(thread)

    def cleanup_worker(self, thread: threading.Thread) -> None:
        with self._idle:
            self._workers.discard(thread)
            self._idle.notify_all()

    def active_worker_count(self) -> int:
        with self._idle:
            return len(self._workers)

    def _live_workers(self) -> int:
        self._workers = {worker for worker in self._workers if worker.is_alive()}
        return len(self._workers)

    def wait_for_workers(self, timeout: float) -> bool:
        """Block until every in-flight worker is done or ``timeout`` elapses."""
        deadline = time.monotonic() + timeout
        with self._idle:
            while self._live_workers():
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    LIFECYCLE_LOGGER.warning(
                        "Workers still running after shutdown grace period",
                        extra={
                            "event": "shutdown_timeout",
                            "remaining_workers": len(self._workers),
                        },
                    )
                    return False
                # Workers that die without deregistering never notify.
                self._idle.wait(min(IDLE_POLL_SECONDS, remaining))
        return True
