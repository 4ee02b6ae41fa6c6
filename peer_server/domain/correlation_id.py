"""Per-request correlation IDs carried through contextvars."""

import contextvars
import logging
import uuid
from typing import Any, MutableMapping, Optional

LOGGER_PREFIX = "peer_server."
MAX_INCOMING_ID_LENGTH = 128

_request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def generate_correlation_id() -> str:
    """Generate a new correlation ID using UUID4."""
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID bound to the current request, if any."""
    return _request_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Bind a correlation ID to the current request context."""
    _request_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Forget the correlation ID of the finished request."""
    _request_id_var.set(None)


def adopt_incoming_id(header_value: Optional[str]) -> None:
    """Use the client's X-Request-ID when it is printable and short enough."""
    if not header_value:
        return
    candidate = header_value.strip()
    if not candidate or len(candidate) > MAX_INCOMING_ID_LENGTH:
        return
    if not candidate.isprintable():
        return
    set_correlation_id(candidate)


class CorrelationLoggerAdapter(logging.LoggerAdapter):
    """Logger adapter that stamps records with the request ID and component."""

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        extra = dict(kwargs.get("extra") or {})
        correlation_id = get_correlation_id()
        extra["correlation_id"] = correlation_id if correlation_id is not None else "-"

        logger_name = self.logger.name
        if logger_name.startswith(LOGGER_PREFIX):
            extra["component"] = logger_name[len(LOGGER_PREFIX) :]
        else:
            extra["component"] = logger_name
        kwargs["extra"] = extra
        return msg, kwargs


def component_logger(name: str) -> CorrelationLoggerAdapter:
    """Return the adapter for a ``peer_server.<name>`` logger."""
    return CorrelationLoggerAdapter(logging.getLogger(f"{LOGGER_PREFIX}{name}"), {})
