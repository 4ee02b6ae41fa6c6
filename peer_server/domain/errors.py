"""Tagged failure types raised by handlers and simulators."""

import enum
from typing import Optional


class ErrorKind(enum.Enum):
    """Classifies a handler failure and decides the status it surfaces as."""

    MALFORMED_PARAMETER = "malformed_parameter"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INVALID_PAYLOAD = "invalid_payload"
    UNRECOVERABLE = "unrecoverable"


# A malformed parameter is reported as a server error, not a client error.
_STATUS_BY_KIND = {
    ErrorKind.MALFORMED_PARAMETER: 500,
    ErrorKind.RESOURCE_NOT_FOUND: 404,
    ErrorKind.INVALID_PAYLOAD: 400,
    ErrorKind.UNRECOVERABLE: 500,
}


def status_for(kind: ErrorKind) -> int:
    """Return the HTTP status code a failure of ``kind`` is answered with."""
    return _STATUS_BY_KIND[kind]


class SimulationError(Exception):
    """Base class for failures that carry an :class:`ErrorKind` tag."""

    kind = ErrorKind.UNRECOVERABLE

    @property
    def status_code(self) -> int:
        return status_for(self.kind)


class MalformedParameter(SimulationError):
    """Raised when a numeric or duration query parameter does not parse."""

    kind = ErrorKind.MALFORMED_PARAMETER

    def __init__(self, name: str, raw_value: str, reason: str = "") -> None:
        self.name = name
        self.raw_value = raw_value
        message = f"malformed parameter {name}={raw_value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class ResourceNotFound(SimulationError):
    """Raised when requested content cannot be opened."""

    kind = ErrorKind.RESOURCE_NOT_FOUND

    def __init__(self, name: str, cause: Optional[BaseException] = None) -> None:
        self.name = name
        self.cause = cause
        super().__init__(f"content not available: {name}")


class InvalidPayload(SimulationError):
    """Raised when a request body is not valid JSON."""

    kind = ErrorKind.INVALID_PAYLOAD


class Unrecoverable(SimulationError):
    """Wraps any other failure escaping a handler."""

    kind = ErrorKind.UNRECOVERABLE

    def __init__(self, cause: BaseException) -> None:
        self.cause = cause
        super().__init__(f"{type(cause).__name__}: {cause}")
