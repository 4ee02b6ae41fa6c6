"""Context object shared across worker threads."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from peer_server.bootstrap.config import (
    DEFAULT_CONTENT_NAME,
    TEMPLATE_NAME,
    ServerConfig,
)
from peer_server.lifecycle.state import ServerLifecycle


def _now() -> datetime:
    return datetime.now().astimezone()


@dataclass(frozen=True)
class ServerContext:
    """Read-only dependencies handed to every handler.

    ``content_modified`` is captured once when the context is built and is the
    modification time reported for every piece of served content.
    """

    directory: str = "."
    verbose: bool = False
    content_modified: datetime = field(default_factory=_now)
    template_name: str = TEMPLATE_NAME
    default_content_name: str = DEFAULT_CONTENT_NAME
    lifecycle: Optional[ServerLifecycle] = None
    config: Optional[ServerConfig] = None
