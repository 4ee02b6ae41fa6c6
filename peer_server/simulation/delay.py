"""Blocking delay simulation."""

import time
from dataclasses import dataclass
from typing import Callable

from peer_server.domain.params import parse_duration_ms

SleepFn = Callable[[float], None]


@dataclass(frozen=True)
class Delay:
    """Hold the current request for ``seconds`` before answering."""

    seconds: float

    @classmethod
    def parse(cls, sleep_ms: str) -> "Delay":
        return cls(parse_duration_ms("sleep", sleep_ms))


def delay(directive: Delay, sleep: SleepFn = time.sleep) -> None:
    """Block the calling thread; negative durations return immediately."""
    sleep(max(0.0, directive.seconds))
