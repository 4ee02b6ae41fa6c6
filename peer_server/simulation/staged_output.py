"""Staged output: a body emitted one marker at a time.

Each marker is yielded separately so the response writer can flush it to the
client before the generator resumes and sleeps. Two modes exist:

* time-bounded: emit, flush, sleep ``latency``, and stop once more than
  ``duration`` has elapsed since the first emission. The check runs after the
  sleep, so at least one marker is always sent and the stream may overshoot
  the deadline by one marker.
* count-bounded: emit exactly ``count`` markers, sleeping ``latency`` after
  each one including the last.

Which mode runs is decided only by whether ``time`` parses.
"""

import time
from dataclasses import dataclass
from typing import Callable, Iterator, Union

from peer_server.domain.errors import MalformedParameter
from peer_server.domain.params import parse_duration_ms, parse_int

MARKER = b"."

SleepFn = Callable[[float], None]
ClockFn = Callable[[], float]


@dataclass(frozen=True)
class TimedStream:
    duration: float
    latency: float


@dataclass(frozen=True)
class CountedStream:
    count: int
    latency: float


StreamDirective = Union[TimedStream, CountedStream]


def parse_stream_directive(
    time_ms: str, size: str, latency_ms: str
) -> StreamDirective:
    """Choose the stream mode from raw ``time``, ``size`` and ``latency`` values.

    ``latency`` must always parse. When ``time`` parses the stream is
    time-bounded; otherwise ``size`` must parse as an integer.
    """
    latency = parse_duration_ms("latency", latency_ms)
    try:
        duration = parse_duration_ms("time", time_ms)
    except MalformedParameter:
        return CountedStream(parse_int("size", size), latency)
    return TimedStream(duration, latency)


def dots_by_time(
    directive: TimedStream,
    sleep: SleepFn = time.sleep,
    clock: ClockFn = time.monotonic,
) -> Iterator[bytes]:
    start = clock()
    while True:
        yield MARKER
        sleep(max(0.0, directive.latency))
        if clock() - start > directive.duration:
            return


def dots_by_size(
    directive: CountedStream, sleep: SleepFn = time.sleep
) -> Iterator[bytes]:
    for _ in range(directive.count):
        yield MARKER
        sleep(max(0.0, directive.latency))


def staged_output(
    directive: StreamDirective,
    sleep: SleepFn = time.sleep,
    clock: ClockFn = time.monotonic,
) -> Iterator[bytes]:
    """Return the marker stream for ``directive``."""
    if isinstance(directive, TimedStream):
        return dots_by_time(directive, sleep, clock)
    return dots_by_size(directive, sleep)
