"""Test helpers (small, reusable doubles).

Keep this file tiny and purpose-built: sources and collectors shared across
the stream and adapter suites live here.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from catchflow.streams import Stream, Subscription


@dataclass
class RecordingLogger:
    """CatchFlowLogger double that records every call it receives."""

    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)

    def log_debug(self, message: Any) -> None:
        self.calls.append(("debug", (message,)))

    def log_info(self, message: Any) -> None:
        self.calls.append(("info", (message,)))

    def log_warning(self, message: Any) -> None:
        self.calls.append(("warning", (message,)))

    def log_error(self, message: Any, error: Any = None, stack: Any = None) -> None:
        self.calls.append(("error", (message, error, stack)))

    def levels(self) -> list[str]:
        return [level for level, _ in self.calls]

    def errors(self) -> list[tuple[Any, ...]]:
        return [args for level, args in self.calls if level == "error"]


@dataclass
class Collected:
    """Events seen by one listener, in arrival order."""

    events: list[tuple[str, Any]] = field(default_factory=list)
    done: bool = False

    @property
    def values(self) -> list[Any]:
        return [payload for kind, payload in self.events if kind == "data"]

    @property
    def errors(self) -> list[Any]:
        return [payload for kind, payload in self.events if kind == "error"]


def attach(stream: Stream[Any]) -> tuple[Collected, Subscription[Any]]:
    """Listen to *stream*, recording data, error and done events."""
    seen = Collected()

    def _done() -> None:
        seen.done = True

    sub = stream.listen(
        lambda value: seen.events.append(("data", value)),
        on_error=lambda error: seen.events.append(("error", error)),
        on_done=_done,
    )
    return seen, sub


async def drain(stream: Stream[Any], timeout: float = 1.0) -> tuple[Collected, Subscription[Any]]:
    """Listen to *stream* and wait for its done event."""
    seen, sub = attach(stream)
    await wait_for_done(seen, timeout)
    return seen, sub


async def wait_for_done(seen: Collected, timeout: float = 1.0) -> None:
    async def _poll() -> None:
        while not seen.done:
            await asyncio.sleep(0)

    await asyncio.wait_for(_poll(), timeout)


async def numbers_then_fail(error: BaseException, *numbers: int) -> AsyncIterator[int]:
    """Yield *numbers* (default 1, 2), then raise *error*."""
    for n in numbers or (1, 2):
        yield n
    raise error


async def ticking(closed: asyncio.Event) -> AsyncIterator[int]:
    """Yield forever; set *closed* once the generator is torn down."""
    n = 0
    try:
        while True:
            yield n
            n += 1
            await asyncio.sleep(0.001)
    finally:
        closed.set()
