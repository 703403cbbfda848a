"""Awaitable wrapper carrying the success/failure combinators."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Generator
from typing import TYPE_CHECKING, Any

from catchflow.log_gate import resolve_gate
from catchflow.result import Failure, Success

if TYPE_CHECKING:
    from catchflow.errors import StructuredError
    from catchflow.log_gate import LogGate, LogLevel
    from catchflow.result import Result


# Unawaited when() tasks, held until they finish.
_PENDING: set[asyncio.Task[None]] = set()


def consume_future_exception(fut: asyncio.Future[Any]) -> None:
    """Avoid 'Future exception was never retrieved' for shared futures."""
    try:
        _ = fut.exception()
    except asyncio.CancelledError:
        return


class Eventual[T]:
    """A single eventual value of ``T``.

    The wrapped awaitable runs once, as a future shared by every await and
    combinator call, so an ``Eventual`` can be awaited and combined any number
    of times. The first use must happen with a running event loop.

    Example:
        name = await Eventual(fetch_user(42)).map(
            on_success=lambda user: user.name,
            on_error=lambda error: "anonymous",
        )
    """

    __slots__ = ("_awaitable", "_future")

    def __init__(self, awaitable: Awaitable[T]) -> None:
        self._awaitable = awaitable
        self._future: asyncio.Future[T] | None = None

    def _shared(self) -> asyncio.Future[T]:
        if self._future is None:
            self._future = asyncio.ensure_future(self._awaitable)
            self._future.add_done_callback(consume_future_exception)
        return self._future

    def __await__(self) -> Generator[Any, None, T]:
        return self._shared().__await__()

    def __repr__(self) -> str:
        return f"Eventual({self._awaitable!r})"

    async def settle(self) -> Result[T]:
        """Await the value and report the outcome as a ``Result``.

        Failures that are not structured yet are wrapped without logging.
        Cancellation is not a failure and propagates.
        """
        try:
            value = await self._shared()
        except Exception as e:
            return Failure.from_exception(e)
        return Success(value)

    def when(
        self,
        *,
        on_start: Callable[[], object] | None = None,
        on_success: Callable[[T], object] | None = None,
        on_error: Callable[[StructuredError], object] | None = None,
        log_level: LogLevel | None = None,
        gate: LogGate | None = None,
    ) -> asyncio.Task[None]:
        """Run the matching callback once the value settles.

        ``on_start`` runs immediately, before this method returns. The branch
        callback runs from a scheduled task whether or not the caller awaits
        it; awaiting the returned task waits for that callback.
        """
        target = resolve_gate(gate)
        target.log_debug("Eventual.when: operation started", level=log_level)
        if on_start is not None:
            on_start()
        self._shared()
        task = asyncio.ensure_future(self._when(on_success, on_error, log_level, target))
        _PENDING.add(task)
        task.add_done_callback(_PENDING.discard)
        return task

    async def _when(
        self,
        on_success: Callable[[T], object] | None,
        on_error: Callable[[StructuredError], object] | None,
        log_level: LogLevel | None,
        gate: LogGate,
    ) -> None:
        outcome = await self.settle()
        if isinstance(outcome, Success):
            gate.log_debug(
                f"Eventual.when: operation completed successfully with value: {outcome.value!r}",
                level=log_level,
            )
        else:
            gate.log_debug(
                f"Eventual.when: operation failed with error: {outcome.error!r}",
                level=log_level,
            )
        outcome.when(on_success, on_error)

    async def map[R](
        self,
        on_success: Callable[[T], R],
        on_error: Callable[[StructuredError], R],
    ) -> R:
        """Resolve to the chosen branch's return value.

        Failures of the wrapped awaitable never propagate out of ``map``.
        """
        outcome = await self.settle()
        return outcome.map(on_success, on_error)

    async def get_or_else(self, on_error: Callable[[StructuredError], T]) -> T:
        """Resolve to the value, or to ``on_error(error)`` on failure."""
        outcome = await self.settle()
        return outcome.get_or_else(on_error)
