"""Safe execution adapters for sync, single-async and stream operations.

Each adapter runs one operation and funnels any failure through
``normalize`` (or ``error_to_none`` for the nullable variants) before handing
back an outcome shaped for the caller:

==============================  ==========================================
Adapter                         Failure surfaces as
==============================  ==========================================
``run_safe_sync``               ``Failure`` result
``run_safe_sync_nullable``      ``None``
``run_safe_async``              raised ``StructuredError``
``run_safe_async_nullable``     ``None``
``run_safe_stream``             ``StructuredError`` error event
``run_safe_stream_nullable``    ``None`` value
==============================  ==========================================
"""

from __future__ import annotations

from collections.abc import AsyncIterable, Awaitable, Callable, Iterable
from typing import TYPE_CHECKING

from catchflow.eventual import Eventual
from catchflow.normalize import error_to_none, normalize
from catchflow.result import Failure, Success
from catchflow.streams import Stream, relay

if TYPE_CHECKING:
    from catchflow.errors import ErrorAdapter
    from catchflow.log_gate import LogGate, LogLevel
    from catchflow.result import Result

StreamSource = Stream | AsyncIterable | Iterable


def run_safe_sync[T](
    operation: Callable[[], T],
    *,
    adapter: ErrorAdapter | None = None,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> Result[T]:
    """Run *operation* now and capture its outcome.

    Never raises for an ``Exception`` from *operation*; every such outcome is a
    ``Failure`` in the returned result.

    Example:
        result = run_safe_sync(lambda: int(raw))
        port = result.get_or_else(lambda error: 8080)
    """
    try:
        value = operation()
    except Exception as e:
        return Failure(normalize(e, adapter, log_level=log_level, gate=gate))
    return Success(value)


def run_safe_sync_nullable[T](
    operation: Callable[[], T],
    *,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> T | None:
    """Run *operation* now, returning ``None`` if it fails."""
    try:
        return operation()
    except Exception as e:
        return error_to_none(e, log_level=log_level, gate=gate)


def run_safe_async[T](
    operation: Callable[[], Awaitable[T]],
    *,
    adapter: ErrorAdapter | None = None,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> Eventual[T]:
    """Await *operation()*; failures are re-raised as ``StructuredError``.

    The raw failure stays reachable as ``__cause__``.
    """

    async def _run() -> T:
        try:
            return await operation()
        except Exception as e:
            error = normalize(e, adapter, log_level=log_level, gate=gate)
            if error is e:
                raise
            raise error from e

    return Eventual(_run())


def run_safe_async_nullable[T](
    operation: Callable[[], Awaitable[T | None]],
    *,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> Eventual[T | None]:
    """Await *operation()*, resolving to ``None`` instead of failing."""

    async def _run() -> T | None:
        try:
            return await operation()
        except Exception as e:
            return error_to_none(e, log_level=log_level, gate=gate)

    return Eventual(_run())


def _open(operation: Callable[[], StreamSource]) -> Stream:
    source = operation()
    if isinstance(source, Stream):
        return source
    return Stream.from_iterable(source)


def run_safe_stream[T](
    operation: Callable[[], Stream[T] | AsyncIterable[T] | Iterable[T]],
    *,
    adapter: ErrorAdapter | None = None,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> Stream[T]:
    """Relay *operation()*'s values with every error event normalized.

    The returned stream is multicast. Error events do not end it; it
    completes when the underlying stream does, and cancelling its last
    listener cancels the underlying subscription.
    """
    try:
        upstream = _open(operation)
    except Exception as e:
        return Stream.failed(normalize(e, adapter, log_level=log_level, gate=gate))

    return relay(
        upstream,
        on_data=Success,
        on_error=lambda error: Failure(
            normalize(error, adapter, log_level=log_level, gate=gate)
        ),
    )


def run_safe_stream_nullable[T](
    operation: Callable[[], Stream[T] | AsyncIterable[T] | Iterable[T]],
    *,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> Stream[T | None]:
    """Relay *operation()*'s values, emitting ``None`` in place of each error.

    The returned stream never carries error events and only completes when
    the underlying stream completes.
    """
    try:
        upstream = _open(operation)
    except Exception as e:
        error_to_none(e, log_level=log_level, gate=gate)
        return Stream.from_iterable([None])

    return relay(
        upstream,
        on_data=Success,
        on_error=lambda error: Success(
            error_to_none(error, log_level=log_level, gate=gate)
        ),
    )
