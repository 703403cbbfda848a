"""Multicast async streams with non-terminating error events.

A ``Stream`` fans every event out to all listeners attached at the time the
event is produced. Three kinds of event exist:

- a value (``on_data``),
- an error event (``on_error``), which does not end the stream,
- a single done event (``on_done``), after which the stream is closed.

Streams are lazy: an iterable-backed stream starts pulling its source when the
first listener attaches and stops (closing the source) when the last listener
cancels. Derived streams subscribe upstream the same way, so cancellation and
completion propagate through a chain in both directions.

All delivery happens on the running event loop; nothing here is thread-safe.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterable, AsyncIterator, Callable, Iterable
from contextlib import suppress
import logging
from typing import TYPE_CHECKING, Any

from catchflow.errors import StructuredError
from catchflow.log_gate import resolve_gate
from catchflow.result import Failure, Success

if TYPE_CHECKING:
    from catchflow.log_gate import LogGate, LogLevel

log = logging.getLogger(__name__)

DataCallback = Callable[[Any], object]
ErrorCallback = Callable[[BaseException], object]
DoneCallback = Callable[[], object]


class Subscription[T]:
    """Handle for one listener on a ``Stream``.

    ``cancel()`` detaches the listener; cancelling the last listener of a
    stream tears down whatever feeds it.
    """

    __slots__ = ("_active", "_on_data", "_on_done", "_on_error", "_stream")

    def __init__(
        self,
        stream: Stream[T],
        on_data: Callable[[T], object] | None,
        on_error: ErrorCallback | None,
        on_done: DoneCallback | None,
    ) -> None:
        self._stream = stream
        self._on_data = on_data
        self._on_error = on_error
        self._on_done = on_done
        self._active = True

    @property
    def is_active(self) -> bool:
        """True until the listener is cancelled or the stream completes."""
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._stream._detach(self)

    def _deliver_data(self, value: T) -> None:
        if self._active and self._on_data is not None:
            _invoke(self._on_data, value)

    def _deliver_error(self, error: BaseException) -> None:
        if not self._active:
            return
        if self._on_error is None:
            log.warning("Unhandled stream error event: %r", error)
            return
        _invoke(self._on_error, error)

    def _deliver_done(self) -> None:
        if not self._active:
            return
        self._active = False
        if self._on_done is not None:
            _invoke(self._on_done)


def _invoke(callback: Callable[..., object], *args: Any) -> None:
    try:
        callback(*args)
    except Exception as e:
        log.error(
            "Stream listener '%s' failed: %s",
            getattr(callback, "__qualname__", type(callback).__name__),
            e,
            exc_info=True,
        )


class Stream[T]:
    """Multicast stream of ``T`` values plus error events.

    Build one with ``Stream.from_iterable`` or through a ``StreamController``.
    Besides ``listen`` a stream supports ``async for``; iteration raises on
    the first error event, since a Python iterator cannot resume after raising.
    """

    def __init__(self) -> None:
        self._subscriptions: list[Subscription[T]] = []
        self._closed = False

    # --- Construction ---

    @staticmethod
    def from_iterable(source: AsyncIterable[T] | Iterable[T]) -> Stream[T]:
        """Stream the items of a sync or async iterable.

        An exception raised by the source becomes an error event followed by
        the done event.
        """
        return _SourceStream(source)

    @staticmethod
    def failed(error: BaseException) -> Stream[Any]:
        """Return a stream that emits a single error event, then completes."""
        return _SourceStream(_raising(error))

    # --- State ---

    @property
    def is_closed(self) -> bool:
        return self._closed

    # --- Listening ---

    def listen(
        self,
        on_data: Callable[[T], object] | None = None,
        *,
        on_error: ErrorCallback | None = None,
        on_done: DoneCallback | None = None,
    ) -> Subscription[T]:
        """Attach a listener; must be called with a running event loop."""
        sub = Subscription(self, on_data, on_error, on_done)
        if self._closed:
            asyncio.get_running_loop().call_soon(sub._deliver_done)
            return sub
        first = not self._subscriptions
        self._subscriptions.append(sub)
        if first:
            self._start()
        return sub

    def __aiter__(self) -> AsyncIterator[T]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[T]:
        queue: asyncio.Queue[tuple[str, Any]] = asyncio.Queue()
        sub = self.listen(
            lambda value: queue.put_nowait(("data", value)),
            on_error=lambda error: queue.put_nowait(("error", error)),
            on_done=lambda: queue.put_nowait(("done", None)),
        )
        try:
            while True:
                kind, payload = await queue.get()
                if kind == "data":
                    yield payload
                elif kind == "error":
                    raise payload
                else:
                    return
        finally:
            sub.cancel()

    # --- Combinators ---

    def when(
        self,
        *,
        on_start: Callable[[], object] | None = None,
        on_success: Callable[[T], object] | None = None,
        on_error: Callable[[StructuredError], object] | None = None,
        on_done: DoneCallback | None = None,
        log_level: LogLevel | None = None,
        gate: LogGate | None = None,
    ) -> Subscription[T]:
        """Subscribe with success/error callbacks.

        ``on_start`` runs once, right away. Error events reach ``on_error`` as
        ``StructuredError`` instances.

        Returns:
            The subscription, so the caller can cancel it.
        """
        target = resolve_gate(gate)
        target.log_debug("Stream.when: subscription started", level=log_level)
        if on_start is not None:
            on_start()

        def _data(value: T) -> None:
            target.log_debug(f"Stream.when: stream emitted value: {value!r}", level=log_level)
            Success(value).when(on_success, on_error)

        def _error(error: BaseException) -> None:
            target.log_debug(f"Stream.when: stream error occurred: {error!r}", level=log_level)
            Failure.from_exception(error).when(on_success, on_error)

        return self.listen(_data, on_error=_error, on_done=on_done)

    def map[R](
        self,
        on_success: Callable[[T], R],
        on_error: Callable[[StructuredError], R],
    ) -> Stream[R]:
        """Project values and error events into plain values of ``R``.

        The derived stream carries no error events of its own unless a
        callback raises.
        """
        return _RelayStream(
            self,
            on_data=lambda value: Success(Success(value).map(on_success, on_error)),
            on_error=lambda error: Success(Failure.from_exception(error).map(on_success, on_error)),
        )

    def get_or_else(self, on_error: Callable[[StructuredError], T]) -> Stream[T]:
        """Keep values as they are and replace error events with fallbacks."""
        return self.map(lambda value: value, on_error)

    # --- Producer side (used by subclasses and controllers) ---

    def _start(self) -> None:
        """First listener attached."""

    def _stop(self) -> None:
        """Last listener cancelled."""

    def _detach(self, sub: Subscription[T]) -> None:
        with suppress(ValueError):
            self._subscriptions.remove(sub)
        if not self._subscriptions and not self._closed:
            self._stop()

    def _add(self, value: T) -> None:
        for sub in tuple(self._subscriptions):
            sub._deliver_data(value)

    def _add_error(self, error: BaseException) -> None:
        for sub in tuple(self._subscriptions):
            sub._deliver_error(error)

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        subs = tuple(self._subscriptions)
        self._subscriptions.clear()
        for sub in subs:
            sub._deliver_done()


async def _raising(error: BaseException) -> AsyncIterator[Any]:
    raise error
    yield  # pragma: no cover


async def _from_sync[T](items: Iterable[T]) -> AsyncIterator[T]:
    for item in items:
        yield item


class _SourceStream[T](Stream[T]):
    """Stream pulling from an iterable in a background task."""

    def __init__(self, source: AsyncIterable[T] | Iterable[T]) -> None:
        super().__init__()
        self._source = source
        self._pump: asyncio.Task[None] | None = None

    def _start(self) -> None:
        if self._pump is None:
            self._pump = asyncio.get_running_loop().create_task(self._run())

    def _stop(self) -> None:
        if self._pump is not None and not self._pump.done():
            self._pump.cancel()
        self._close()

    async def _run(self) -> None:
        source = self._source
        iterator = (
            aiter(source) if isinstance(source, AsyncIterable) else aiter(_from_sync(source))
        )
        try:
            while not self._closed:
                try:
                    value = await anext(iterator)
                except StopAsyncIteration:
                    break
                except Exception as e:
                    self._add_error(e)
                    break
                self._add(value)
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except Exception:
                    log.warning("Stream source %r failed to close", self._source, exc_info=True)
        self._close()


class _RelayStream[T, R](Stream[R]):
    """Stream derived from an upstream stream event by event.

    Each handler returns a ``Success`` (emit a value) or a ``Failure`` (emit an
    error event). A handler that raises produces an error event.
    """

    def __init__(
        self,
        upstream: Stream[T],
        *,
        on_data: Callable[[T], Success[R] | Failure],
        on_error: Callable[[BaseException], Success[R] | Failure],
    ) -> None:
        super().__init__()
        self._upstream = upstream
        self._handle_data = on_data
        self._handle_error = on_error
        self._upstream_sub: Subscription[T] | None = None

    def _start(self) -> None:
        if self._upstream_sub is None:
            self._upstream_sub = self._upstream.listen(
                lambda value: self._emit(self._handle_data, value),
                on_error=lambda error: self._emit(self._handle_error, error),
                on_done=self._close,
            )

    def _stop(self) -> None:
        if self._upstream_sub is not None:
            self._upstream_sub.cancel()
        self._close()

    def _emit(self, handler: Callable[[Any], Success[R] | Failure], event: Any) -> None:
        try:
            outcome = handler(event)
        except Exception as e:
            self._add_error(e)
            return
        if isinstance(outcome, Success):
            self._add(outcome.value)
        else:
            self._add_error(outcome.error)


def relay[T, R](
    upstream: Stream[T],
    *,
    on_data: Callable[[T], Success[R] | Failure],
    on_error: Callable[[BaseException], Success[R] | Failure],
) -> Stream[R]:
    """Derive a multicast stream from *upstream* one event at a time."""
    return _RelayStream(upstream, on_data=on_data, on_error=on_error)


class StreamController[T]:
    """Push-driven source for a multicast ``Stream``.

    Error events added here do not end the stream; only ``close()`` does.

    Example:
        controller = StreamController[int]()
        sub = controller.stream.listen(print, on_error=print)
        controller.add(1)
        controller.add_error(ValueError("bad reading"))
        controller.add(2)
        controller.close()
    """

    def __init__(
        self,
        *,
        on_listen: Callable[[], object] | None = None,
        on_cancel: Callable[[], object] | None = None,
    ) -> None:
        self._stream: _ControllerStream[T] = _ControllerStream(on_listen, on_cancel)

    @property
    def stream(self) -> Stream[T]:
        return self._stream

    @property
    def is_closed(self) -> bool:
        return self._stream.is_closed

    @property
    def has_listeners(self) -> bool:
        return bool(self._stream._subscriptions)

    def add(self, value: T) -> None:
        self._check_open()
        self._stream._add(value)

    def add_error(self, error: BaseException) -> None:
        self._check_open()
        self._stream._add_error(error)

    def close(self) -> None:
        self._stream._close()

    def _check_open(self) -> None:
        if self._stream.is_closed:
            raise RuntimeError("Cannot add events after the controller is closed")


class _ControllerStream[T](Stream[T]):
    def __init__(
        self,
        on_listen: Callable[[], object] | None,
        on_cancel: Callable[[], object] | None,
    ) -> None:
        super().__init__()
        self._on_listen = on_listen
        self._on_cancel = on_cancel

    def _start(self) -> None:
        if self._on_listen is not None:
            self._on_listen()

    def _stop(self) -> None:
        if self._on_cancel is not None:
            self._on_cancel()
