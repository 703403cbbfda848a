"""Level-filtered gate in front of a pluggable diagnostic logger.

The gate is the only place catchflow decides whether a message reaches the
caller's logger. One process default gate exists; ``gate_scope`` swaps in a
different gate for the current context (thread or task) and every adapter or
combinator also accepts an explicit ``gate=``.

Configuration is expected to be written once at startup and read from many
places afterwards; writes are last-one-wins.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from enum import IntEnum
import logging
import traceback
from typing import Any, Protocol, runtime_checkable

log = logging.getLogger(__name__)


class LogLevel(IntEnum):
    """Severity ranks used for filtering.

    ``NONE`` as a threshold lets nothing through; ``ERROR`` as a threshold lets
    only error messages through.
    """

    NONE = 0
    DEBUG = 1
    INFO = 2
    WARNING = 3
    ERROR = 4


@runtime_checkable
class CatchFlowLogger(Protocol):
    """Capability set a caller implements to receive diagnostics."""

    def log_debug(self, message: Any) -> None: ...  # noqa: D102
    def log_info(self, message: Any) -> None: ...  # noqa: D102
    def log_warning(self, message: Any) -> None: ...  # noqa: D102
    def log_error(  # noqa: D102
        self, message: Any, error: Any = None, stack: Any = None
    ) -> None: ...


def _clears(level: LogLevel, threshold: LogLevel | None) -> bool:
    if threshold is None or threshold is LogLevel.NONE:
        return False
    return level >= threshold


class LogGate:
    """Owns the active logger and the minimum level.

    A message passes when it clears the per-call override *or* the gate's own
    minimum level.
    """

    __slots__ = ("_level", "_logger")

    def __init__(
        self,
        logger: CatchFlowLogger | None = None,
        level: LogLevel = LogLevel.ERROR,
    ) -> None:
        self._logger = logger
        self._level = LogLevel(level)

    def __repr__(self) -> str:
        return f"LogGate(logger={self._logger!r}, level={self._level.name})"

    @property
    def logger(self) -> CatchFlowLogger | None:
        return self._logger

    @property
    def level(self) -> LogLevel:
        return self._level

    def set_logger(self, logger: CatchFlowLogger | None) -> None:
        self._logger = logger

    def set_level(self, level: LogLevel) -> None:
        self._level = LogLevel(level)

    def allows(self, level: LogLevel, override: LogLevel | None = None) -> bool:
        """Return True when a message at *level* should be forwarded."""
        return _clears(level, override) or _clears(level, self._level)

    def log_debug(self, message: Any, *, level: LogLevel | None = None) -> None:
        if self._logger is not None and self.allows(LogLevel.DEBUG, level):
            self._forward("log_debug", message)

    def log_info(self, message: Any, *, level: LogLevel | None = None) -> None:
        if self._logger is not None and self.allows(LogLevel.INFO, level):
            self._forward("log_info", message)

    def log_warning(self, message: Any, *, level: LogLevel | None = None) -> None:
        if self._logger is not None and self.allows(LogLevel.WARNING, level):
            self._forward("log_warning", message)

    def log_error(
        self,
        message: Any,
        error: Any = None,
        stack: Any = None,
        *,
        level: LogLevel | None = None,
    ) -> None:
        if self._logger is not None and self.allows(LogLevel.ERROR, level):
            self._forward("log_error", message, error, stack)

    def _forward(self, method: str, *args: Any) -> None:
        try:
            getattr(self._logger, method)(*args)
        except Exception as e:
            # Sink failures are reported here, never propagated.
            log.error(
                "catchflow logger '%s' failed in %s: %s",
                type(self._logger).__name__,
                method,
                e,
                exc_info=True,
            )


class StdlibLogger:
    """``CatchFlowLogger`` that forwards to a stdlib ``logging.Logger``."""

    __slots__ = ("logger",)

    def __init__(self, logger: logging.Logger | str = "catchflow.events") -> None:
        self.logger = logging.getLogger(logger) if isinstance(logger, str) else logger

    def __repr__(self) -> str:
        return f"StdlibLogger({self.logger.name!r})"

    def log_debug(self, message: Any) -> None:
        self.logger.debug("%s", message)

    def log_info(self, message: Any) -> None:
        self.logger.info("%s", message)

    def log_warning(self, message: Any) -> None:
        self.logger.warning("%s", message)

    def log_error(self, message: Any, error: Any = None, stack: Any = None) -> None:
        if isinstance(error, BaseException):
            self.logger.error("%s", message, exc_info=error)
        elif stack is not None:
            self.logger.error("%s\n%s", message, _format_stack(stack))
        else:
            self.logger.error("%s", message)


def _format_stack(stack: Any) -> str:
    if isinstance(stack, str):
        return stack
    return "".join(traceback.format_list(stack))


# --- Process default and scoped override ---

_DEFAULT_GATE = LogGate()

_ACTIVE: ContextVar[LogGate | None] = ContextVar("catchflow_gate", default=None)


def default_gate() -> LogGate:
    """Return the process-wide gate."""
    return _DEFAULT_GATE


def active_gate() -> LogGate:
    """Return the gate in effect for the current context."""
    return _ACTIVE.get() or _DEFAULT_GATE


def resolve_gate(gate: LogGate | None) -> LogGate:
    return gate if gate is not None else active_gate()


@contextmanager
def gate_scope(gate: LogGate) -> Iterator[LogGate]:
    """Route catchflow diagnostics in this context through *gate*.

    Example:
        with gate_scope(LogGate(my_logger, LogLevel.DEBUG)):
            result = run_safe_sync(load_settings)
    """
    token = _ACTIVE.set(gate)
    try:
        yield gate
    finally:
        _ACTIVE.reset(token)


def set_logger(logger: CatchFlowLogger | None) -> None:
    """Install *logger* on the active gate (``None`` removes it)."""
    active_gate().set_logger(logger)


def get_logger() -> CatchFlowLogger | None:
    return active_gate().logger


def set_log_level(level: LogLevel) -> None:
    active_gate().set_level(level)


def get_log_level() -> LogLevel:
    return active_gate().level


def log_debug(message: Any, level: LogLevel | None = None) -> None:
    active_gate().log_debug(message, level=level)


def log_info(message: Any, level: LogLevel | None = None) -> None:
    active_gate().log_info(message, level=level)


def log_warning(message: Any, level: LogLevel | None = None) -> None:
    active_gate().log_warning(message, level=level)


def log_error(
    message: Any,
    error: Any = None,
    stack: Any = None,
    level: LogLevel | None = None,
) -> None:
    active_gate().log_error(message, error, stack, level=level)
