"""Failure normalization: any raised failure in, one ``StructuredError`` out.

Every failure observed by a safe-execution adapter passes through here, and
each call emits exactly one error-level diagnostic through the log gate.
"""

from __future__ import annotations

import traceback
from typing import TYPE_CHECKING

from catchflow.errors import ErrorFromNative, StructuredError
from catchflow.log_gate import resolve_gate

if TYPE_CHECKING:
    from catchflow.errors import ErrorAdapter
    from catchflow.log_gate import LogGate, LogLevel


def _describe(failure: object) -> str:
    if isinstance(failure, BaseException):
        return f"{type(failure).__name__}: {failure}"
    return repr(failure)


def _report(failure: object, log_level: LogLevel | None, gate: LogGate) -> None:
    # Drop the _report frame and the normalize or error_to_none frame above it.
    stack = traceback.extract_stack()[:-2]
    gate.log_error(_describe(failure), failure, stack, level=log_level)


def normalize(
    failure: object,
    adapter: ErrorAdapter | None = None,
    *,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> StructuredError:
    """Convert *failure* into a ``StructuredError``.

    Order of precedence:
    - an existing ``StructuredError`` is returned unchanged;
    - otherwise *adapter* is consulted, and a ``StructuredError`` it returns
      is used as-is;
    - any other adapter return value is wrapped as ``ErrorFromNative``, while
      ``None`` means the adapter had no opinion and the original failure is
      wrapped instead.

    If the adapter itself raises, the original failure is wrapped, the
    adapter's exception is reported at warning level and kept as the
    ``__context__`` of the returned error.

    Args:
        failure: The raised object to normalize.
        adapter: Optional caller hook mapping raw failures to structured ones.
        log_level: Per-call log level override for the diagnostic.
        gate: Log gate to report through (defaults to the active gate).

    Returns:
        The structured error. Normalization itself never raises.
    """
    target = resolve_gate(gate)
    _report(failure, log_level, target)

    if isinstance(failure, StructuredError):
        return failure
    if adapter is None:
        return ErrorFromNative(failure)

    try:
        adapted = adapter(failure)  # type: ignore[arg-type]
    except Exception as e:
        target.log_warning(
            f"Error adapter {getattr(adapter, '__name__', adapter)!r} raised "
            f"{_describe(e)}; falling back to the default wrap",
            level=log_level,
        )
        wrapped = ErrorFromNative(failure)
        wrapped.__context__ = e
        return wrapped

    if isinstance(adapted, StructuredError):
        return adapted
    return ErrorFromNative(failure if adapted is None else adapted)


def error_to_none(
    failure: object,
    *,
    log_level: LogLevel | None = None,
    gate: LogGate | None = None,
) -> None:
    """Report *failure* like ``normalize`` does, then drop it in favour of None."""
    _report(failure, log_level, resolve_gate(gate))
    return None
