"""Structured errors and the exception hierarchy for catchflow.

Two families live here:

- ``StructuredError`` and its variants: the normalized, value-equal shape that
  every failure takes once it crosses a safe-execution boundary.
- ``CatchFlowError``: raised for misuse of the library itself.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, ClassVar

GENERIC_ERROR_CODE = "generic-error"
NATIVE_ERROR_CODE = "exception"


class StructuredError(Exception):
    """Base class for normalized failures.

    Equality is structural: two errors are equal when they share a type and
    every name listed in ``fields`` has the same value. Variants that carry
    extra data extend ``fields`` so the extra data joins the equality key.

    Example:
        class NetworkError(StructuredError):
            fields = (*StructuredError.fields, "status")

            def __init__(self, message: str, status: int) -> None:
                self.status = status
                super().__init__(code="network-error", message=message)
    """

    fields: ClassVar[tuple[str, ...]] = ("code", "message")

    def __init__(self, *, code: str, message: str) -> None:
        self.code = code
        self.message = message
        super().__init__(message)

    def __setattr__(self, name: str, value: Any) -> None:
        if name in type(self).fields and name in self.__dict__:
            raise AttributeError(f"{type(self).__name__}.{name} is immutable")
        super().__setattr__(name, value)

    def _key(self) -> tuple[Any, ...]:
        return tuple(getattr(self, name, None) for name in type(self).fields)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StructuredError):
            return NotImplemented
        return type(self) is type(other) and self._key() == other._key()

    def __hash__(self) -> int:
        return hash((type(self), self._key()))

    def __str__(self) -> str:
        return self.message

    def __repr__(self) -> str:
        body = ", ".join(f"{name}={getattr(self, name, None)!r}" for name in type(self).fields)
        return f"{type(self).__name__}({body})"

    @staticmethod
    def coerce(failure: object) -> StructuredError:
        """Return *failure* as a structured error without logging it.

        Structured errors pass through unchanged; anything else is wrapped in
        an ``ErrorFromNative``.
        """
        if isinstance(failure, StructuredError):
            return failure
        return ErrorFromNative(failure)


class GenericError(StructuredError):
    """A caller-declared domain failure."""

    def __init__(self, message: str, *, code: str = GENERIC_ERROR_CODE) -> None:
        super().__init__(code=code, message=message)


class ErrorFromNative(StructuredError):
    """Opaque wrap of a failure the core did not recognize.

    The wrapped object is kept on ``native`` for diagnostics but does not take
    part in equality.
    """

    def __init__(self, native: object) -> None:
        self.native = native
        super().__init__(code=NATIVE_ERROR_CODE, message=_render(native))
        if isinstance(native, BaseException):
            self.__cause__ = native


def _render(native: object) -> str:
    text = str(native)
    if text or not isinstance(native, BaseException):
        return text
    return type(native).__name__


#: Caller-supplied hook that maps a raw failure to a structured error. Returning
#: anything else (or None) falls back to the default wrap.
ErrorAdapter = Callable[[Exception], StructuredError | Any]


class CatchFlowError(Exception):
    """Base exception for misuse of catchflow itself."""

    def __init__(self, message: str, *, hint: str | None = None) -> None:
        super().__init__(message)
        self.hint = hint

    def __str__(self) -> str:
        """Return the message including the hint when present."""
        msg = super().__str__()
        return f"{msg}. {self.hint}" if self.hint else msg


class ConfigurationError(CatchFlowError):
    """Configuration validation or resolution failed."""
