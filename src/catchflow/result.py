"""Two-armed result container.

``Result`` is a tagged union of ``Success`` (carrying the value) and
``Failure`` (carrying a ``StructuredError``). Exactly one arm exists per
outcome, so "both set" and "neither set" cannot be represented.

The ``when``/``map``/``get_or_else`` methods here are the single branch
dispatch; eventual values and streams turn each settled outcome into a
``Result`` and reuse them.
"""

from __future__ import annotations

import dataclasses
import typing

from catchflow.errors import StructuredError

if typing.TYPE_CHECKING:
    from collections.abc import Callable

T = typing.TypeVar("T")


@dataclasses.dataclass(frozen=True, slots=True)
class Success[T]:
    """A successful outcome."""

    value: T

    @property
    def is_success(self) -> bool:
        return True

    @property
    def is_failure(self) -> bool:
        return False

    @property
    def value_or_none(self) -> T | None:
        return self.value

    @property
    def error_or_none(self) -> StructuredError | None:
        return None

    def when(
        self,
        on_success: Callable[[T], object] | None = None,
        on_error: Callable[[StructuredError], object] | None = None,
    ) -> None:
        del on_error
        if on_success is not None:
            on_success(self.value)

    def map[R](
        self,
        on_success: Callable[[T], R],
        on_error: Callable[[StructuredError], R],
    ) -> R:
        del on_error
        return on_success(self.value)

    def get_or_else(self, on_error: Callable[[StructuredError], T]) -> T:
        del on_error
        return self.value


@dataclasses.dataclass(frozen=True, slots=True)
class Failure:
    """A failed outcome, holding the normalized error."""

    error: StructuredError

    def __post_init__(self) -> None:
        """Reject anything that is not a structured error."""
        if not isinstance(self.error, StructuredError):
            raise TypeError(
                f"Failure requires a StructuredError, got {type(self.error).__name__}"
            )

    @classmethod
    def from_exception(cls, failure: object) -> Failure:
        """Build a failure from a raw exception without logging it."""
        return cls(StructuredError.coerce(failure))

    @property
    def is_success(self) -> bool:
        return False

    @property
    def is_failure(self) -> bool:
        return True

    @property
    def value_or_none(self) -> None:
        return None

    @property
    def error_or_none(self) -> StructuredError | None:
        return self.error

    def when(
        self,
        on_success: Callable[[typing.Any], object] | None = None,
        on_error: Callable[[StructuredError], object] | None = None,
    ) -> None:
        del on_success
        if on_error is not None:
            on_error(self.error)

    def map[R](
        self,
        on_success: Callable[[typing.Any], R],
        on_error: Callable[[StructuredError], R],
    ) -> R:
        del on_success
        return on_error(self.error)

    def get_or_else[T](self, on_error: Callable[[StructuredError], T]) -> T:
        return on_error(self.error)


Result = Success[T] | Failure


def success[T](value: T) -> Result[T]:
    """Wrap *value* as a successful result."""
    return Success(value)


def failure(error: StructuredError) -> Result[typing.Any]:
    """Wrap *error* as a failed result.

    Raises:
        TypeError: If *error* is not a ``StructuredError``.
    """
    return Failure(error)


def is_result(obj: object) -> bool:
    return isinstance(obj, Success | Failure)
