"""End-to-end behavior guarantees across the public surface."""

from __future__ import annotations

import asyncio

import pytest

import catchflow
from catchflow import (
    ErrorFromNative,
    GenericError,
    LogLevel,
    StreamController,
    StructuredError,
    run_safe_async,
    run_safe_async_nullable,
    run_safe_stream,
    run_safe_stream_nullable,
    run_safe_sync,
    set_log_level,
)
from tests.helpers import RecordingLogger, attach, drain, numbers_then_fail

pytestmark = [pytest.mark.unit, pytest.mark.contract]


def _raise(error: Exception):
    raise error


def test_public_api_exports_resolve() -> None:
    for name in catchflow.__all__:
        assert hasattr(catchflow, name), name


def test_sync_round_trip() -> None:
    assert run_safe_sync(lambda: 42).value_or_none == 42

    failed = run_safe_sync(lambda: _raise(ValueError("described")))

    assert failed.is_failure
    assert failed.error_or_none.message == "described"


@pytest.mark.asyncio
async def test_async_failure_funnel() -> None:
    async def rejected() -> int:
        raise ValueError("X")

    with pytest.raises(StructuredError) as exc:
        await run_safe_async(rejected)
    assert not isinstance(exc.value, ValueError)

    assert await run_safe_async_nullable(rejected) is None


@pytest.mark.asyncio
async def test_stream_failure_non_termination() -> None:
    seen, _ = await drain(run_safe_stream(lambda: numbers_then_fail(ValueError("X"))))

    assert seen.values == [1, 2]
    assert seen.errors == [ErrorFromNative(ValueError("X"))]
    assert seen.done

    controller: StreamController[int] = StreamController()
    live, sub = attach(run_safe_stream(lambda: controller.stream))
    controller.add(1)
    controller.add_error(ValueError("X"))
    controller.add(2)

    assert live.events == [("data", 1), ("error", ErrorFromNative(ValueError("X"))), ("data", 2)]
    assert sub.is_active
    sub.cancel()

    nullable, _ = await drain(run_safe_stream_nullable(lambda: numbers_then_fail(ValueError("X"))))

    assert nullable.events == [("data", 1), ("data", 2), ("data", None)]
    assert nullable.done


def test_log_filtering_at_warning(recording_logger: RecordingLogger) -> None:
    set_log_level(LogLevel.WARNING)

    catchflow.log_debug("hidden")
    assert recording_logger.calls == []

    catchflow.log_warning("shown")
    assert len(recording_logger.calls) == 1

    catchflow.log_error("shown")
    assert len(recording_logger.calls) == 2


def test_combinator_precedence_on_success() -> None:
    result = run_safe_sync(lambda: "ok")

    assert result.map(on_success=str.upper, on_error=lambda e: _raise(AssertionError())) == "OK"


@pytest.mark.asyncio
async def test_every_failure_is_reported_once_per_boundary(
    recording_logger: RecordingLogger,
) -> None:
    async def rejected() -> int:
        raise ValueError("async")

    run_safe_sync(lambda: _raise(ValueError("sync")))
    with pytest.raises(StructuredError):
        await run_safe_async(rejected)
    await drain(run_safe_stream(lambda: numbers_then_fail(ValueError("stream"))))

    messages = [args[0] for args in recording_logger.errors()]
    assert len(messages) == 3
    assert [m.split(": ", 1)[1] for m in messages] == ["sync", "async", "stream"]


@pytest.mark.asyncio
async def test_concurrent_operations_settle_independently() -> None:
    async def slow(v: int) -> int:
        await asyncio.sleep(0.01 * v)
        if v == 2:
            raise GenericError("two")
        return v

    outcomes = await asyncio.gather(
        *(run_safe_async(lambda v=v: slow(v)).settle() for v in (3, 2, 1))
    )

    assert [o.value_or_none for o in outcomes] == [3, None, 1]
    assert outcomes[1].error_or_none == GenericError("two")
