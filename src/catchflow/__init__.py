"""catchflow: structured errors and safe execution for sync, async and streams.

Public API:
    - run_safe_sync() / run_safe_async() / run_safe_stream(): run an operation
      and funnel every failure into a ``StructuredError``
    - Result (Success | Failure), Eventual, Stream: outcome shapes carrying
      when() / map() / get_or_else()
    - set_logger() / set_log_level(): the pluggable, level-filtered log gate
"""

from __future__ import annotations

import logging

from catchflow.config import Settings, configure, resolve_settings
from catchflow.errors import (
    CatchFlowError,
    ConfigurationError,
    ErrorAdapter,
    ErrorFromNative,
    GenericError,
    StructuredError,
)
from catchflow.eventual import Eventual
from catchflow.log_gate import (
    CatchFlowLogger,
    LogGate,
    LogLevel,
    StdlibLogger,
    active_gate,
    default_gate,
    gate_scope,
    get_log_level,
    get_logger,
    log_debug,
    log_error,
    log_info,
    log_warning,
    set_log_level,
    set_logger,
)
from catchflow.normalize import error_to_none, normalize
from catchflow.result import Failure, Result, Success, failure, success
from catchflow.safe import (
    run_safe_async,
    run_safe_async_nullable,
    run_safe_stream,
    run_safe_stream_nullable,
    run_safe_sync,
    run_safe_sync_nullable,
)
from catchflow.streams import Stream, StreamController, Subscription

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("catchflow")
except PackageNotFoundError:
    __version__ = "0.0.0+unknown"

# Library-level NullHandler: stay silent unless the consumer configures logging.
logging.getLogger("catchflow").addHandler(logging.NullHandler())

__all__ = [
    "CatchFlowError",
    "CatchFlowLogger",
    "ConfigurationError",
    "ErrorAdapter",
    "ErrorFromNative",
    "Eventual",
    "Failure",
    "GenericError",
    "LogGate",
    "LogLevel",
    "Result",
    "Settings",
    "StdlibLogger",
    "Stream",
    "StreamController",
    "StructuredError",
    "Subscription",
    "Success",
    "active_gate",
    "configure",
    "default_gate",
    "error_to_none",
    "failure",
    "gate_scope",
    "get_log_level",
    "get_logger",
    "log_debug",
    "log_error",
    "log_info",
    "log_warning",
    "normalize",
    "resolve_settings",
    "run_safe_async",
    "run_safe_async_nullable",
    "run_safe_stream",
    "run_safe_stream_nullable",
    "run_safe_sync",
    "run_safe_sync_nullable",
    "set_log_level",
    "set_logger",
    "success",
]
