"""Pytest configuration and fixtures.

Provides log-gate and environment isolation plus a recording logger double.
Isolation fixtures are autouse unless noted.
"""

from __future__ import annotations

from contextlib import suppress
import logging
import os

import pytest

from catchflow.log_gate import LogLevel, default_gate
from tests.helpers import RecordingLogger

# =============================================================================
# Global State Isolation (Autouse)
# =============================================================================


@pytest.fixture(autouse=True)
def isolate_gate():
    """Give every test a pristine process gate: no logger, level ERROR."""
    gate = default_gate()
    saved_logger, saved_level = gate.logger, gate.level
    gate.set_logger(None)
    gate.set_level(LogLevel.ERROR)
    yield gate
    gate.set_logger(saved_logger)
    gate.set_level(saved_level)


@pytest.fixture(autouse=True)
def block_dotenv(request, monkeypatch):
    """Prevent python-dotenv from loading project .env files during tests.

    Opt-out: @pytest.mark.allow_dotenv
    """
    if request.node.get_closest_marker("allow_dotenv"):
        return
    with suppress(Exception):
        monkeypatch.setattr(
            "dotenv.load_dotenv", lambda *_args, **_kwargs: False, raising=False
        )


@pytest.fixture(autouse=True)
def isolate_catchflow_env(request, monkeypatch):
    """Clear CATCHFLOW_* variables so the environment cannot leak into tests.

    Opt-out: @pytest.mark.allow_env_pollution
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return
    for key in list(os.environ.keys()):
        if key.startswith("CATCHFLOW_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture(scope="session", autouse=True)
def quiet_asyncio_logger():
    """Keep asyncio debug chatter out of captured logs."""
    logging.getLogger("asyncio").setLevel(logging.WARNING)


# =============================================================================
# Test Doubles
# =============================================================================


@pytest.fixture
def recording_logger(isolate_gate) -> RecordingLogger:
    """Install a RecordingLogger on the process gate and return it."""
    logger = RecordingLogger()
    isolate_gate.set_logger(logger)
    return logger
