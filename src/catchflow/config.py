"""Startup configuration for the log gate.

Resolution order (lowest to highest): schema defaults, ``CATCHFLOW_*``
environment variables (after an optional ``.env`` load), explicit overrides.
Resolved settings are applied to a gate once, at startup.
"""

from __future__ import annotations

from contextlib import suppress
import os
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from catchflow.errors import ConfigurationError
from catchflow.log_gate import LogGate, LogLevel, StdlibLogger, resolve_gate

if TYPE_CHECKING:
    from collections.abc import Mapping

ENV_PREFIX = "CATCHFLOW_"

# Environment variable -> settings field
_ENV_FIELDS: dict[str, str] = {
    f"{ENV_PREFIX}LOG_LEVEL": "log_level",
    f"{ENV_PREFIX}LOGGER": "logger_name",
}

_DOTENV_LOADED: bool = False


class Settings(BaseModel):
    """Validated configuration schema."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    log_level: LogLevel = Field(default=LogLevel.ERROR)
    #: Name of a stdlib logger to install through ``StdlibLogger``.
    logger_name: str | None = Field(default=None)

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: Any) -> Any:
        """Accept enum members, their names (any case) or their integer ranks."""
        if isinstance(v, LogLevel):
            return v
        if isinstance(v, str):
            text = v.strip()
            with suppress(KeyError):
                return LogLevel[text.upper()]
            with suppress(ValueError):
                return LogLevel(int(text))
        return v  # Let Pydantic raise with a precise error message

    @field_validator("logger_name", mode="before")
    @classmethod
    def normalize_logger_name(cls, v: Any) -> Any:
        """Trim whitespace; an empty name means no logger."""
        if isinstance(v, str):
            return v.strip() or None
        return v


def _try_load_dotenv() -> None:
    """Load a ``.env`` file once, tolerating its absence."""
    global _DOTENV_LOADED
    if _DOTENV_LOADED:
        return
    try:
        from dotenv import load_dotenv

        load_dotenv()
    except Exception:
        _DOTENV_LOADED = True
        return
    _DOTENV_LOADED = True


def load_env() -> dict[str, Any]:
    """Read ``CATCHFLOW_*`` variables into settings field names."""
    _try_load_dotenv()
    values: dict[str, Any] = {}
    for env_key, field in _ENV_FIELDS.items():
        raw = os.environ.get(env_key)
        if raw is not None:
            values[field] = raw
    return values


def resolve_settings(overrides: Mapping[str, Any] | None = None) -> Settings:
    """Resolve settings from defaults, environment and *overrides*.

    Raises:
        ConfigurationError: If the merged values fail validation.
    """
    merged = {**load_env(), **(overrides or {})}
    try:
        return Settings(**merged)
    except ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ConfigurationError(
            f"Invalid catchflow configuration ({fields or 'unknown field'})",
            hint=(
                "log_level must be one of none, debug, info, warning, error; "
                f"check {ENV_PREFIX}LOG_LEVEL and {ENV_PREFIX}LOGGER"
            ),
        ) from e


def configure(
    settings: Settings | None = None,
    *,
    gate: LogGate | None = None,
    **overrides: Any,
) -> LogGate:
    """Apply settings to *gate* (the active gate by default) and return it.

    A configured ``logger_name`` installs a ``StdlibLogger``; without one the
    gate's current logger is left in place.

    Example:
        configure(log_level="warning", logger_name="myapp.errors")
    """
    resolved = settings if settings is not None else resolve_settings(overrides)
    target = resolve_gate(gate)
    target.set_level(resolved.log_level)
    if resolved.logger_name is not None:
        target.set_logger(StdlibLogger(resolved.logger_name))
    return target
