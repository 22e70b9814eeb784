"""Core module exports."""

from watchrun.core.errors import (
    ConfigError,
    ErrorCode,
    RunError,
    WatchError,
    WatchRunError,
)
from watchrun.core.logging import (
    bound_run,
    configure_logging,
    get_logger,
)

__all__ = [
    # Errors
    "ConfigError",
    "ErrorCode",
    "RunError",
    "WatchError",
    "WatchRunError",
    # Logging
    "bound_run",
    "configure_logging",
    "get_logger",
]
