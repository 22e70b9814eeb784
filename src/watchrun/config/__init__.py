"""Config module exports."""

from watchrun.config.loader import load_config
from watchrun.config.models import (
    LoggingConfig,
    LogOutputConfig,
    RunnerConfig,
    WatchConfig,
    WatchRunConfig,
)

__all__ = [
    "load_config",
    "LoggingConfig",
    "LogOutputConfig",
    "RunnerConfig",
    "WatchConfig",
    "WatchRunConfig",
]
