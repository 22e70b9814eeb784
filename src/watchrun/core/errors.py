"""watchrun error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Watch
- 7xxx: Run
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002
    CONFIG_FILE_NOT_FOUND = 2004

    # Watch (3xxx)
    WATCH_UNAVAILABLE = 3001

    # Run (7xxx)
    RUN_COMMAND_NOT_FOUND = 7001
    RUN_REPORT_INVALID = 7002


@dataclass(frozen=True, slots=True)
class WatchRunError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'CONFIG_PARSE_ERROR')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(WatchRunError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )

    @classmethod
    def file_not_found(cls, path: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_FILE_NOT_FOUND,
            message=f"Config file not found: {path}",
            details={"path": path},
        )


class WatchError(WatchRunError):
    """The filesystem watch service could not be loaded or started."""

    @classmethod
    def unavailable(cls, reason: str) -> "WatchError":
        return cls(
            code=ErrorCode.WATCH_UNAVAILABLE,
            message=(
                "The watch service failed to load and is required for watch mode. "
                f"It is likely not supported on this platform: {reason}"
            ),
            details={"reason": reason},
        )


class RunError(WatchRunError):
    """Errors raised by an execution engine."""

    @classmethod
    def command_not_found(cls, command: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_COMMAND_NOT_FOUND,
            message=f"Test command not found: {command}",
            details={"command": command},
        )

    @classmethod
    def report_invalid(cls, path: str, reason: str) -> "RunError":
        return cls(
            code=ErrorCode.RUN_REPORT_INVALID,
            message=f"Unreadable runner report at {path}: {reason}",
            retryable=True,
            details={"path": path, "reason": reason},
        )
