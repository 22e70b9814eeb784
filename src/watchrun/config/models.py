"""Pydantic configuration models with env var support.

Configuration Hierarchy (highest to lowest precedence):
1. Direct kwargs to load_config()
2. Environment variables (WATCHRUN__SECTION__KEY)
3. Repo YAML (.watchrun.yaml)
4. Global YAML (~/.config/watchrun/config.yaml)
5. Built-in defaults (this file)

Environment Variable Format:
    WATCHRUN__<SECTION>__<KEY>=<VALUE>

Examples:
    WATCHRUN__LOGGING__LEVEL=DEBUG
    WATCHRUN__WATCH__DEBOUNCE_SEC=0.05
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

DEFAULT_TEST_PATTERNS: list[str] = [
    "test_*.py",
    "*_test.py",
    "test/**/*.py",
    "tests/**/*.py",
    "**/test_*.py",
    "**/*_test.py",
]
"""Test file patterns used when none are configured."""

DEFAULT_TEST_EXCLUDES: list[str] = [
    "**/fixtures/**",
    "**/helpers/**",
    "**/conftest.py",
    "**/node_modules/**",
]
"""Paths never treated as test files, whatever the test patterns say."""

DEFAULT_SOURCE_PATTERNS: list[str] = ["pyproject.toml", "**/*.py"]
"""Prepended to the source patterns when no positive source pattern is configured."""


class LogOutputConfig(BaseModel):
    """Single logging output configuration."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # stderr, stdout, or absolute file path
    level: LogLevel | None = None  # Inherits from parent if None

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"File destination must be absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Env vars:
        WATCHRUN__LOGGING__LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """

    level: LogLevel = Field(
        default="WARNING",
        description="Root log level. Run output is rendered separately from logs.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class WatchConfig(BaseModel):
    """Which paths are tests, which are sources, and how changes are batched.

    Env vars:
        WATCHRUN__WATCH__DEBOUNCE_SEC: Delay before acting on a burst of changes
    """

    files: list[str] = Field(
        default_factory=lambda: list(DEFAULT_TEST_PATTERNS),
        description="Glob patterns selecting test files. Prefix with ! to exclude.",
    )
    sources: list[str] = Field(
        default_factory=list,
        description="Glob patterns selecting source files whose changes trigger reruns. "
        "Prefix with ! to exclude. Defaults apply when no positive pattern is given.",
    )
    default_sources: list[str] = Field(
        default_factory=lambda: list(DEFAULT_SOURCE_PATTERNS),
        description="Source patterns used when no positive source pattern is configured.",
    )
    test_extensions: list[str] = Field(
        default_factory=lambda: [".py"],
        description="File extensions a test file may have.",
    )
    excluded_prefix: str = Field(
        default="_",
        description="Files whose name starts with this prefix are never tests.",
    )
    debounce_sec: float = Field(
        default=0.01,
        description="Delay before acting on a burst of changes. "
        "Repeated changes during the delay do not extend it.",
    )

    @field_validator("debounce_sec")
    @classmethod
    def validate_debounce(cls, v: float) -> float:
        if v < 0:
            raise ValueError(f"Debounce must be non-negative, got {v}")
        return v

    @field_validator("test_extensions")
    @classmethod
    def validate_extensions(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one test extension is required")
        return [ext if ext.startswith(".") else f".{ext}" for ext in v]


class RunnerConfig(BaseModel):
    """Command-based execution engine configuration.

    The command is invoked once per test file, with the report flags and the
    file path appended. Without a command, the project's interpreter runs
    pytest (a ``.venv`` or ``venv`` in the project root wins over the
    interpreter running watchrun).
    """

    command: list[str] | None = Field(
        default=None,
        description="Command used to run a single test file. "
        "Defaults to '<project python> -m pytest -q'.",
    )
    junit_report: bool = Field(
        default=True,
        description="Append --junitxml to collect one result per test (pytest-compatible).",
    )
    coverage: bool | None = Field(
        default=None,
        description="Collect the files each test file loads with pytest-cov. "
        "None enables it when pytest-cov is importable by the command's interpreter.",
    )
    output_tail_lines: int = Field(
        default=20,
        description="Lines of output kept as the failure message of a failing file.",
    )
    timeout_sec: float = Field(
        default=300.0,
        description="Per-file timeout (5 min). A file that times out counts as a crash.",
    )
    skip_exit_codes: list[int] = Field(
        default_factory=lambda: [5],
        description="Exit codes meaning 'no tests ran' (pytest uses 5). Counted as skipped.",
    )
    error_exit_codes: list[int] = Field(
        default_factory=lambda: [2, 3, 4],
        description="Exit codes meaning the runner itself broke (pytest: interrupted, "
        "internal error, usage error). Counted as uncaught exceptions.",
    )

    @field_validator("command")
    @classmethod
    def validate_command(cls, v: list[str] | None) -> list[str] | None:
        if v is not None and not v:
            raise ValueError("Runner command must not be empty")
        return v


class WatchRunConfig(BaseModel):
    """Root configuration for watchrun."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    watch: WatchConfig = Field(default_factory=WatchConfig)
    runner: RunnerConfig = Field(default_factory=RunnerConfig)
