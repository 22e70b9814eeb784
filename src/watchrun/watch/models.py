"""Watch-mode data models and collaborator protocols.

The execution engine reports per-run events into a RunObserver handed to it
by the orchestrator, instead of emitting them on a shared event bus.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, runtime_checkable


class ChangeKind(Enum):
    """Kind of filesystem change reported by the watch service."""

    ADDED = "added"
    CHANGED = "changed"
    REMOVED = "removed"


@dataclass(frozen=True)
class DirtyEvent:
    """A path changed since the last decision cycle."""

    path: str
    kind: ChangeKind


@dataclass(frozen=True)
class RunOptions:
    """Options passed to the execution engine for one run."""

    run_only_exclusive: bool = False


@dataclass(frozen=True)
class TestResult:
    """Outcome of a single test reported by the engine."""

    __test__ = False  # not a pytest test class

    file: str
    title: str
    error: str | None = None
    duration_ms: float | None = None

    @property
    def passed(self) -> bool:
        return self.error is None


@dataclass
class RunStatus:
    """Summary of one engine invocation."""

    files: list[str] = field(default_factory=list)
    pass_count: int = 0
    fail_count: int = 0
    skip_count: int = 0
    rejection_count: int = 0
    exception_count: int = 0
    # Failures still outstanding in files this run did not include
    previous_fail_count: int = 0

    @property
    def bad_count(self) -> int:
        return self.fail_count + self.rejection_count + self.exception_count


@runtime_checkable
class RunObserver(Protocol):
    """Receives structured events from the engine while a run executes."""

    def on_run_start(self, files: Sequence[str]) -> None:
        """Called once with the resolved test files before any of them run."""
        ...

    def on_dependencies(self, file: str, dependencies: Sequence[str]) -> None: ...

    def on_stats(self, file: str, has_exclusive: bool) -> None: ...

    def on_error(self, file: str) -> None:
        """A file failed outside of any single test (e.g. it crashed on import)."""
        ...

    def on_test(self, result: TestResult) -> None: ...


@runtime_checkable
class ExecutionEngine(Protocol):
    """Runs test files. At most one run is in flight at a time."""

    async def run(
        self,
        files: Sequence[str],
        options: RunOptions,
        observer: RunObserver,
    ) -> RunStatus: ...


@runtime_checkable
class RunLogger(Protocol):
    """Renders run boundaries. Opaque to the orchestrator."""

    def clear(self) -> bool:
        """Clear previous output. Returns False when clearing is not possible."""
        ...

    def reset(self) -> None: ...

    def section(self) -> None: ...

    def start(self) -> None: ...

    def finish(self, status: RunStatus) -> None: ...
