"""Incremental rerun engine: classification, tracking, debouncing, orchestration."""

from watchrun.watch.classifier import PathClassifier
from watchrun.watch.debouncer import Debouncer, DebounceState
from watchrun.watch.models import (
    ChangeKind,
    DirtyEvent,
    ExecutionEngine,
    RunLogger,
    RunObserver,
    RunOptions,
    RunStatus,
    TestResult,
)
from watchrun.watch.orchestrator import RerunOrchestrator
from watchrun.watch.patterns import PatternSet, WatchPatterns, resolve_watch_patterns
from watchrun.watch.source import FileWatcher
from watchrun.watch.trackers import (
    DependencyTracker,
    ExclusivityTracker,
    FailureRecord,
    FailureTracker,
    TestDependency,
)

__all__ = [
    "ChangeKind",
    "Debouncer",
    "DebounceState",
    "DependencyTracker",
    "DirtyEvent",
    "ExclusivityTracker",
    "ExecutionEngine",
    "FailureRecord",
    "FailureTracker",
    "FileWatcher",
    "PathClassifier",
    "PatternSet",
    "RerunOrchestrator",
    "RunLogger",
    "RunObserver",
    "RunOptions",
    "RunStatus",
    "TestDependency",
    "TestResult",
    "WatchPatterns",
    "resolve_watch_patterns",
]
