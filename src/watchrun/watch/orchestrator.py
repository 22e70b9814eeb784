"""Rerun orchestrator: decides which tests to rerun after file changes.

Design:
- File events accumulate in a dirty mapping keyed by path (last event wins)
- A Debouncer coalesces bursts and fires run_after_changes()
- Exactly one engine run is in flight; it is represented by a busy task that
  always settles, engine errors are re-raised separately on the loop
- Results are folded back into the dependency, exclusivity and failure trackers
  through a RunObserver bound to the run's generation
"""

from __future__ import annotations

import asyncio
import contextlib
import os
from collections.abc import Iterable, Sequence
from itertools import chain
from pathlib import Path

import structlog

from watchrun.core.errors import WatchRunError
from watchrun.core.logging import bound_run
from watchrun.watch.classifier import PathClassifier
from watchrun.watch.debouncer import DEFAULT_DEBOUNCE_SEC, Debouncer
from watchrun.watch.models import (
    ChangeKind,
    DirtyEvent,
    ExecutionEngine,
    RunLogger,
    RunOptions,
    RunStatus,
    TestResult,
)
from watchrun.watch.patterns import normalize_path
from watchrun.watch.trackers import DependencyTracker, ExclusivityTracker, FailureTracker

logger = structlog.get_logger()


def _unique(items: Iterable[str]) -> list[str]:
    return list(dict.fromkeys(items))


def _rethrow_async(error: BaseException) -> None:
    """Re-raise on the next loop iteration instead of inside the run task.

    Any expected error should already have been reported by the engine; what
    reaches here surfaces through the loop's exception handler.
    """

    def _raise() -> None:
        raise error

    asyncio.get_running_loop().call_soon(_raise)


class _RunObserver:
    """Folds one run's engine events into the orchestrator's trackers."""

    def __init__(self, orchestrator: RerunOrchestrator, generation: int) -> None:
        self._orchestrator = orchestrator
        self._generation = generation

    def on_run_start(self, files: Sequence[str]) -> None:
        for file in files:
            self._orchestrator.failures.prune(self._orchestrator.relative(file))

    def on_dependencies(self, file: str, dependencies: Sequence[str]) -> None:
        relative = self._orchestrator.relative
        self._orchestrator.dependencies.update(relative(file), [relative(d) for d in dependencies])

    def on_stats(self, file: str, has_exclusive: bool) -> None:
        self._orchestrator.exclusivity.update(self._orchestrator.relative(file), has_exclusive)

    def on_error(self, file: str) -> None:
        self._orchestrator.failures.count_failure(
            self._orchestrator.relative(file), self._generation
        )

    def on_test(self, result: TestResult) -> None:
        if result.error is not None:
            self.on_error(result.file)


class RerunOrchestrator:
    """Owns the run generation, the dirty state and the cross-run trackers."""

    def __init__(
        self,
        *,
        root: Path,
        files: list[str],
        classifier: PathClassifier,
        engine: ExecutionEngine,
        run_logger: RunLogger,
        debounce_sec: float = DEFAULT_DEBOUNCE_SEC,
    ) -> None:
        self.root = root
        self._files = files
        self._classifier = classifier
        self._engine = engine
        self._run_logger = run_logger

        self.dependencies = DependencyTracker(classifier.is_source)
        self.exclusivity = ExclusivityTracker()
        self.failures = FailureTracker()
        self.debouncer = Debouncer(
            on_fire=self.run_after_changes,
            wait_idle=self.wait_idle,
            delay=debounce_sec,
        )

        self._dirty: dict[str, ChangeKind] = {}
        self._generation = 0
        self._clear_on_next_run = True
        self._busy: asyncio.Task[None] | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_running(self) -> bool:
        return self._busy is not None and not self._busy.done()

    @property
    def clear_on_next_run(self) -> bool:
        return self._clear_on_next_run

    @property
    def dirty(self) -> list[DirtyEvent]:
        return [DirtyEvent(path, kind) for path, kind in self._dirty.items()]

    def relative(self, path: str) -> str:
        """Project-relative POSIX form of an engine- or watcher-reported path."""
        if os.path.isabs(path):
            with contextlib.suppress(ValueError):
                path = os.path.relpath(path, self.root)
        return normalize_path(path)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """Issue the initial full run."""
        self.rerun_all()

    async def wait_idle(self) -> None:
        """Wait until no run is in flight."""
        while self._busy is not None and not self._busy.done():
            await asyncio.shield(self._busy)

    async def stop(self) -> None:
        await self.debouncer.stop()
        if self._busy is not None and not self._busy.done():
            self._busy.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._busy

    # -------------------------------------------------------------------------
    # Inputs
    # -------------------------------------------------------------------------

    def mark_dirty(self, path: str, kind: ChangeKind) -> None:
        """Record a filesystem change and schedule a decision cycle."""
        rel_path = self.relative(path)
        logger.debug("path_dirty", path=rel_path, kind=kind.value)
        self._dirty[rel_path] = kind
        self.debouncer.debounce()

    async def request_full_rerun(self) -> None:
        """Manual trigger: rerun every test once the in-flight run settles."""
        # The debouncer might rerun specific tests whereas *all* tests need to run
        self.debouncer.cancel()
        await self.wait_idle()
        # It might have been re-armed while waiting
        self.debouncer.cancel()
        self._clear_on_next_run = False
        logger.info("full_rerun_requested")
        self.rerun_all()

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def rerun_all(self) -> None:
        self._dirty = {}
        self.run()

    def run_after_changes(self) -> None:
        """Run the minimal correct set of tests for the accumulated changes."""
        dirty, self._dirty = self._dirty, {}

        dirty_paths = list(dirty)
        dirty_tests = [path for path in dirty_paths if self._classifier.is_test(path)]
        test_set = set(dirty_tests)
        dirty_sources = [path for path in dirty_paths if path not in test_set]
        added_or_changed = [path for path in dirty_tests if dirty[path] is not ChangeKind.REMOVED]
        removed = [path for path in dirty_tests if dirty[path] is ChangeKind.REMOVED]

        self._clean_removed_tests(removed)

        # No need to rerun tests if the only change is that tests were deleted
        if len(removed) == len(dirty_paths):
            logger.debug("rerun_skipped", removed_tests=len(removed))
            return

        if not dirty_sources:
            self.run(added_or_changed)
            return

        tests_by_source = [self.dependencies.traced_tests_for(path) for path in dirty_sources]

        untraced = [path for path, tests in zip(dirty_sources, tests_by_source) if not tests]
        if untraced:
            logger.info(
                "untraceable_sources",
                count=len(untraced),
                sample=untraced[:5],
                action="rerun_all",
            )
            self.run()
            return

        self.run(_unique(chain(added_or_changed, *tests_by_source)))

    def _clean_removed_tests(self, removed: Iterable[str]) -> None:
        for file in removed:
            self.dependencies.clear(file)
            self.exclusivity.clear(file)
            self.failures.prune(file)

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    def _scope_to_exclusive(self, specific_files: Sequence[str]) -> tuple[list[str], bool]:
        """Make sure files with exclusive tests are never silently skipped.

        Returns the file list to run and whether to run only exclusive tests.
        Membership is compared as sets, ignoring order and duplicates.
        """
        exclusive = self.exclusivity.files
        requested_exclusive = {file for file in specific_files if file in self.exclusivity}
        run_only_exclusive = requested_exclusive != set(exclusive)
        if not run_only_exclusive:
            return _unique(specific_files), False

        # Files that previously contained exclusive tests always run, together
        # with the remaining specific files
        remaining = [file for file in specific_files if file not in self.exclusivity]
        return _unique(chain(exclusive, remaining)), True

    def run(self, specific_files: Sequence[str] | None = None) -> None:
        """Start an engine run. Unscoped when no specific files are given."""
        if self.is_running:
            raise RuntimeError("A run is already in flight")

        if self._generation > 0:
            cleared = self._clear_on_next_run and self._run_logger.clear()
            if not cleared:
                self._run_logger.reset()
                self._run_logger.section()
            self._clear_on_next_run = True
            self._run_logger.reset()
        self._run_logger.start()

        self._generation += 1
        generation = self._generation

        files = list(self._files)
        run_only_exclusive = False
        if specific_files is not None:
            files, run_only_exclusive = self._scope_to_exclusive(specific_files)

        options = RunOptions(run_only_exclusive=run_only_exclusive)
        self._busy = asyncio.get_running_loop().create_task(
            self._execute(files, options, generation, scoped=specific_files is not None)
        )

    async def _execute(
        self,
        files: list[str],
        options: RunOptions,
        generation: int,
        *,
        scoped: bool,
    ) -> None:
        with bound_run(generation):
            logger.info(
                "run_started",
                scoped=scoped,
                files=len(files),
                run_only_exclusive=options.run_only_exclusive,
            )
            try:
                status = await self._engine.run(files, options, _RunObserver(self, generation))
                self._fold_status(status, generation)
            except Exception as e:
                if isinstance(e, WatchRunError):
                    logger.error("run_failed", **e.to_dict())
                else:
                    logger.error("run_failed", error=type(e).__name__, message=str(e))
                _rethrow_async(e)

    def _fold_status(self, status: RunStatus, generation: int) -> None:
        status.previous_fail_count = self.failures.sum_failures_before(generation)
        self._run_logger.finish(status)
        self._clear_on_next_run = self._clear_on_next_run and status.bad_count == 0
        logger.info(
            "run_finished",
            passed=status.pass_count,
            failed=status.fail_count,
            previous_failed=status.previous_fail_count,
        )
