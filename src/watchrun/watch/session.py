"""Watch session lifecycle: wires the watcher, orchestrator and trigger together."""

from __future__ import annotations

import asyncio
import contextlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog

from watchrun.config.models import WatchRunConfig
from watchrun.engine.command import CommandEngine
from watchrun.reporting.console import ConsoleRunLogger
from watchrun.watch.classifier import PathClassifier
from watchrun.watch.models import ExecutionEngine, RunLogger
from watchrun.watch.orchestrator import RerunOrchestrator
from watchrun.watch.patterns import resolve_watch_patterns
from watchrun.watch.source import FileWatcher
from watchrun.watch.trigger import observe_input, open_stdin_reader

logger = structlog.get_logger()


@dataclass
class WatchSession:
    """
    Orchestrates watch-mode components.

    Components:
    - FileWatcher: Async filesystem monitoring, feeds dirty paths
    - RerunOrchestrator: Decides and runs tests
    - Manual trigger: stdin lines requesting a full rerun
    """

    root: Path
    config: WatchRunConfig
    engine: ExecutionEngine | None = None
    run_logger: RunLogger | None = None
    observe_stdin: bool = True

    classifier: PathClassifier = field(init=False)
    orchestrator: RerunOrchestrator = field(init=False)
    watcher: FileWatcher = field(init=False)
    _trigger_task: asyncio.Task[None] | None = field(default=None, init=False)

    def __post_init__(self) -> None:
        watch_config = self.config.watch
        self.classifier = PathClassifier.from_config(watch_config)
        engine = self.engine or CommandEngine.from_config(
            self.root, self.classifier, self.config.runner
        )
        self.orchestrator = RerunOrchestrator(
            root=self.root,
            files=watch_config.files,
            classifier=self.classifier,
            engine=engine,
            run_logger=self.run_logger or ConsoleRunLogger(),
            debounce_sec=watch_config.debounce_sec,
        )
        self.watcher = FileWatcher(
            root=self.root,
            patterns=resolve_watch_patterns(
                watch_config.files, watch_config.sources, watch_config.default_sources
            ),
            on_event=self.orchestrator.mark_dirty,
        )

    async def start(self) -> None:
        """Start watching and issue the initial full run.

        Raises WatchError before any run starts if the watch service is unavailable.
        """
        logger.info("watch_session_starting", root=str(self.root))
        await self.watcher.start()
        self.orchestrator.start()
        if self.observe_stdin:
            reader = await open_stdin_reader()
            if reader is not None:
                self._trigger_task = asyncio.create_task(
                    observe_input(reader, self.orchestrator.request_full_rerun)
                )

    async def stop(self) -> None:
        logger.info("watch_session_stopping")
        if self._trigger_task is not None:
            self._trigger_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._trigger_task
            self._trigger_task = None
        await self.watcher.stop()
        await self.orchestrator.stop()


async def run_session(session: WatchSession) -> BaseException:
    """Run a session until an error escapes onto the event loop.

    Engine errors are re-raised as loop callbacks by the orchestrator; the
    first one ends the session and is returned.
    """
    loop = asyncio.get_running_loop()
    failure: asyncio.Future[BaseException] = loop.create_future()

    def _on_loop_error(loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exc = context.get("exception")
        if exc is None:
            loop.default_exception_handler(context)
            return
        if not failure.done():
            failure.set_result(exc)

    previous_handler = loop.get_exception_handler()
    loop.set_exception_handler(_on_loop_error)
    try:
        await session.start()
        try:
            error = await failure
        finally:
            await session.stop()
    finally:
        loop.set_exception_handler(previous_handler)

    logger.error("watch_session_aborted", error=str(error))
    return error
