"""Filesystem watch service adapter using watchfiles.

Design:
- watchfiles.awatch watches the project root recursively
- A watch_filter built from WatchPatterns drops everything that is neither a
  test nor a source before it reaches Python callbacks
- watchfiles reports no events for files that already exist, so there is no
  initial burst to suppress
- Each change is forwarded as (project-relative path, ChangeKind)
"""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from types import ModuleType
from typing import Any

import structlog

from watchrun.core.errors import WatchError
from watchrun.watch.models import ChangeKind
from watchrun.watch.patterns import WatchPatterns

logger = structlog.get_logger()

# watchfiles.Change member names
_CHANGE_KINDS: dict[str, ChangeKind] = {
    "added": ChangeKind.ADDED,
    "modified": ChangeKind.CHANGED,
    "deleted": ChangeKind.REMOVED,
}


def _require_watchfiles() -> ModuleType:
    try:
        import watchfiles
    except ImportError as e:
        raise WatchError.unavailable(str(e)) from e
    return watchfiles


def change_kind(change: Any) -> ChangeKind | None:
    """Map a watchfiles Change to a ChangeKind."""
    return _CHANGE_KINDS.get(getattr(change, "name", ""))


@dataclass
class FileWatcher:
    """Async watcher forwarding matching changes to a callback."""

    root: Path
    patterns: WatchPatterns
    on_event: Callable[[str, ChangeKind], None]
    debounce_ms: int = 50  # watchfiles-side grouping of raw notifications
    force_polling: bool | None = None

    _watch_task: asyncio.Task[None] | None = field(default=None, init=False)
    _stop_event: asyncio.Event = field(default_factory=asyncio.Event, init=False)

    def relative(self, path: str) -> str | None:
        try:
            return Path(path).relative_to(self.root).as_posix()
        except ValueError:
            return None

    def accepts(self, change: Any, path: str) -> bool:
        """watch_filter: keep only changes to watched paths."""
        if change_kind(change) is None:
            return False
        rel_path = self.relative(path)
        return rel_path is not None and self.patterns.should_watch(rel_path)

    async def start(self) -> None:
        """Start watching. Raises WatchError if the watch service is unavailable."""
        if self._watch_task is not None:
            return

        watchfiles = _require_watchfiles()
        self._stop_event.clear()
        self._watch_task = asyncio.create_task(self._watch_loop(watchfiles.awatch))
        logger.info(
            "file_watcher_started",
            root=str(self.root),
            include=list(self.patterns.include),
            polling=bool(self.force_polling),
        )

    async def stop(self) -> None:
        self._stop_event.set()
        if self._watch_task is not None:
            self._watch_task.cancel()
            with contextlib.suppress(asyncio.CancelledError, asyncio.TimeoutError):
                await asyncio.wait_for(self._watch_task, timeout=2.0)
            self._watch_task = None
        logger.info("file_watcher_stopped")

    def handle_changes(self, changes: set[tuple[Any, str]]) -> None:
        """Forward one batch of raw changes to the callback."""
        forwarded = 0
        for change, path_str in sorted(changes, key=lambda c: c[1]):
            kind = change_kind(change)
            rel_path = self.relative(path_str)
            if kind is None or rel_path is None:
                continue
            logger.debug("change_detected", path=rel_path, kind=kind.value)
            self.on_event(rel_path, kind)
            forwarded += 1
        if forwarded:
            logger.info("changes_detected", count=forwarded)

    async def _watch_loop(self, awatch: Callable[..., Any]) -> None:
        while not self._stop_event.is_set():
            try:
                async for changes in awatch(
                    self.root,
                    watch_filter=self.accepts,
                    debounce=self.debounce_ms,
                    stop_event=self._stop_event,
                    force_polling=self.force_polling,
                    ignore_permission_denied=True,
                ):
                    self.handle_changes(changes)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if self._stop_event.is_set():
                    return
                logger.error("watcher_error", error=str(e))
                # Brief backoff before retry
                await asyncio.sleep(1.0)
