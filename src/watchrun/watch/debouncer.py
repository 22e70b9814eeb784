"""Coalesce bursts of change events into a single decision cycle."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum

import structlog

logger = structlog.get_logger()

DEFAULT_DEBOUNCE_SEC = 0.01


class DebounceState(Enum):
    """Debouncer state."""

    IDLE = "idle"
    WAITING = "waiting"
    WAITING_AGAIN = "waiting+again"


@dataclass
class Debouncer:
    """
    Fixed-delay debouncer gated on the in-flight run.

    Design:
    - The first debounce() arms a timer; later calls while armed only set a
      re-fire flag, they never reset or extend the timer
    - When the timer fires, the in-flight run (if any) is awaited first
    - A cancel() while waiting on the run supersedes the firing
    - If changes arrived while waiting, the timer is re-armed instead of firing,
      so the decision always sees the latest dirty state
    """

    on_fire: Callable[[], None]
    wait_idle: Callable[[], Awaitable[None]]
    delay: float = DEFAULT_DEBOUNCE_SEC

    _timer: asyncio.TimerHandle | None = field(default=None, init=False)
    _again: bool = field(default=False, init=False)
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False)

    @property
    def state(self) -> DebounceState:
        if self._timer is None:
            return DebounceState.IDLE
        return DebounceState.WAITING_AGAIN if self._again else DebounceState.WAITING

    def debounce(self) -> None:
        if self._timer is not None:
            self._again = True
            return

        loop = asyncio.get_running_loop()
        timer = self._timer = loop.call_later(self.delay, lambda: self._on_timer(timer))

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
            self._again = False

    async def stop(self) -> None:
        """Cancel the timer and any firing still waiting on the in-flight run."""
        self.cancel()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def _on_timer(self, timer: asyncio.TimerHandle) -> None:
        task = asyncio.get_running_loop().create_task(self._settle(timer))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _settle(self, timer: asyncio.TimerHandle) -> None:
        await self.wait_idle()

        # Do nothing if debouncing was canceled while waiting for the run
        if self._timer is not timer:
            logger.debug("debounce_superseded")
            return

        self._timer = None
        if self._again:
            self._again = False
            self.debounce()
            return

        self.on_fire()
