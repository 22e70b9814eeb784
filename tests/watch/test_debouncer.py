"""Tests for the Debouncer."""

from __future__ import annotations

import asyncio

import pytest

from watchrun.watch.debouncer import DebounceState, Debouncer


class Gate:
    """Stand-in for the in-flight run the debouncer waits on."""

    def __init__(self) -> None:
        self.idle = asyncio.Event()
        self.idle.set()
        self.waits = 0

    async def wait_idle(self) -> None:
        self.waits += 1
        await self.idle.wait()


def make_debouncer(fired: list[int], gate: Gate, delay: float = 0.01) -> Debouncer:
    return Debouncer(
        on_fire=lambda: fired.append(1),
        wait_idle=gate.wait_idle,
        delay=delay,
    )


async def drain(debouncer: Debouncer) -> None:
    for _ in range(100):
        await asyncio.sleep(0.02)
        if debouncer.state is DebounceState.IDLE and not debouncer._tasks:
            return
    raise AssertionError("debouncer did not drain")


class TestDebouncerState:
    """Tests for the arm and re-fire states."""

    @pytest.mark.asyncio
    async def test_starts_idle(self) -> None:
        debouncer = make_debouncer([], Gate())

        assert debouncer.state is DebounceState.IDLE

    @pytest.mark.asyncio
    async def test_first_call_arms(self) -> None:
        debouncer = make_debouncer([], Gate())
        debouncer.debounce()

        assert debouncer.state is DebounceState.WAITING
        debouncer.cancel()

    @pytest.mark.asyncio
    async def test_second_call_sets_again(self) -> None:
        debouncer = make_debouncer([], Gate())
        debouncer.debounce()
        debouncer.debounce()

        assert debouncer.state is DebounceState.WAITING_AGAIN
        debouncer.cancel()

    @pytest.mark.asyncio
    async def test_calls_while_armed_do_not_reset_timer(self) -> None:
        debouncer = make_debouncer([], Gate(), delay=10)
        debouncer.debounce()
        timer = debouncer._timer
        debouncer.debounce()
        debouncer.debounce()

        assert debouncer._timer is timer
        debouncer.cancel()


class TestDebouncerFiring:
    """Tests for when on_fire runs."""

    @pytest.mark.asyncio
    async def test_single_call_fires_once(self) -> None:
        fired: list[int] = []
        debouncer = make_debouncer(fired, Gate())
        debouncer.debounce()

        await drain(debouncer)

        assert fired == [1]

    @pytest.mark.asyncio
    async def test_burst_fires_once(self) -> None:
        """A burst within the delay coalesces into a single firing."""
        fired: list[int] = []
        debouncer = make_debouncer(fired, Gate(), delay=0.05)
        for _ in range(10):
            debouncer.debounce()

        await drain(debouncer)

        assert fired == [1]

    @pytest.mark.asyncio
    async def test_waits_for_in_flight_run(self) -> None:
        fired: list[int] = []
        gate = Gate()
        gate.idle.clear()
        debouncer = make_debouncer(fired, gate)
        debouncer.debounce()

        await asyncio.sleep(0.05)
        assert fired == []
        assert gate.waits == 1

        gate.idle.set()
        await drain(debouncer)
        assert fired == [1]

    @pytest.mark.asyncio
    async def test_again_rearms_after_wait(self) -> None:
        """Changes arriving during the wait re-arm the timer rather than fire."""
        fired: list[int] = []
        gate = Gate()
        gate.idle.clear()
        debouncer = make_debouncer(fired, gate)
        debouncer.debounce()
        await asyncio.sleep(0.05)
        debouncer.debounce()

        gate.idle.set()
        await drain(debouncer)

        assert fired == [1]
        assert gate.waits == 2


class TestDebouncerCancel:
    """Tests for cancel and stop."""

    @pytest.mark.asyncio
    async def test_cancel_prevents_fire(self) -> None:
        fired: list[int] = []
        debouncer = make_debouncer(fired, Gate())
        debouncer.debounce()
        debouncer.cancel()

        await asyncio.sleep(0.05)

        assert fired == []
        assert debouncer.state is DebounceState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_is_idempotent(self) -> None:
        debouncer = make_debouncer([], Gate())
        debouncer.cancel()
        debouncer.debounce()
        debouncer.cancel()
        debouncer.cancel()

        assert debouncer.state is DebounceState.IDLE

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_supersedes(self) -> None:
        """A cancel during the wait for the run drops the pending firing."""
        fired: list[int] = []
        gate = Gate()
        gate.idle.clear()
        debouncer = make_debouncer(fired, gate)
        debouncer.debounce()
        await asyncio.sleep(0.05)

        debouncer.cancel()
        gate.idle.set()
        await drain(debouncer)

        assert fired == []

    @pytest.mark.asyncio
    async def test_rearm_after_cancel_while_waiting(self) -> None:
        """A new timer armed during the wait fires on its own schedule, once."""
        fired: list[int] = []
        gate = Gate()
        gate.idle.clear()
        debouncer = make_debouncer(fired, gate)
        debouncer.debounce()
        await asyncio.sleep(0.05)

        debouncer.cancel()
        debouncer.debounce()
        gate.idle.set()
        await drain(debouncer)

        assert fired == [1]

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_settle(self) -> None:
        fired: list[int] = []
        gate = Gate()
        gate.idle.clear()
        debouncer = make_debouncer(fired, gate)
        debouncer.debounce()
        await asyncio.sleep(0.05)

        await debouncer.stop()
        gate.idle.set()
        await asyncio.sleep(0.02)

        assert fired == []
        assert not debouncer._tasks
