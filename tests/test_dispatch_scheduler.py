"""
tests/test_dispatch_scheduler.py

Dispatch scheduler contracts: immediate invocation on replay, and
minimum spacing between dispatch starts (not completions) when live.
"""

from __future__ import annotations

import threading
import time

import pytest

from licensejoin.scheduling import (
    ImmediateScheduler,
    RateLimitedScheduler,
    create_scheduler,
)


class FakeClock:
    """Monotonic clock that only moves when the scheduler sleeps."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# Immediate mode
# ---------------------------------------------------------------------------


class TestImmediateScheduler:
    def test_runs_task_synchronously_exactly_once(self) -> None:
        calls: list[str] = []
        scheduler = ImmediateScheduler()

        scheduler.schedule(lambda: calls.append("ran"))

        assert calls == ["ran"]

    def test_task_failure_does_not_propagate(self) -> None:
        calls: list[str] = []
        scheduler = ImmediateScheduler()

        def _boom() -> None:
            raise RuntimeError("task broke")

        scheduler.schedule(_boom)
        scheduler.schedule(lambda: calls.append("next"))

        assert calls == ["next"]


# ---------------------------------------------------------------------------
# Rate-limited mode
# ---------------------------------------------------------------------------


class TestRateLimitedScheduler:
    def test_dispatch_starts_are_spaced_by_min_delay(self) -> None:
        clock = FakeClock()
        scheduler = RateLimitedScheduler(min_delay_seconds=1.0, clock=clock, sleep=clock.sleep)
        dispatched: list[float] = []

        for _ in range(3):
            scheduler.schedule(lambda: dispatched.append(clock()))
        scheduler.close()

        assert len(dispatched) == 3
        gaps = [later - earlier for earlier, later in zip(dispatched, dispatched[1:])]
        assert all(gap >= 1.0 for gap in gaps)

    def test_dispatch_does_not_wait_for_started_work(self) -> None:
        delay = 0.05
        scheduler = RateLimitedScheduler(min_delay_seconds=delay)
        release = threading.Event()
        all_dispatched = threading.Event()
        dispatched: list[float] = []
        finished: list[int] = []

        def _make_task(index: int):
            def _start_slow_fetch() -> None:
                dispatched.append(time.monotonic())

                def _slow_fetch() -> None:
                    release.wait(5)
                    finished.append(index)

                threading.Thread(target=_slow_fetch, daemon=True).start()
                if len(dispatched) == 3:
                    all_dispatched.set()

            return _start_slow_fetch

        for index in range(3):
            scheduler.schedule(_make_task(index))

        assert all_dispatched.wait(5)
        assert finished == []
        gaps = [later - earlier for earlier, later in zip(dispatched, dispatched[1:])]
        assert all(gap >= delay * 0.99 for gap in gaps)

        release.set()
        scheduler.close()

    def test_tasks_are_dispatched_in_fifo_order(self) -> None:
        clock = FakeClock()
        scheduler = RateLimitedScheduler(min_delay_seconds=0.5, clock=clock, sleep=clock.sleep)
        order: list[int] = []

        for index in range(5):
            scheduler.schedule(lambda index=index: order.append(index))
        scheduler.close()

        assert order == [0, 1, 2, 3, 4]

    def test_failing_task_does_not_stop_the_worker(self) -> None:
        clock = FakeClock()
        scheduler = RateLimitedScheduler(min_delay_seconds=0.1, clock=clock, sleep=clock.sleep)
        calls: list[str] = []

        def _boom() -> None:
            raise RuntimeError("task broke")

        scheduler.schedule(_boom)
        scheduler.schedule(lambda: calls.append("after"))
        scheduler.close()

        assert calls == ["after"]

    def test_schedule_after_close_raises(self) -> None:
        scheduler = RateLimitedScheduler(min_delay_seconds=0.0)
        scheduler.close()

        with pytest.raises(RuntimeError):
            scheduler.schedule(lambda: None)

    def test_negative_delay_is_clamped(self) -> None:
        scheduler = RateLimitedScheduler(min_delay_seconds=-3)
        assert scheduler.min_delay_seconds == 0.0


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------


def test_create_scheduler_selects_mode() -> None:
    live = create_scheduler(mode="live", min_delay_seconds=2.0)
    replay = create_scheduler(mode="replay", min_delay_seconds=2.0)

    assert isinstance(live, RateLimitedScheduler)
    assert live.min_delay_seconds == 2.0
    assert isinstance(replay, ImmediateScheduler)


def test_create_scheduler_rejects_unknown_mode() -> None:
    with pytest.raises(ValueError):
        create_scheduler(mode="turbo", min_delay_seconds=1.0)
