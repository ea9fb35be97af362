"""
Tests for request quota scheduling.
"""

import asyncio

import pytest

from pr_scorecard.quota import QuotaGuard


class FakeClock:
    """Manual clock whose sleep advances time instantly."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


def _guard(capacity, clock, window=60.0) -> QuotaGuard:
    return QuotaGuard(
        requests_per_window=capacity,
        window_seconds=window,
        clock=clock,
        sleep=clock.sleep,
    )


def test_admits_up_to_capacity_without_waiting():
    """Test units within the budget start immediately."""
    clock = FakeClock()
    guard = _guard(3, clock)

    async def run():
        for _ in range(3):
            await guard.acquire()

    asyncio.run(run())
    assert clock.sleeps == []
    assert guard.remaining == 0


def test_waits_for_next_window():
    """Test a unit beyond the budget waits until the window boundary."""
    clock = FakeClock()
    guard = _guard(2, clock)

    async def run():
        await guard.acquire()
        clock.now += 10
        await guard.acquire()
        await guard.acquire()

    asyncio.run(run())
    assert clock.sleeps == [50.0]
    assert guard.remaining == 1


def test_wait_aligns_to_window_grid_after_idle_windows():
    """Test the wait is measured from the current window start, not the first one."""
    clock = FakeClock()
    guard = _guard(1, clock)

    async def run():
        await guard.acquire()
        clock.now += 130
        await guard.acquire()
        await guard.acquire()

    asyncio.run(run())
    assert clock.sleeps == [50.0]
    assert guard._roll_window(clock.now) == 1180.0


def test_never_exceeds_budget_per_window():
    """Test no window admits more units than the budget."""
    clock = FakeClock(start=0.0)
    guard = _guard(3, clock, window=10.0)
    started: list[float] = []

    async def work():
        started.append(clock.now)
        return len(started)

    async def run():
        return await asyncio.gather(*(guard.schedule(work) for _ in range(8)))

    results = asyncio.run(run())
    assert sorted(results) == list(range(1, 9))
    per_window: dict[int, int] = {}
    for moment in started:
        per_window[int(moment // 10)] = per_window.get(int(moment // 10), 0) + 1
    assert max(per_window.values()) <= 3
    assert sum(per_window.values()) == 8


def test_schedule_preserves_submission_order():
    """Test queued units start in the order they were submitted."""
    clock = FakeClock()
    guard = _guard(1, clock)
    order: list[int] = []

    def make_work(index):
        async def work():
            order.append(index)
            return index

        return work

    async def run():
        return await asyncio.gather(*(guard.schedule(make_work(i)) for i in range(5)))

    assert asyncio.run(run()) == [0, 1, 2, 3, 4]
    assert order == [0, 1, 2, 3, 4]


def test_schedule_propagates_work_errors():
    """Test a failing unit surfaces its exception to the caller."""
    clock = FakeClock()
    guard = _guard(5, clock)

    async def work():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        asyncio.run(guard.schedule(work))


def test_fractional_budget_floors_to_at_least_one():
    assert QuotaGuard(requests_per_window=0.5).capacity == 1
    assert QuotaGuard(requests_per_window=83.3).capacity == 83


def test_invalid_window_rejected():
    with pytest.raises(ValueError):
        QuotaGuard(requests_per_window=1, window_seconds=0)


def test_default_budget_from_config(monkeypatch):
    """Test the configured requests per minute is used by default."""
    monkeypatch.setenv("PR_SCORECARD_REQUESTS_PER_MINUTE", "12")
    assert QuotaGuard().capacity == 12
