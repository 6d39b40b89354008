#!/usr/bin/env python3
"""
Tests for the timer schedulers.

Run with: python -m pytest _tests/test_scheduling.py -v
"""

import asyncio

import pytest

from Verification_Map.scheduling import AsyncioScheduler, ManualScheduler


class TestManualScheduler:
    def test_fires_in_due_order(self):
        scheduler = ManualScheduler()
        order = []
        scheduler.call_later(2.0, lambda: order.append("b"))
        scheduler.call_later(1.0, lambda: order.append("a"))
        scheduler.call_later(2.0, lambda: order.append("c"))
        assert scheduler.advance(5.0) == 3
        assert order == ["a", "b", "c"]
        assert scheduler.time() == 5.0

    def test_cancelled_timer_never_fires(self):
        scheduler = ManualScheduler()
        fired = []
        handle = scheduler.call_later(1.0, lambda: fired.append(1))
        handle.cancel()
        assert scheduler.pending_count == 0
        scheduler.advance(2.0)
        assert fired == []

    def test_clock_seen_by_callback(self):
        scheduler = ManualScheduler()
        seen = []
        scheduler.call_later(1.5, lambda: seen.append(scheduler.time()))
        scheduler.advance(3.0)
        assert seen == [1.5]

    def test_chained_timers_within_one_advance(self):
        scheduler = ManualScheduler()
        count = {"value": 0}

        def tick():
            count["value"] += 1
            scheduler.call_later(1.0, tick)

        scheduler.call_later(1.0, tick)
        scheduler.advance(3.0)
        assert count["value"] == 3
        assert scheduler.pending_count == 1

    def test_negative_advance_rejected(self):
        with pytest.raises(ValueError):
            ManualScheduler().advance(-1.0)

    def test_run_until_idle(self):
        scheduler = ManualScheduler()
        fired = []
        scheduler.call_later(10.0, lambda: fired.append(1))
        scheduler.call_later(20.0, lambda: fired.append(2))
        assert scheduler.run_until_idle() == 2
        assert fired == [1, 2]
        assert scheduler.time() == 20.0


class TestAsyncioScheduler:
    def test_callback_runs_on_loop(self):
        fired = []

        async def scenario():
            scheduler = AsyncioScheduler()
            start = scheduler.time()
            scheduler.call_later(0.01, lambda: fired.append(scheduler.time() - start))
            await asyncio.sleep(0.05)

        asyncio.run(scenario())
        assert len(fired) == 1
        assert fired[0] >= 0.0

    def test_cancel(self):
        fired = []

        async def scenario():
            scheduler = AsyncioScheduler(asyncio.get_running_loop())
            handle = scheduler.call_later(0.01, lambda: fired.append(1))
            handle.cancel()
            await asyncio.sleep(0.03)

        asyncio.run(scenario())
        assert fired == []
