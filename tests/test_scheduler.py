"""
Tests for the timer utilities.
"""

import sys
import asyncio
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from formmemory.utils.scheduler import AsyncioScheduler, ManualScheduler, TimerSlot


class TestManualScheduler:

    def test_runs_due_callbacks_in_order(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.call_later(2, lambda: calls.append("b"))
        scheduler.call_later(1, lambda: calls.append("a"))

        assert scheduler.advance(1.5) == 1
        assert scheduler.advance(1) == 1
        assert calls == ["a", "b"]
        assert scheduler.now() == 2.5

    def test_cancelled_task_never_runs(self):
        scheduler = ManualScheduler()
        calls = []
        task = scheduler.call_later(1, lambda: calls.append(1))
        task.cancel()
        scheduler.advance(5)
        assert calls == []
        assert scheduler.pending() == 0


class TestTimerSlot:

    def test_at_most_one_outstanding(self):
        scheduler = ManualScheduler()
        slot = TimerSlot(scheduler, "debounce")
        calls = []

        slot.schedule(2, lambda: calls.append("first"))
        slot.schedule(2, lambda: calls.append("second"))

        assert scheduler.pending() == 1
        scheduler.advance(3)
        assert calls == ["second"]
        assert slot.active is False


class TestAsyncioScheduler:

    def test_fires_on_event_loop(self):
        async def scenario():
            fired = asyncio.Event()
            AsyncioScheduler().call_later(0.01, fired.set)
            await asyncio.wait_for(fired.wait(), timeout=1)
            return fired.is_set()

        assert asyncio.run(scenario()) is True

    def test_cancel(self):
        async def scenario():
            calls = []
            task = AsyncioScheduler().call_later(0.01, lambda: calls.append(1))
            task.cancel()
            await asyncio.sleep(0.05)
            return calls

        assert asyncio.run(scenario()) == []
