"""Cancellable delayed callbacks for debounce and prompt timers."""
import asyncio
import heapq
import itertools
from typing import Callable, List, Optional, Tuple


class ScheduledTask:
    """Handle for a delayed callback."""

    def __init__(self, callback: Callable[[], None], due: float):
        self.callback = callback
        self.due = due
        self.cancelled = False
        self.fired = False
        self._handle = None

    @property
    def active(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()

    def _run(self) -> None:
        if not self.active:
            return
        self.fired = True
        self.callback()


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop or asyncio.get_running_loop()

    def now(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback, self.now() + delay)
        task._handle = self.loop.call_later(delay, task._run)
        return task


class ManualScheduler:
    """Virtual clock: callbacks only run when the clock is advanced."""

    def __init__(self):
        self._now = 0.0
        self._queue: List[Tuple[float, int, ScheduledTask]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        task = ScheduledTask(callback, self._now + delay)
        heapq.heappush(self._queue, (task.due, next(self._counter), task))
        return task

    def pending(self) -> int:
        return sum(1 for _, _, task in self._queue if task.active)

    def advance(self, seconds: float) -> int:
        """Move the clock forward, running every callback that falls due. Returns how many ran."""
        target = self._now + seconds
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, task = heapq.heappop(self._queue)
            self._now = due
            if task.active:
                task._run()
                ran += 1
        self._now = target
        return ran


class TimerSlot:
    """Holds at most one outstanding task; scheduling replaces the previous one."""

    def __init__(self, scheduler, name: str):
        self.scheduler = scheduler
        self.name = name
        self._task: Optional[ScheduledTask] = None

    @property
    def active(self) -> bool:
        return self._task is not None and self._task.active

    def schedule(self, delay: float, callback: Callable[[], None]) -> ScheduledTask:
        self.cancel()
        self._task = self.scheduler.call_later(delay, callback)
        return self._task

    def cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
