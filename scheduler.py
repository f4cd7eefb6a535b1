"""
One-shot cancelable timers.

TickScheduler runs on the simulation clock (advanced by the controller each
tick) so round timers are deterministic in tests and headless runs.
AsyncioScheduler hands timers to the running event loop instead.
"""

import asyncio
import heapq
import itertools
from typing import Callable, List, Tuple


class TimerHandle:
    def __init__(self, when: float, callback: Callable[[], None]):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class TickScheduler:
    def __init__(self):
        self.now = 0.0
        self._queue: List[Tuple[float, int, TimerHandle]] = []
        self._seq = itertools.count()

    def time(self) -> float:
        return self.now

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(self.now + delay, callback)
        heapq.heappush(self._queue, (handle.when, next(self._seq), handle))
        return handle

    def advance(self, dt: float) -> None:
        self.now += dt
        while self._queue and self._queue[0][0] <= self.now:
            _, _, handle = heapq.heappop(self._queue)
            if not handle.cancelled():
                handle.callback()

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled())


class AsyncioScheduler:
    def __init__(self, loop: asyncio.AbstractEventLoop):
        self.loop = loop

    def time(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def advance(self, dt: float) -> None:
        # The event loop fires timers on its own clock.
        pass
