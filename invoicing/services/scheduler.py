from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Optional, Protocol, Tuple


class TaskHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Cancelable deferred callbacks (debounce timers)."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TaskHandle: ...


class _ManualHandle:
    def __init__(self, due: float, callback: Callable[[], None]) -> None:
        self.due = due
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """
    Scheduler driven by a virtual clock.
    - call_later() only records the task
    - advance() moves the clock and runs what became due, in due order
    Used by the tests and by sessions without an event loop.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)
        self._seq = itertools.count()
        self._queue: List[Tuple[float, int, _ManualHandle]] = []

    def now(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualHandle:
        h = _ManualHandle(self._now + max(0.0, float(delay)), callback)
        heapq.heappush(self._queue, (h.due, next(self._seq), h))
        return h

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def advance(self, seconds: float) -> int:
        target = self._now + max(0.0, float(seconds))
        ran = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, h = heapq.heappop(self._queue)
            self._now = due
            if h.cancelled:
                continue
            h.cancelled = True
            h.callback()
            ran += 1
        self._now = target
        return ran

    def next_due(self) -> Optional[float]:
        for due, _, h in sorted(self._queue):
            if not h.cancelled:
                return due
        return None
