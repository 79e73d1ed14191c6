"""Time sources and one-shot schedulers.

The engines never read the wall clock directly: they ask a clock for ``now()``
and a scheduler for ``call_later()``. Production code uses ``SystemClock`` and
the Qt-backed scheduler from the UI package; tests use ``ManualClock`` and
``VirtualScheduler`` to fast-forward time without sleeping.
"""

from __future__ import annotations

import heapq
import itertools
import time
from typing import Callable, List, Optional, Protocol, Tuple


class Clock(Protocol):
    def now(self) -> float:
        """Return the current time in seconds."""


class Scheduler(Clock, Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> "TimerHandle":
        """Run *callback* once after *delay* seconds."""


class SystemClock:
    """Monotonic wall clock."""

    def now(self) -> float:
        return time.monotonic()


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = float(start)

    def now(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("cannot move a clock backwards")
        self._now += seconds

    def set(self, value: float) -> None:
        self._now = float(value)


class TimerHandle:
    """Handle for a pending one-shot callback."""

    def __init__(self) -> None:
        self._cancelled = False
        self._fired = False

    @property
    def active(self) -> bool:
        return not (self._cancelled or self._fired)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Prevent the callback from ever running. Safe to call twice."""
        self._cancelled = True


class VirtualScheduler:
    """Deterministic scheduler driven by a ``ManualClock``.

    ``advance()`` moves the clock forward and fires every callback whose
    deadline falls inside the interval, in deadline order. Callbacks may
    schedule further callbacks; those fire too if they are due before the end
    of the interval.
    """

    def __init__(self, clock: Optional[ManualClock] = None) -> None:
        self.clock = clock or ManualClock()
        self._queue: List[Tuple[float, int, TimerHandle, Callable[[], None]]] = []
        self._counter = itertools.count()

    def now(self) -> float:
        return self.clock.now()

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle()
        deadline = self.clock.now() + max(0.0, delay)
        heapq.heappush(self._queue, (deadline, next(self._counter), handle, callback))
        return handle

    def pending(self) -> int:
        """Number of callbacks still waiting to fire."""
        return sum(1 for _, _, handle, _ in self._queue if handle.active)

    def advance(self, seconds: float) -> None:
        target = self.clock.now() + seconds
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle, callback = heapq.heappop(self._queue)
            if not handle.active:
                continue
            self.clock.set(max(deadline, self.clock.now()))
            handle._fired = True
            callback()
        self.clock.set(target)

    def run_pending(self) -> None:
        """Fire callbacks that are already due without moving the clock."""
        self.advance(0.0)
