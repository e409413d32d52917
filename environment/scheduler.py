"""Timers against a virtual monotonic clock."""

from __future__ import annotations

import heapq
import itertools
from typing import Callable, List, Optional, Tuple

Callback = Callable[[], None]


class TimerHandle:
    """Cancellable reference to a scheduled callback."""

    __slots__ = ("deadline", "interval", "callback", "cancelled")

    def __init__(self, deadline: float, callback: Callback, interval: Optional[float] = None) -> None:
        self.deadline = deadline
        self.interval = interval
        self.callback = callback
        self.cancelled = False

    @property
    def repeating(self) -> bool:
        return self.interval is not None

    def cancel(self) -> None:
        self.cancelled = True


class VirtualScheduler:
    """Fires one-shot and repeating timers as the clock is advanced.

    Nothing runs on its own: :meth:`advance` moves the clock forward and runs
    every timer that falls due, earliest first, in scheduling order on ties.
    """

    def __init__(self, start: float = 0.0, after_fire: Optional[Callback] = None) -> None:
        self._now = start
        self._after_fire = after_fire
        self._heap: List[Tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def schedule_once(self, delay: float, callback: Callback) -> TimerHandle:
        if delay < 0:
            raise ValueError(f"Timer delay must not be negative, got {delay!r}.")
        handle = TimerHandle(self._now + delay, callback)
        self._push(handle)
        return handle

    def schedule_repeating(self, interval: float, callback: Callback) -> TimerHandle:
        if interval <= 0:
            raise ValueError(f"Timer interval must be positive, got {interval!r}.")
        handle = TimerHandle(self._now + interval, callback, interval=interval)
        self._push(handle)
        return handle

    def pending(self) -> int:
        return sum(1 for _, _, handle in self._heap if not handle.cancelled)

    def advance(self, seconds: float) -> None:
        if seconds < 0:
            raise ValueError("The clock cannot move backwards.")
        self.advance_to(self._now + seconds)

    def advance_to(self, target: float) -> None:
        if target < self._now:
            raise ValueError("The clock cannot move backwards.")
        while self._heap and self._heap[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._heap)
            if handle.cancelled:
                continue
            self._now = deadline
            if handle.repeating:
                assert handle.interval is not None
                handle.deadline = deadline + handle.interval
                self._push(handle)
            handle.callback()
            if self._after_fire is not None:
                self._after_fire()
        self._now = target

    def _push(self, handle: TimerHandle) -> None:
        heapq.heappush(self._heap, (handle.deadline, next(self._sequence), handle))
