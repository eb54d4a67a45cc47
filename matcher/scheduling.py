"""Deferred callbacks for the engine's timed transitions.

The engine never sleeps. It hands a callback and a nominal delay to a
:class:`Scheduler` and keeps the returned handle so the callback can be
cancelled when the board it belongs to is replaced.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Protocol, Tuple

Callback = Callable[[], None]


class ScheduledHandle(Protocol):
    def cancel(self) -> None: ...

    @property
    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    def schedule(self, delay: float, callback: Callback) -> ScheduledHandle: ...


@dataclass
class ScheduledCall:
    due: float
    callback: Callback
    _cancelled: bool = field(default=False, init=False)
    _fired: bool = field(default=False, init=False)

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def run(self) -> None:
        if self._cancelled or self._fired:
            return
        self._fired = True
        self.callback()


class ManualScheduler:
    """Virtual-clock scheduler; time only moves when :meth:`advance` is called."""

    def __init__(self) -> None:
        self.now = 0.0
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def schedule(self, delay: float, callback: Callback) -> ScheduledCall:
        if delay < 0:
            raise ValueError("Delay must not be negative.")
        call = ScheduledCall(due=self.now + delay, callback=callback)
        heapq.heappush(self._queue, (call.due, next(self._counter), call))
        return call

    def advance(self, seconds: float) -> int:
        """Move the clock forward, firing due callbacks in order. Returns how many ran."""
        if seconds < 0:
            raise ValueError("Cannot move the clock backwards.")
        target = self.now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            due, _, call = heapq.heappop(self._queue)
            self.now = due
            if not call.cancelled:
                call.run()
                fired += 1
        self.now = target
        return fired

    def flush(self) -> int:
        """Fire everything still queued, including callbacks scheduled meanwhile."""
        fired = 0
        while self._queue:
            fired += self.advance(max(0.0, self._queue[0][0] - self.now))
        return fired

    @property
    def pending(self) -> int:
        return sum(1 for _, _, call in self._queue if not call.cancelled)


class _AsyncioCall:
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle

    def cancel(self) -> None:
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._handle.cancelled()


class AsyncioScheduler:
    """Schedules callbacks on a running asyncio loop with ``call_later``."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def schedule(self, delay: float, callback: Callback) -> _AsyncioCall:
        return _AsyncioCall(self._loop.call_later(delay, callback))
