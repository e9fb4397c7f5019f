# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Single-threaded cooperative timers.

Pitch cadence, decision countdowns and between-innings holds are all
callbacks on one ``TimerLoop``. Nothing runs in parallel: callbacks fire one
at a time, in deadline order, from whoever drives the loop (``run`` for wall
clock play, ``advance`` with a ``ManualClock`` for tests and replays,
``run_due`` for request-driven hosts).
"""

from __future__ import annotations

import heapq
import itertools
import logging
import time
from typing import Callable

logger = logging.getLogger(__name__)


class ManualClock:
    """Clock that only moves when told to."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class TimerHandle:
    """A scheduled callback that can be cancelled until it fires."""

    def __init__(self, when: float, callback: Callable, args: tuple):
        self.when = when
        self._callback = callback
        self._args = args
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        self._cancelled = True
        self._callback = None
        self._args = ()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def has_expired(self, now: float) -> bool:
        """True once the deadline has passed or the callback already ran."""
        return self._fired or now >= self.when

    def _run(self) -> None:
        self._fired = True
        callback, args = self._callback, self._args
        self._callback = None
        self._args = ()
        callback(*args)


class TimerLoop:
    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._clock = clock
        self._sleep = sleep
        self._queue: list[tuple[float, int, TimerHandle]] = []
        self._sequence = itertools.count()

    def now(self) -> float:
        return self._clock()

    def call_later(self, delay: float, callback: Callable, *args) -> TimerHandle:
        handle = TimerHandle(self.now() + max(0.0, delay), callback, args)
        # Ties fire in scheduling order.
        heapq.heappush(self._queue, (handle.when, next(self._sequence), handle))
        return handle

    @property
    def pending(self) -> int:
        """Number of live (not cancelled, not fired) timers."""
        return sum(1 for _, _, h in self._queue if not h.cancelled)

    def next_deadline(self) -> float | None:
        self._drop_cancelled()
        return self._queue[0][0] if self._queue else None

    def cancel_all(self) -> None:
        for _, _, handle in self._queue:
            handle.cancel()
        self._queue.clear()

    def _drop_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled:
            heapq.heappop(self._queue)

    def run_due(self) -> int:
        """Fire every timer whose deadline has passed. Returns the count fired."""
        fired = 0
        while True:
            self._drop_cancelled()
            if not self._queue or self._queue[0][0] > self.now():
                return fired
            _, _, handle = heapq.heappop(self._queue)
            handle._run()
            fired += 1

    def advance(self, seconds: float) -> int:
        """Move a ``ManualClock`` forward, firing timers at their own deadlines."""
        if not isinstance(self._clock, ManualClock):
            raise TypeError("advance() needs a TimerLoop built on a ManualClock")
        target = self._clock.now + seconds
        fired = 0
        while True:
            deadline = self.next_deadline()
            if deadline is None or deadline > target:
                break
            self._clock.now = max(self._clock.now, deadline)
            fired += self.run_due()
        self._clock.now = target
        return fired

    def run(self, until: Callable[[], bool] | None = None) -> None:
        """Drive the loop in real time until it is empty or ``until()`` is true."""
        while until is None or not until():
            deadline = self.next_deadline()
            if deadline is None:
                logger.debug("Timer loop drained")
                return
            delay = deadline - self.now()
            if delay > 0:
                self._sleep(delay)
            self.run_due()
