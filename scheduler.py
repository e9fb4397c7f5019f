# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Auto-play pacing.

Dispatches one pitch per tick on the session's timer loop. Ticks stop while
a decision is pending and pick up again when the session calls ``resume``.
"""

from __future__ import annotations

import logging
from enum import Enum

from timers import TimerHandle, TimerLoop

logger = logging.getLogger(__name__)

HALF_INNING_HOLD = 1.5
STRETCH_HOLD = 4.0
STRETCH_INNING = 7


class Speed(str, Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"

    @property
    def interval(self) -> float:
        """Seconds between pitches."""
        return _INTERVALS[self]


_INTERVALS = {
    Speed.SLOW: 1.2,
    Speed.NORMAL: 0.7,
    Speed.FAST: 0.35,
}


class AutoPlayScheduler:
    """Cooperative pitch driver for one session.

    The session is anything with a ``state`` (a ``GameState``), a ``pitch()``
    method and an ``announce(message)`` method.
    """

    def __init__(self, loop: TimerLoop, session, speed: Speed = Speed.NORMAL):
        self.loop = loop
        self.session = session
        self.speed = Speed(speed)
        self.running = False
        self._handle: TimerHandle | None = None
        self._hold: float | None = None
        self._dispatching = False

    def start(self) -> None:
        if self.running:
            return
        self.running = True
        logger.info("Auto-play started at %s speed", self.speed.value)
        self._schedule(self.speed.interval)

    def stop(self) -> None:
        """Stop ticking. No tick scheduled before this call will fire."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self.running:
            logger.info("Auto-play stopped")
        self.running = False
        self._hold = None

    def resume(self) -> None:
        """Pick up after a decision resolves."""
        if self.running and self._handle is None and not self._dispatching:
            self._schedule(self.speed.interval)

    def set_speed(self, speed: Speed) -> None:
        self.speed = Speed(speed)
        if self.running and self._handle is not None:
            self._handle.cancel()
            self._schedule(self.speed.interval)

    def _schedule(self, delay: float) -> None:
        self._handle = self.loop.call_later(delay, self._tick)

    def _tick(self) -> None:
        self._handle = None
        if not self.running:
            return
        state = self.session.state
        if state.game_over:
            self.stop()
            return
        if state.pending_decision is not None:
            # Suspended until resume()
            return
        if self._hold is not None:
            hold, self._hold = self._hold, None
            self._schedule(hold)
            return
        if self._dispatching:
            self._schedule(self.speed.interval)
            return

        before = (state.inning, state.at_bat)
        self._dispatching = True
        try:
            self.session.pitch()
        finally:
            self._dispatching = False

        after_state = self.session.state
        if after_state.game_over:
            self.stop()
            return
        if (after_state.inning, after_state.at_bat) != before:
            if after_state.inning == STRETCH_INNING and after_state.at_bat == 1:
                self.session.announce("Seventh-inning stretch! Take me out to the ball game...")
                self._hold = STRETCH_HOLD
            else:
                self._hold = HALF_INNING_HOLD
        if not self.running:
            return
        if after_state.pending_decision is None and self._handle is None:
            self._schedule(self.speed.interval)
