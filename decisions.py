# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Manager decision points.

Detects when a situation calls for manager input, maps a manager's chosen
option to the action that carries it out, and runs the time-boxed
countdown that auto-skips a decision nobody answered.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from models import (
    BuntAction,
    DecisionKind,
    DefensiveShiftAction,
    GameState,
    IntentionalWalkAction,
    OnePitchModifier,
    OnePitchModifierAction,
    PendingDecision,
    PinchHitAction,
    SkipDecisionAction,
    StealAction,
)
from rng import js_round
from strategy import Stat, Strategy, modifier
from timers import TimerHandle, TimerLoop

logger = logging.getLogger(__name__)

DECISION_TIMEOUT_SECONDS = 10.0
# A steal is only offered above this success percentage.
STEAL_MIN_PCT = 72
STEAL_BASE_PCT = {0: 70, 1: 60}

_OPTIONS = {
    DecisionKind.STEAL: ("steal", "skip"),
    DecisionKind.BUNT: ("bunt", "skip"),
    DecisionKind.COUNT30: ("take", "swing", "skip"),
    DecisionKind.COUNT02: ("protect", "normal", "skip"),
    DecisionKind.IBB: ("ibb", "skip"),
    DecisionKind.IBB_OR_STEAL: ("ibb", "steal", "skip"),
    DecisionKind.PINCH_HITTER: tuple(s.value for s in Strategy) + ("skip",),
    DecisionKind.DEFENSIVE_SHIFT: ("shift_on", "shift_off", "skip"),
}


def make_decision(kind: DecisionKind, timeout: float = DECISION_TIMEOUT_SECONDS, **fields) -> PendingDecision:
    return PendingDecision(kind=kind, options=_OPTIONS[kind], timeout=timeout, **fields)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------

def compute_steal_success_pct(base: int, strategy: Strategy) -> int:
    """Success chance (percent) for a runner stealing from ``base``."""
    return js_round(STEAL_BASE_PCT[base] * modifier(strategy, Stat.STEAL))


def detect_decision(
    state: GameState,
    strategy: Strategy,
    timeout: float = DECISION_TIMEOUT_SECONDS,
) -> PendingDecision | None:
    """Return the decision the batting manager faces now, if any.

    Checked in priority order: intentional walk and steal (combined when
    both apply), pinch hitter, bunt, then the 3-0 and 0-2 count calls.
    """
    if state.game_over or state.suppress_next_decision:
        return None

    first, second, third = state.base_layout
    outs = state.outs
    score_diff = abs(state.score[0] - state.score[1])

    ibb_available = (
        not first
        and bool(second or third)
        and outs == 2
        and state.inning >= 7
        and score_diff <= 2
    )

    steal = None
    if outs < 2:
        if first and not second:
            pct = compute_steal_success_pct(0, strategy)
            if pct > STEAL_MIN_PCT:
                steal = (0, pct)
        if steal is None and second and not third:
            pct = compute_steal_success_pct(1, strategy)
            if pct > STEAL_MIN_PCT:
                steal = (1, pct)

    if ibb_available and steal:
        return make_decision(DecisionKind.IBB_OR_STEAL, timeout, base=steal[0], success_pct=steal[1])
    if ibb_available:
        return make_decision(DecisionKind.IBB, timeout)
    if steal:
        return make_decision(DecisionKind.STEAL, timeout, base=steal[0], success_pct=steal[1])

    # Start-of-at-bat call, so it outranks the bunt with runners in scoring position.
    if (
        state.inning >= 7
        and outs < 2
        and (second or third)
        and state.pinch_hitter_strategy is None
        and state.balls == 0
        and state.strikes == 0
    ):
        return make_decision(DecisionKind.PINCH_HITTER, timeout)

    if outs < 2 and (first or second):
        return make_decision(DecisionKind.BUNT, timeout)

    if state.balls == 3 and state.strikes == 0:
        return make_decision(DecisionKind.COUNT30, timeout)
    if state.balls == 0 and state.strikes == 2:
        return make_decision(DecisionKind.COUNT02, timeout)
    return None


# ---------------------------------------------------------------------------
# Options <-> actions
# ---------------------------------------------------------------------------

def action_for_option(decision: PendingDecision, option: str, strategy: Strategy = Strategy.BALANCED):
    """Map a chosen option to its action. Raises ValueError for an ineligible option."""
    if option not in decision.options:
        raise ValueError(f"{option!r} is not an option for {decision.kind.value}; expected one of {decision.options}")
    if option == "skip":
        return SkipDecisionAction()
    if option == "steal":
        return StealAction(base=decision.base, success_pct=decision.success_pct)
    if option == "bunt":
        return BuntAction(strategy=strategy)
    if option == "ibb":
        return IntentionalWalkAction()
    if option in ("take", "swing", "protect", "normal"):
        return OnePitchModifierAction(modifier=OnePitchModifier(option))
    if option in ("shift_on", "shift_off"):
        return DefensiveShiftAction(enabled=option == "shift_on")
    return PinchHitAction(strategy=Strategy(option))


def parse_decision_entry(entry: str, strategy: Strategy = Strategy.BALANCED):
    """Split a ``<pitch_key>:<choice>`` log entry into ``(pitch_key, action)``.

    The action is ``None`` for entries this version does not understand.
    """
    key, _, choice = entry.partition(":")
    pitch_key = int(key)
    parts = choice.split(":")
    head = parts[0]
    if head == "steal" and len(parts) == 3:
        return pitch_key, StealAction(base=int(parts[1]), success_pct=int(parts[2]))
    if head == "bunt":
        return pitch_key, BuntAction(strategy=strategy)
    if head == "ibb":
        return pitch_key, IntentionalWalkAction()
    if head in ("take", "swing", "protect", "normal"):
        return pitch_key, OnePitchModifierAction(modifier=OnePitchModifier(head))
    if head == "pinch" and len(parts) == 2:
        return pitch_key, PinchHitAction(strategy=Strategy(parts[1]))
    if head == "shift" and len(parts) == 2:
        return pitch_key, DefensiveShiftAction(enabled=parts[1] == "on")
    if head == "skip":
        return pitch_key, SkipDecisionAction()
    if head == "timeout":
        return pitch_key, SkipDecisionAction(timed_out=True)
    logger.warning("Unrecognised decision log entry %r", entry)
    return pitch_key, None


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------

class DecisionStatus(str, Enum):
    IDLE = "idle"
    AWAITING = "awaiting"


def _at_bat_identity(state: GameState) -> tuple[int, int, int]:
    return state.inning, state.at_bat, state.batter_index[state.at_bat]


class DecisionEngine:
    """Tracks the open decision and its countdown.

    ``open`` starts a countdown on the timer loop; if it expires before
    ``close`` is called, ``on_timeout`` fires and the session resolves the
    decision as a timed-out skip.
    """

    def __init__(
        self,
        loop: TimerLoop,
        on_timeout: Callable[[], None],
        timeout: float = DECISION_TIMEOUT_SECONDS,
    ):
        self.loop = loop
        self.timeout = timeout
        self._on_timeout = on_timeout
        self.status = DecisionStatus.IDLE
        self.decision: Optional[PendingDecision] = None
        self.deadline: Optional[float] = None
        self._countdown: Optional[TimerHandle] = None
        # After any decision resolves, hold further ones for the rest of that at-bat.
        self.skip_rest_of_at_bat = False
        self._resolved_in: Optional[tuple[int, int, int]] = None

    def open(self, decision: PendingDecision) -> None:
        if self.status is DecisionStatus.AWAITING:
            raise RuntimeError("A decision is already pending")
        self.status = DecisionStatus.AWAITING
        self.decision = decision
        self.deadline = self.loop.now() + decision.timeout
        self._countdown = self.loop.call_later(decision.timeout, self._expire)
        logger.info("Decision pending: %s (%.0fs)", decision.kind.value, decision.timeout)

    def close(self) -> None:
        if self._countdown is not None:
            self._countdown.cancel()
        self._countdown = None
        self.status = DecisionStatus.IDLE
        self.decision = None
        self.deadline = None

    def remaining(self) -> float:
        """Seconds left on the countdown, 0 when nothing is pending."""
        if self.deadline is None:
            return 0.0
        return max(0.0, self.deadline - self.loop.now())

    def _expire(self) -> None:
        if self.status is not DecisionStatus.AWAITING:
            return
        kind = self.decision.kind.value if self.decision else "?"
        self._countdown = None
        logger.info("Decision %s timed out; skipping", kind)
        self._on_timeout()

    def observe(self, before: GameState, after: GameState) -> None:
        """Update the per-at-bat hold from one reducer step."""
        if before.pending_decision is not None and after.pending_decision is None:
            self.skip_rest_of_at_bat = True
            self._resolved_in = _at_bat_identity(before)
            return
        if self.skip_rest_of_at_bat and (
            after.game_over or _at_bat_identity(after) != self._resolved_in
        ):
            self.skip_rest_of_at_bat = False
            self._resolved_in = None
