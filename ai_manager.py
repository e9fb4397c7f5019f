# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Deterministic manager for teams nobody is managing.

Looks only at the game state, never at the random source, so an AI-managed
game replays exactly like any other.
"""

from __future__ import annotations

from dataclasses import dataclass

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
    StealAction,
)
from strategy import Strategy

# Percent. Every steal that gets offered clears it.
AI_STEAL_THRESHOLD = 62


@dataclass
class AiDecision:
    action: object
    reason: str

    @property
    def replaces_pitch(self) -> bool:
        """Steals are resolved instead of a pitch; everything else lets the pitch go ahead."""
        return isinstance(self.action, StealAction)


def make_ai_decision(state: GameState, decision: PendingDecision) -> AiDecision | None:
    """What the AI manager does with ``decision``; ``None`` means let it pass."""
    score_diff = state.score[0] - state.score[1]  # positive = visitors ahead
    kind = decision.kind

    if kind is DecisionKind.STEAL:
        if decision.success_pct is not None and decision.success_pct >= AI_STEAL_THRESHOLD:
            return AiDecision(
                StealAction(base=decision.base, success_pct=decision.success_pct),
                "high-percentage steal opportunity",
            )
        return None

    if kind is DecisionKind.BUNT:
        behind = score_diff < 0 if state.at_bat == 0 else score_diff > 0
        late_and_close = state.inning >= 7 and abs(score_diff) <= 1 and state.outs == 0 and behind
        if late_and_close:
            return AiDecision(BuntAction(strategy=Strategy.BALANCED), "sacrifice bunt in close late game")
        return None

    if kind is DecisionKind.COUNT30:
        return AiDecision(
            OnePitchModifierAction(modifier=OnePitchModifier.TAKE),
            "taking the pitch with a 3-0 count",
        )

    if kind is DecisionKind.COUNT02:
        return AiDecision(
            OnePitchModifierAction(modifier=OnePitchModifier.PROTECT),
            "protecting the plate with two strikes",
        )

    if kind in (DecisionKind.IBB, DecisionKind.IBB_OR_STEAL):
        return AiDecision(IntentionalWalkAction(), "intentional walk to set up the force")

    if kind is DecisionKind.PINCH_HITTER:
        return AiDecision(
            PinchHitAction(strategy=Strategy.CONTACT),
            "pinch hitter in, looking for contact late in the game",
        )

    if kind is DecisionKind.DEFENSIVE_SHIFT:
        return AiDecision(DefensiveShiftAction(enabled=True), "defensive shift deployed")

    return None
