# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Data models for the pitch-by-pitch simulation.

``GameState`` is immutable: the reducer never mutates a state, it returns a
new one built with ``model_copy(update=...)``. Actions form a discriminated
union on ``type`` so that recorded event streams and HTTP payloads validate
straight back into the same objects.
"""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from pitch_types import PitchType
from strategy import Strategy


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class Hit(str, Enum):
    SINGLE = "Single"
    DOUBLE = "Double"
    TRIPLE = "Triple"
    HOMERUN = "Homerun"
    WALK = "Walk"

    @property
    def distance(self) -> int:
        """Bases the batter reaches; a walk is only a forced advance."""
        return _HIT_DISTANCE[self]


_HIT_DISTANCE = {
    Hit.WALK: 0,
    Hit.SINGLE: 1,
    Hit.DOUBLE: 2,
    Hit.TRIPLE: 3,
    Hit.HOMERUN: 4,
}


class OnePitchModifier(str, Enum):
    TAKE = "take"
    SWING = "swing"
    PROTECT = "protect"
    NORMAL = "normal"
    BUNT = "bunt"


class DecisionKind(str, Enum):
    STEAL = "steal"
    BUNT = "bunt"
    COUNT30 = "count30"
    COUNT02 = "count02"
    IBB = "ibb"
    IBB_OR_STEAL = "ibb_or_steal"
    PINCH_HITTER = "pinch_hitter"
    DEFENSIVE_SHIFT = "defensive_shift"


HALF_NAMES = ("top", "bottom")


# ---------------------------------------------------------------------------
# Decisions and logs
# ---------------------------------------------------------------------------

class PendingDecision(BaseModel):
    """A decision point offered to a manager.

    ``timeout`` is relative so that states stay identical across replays; the
    absolute deadline lives in the decision engine's countdown.
    """
    model_config = ConfigDict(frozen=True)

    kind: DecisionKind
    options: tuple[str, ...] = ()
    base: Optional[Literal[0, 1]] = Field(default=None, description="Steal origin: 0 first, 1 second")
    success_pct: Optional[int] = Field(default=None, ge=0, le=100)
    timeout: float = Field(default=10.0, gt=0)


class PlayLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    inning: int
    half: Literal[0, 1]
    batter_num: int = Field(ge=1, description="1-based lineup slot")
    team: Literal[0, 1]
    event: Hit
    runs: int = 0


class OutLogEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    team: Literal[0, 1]
    batter_num: int = Field(ge=1)
    inning: int
    half: Literal[0, 1]


# ---------------------------------------------------------------------------
# Game state
# ---------------------------------------------------------------------------

class GameState(BaseModel):
    """Authoritative snapshot of a game between reducer steps."""
    model_config = ConfigDict(frozen=True)

    inning: int = Field(default=1, ge=1)
    at_bat: Literal[0, 1] = Field(default=0, description="0 = visitors batting, 1 = home batting")
    strikes: int = Field(default=0, ge=0, le=2)
    balls: int = Field(default=0, ge=0, le=3)
    outs: int = Field(default=0, ge=0, le=2)
    base_layout: tuple[int, int, int] = (0, 0, 0)
    score: tuple[int, int] = (0, 0)
    teams: tuple[str, str] = ("Away", "Home")
    lineup_order: tuple[tuple[str, ...], tuple[str, ...]] = ((), ())
    batter_index: tuple[int, int] = (0, 0)

    pending_decision: Optional[PendingDecision] = None
    one_pitch_modifier: Optional[OnePitchModifier] = None
    suppress_next_decision: bool = False
    pinch_hitter_strategy: Optional[Strategy] = None
    defensive_shift: bool = False
    defensive_shift_offered: bool = False

    pitch_key: int = Field(default=0, ge=0)
    game_over: bool = False
    hit_type: Optional[Hit] = None

    inning_runs: tuple[tuple[int, ...], tuple[int, ...]] = ((), ())
    play_log: tuple[PlayLogEntry, ...] = ()
    out_log: tuple[OutLogEntry, ...] = ()
    strikeout_log: tuple[OutLogEntry, ...] = ()
    decision_log: tuple[str, ...] = ()

    tiebreak_runner: bool = True

    @property
    def fielding(self) -> int:
        return 1 - self.at_bat

    def lineup_size(self, team: int) -> int:
        return len(self.lineup_order[team]) or 9

    def current_batter_name(self) -> str:
        lineup = self.lineup_order[self.at_bat]
        idx = self.batter_index[self.at_bat]
        if lineup:
            return lineup[idx % len(lineup)]
        return f"Batter {idx + 1}"


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

class _Action(BaseModel):
    model_config = ConfigDict(frozen=True)


class StrikeAction(_Action):
    type: Literal["strike"] = "strike"
    swung: bool = False
    pitch_type: Optional[PitchType] = None


class BallAction(_Action):
    type: Literal["ball"] = "ball"
    pitch_type: Optional[PitchType] = None


class WaitAction(_Action):
    """A taken pitch; the reducer rolls ball or called strike."""
    type: Literal["wait"] = "wait"
    strategy: Strategy = Strategy.BALANCED
    pitch_type: Optional[PitchType] = None


class FoulAction(_Action):
    type: Literal["foul"] = "foul"
    pitch_type: Optional[PitchType] = None


class HitAction(_Action):
    type: Literal["hit"] = "hit"
    hit_type: Hit
    strategy: Strategy = Strategy.BALANCED
    pitch_type: Optional[PitchType] = None


class WalkAction(_Action):
    type: Literal["walk"] = "walk"


class StealAction(_Action):
    type: Literal["steal"] = "steal"
    base: Literal[0, 1]
    success_pct: int = Field(ge=0, le=100)

    def entry(self) -> str:
        return f"steal:{self.base}:{self.success_pct}"


class BuntAction(_Action):
    type: Literal["bunt"] = "bunt"
    strategy: Strategy = Strategy.BALANCED

    def entry(self) -> str:
        return "bunt"


class IntentionalWalkAction(_Action):
    type: Literal["intentional_walk"] = "intentional_walk"

    def entry(self) -> str:
        return "ibb"


class PinchHitAction(_Action):
    type: Literal["pinch_hit"] = "pinch_hit"
    strategy: Strategy

    def entry(self) -> str:
        return f"pinch:{self.strategy.value}"


class DefensiveShiftAction(_Action):
    type: Literal["defensive_shift"] = "defensive_shift"
    enabled: bool

    def entry(self) -> str:
        return "shift:on" if self.enabled else "shift:off"


class OnePitchModifierAction(_Action):
    type: Literal["one_pitch_modifier"] = "one_pitch_modifier"
    modifier: OnePitchModifier

    def entry(self) -> str:
        return self.modifier.value


class SkipDecisionAction(_Action):
    type: Literal["skip_decision"] = "skip_decision"
    timed_out: bool = False

    def entry(self) -> str:
        return "timeout" if self.timed_out else "skip"


class SetPendingDecisionAction(_Action):
    type: Literal["set_pending_decision"] = "set_pending_decision"
    decision: PendingDecision


class ClearSuppressDecisionAction(_Action):
    type: Literal["clear_suppress_decision"] = "clear_suppress_decision"


class PitchRequest(_Action):
    """Recorded in place of a resolved pitch; replay draws the outcome again."""
    type: Literal["pitch"] = "pitch"


class LogAction(_Action):
    """Side channel: an announcer line, never a state change."""
    type: Literal["log"] = "log"
    message: str


ACTION_CLASSES = (
    StrikeAction,
    BallAction,
    WaitAction,
    FoulAction,
    HitAction,
    WalkAction,
    StealAction,
    BuntAction,
    IntentionalWalkAction,
    PinchHitAction,
    DefensiveShiftAction,
    OnePitchModifierAction,
    SkipDecisionAction,
    SetPendingDecisionAction,
    ClearSuppressDecisionAction,
    LogAction,
)

Action = Annotated[Union[ACTION_CLASSES], Field(discriminator="type")]

ACTION_ADAPTER: TypeAdapter = TypeAdapter(Action)

RecordedAction = Annotated[Union[(PitchRequest,) + ACTION_CLASSES], Field(discriminator="type")]

PITCH_ACTIONS = (StrikeAction, BallAction, WaitAction, FoulAction, HitAction, WalkAction)
DECISION_ACTIONS = (
    StealAction,
    BuntAction,
    IntentionalWalkAction,
    PinchHitAction,
    DefensiveShiftAction,
    OnePitchModifierAction,
    SkipDecisionAction,
)


def parse_action(payload: dict) -> _Action:
    """Validate a JSON-shaped action. Raises ``pydantic.ValidationError``."""
    return ACTION_ADAPTER.validate_python(payload)
