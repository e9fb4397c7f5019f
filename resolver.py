# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Pitch outcome resolution.

Turns the current state plus random draws into one pitch action for the
reducer. The resolver only reads state; the reducer owns every transition.
Draw order per pitch: pitch type [0,100), outcome roll [0,1000), then one
more [0,100) draw for swings and balls in play.
"""

from __future__ import annotations

from models import (
    FoulAction,
    GameState,
    Hit,
    HitAction,
    OnePitchModifier,
    StrikeAction,
    WaitAction,
)
from pitch_types import (
    PitchType,
    pitch_strike_zone_mod,
    pitch_swing_rate_mod,
    select_pitch_type,
)
from rng import SeededRandom, js_round
from strategy import Stat, Strategy, modifier

# Rolls at or above this line are balls in play
IN_PLAY_THRESHOLD = 920
FORCED_SWING_RATE = 920
FOUL_CHANCE = 30

# Cumulative (homerun, triple, double) thresholds out of 100
_HIT_TABLE = {
    Strategy.POWER: (20, 23, 43),
    Strategy.CONTACT: (8, 10, 28),
}
_DEFAULT_HIT_TABLE = (13, 15, 35)


def hit_type_for_roll(roll: int, strategy: Strategy) -> Hit:
    hr, triple, double = _HIT_TABLE.get(strategy, _DEFAULT_HIT_TABLE)
    if roll < hr:
        return Hit.HOMERUN
    if roll < triple:
        return Hit.TRIPLE
    if roll < double:
        return Hit.DOUBLE
    return Hit.SINGLE


def swing_rate(
    strikes: int,
    strategy: Strategy,
    pitch_type: PitchType,
    one_pitch_modifier: OnePitchModifier | None = None,
) -> int:
    """Swing threshold out of 1000 for this count, strategy and pitch."""
    if one_pitch_modifier is OnePitchModifier.SWING:
        return FORCED_SWING_RATE
    if strategy is Strategy.CONTACT:
        contact_mod = 1.15
    elif strategy is Strategy.POWER:
        contact_mod = 0.9
    else:
        contact_mod = 1.0
    protect = 0.7 if one_pitch_modifier is OnePitchModifier.PROTECT else 1.0
    base = js_round((500 - 75 * strikes) * contact_mod * protect)
    return js_round(base * pitch_swing_rate_mod(pitch_type))


def wait_outcome(
    roll: int,
    strategy: Strategy,
    one_pitch_modifier: OnePitchModifier | None,
    pitch_type: PitchType | None,
) -> bool:
    """Return True when a taken pitch is a ball, False for a called strike.

    ``roll`` is out of 1000.
    """
    zone = pitch_strike_zone_mod(pitch_type) if pitch_type is not None else 1.0
    walk = modifier(strategy, Stat.WALK)
    if one_pitch_modifier is OnePitchModifier.TAKE:
        return roll < min(950, js_round(750 * walk / zone))
    return roll >= js_round(500 * zone / walk)


def resolve_pitch(state: GameState, rng: SeededRandom, strategy: Strategy = Strategy.BALANCED):
    """Draw one pitch and return the action describing it."""
    pitch_type = select_pitch_type(state.balls, state.strikes, rng.draw_int(100))
    modifier_now = state.one_pitch_modifier

    if modifier_now is OnePitchModifier.BUNT:
        # The reducer resolves the bunt attempt in place of the swing.
        return WaitAction(strategy=strategy, pitch_type=pitch_type)

    roll = rng.draw_int(1000)
    rate = swing_rate(state.strikes, strategy, pitch_type, modifier_now)

    if roll < rate:
        if rng.draw_int(100) < FOUL_CHANCE:
            return FoulAction(pitch_type=pitch_type)
        return StrikeAction(swung=True, pitch_type=pitch_type)
    if roll < IN_PLAY_THRESHOLD:
        return WaitAction(strategy=strategy, pitch_type=pitch_type)

    hit = hit_type_for_roll(rng.draw_int(100), strategy)
    return HitAction(hit_type=hit, strategy=strategy, pitch_type=pitch_type)
