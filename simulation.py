# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Baseball game simulation engine.

Applies pitch and decision actions to an immutable ``GameState`` and returns
the next state. The engine enforces the rules (three strikes, four balls,
three outs, nine innings, forced advancement, walk-offs) and narrates each
step through an ``Announcer`` side channel, which is kept out of the state.

All randomness comes from the session's ``SeededRandom`` for deterministic
replay.
"""

from __future__ import annotations

import logging
from typing import Callable

from invariants import warn_if_impossible
from models import (
    BallAction,
    BuntAction,
    ClearSuppressDecisionAction,
    DefensiveShiftAction,
    DecisionKind,
    FoulAction,
    GameState,
    HALF_NAMES,
    Hit,
    HitAction,
    IntentionalWalkAction,
    LogAction,
    OnePitchModifier,
    OnePitchModifierAction,
    OutLogEntry,
    PinchHitAction,
    PlayLogEntry,
    SetPendingDecisionAction,
    SkipDecisionAction,
    StealAction,
    StrikeAction,
    WaitAction,
    WalkAction,
)
from pitch_types import PitchType, pitch_name
from resolver import wait_outcome
from rng import SeededRandom, js_round
from strategy import Stat, Strategy, modifier

logger = logging.getLogger(__name__)

REGULATION_INNINGS = 9

HIT_CALLOUTS = {
    Hit.SINGLE: "He lines it into the outfield, base hit!",
    Hit.DOUBLE: "Into the gap, that's a double!",
    Hit.TRIPLE: "Deep drive to the warning track, he's in with a triple!",
    Hit.HOMERUN: "That ball is GONE, home run!",
}


class InvalidActionError(TypeError):
    """Raised when the engine is handed something that is not a known action."""


# ---------------------------------------------------------------------------
# Announcer
# ---------------------------------------------------------------------------

class Announcer:
    """Ordered play-by-play channel, separate from the game state.

    Listeners (audio, UI) get every line as it is produced. A failing
    listener is logged and never interrupts the game.
    """

    def __init__(self) -> None:
        self.lines: list[str] = []
        self._listeners: list[Callable[[str], None]] = []

    def subscribe(self, listener: Callable[[str], None]) -> None:
        self._listeners.append(listener)

    def say(self, message: str) -> None:
        self.lines.append(message)
        logger.debug("announcer: %s", message)
        for listener in self._listeners:
            try:
                listener(message)
            except Exception:
                logger.exception("Announcer listener failed on %r", message)


# ---------------------------------------------------------------------------
# Pure helpers
# ---------------------------------------------------------------------------

def advance_runners(hit: Hit, bases: tuple[int, int, int]) -> tuple[tuple[int, int, int], int]:
    """Return ``(new_bases, runs_scored)`` for a batter reaching on ``hit``."""
    first, second, third = bases
    if hit is Hit.HOMERUN:
        return (0, 0, 0), first + second + third + 1
    if hit is Hit.TRIPLE:
        return (0, 0, 1), first + second + third
    if hit is Hit.DOUBLE:
        return (0, 1, first), second + third
    if hit is Hit.SINGLE:
        return (1, first, second), third
    # Walk: only forced runners move.
    if first and second and third:
        return (1, 1, 1), 1
    if first and second:
        return (1, 1, 1), 0
    if first:
        return (1, 1, third), 0
    return (1, second, third), 0


def _ordinal(n: int) -> str:
    """Return ordinal string for a number (1st, 2nd, 3rd, etc.)."""
    if 11 <= (n % 100) <= 13:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _pitch_message(pitch_type: PitchType | None, text: str) -> str:
    if pitch_type is None:
        return text[0].upper() + text[1:]
    return f"{pitch_name(pitch_type)}: {text}"


def _runs_message(runs: int) -> str:
    return "One run scores!" if runs == 1 else f"{runs} runs score!"


def _with_inning_runs(state: GameState, runs: int) -> GameState:
    """Credit ``runs`` to the batting team's line score for this inning."""
    if runs == 0:
        return state
    team = state.at_bat
    line = list(state.inning_runs[team])
    while len(line) < state.inning:
        line.append(0)
    line[state.inning - 1] += runs
    inning_runs = list(state.inning_runs)
    inning_runs[team] = tuple(line)
    return state.model_copy(update={"inning_runs": tuple(inning_runs)})


def _with_score(state: GameState, runs: int) -> GameState:
    if runs == 0:
        return state
    score = list(state.score)
    score[state.at_bat] += runs
    return _with_inning_runs(state.model_copy(update={"score": tuple(score)}), runs)


def _next_batter(state: GameState) -> GameState:
    team = state.at_bat
    index = list(state.batter_index)
    index[team] = (index[team] + 1) % state.lineup_size(team)
    return state.model_copy(update={"batter_index": tuple(index)})


def _out_entry(state: GameState) -> OutLogEntry:
    return OutLogEntry(
        team=state.at_bat,
        batter_num=state.batter_index[state.at_bat] + 1,
        inning=state.inning,
        half=state.at_bat,
    )


def initialize_game(
    teams: tuple[str, str] = ("Away", "Home"),
    lineups: tuple[list[str], list[str]] | None = None,
    tiebreak_runner: bool = True,
) -> GameState:
    """Build the opening state: top of the first, nobody on, 0-0 count."""
    lineup_order = ((), ())
    if lineups is not None:
        lineup_order = (tuple(lineups[0]), tuple(lineups[1]))
    return GameState(
        teams=tuple(teams),
        lineup_order=lineup_order,
        tiebreak_runner=tiebreak_runner,
    )


# ---------------------------------------------------------------------------
# Simulation engine
# ---------------------------------------------------------------------------

class SimulationEngine:
    """State reducer for one game.

    ``apply`` is total over the closed action set: every known action on
    every reachable state yields a state, and anything else raises
    ``InvalidActionError``. Once ``game_over`` is set the state is returned
    unchanged.
    """

    def __init__(
        self,
        rng: SeededRandom | int,
        announcer: Announcer | None = None,
        check_invariants: bool = True,
    ):
        self.rng = rng if isinstance(rng, SeededRandom) else SeededRandom(rng)
        self.announcer = announcer or Announcer()
        self.check_invariants = check_invariants
        self._handlers = {
            StrikeAction: self._on_strike,
            BallAction: self._on_ball,
            WaitAction: self._on_wait,
            FoulAction: self._on_foul,
            HitAction: self._on_hit,
            WalkAction: self._on_walk,
            StealAction: self._on_steal,
            BuntAction: self._on_bunt,
            IntentionalWalkAction: self._on_intentional_walk,
            PinchHitAction: self._on_pinch_hit,
            DefensiveShiftAction: self._on_defensive_shift,
            OnePitchModifierAction: self._on_one_pitch_modifier,
            SkipDecisionAction: self._on_skip_decision,
            SetPendingDecisionAction: self._on_set_pending_decision,
            ClearSuppressDecisionAction: self._on_clear_suppress,
        }

    def _say(self, message: str) -> None:
        self.announcer.say(message)

    # -- dispatch -----------------------------------------------------------

    def apply(self, state: GameState, action) -> GameState:
        """Apply one action and return the resulting state."""
        if isinstance(action, LogAction):
            self._say(action.message)
            return state
        handler = self._handlers.get(type(action))
        if handler is None:
            raise InvalidActionError(f"Unknown action: {action!r}")
        if state.game_over:
            logger.debug("Ignoring %s after game over", action.type)
            return state

        new_state = handler(state, action)
        if self.check_invariants:
            warn_if_impossible(state, new_state, action.type)
        return new_state

    # -- pitch actions ------------------------------------------------------

    def _bunt_armed(self, state: GameState) -> bool:
        return state.one_pitch_modifier is OnePitchModifier.BUNT

    def _on_strike(self, state: GameState, action: StrikeAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, Strategy.BALANCED)
        return self._player_strike(state, swung=action.swung, pitch_type=action.pitch_type)

    def _on_foul(self, state: GameState, action: FoulAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, Strategy.BALANCED)
        if state.strikes < 2:
            return self._player_strike(state, swung=True, foul=True, pitch_type=action.pitch_type)
        # A foul never makes the third strike.
        self._say(_pitch_message(action.pitch_type, "foul ball, count stays."))
        return state.model_copy(update={
            "pitch_key": state.pitch_key + 1,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "hit_type": None,
        })

    def _on_ball(self, state: GameState, action: BallAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, Strategy.BALANCED)
        return self._check_walkoff(self._player_ball(state, Strategy.BALANCED, action.pitch_type))

    def _on_wait(self, state: GameState, action: WaitAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, action.strategy)
        is_ball = wait_outcome(
            self.rng.draw_int(1000),
            action.strategy,
            state.one_pitch_modifier,
            action.pitch_type,
        )
        if is_ball:
            return self._check_walkoff(self._player_ball(state, action.strategy, action.pitch_type))
        return self._player_strike(state, swung=False, pitch_type=action.pitch_type)

    def _on_hit(self, state: GameState, action: HitAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, action.strategy)
        after = self._hit_ball(action.hit_type, state, action.strategy)
        return self._check_walkoff(after)

    def _on_walk(self, state: GameState, action: WalkAction) -> GameState:
        if self._bunt_armed(state):
            return self._bunt_attempt(state, Strategy.BALANCED)
        self._say("Ball four, take your base.")
        return self._check_walkoff(self._hit_ball(Hit.WALK, state, Strategy.BALANCED))

    # -- decision actions ---------------------------------------------------

    def _on_steal(self, state: GameState, action: StealAction) -> GameState:
        base = action.base
        bases = list(state.base_layout)
        if not bases[base] or bases[base + 1]:
            logger.warning("Steal from base %d not possible with bases %s", base, state.base_layout)
            return self._log_decision(state, state.model_copy(update={"pending_decision": None}), action)

        self._say(f"Steal attempt from {_ordinal(base + 1)}...")
        cleared = state.model_copy(update={"pending_decision": None, "one_pitch_modifier": None})
        if self.rng.draw_int(100) < action.success_pct:
            bases[base] = 0
            bases[base + 1] = 1
            self._say(f"Safe at {_ordinal(base + 2)}!")
            result = cleared.model_copy(update={"base_layout": tuple(bases)})
        else:
            bases[base] = 0
            self._say(f"Caught stealing {_ordinal(base + 2)}!")
            result = self._player_out(cleared.model_copy(update={"base_layout": tuple(bases)}))
        return self._log_decision(state, result, action)

    def _on_bunt(self, state: GameState, action: BuntAction) -> GameState:
        self._say(f"{state.current_batter_name()} will try to lay one down.")
        result = state.model_copy(update={
            "pending_decision": None,
            "one_pitch_modifier": OnePitchModifier.BUNT,
        })
        return self._log_decision(state, result, action)

    def _on_intentional_walk(self, state: GameState, action: IntentionalWalkAction) -> GameState:
        self._say("Intentional walk issued.")
        cleared = state.model_copy(update={"pending_decision": None, "suppress_next_decision": True})
        result = self._check_walkoff(
            self._hit_ball(Hit.WALK, cleared, Strategy.BALANCED, count_pitch=False)
        )
        return self._log_decision(state, result, action)

    def _on_pinch_hit(self, state: GameState, action: PinchHitAction) -> GameState:
        self._say(f"Pinch hitter in, swinging with a {action.strategy.value} approach.")
        result = state.model_copy(update={
            "pending_decision": None,
            "pinch_hitter_strategy": action.strategy,
        })
        return self._log_decision(state, result, action)

    def _on_defensive_shift(self, state: GameState, action: DefensiveShiftAction) -> GameState:
        if action.enabled != state.defensive_shift:
            self._say("The defense shifts." if action.enabled else "Normal defensive alignment.")
        result = state.model_copy(update={
            "pending_decision": None,
            "defensive_shift": action.enabled,
            "defensive_shift_offered": True,
        })
        return self._log_decision(state, result, action)

    def _on_one_pitch_modifier(self, state: GameState, action: OnePitchModifierAction) -> GameState:
        labels = {
            OnePitchModifier.TAKE: "Batter told to take.",
            OnePitchModifier.SWING: "Green light: swing away.",
            OnePitchModifier.PROTECT: "Batter choking up to protect the plate.",
            OnePitchModifier.NORMAL: "Normal swing.",
            OnePitchModifier.BUNT: "Batter squares early.",
        }
        self._say(labels[action.modifier])
        result = state.model_copy(update={
            "pending_decision": None,
            "one_pitch_modifier": action.modifier,
        })
        return self._log_decision(state, result, action)

    def _on_skip_decision(self, state: GameState, action: SkipDecisionAction) -> GameState:
        update = {"pending_decision": None}
        if action.timed_out:
            update["suppress_next_decision"] = True
        return self._log_decision(state, state.model_copy(update=update), action)

    def _on_set_pending_decision(self, state: GameState, action: SetPendingDecisionAction) -> GameState:
        update = {"pending_decision": action.decision}
        if action.decision.kind is DecisionKind.DEFENSIVE_SHIFT:
            update["defensive_shift_offered"] = True
        return state.model_copy(update=update)

    def _on_clear_suppress(self, state: GameState, action: ClearSuppressDecisionAction) -> GameState:
        return state.model_copy(update={"suppress_next_decision": False})

    def _log_decision(self, before: GameState, after: GameState, action) -> GameState:
        """Record a resolved decision as ``<pitch_key>:<choice>``."""
        if before.pending_decision is None:
            return after
        entry = f"{before.pitch_key}:{action.entry()}"
        return after.model_copy(update={"decision_log": after.decision_log + (entry,)})

    # -- count --------------------------------------------------------------

    def _player_strike(
        self,
        state: GameState,
        swung: bool,
        foul: bool = False,
        pitch_type: PitchType | None = None,
    ) -> GameState:
        pitch_key = state.pitch_key + 1
        strikes = state.strikes + 1
        if strikes == 3:
            text = "swing and a miss, strike three! He's out!" if swung else "called strike three! He's out!"
            self._say(_pitch_message(pitch_type, text))
            entry = _out_entry(state)
            after = self._player_out(state.model_copy(update={"pitch_key": pitch_key}), batter_completed=True)
            return after.model_copy(update={"strikeout_log": after.strikeout_log + (entry,)})
        if foul:
            text = f"foul ball, strike {strikes}."
        elif swung:
            text = f"swing and a miss, strike {strikes}."
        else:
            text = f"called strike {strikes}."
        self._say(_pitch_message(pitch_type, text))
        return state.model_copy(update={
            "strikes": strikes,
            "pitch_key": pitch_key,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "hit_type": None,
        })

    def _player_ball(
        self,
        state: GameState,
        strategy: Strategy,
        pitch_type: PitchType | None = None,
    ) -> GameState:
        balls = state.balls + 1
        if balls == 4:
            self._say(_pitch_message(pitch_type, "ball four, take your base!"))
            return self._hit_ball(Hit.WALK, state, strategy)
        self._say(_pitch_message(pitch_type, f"ball {balls}."))
        return state.model_copy(update={
            "balls": balls,
            "pitch_key": state.pitch_key + 1,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "hit_type": None,
        })

    # -- balls in play ------------------------------------------------------

    def _hit_ball(
        self,
        hit: Hit,
        state: GameState,
        strategy: Strategy,
        count_pitch: bool = True,
    ) -> GameState:
        """Put the batter on base, unless the fielders make a play first."""
        pitch_key = state.pitch_key + 1 if count_pitch else state.pitch_key
        roll = self.rng.draw_int(1000)
        shift_factor = 0.85 if state.defensive_shift else 1.0
        caught_threshold = js_round(750 * modifier(strategy, Stat.CONTACT) * shift_factor)

        if roll >= caught_threshold and hit not in (Hit.HOMERUN, Hit.WALK):
            if strategy is Strategy.POWER and self.rng.draw_int(100) < 15:
                hit = Hit.HOMERUN
                self._say("Power hitter turns it around, home run!")
            elif self.rng.draw_int(100) < 40:
                return self._ground_ball(state, pitch_key)
            else:
                self._say("Popped it up, that's an out.")
                return self._player_out(
                    state.model_copy(update={"pitch_key": pitch_key, "hit_type": None}),
                    batter_completed=True,
                )
        elif hit in HIT_CALLOUTS:
            self._say(HIT_CALLOUTS[hit])

        new_bases, runs = advance_runners(hit, state.base_layout)
        if runs:
            self._say(_runs_message(runs))

        entry = PlayLogEntry(
            inning=state.inning,
            half=state.at_bat,
            batter_num=state.batter_index[state.at_bat] + 1,
            team=state.at_bat,
            event=hit,
            runs=runs,
        )
        after = state.model_copy(update={
            "balls": 0,
            "strikes": 0,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "pinch_hitter_strategy": None,
            "pitch_key": pitch_key,
            "base_layout": new_bases,
            "hit_type": hit,
            "play_log": state.play_log + (entry,),
        })
        return _next_batter(_with_score(after, runs))

    def _ground_ball(self, state: GameState, pitch_key: int) -> GameState:
        first, second, third = state.base_layout
        grounded = state.model_copy(update={"pitch_key": pitch_key, "hit_type": None})

        if first and state.outs < 2:
            if self.rng.draw_int(100) < 65:
                self._say("Ground ball to the infield, double play!")
                # Runner forced at second first, then the batter at first.
                lead_out = self._player_out(grounded.model_copy(update={"base_layout": (0, second, third)}))
                return self._player_out(lead_out, batter_completed=True)
            self._say("Ground ball to the infield, fielder's choice.")
            return self._player_out(
                grounded.model_copy(update={"base_layout": (1, second, third)}),
                batter_completed=True,
            )

        self._say("Ground ball to the infield, out at first.")
        return self._player_out(grounded, batter_completed=True)

    def _bunt_attempt(self, state: GameState, strategy: Strategy) -> GameState:
        self._say("Batter squares to bunt...")
        roll = self.rng.draw_int(100)
        single_chance = 20 if strategy is Strategy.CONTACT else 8

        if roll < single_chance:
            self._say("Bunt single!")
            after = self._hit_ball(Hit.SINGLE, state.model_copy(update={"pending_decision": None}), strategy)
            return self._check_walkoff(after)

        first, second, third = state.base_layout
        pitch_key = state.pitch_key + 1

        if roll < single_chance + 12:
            self._say("Fielder's choice! Lead runner thrown out, batter reaches first safely.")
            new_bases = [1, 0, 0]
            runs = 0
            if first:
                runs += third
                new_bases[2] = second
            elif second:
                runs += third
            moved = self._bunt_runners(state, tuple(new_bases), runs, pitch_key)
            return self._check_walkoff(self._player_out(moved, batter_completed=True))

        if roll < 80:
            self._say("Sacrifice bunt! Runner(s) advance.")
            moved = self._bunt_runners(state, (0, first, second), third, pitch_key)
            return self._check_walkoff(self._player_out(moved, batter_completed=True))

        self._say("Bunt popped up, out!")
        return self._player_out(
            state.model_copy(update={"pending_decision": None, "hit_type": None, "pitch_key": pitch_key}),
            batter_completed=True,
        )

    def _bunt_runners(
        self,
        state: GameState,
        bases: tuple[int, int, int],
        runs: int,
        pitch_key: int,
    ) -> GameState:
        if runs:
            self._say(_runs_message(runs))
        moved = state.model_copy(update={
            "base_layout": bases,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "strikes": 0,
            "balls": 0,
            "hit_type": None,
            "pitch_key": pitch_key,
        })
        return _with_score(moved, runs)

    # -- outs and innings ---------------------------------------------------

    def _player_out(self, state: GameState, batter_completed: bool = False) -> GameState:
        """Record an out.

        ``batter_completed`` means the batter's plate appearance is over and
        the lineup turns over; otherwise a runner was retired and the same
        batter stays at the plate.
        """
        if batter_completed:
            state = _next_batter(state.model_copy(update={"out_log": state.out_log + (_out_entry(state),)}))
        outs = state.outs + 1
        if outs == 3:
            return self._end_half_inning(state)

        self._say("One out." if outs == 1 else "Two outs.")
        update = {
            "strikes": 0,
            "balls": 0,
            "outs": outs,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "hit_type": None,
        }
        if batter_completed:
            update["pinch_hitter_strategy"] = None
        return state.model_copy(update=update)

    def _end_half_inning(self, state: GameState) -> GameState:
        cleared = state.model_copy(update={
            "base_layout": (0, 0, 0),
            "outs": 0,
            "strikes": 0,
            "balls": 0,
            "pending_decision": None,
            "one_pitch_modifier": None,
            "hit_type": None,
            "suppress_next_decision": False,
            "pinch_hitter_strategy": None,
            "defensive_shift": False,
            "defensive_shift_offered": False,
        })
        away, home = state.score

        if state.at_bat == 0:
            if state.inning >= REGULATION_INNINGS and home > away:
                self._say(
                    f"{state.teams[1]} win! No need to play the bottom of the {_ordinal(state.inning)}."
                )
                return cleared.model_copy(update={"at_bat": 1, "game_over": True})
            next_state = cleared.model_copy(update={"at_bat": 1})
        else:
            if state.inning >= REGULATION_INNINGS and away != home:
                winner = state.teams[0] if away > home else state.teams[1]
                self._say(f"That's the ball game! {winner} win!")
                return cleared.model_copy(update={"game_over": True})
            next_state = cleared.model_copy(update={"at_bat": 0, "inning": state.inning + 1})

        logger.debug(
            "Half-inning over: %s of the %s",
            HALF_NAMES[next_state.at_bat], _ordinal(next_state.inning),
        )
        self._say(f"{state.teams[next_state.at_bat]} are now up to bat!")
        if next_state.inning > REGULATION_INNINGS and next_state.tiebreak_runner:
            self._say("Tiebreak rule: runner placed on 2nd base.")
            next_state = next_state.model_copy(update={"base_layout": (0, 1, 0)})
        return next_state

    def _check_walkoff(self, state: GameState) -> GameState:
        if state.game_over:
            return state
        away, home = state.score
        if state.inning >= REGULATION_INNINGS and state.at_bat == 1 and home > away:
            self._say(f"Walk-off! {state.teams[1]} win!")
            return state.model_copy(update={"game_over": True})
        return state


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------

def game_state_to_dict(state: GameState) -> dict:
    """JSON-ready snapshot for renderers and the HTTP layer."""
    data = state.model_dump(mode="json")
    data["half"] = HALF_NAMES[state.at_bat]
    data["batting_team"] = state.teams[state.at_bat]
    data["current_batter"] = state.current_batter_name()
    return data
