# /// script
# requires-python = ">=3.12"
# dependencies = [
#     "anthropic>=0.78.0",
#     "pydantic>=2.0",
# ]
# ///
"""Pitch-by-pitch baseball game -- main entry point.

Run with:  uv run game.py                     # simulate a game, AI managers on both sides
           uv run game.py --seed 30nl0i       # replay a seed (base 36 or decimal)
           uv run game.py --manage home       # you manage the home team at the prompt
           uv run game.py --manage away --agent   # Claude manages the visitors
           uv run game.py --watch --speed fast    # real-time auto-play
           uv run game.py --seed 30nl0i --replay "12:bunt,40:skip"
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Optional

from ai_manager import make_ai_decision
from box_score import format_box_score
from decisions import (
    DecisionEngine,
    action_for_option,
    detect_decision,
    make_decision,
)
from models import (
    ClearSuppressDecisionAction,
    DecisionKind,
    GameState,
    LogAction,
    PendingDecision,
    PitchRequest,
    SetPendingDecisionAction,
    SkipDecisionAction,
)
from persistence import EventRecord, GameSetup, SaveStore
from resolver import resolve_pitch
from rng import SeededRandom, format_seed, resolve_seed
from scheduler import AutoPlayScheduler, Speed
from simulation import Announcer, SimulationEngine, game_state_to_dict, initialize_game
from strategy import Strategy
from timers import TimerLoop

logger = logging.getLogger(__name__)

DecisionSource = Callable[[GameState, PendingDecision], Optional[object]]


# ---------------------------------------------------------------------------
# Game session
# ---------------------------------------------------------------------------

class GameSession:
    """One game: owns the random source, the state and every timer.

    Only ``dispatch`` replaces ``state``; everything else reads snapshots.
    A ``decision_source`` (the Claude agent, a prompt, a test double) answers
    the managed team's decisions as soon as they open; without one they wait
    for ``choose``/``resolve_decision`` or the countdown.
    """

    def __init__(
        self,
        setup: GameSetup,
        loop: TimerLoop | None = None,
        store: SaveStore | None = None,
        decision_source: DecisionSource | None = None,
        check_invariants: bool = True,
        seed_warning: str | None = None,
    ):
        self.setup = setup
        self.seed = setup.seed
        self.seed_warning = seed_warning
        self.rng = SeededRandom(setup.seed)
        self.announcer = Announcer()
        self.engine = SimulationEngine(self.rng, self.announcer, check_invariants=check_invariants)
        self.state = initialize_game(setup.teams, setup.lineups, setup.tiebreak_runner)
        self.loop = loop or TimerLoop()
        self.decisions = DecisionEngine(self.loop, self._on_decision_timeout, setup.decision_timeout)
        self.decision_source = decision_source
        self.scheduler: AutoPlayScheduler | None = None
        self.events: list[EventRecord] = []
        self.store = store
        self.save_id: str | None = None
        self._dispatching = False

        if store is not None:
            try:
                self.save_id = store.create_save(setup)
            except Exception as exc:
                logger.error("Could not create save for seed %s: %s", format_seed(self.seed), exc)

    @classmethod
    def create(
        cls,
        seed: int | str | None = None,
        teams: tuple[str, str] = ("Away", "Home"),
        lineups: tuple[list[str], list[str]] | None = None,
        managed_team: int | None = None,
        strategy: Strategy | str = Strategy.BALANCED,
        tiebreak_runner: bool = True,
        decision_timeout: float = 10.0,
        **kwargs,
    ) -> GameSession:
        """Build a session from loose arguments; bad seed text falls back to a fresh seed."""
        resolved, warning = resolve_seed(seed)
        setup = GameSetup(
            seed=resolved,
            teams=teams,
            lineups=lineups or ([], []),
            managed_team=managed_team,
            strategy=Strategy(strategy),
            tiebreak_runner=tiebreak_runner,
            decision_timeout=decision_timeout,
        )
        return cls(setup, seed_warning=warning, **kwargs)

    # -- views --------------------------------------------------------------

    @property
    def log(self) -> list[str]:
        return self.announcer.lines

    @property
    def managed_team(self) -> int | None:
        return self.setup.managed_team

    def strategy_for(self, state: GameState) -> Strategy:
        """Strategy the resolver uses for the batter now at the plate."""
        if state.pinch_hitter_strategy is not None:
            return state.pinch_hitter_strategy
        if self.managed_team is not None and state.at_bat == self.managed_team:
            return self.setup.strategy
        return Strategy.BALANCED

    def snapshot(self) -> dict:
        data = game_state_to_dict(self.state)
        data["seed"] = format_seed(self.seed)
        data["decision_status"] = self.decisions.status.value
        data["decision_remaining"] = round(self.decisions.remaining(), 2)
        return data

    # -- dispatch -----------------------------------------------------------

    def dispatch(self, action, record: bool = True) -> GameState:
        """Run one reducer step. Never re-entrant."""
        if self._dispatching:
            raise RuntimeError("dispatch called while another step is in progress")
        self._dispatching = True
        try:
            before = self.state
            after = self.engine.apply(before, action)
            self.state = after
        finally:
            self._dispatching = False

        self.decisions.observe(before, after)
        if record and not isinstance(action, LogAction):
            self.record_event(action)
        if after.game_over and not before.game_over:
            self._finish()
        return after

    def announce(self, message: str) -> None:
        self.dispatch(LogAction(message=message))

    def record_event(self, action) -> None:
        record = EventRecord(seed=self.seed, index=len(self.events), action=action)
        self.events.append(record)
        if self.store is None or self.save_id is None:
            return
        try:
            self.store.append_events(self.save_id, [record])
            self.store.update_progress(self.save_id, len(self.events))
        except Exception as exc:
            logger.error("Save %s: could not persist event %d: %s", self.save_id, record.index, exc)

    def _finish(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()
        self.decisions.close()
        logger.info(
            "Game over: %s %d, %s %d",
            self.state.teams[0], self.state.score[0], self.state.teams[1], self.state.score[1],
        )

    # -- pitches ------------------------------------------------------------

    def pitch(self) -> GameState:
        """Advance by one pitch, or stop at a decision point."""
        state = self.state
        if state.game_over or state.pending_decision is not None:
            return state

        managed = self.managed_team
        timeout = self.setup.decision_timeout
        count_fresh = state.balls == 0 and state.strikes == 0

        if managed is not None and not self.decisions.skip_rest_of_at_bat:
            if state.at_bat != managed:
                if not state.defensive_shift_offered and count_fresh:
                    self._open_decision(make_decision(DecisionKind.DEFENSIVE_SHIFT, timeout))
                    return self.state
            elif state.suppress_next_decision:
                self.dispatch(ClearSuppressDecisionAction())
            else:
                decision = detect_decision(state, self.setup.strategy, timeout)
                if decision is not None:
                    self._open_decision(decision)
                    return self.state

        replaced = self._ai_turn()
        state = self.state
        if state.game_over or replaced:
            return state

        action = resolve_pitch(state, self.rng, self.strategy_for(state))
        self.dispatch(action, record=False)
        self.record_event(PitchRequest())
        return self.state

    def pitch_now(self) -> GameState:
        """Manual pitch: takes over from auto-play."""
        self.stop_auto_play()
        return self.pitch()

    def _ai_turn(self) -> bool:
        """Let the AI manage whichever side nobody else manages.

        Returns True when the AI's move stands in for this pitch (a steal).
        """
        managed = self.managed_team
        state = self.state

        if (managed is None or state.fielding != managed) and not state.defensive_shift_offered \
                and state.balls == 0 and state.strikes == 0:
            ai = make_ai_decision(state, make_decision(DecisionKind.DEFENSIVE_SHIFT))
            if ai is not None:
                self.dispatch(ai.action)
                self.announce(f"The manager: {ai.reason}.")

        state = self.state
        if managed is not None and state.at_bat == managed:
            return False
        if state.suppress_next_decision:
            self.dispatch(ClearSuppressDecisionAction())
            return False
        decision = detect_decision(state, Strategy.BALANCED)
        if decision is None:
            return False
        ai = make_ai_decision(state, decision)
        if ai is None:
            return False
        self.dispatch(ai.action)
        self.announce(f"The manager: {ai.reason}.")
        return ai.replaces_pitch

    # -- decisions ----------------------------------------------------------

    def _open_decision(self, decision: PendingDecision) -> None:
        self.decisions.open(decision)
        self.dispatch(SetPendingDecisionAction(decision=decision))
        if self.decision_source is None:
            return
        try:
            action = self.decision_source(self.state, decision)
        except Exception as exc:
            logger.error("Decision source failed on %s: %s", decision.kind.value, exc)
            action = None
        self.resolve_decision(action if action is not None else SkipDecisionAction())

    def resolve_decision(self, action) -> bool:
        """Apply a manager's answer. Returns False when nothing is pending (late answer)."""
        if self.state.pending_decision is None:
            logger.info("Dropping late decision %s", getattr(action, "type", action))
            return False
        self.decisions.close()
        self.dispatch(action)
        if self.scheduler is not None:
            self.scheduler.resume()
        return True

    def choose(self, option: str) -> bool:
        """Resolve the pending decision by option name (``"steal"``, ``"skip"``...)."""
        pending = self.state.pending_decision
        if pending is None:
            logger.info("Dropping late choice %r", option)
            return False
        return self.resolve_decision(action_for_option(pending, option, self.strategy_for(self.state)))

    def _on_decision_timeout(self) -> None:
        if self.state.pending_decision is None:
            return
        self.resolve_decision(SkipDecisionAction(timed_out=True))

    # -- auto-play ----------------------------------------------------------

    def start_auto_play(self, speed: Speed | str = Speed.NORMAL) -> AutoPlayScheduler:
        if self.scheduler is None:
            self.scheduler = AutoPlayScheduler(self.loop, self, Speed(speed))
        else:
            self.scheduler.set_speed(Speed(speed))
        if not self.state.game_over:
            self.scheduler.start()
        return self.scheduler

    def stop_auto_play(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()

    def close(self) -> None:
        """Tear down: no timer of this session fires afterwards."""
        self.stop_auto_play()
        self.decisions.close()
        self.loop.cancel_all()


# ---------------------------------------------------------------------------
# Terminal decision prompt
# ---------------------------------------------------------------------------

def prompt_decision(state: GameState, decision: PendingDecision) -> str:
    """Ask at the terminal; empty or unknown answers skip."""
    half = "Top" if state.at_bat == 0 else "Bottom"
    print(
        f"\n  [{half} {state.inning}] {state.outs} out, {state.balls}-{state.strikes}, "
        f"bases {state.base_layout}, score {state.score[0]}-{state.score[1]}"
    )
    detail = f" ({decision.success_pct}% success)" if decision.success_pct is not None else ""
    print(f"  Decision: {decision.kind.value}{detail}")
    answer = input(f"  Choose {'/'.join(decision.options)} [skip]: ").strip().lower()
    return answer if answer in decision.options else "skip"


def _prompt_source(strategy: Strategy) -> DecisionSource:
    def source(state: GameState, decision: PendingDecision):
        return action_for_option(decision, prompt_decision(state, decision), strategy)
    return source


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def run_sim(session: GameSession, max_pitches: int = 5000) -> GameState:
    """Drive a session to the end without timers."""
    pitches = 0
    while not session.state.game_over and pitches < max_pitches:
        session.pitch()
        if session.state.pending_decision is not None:
            # No one to answer: same as letting the clock run out.
            session.resolve_decision(SkipDecisionAction(timed_out=True))
        pitches += 1
    if not session.state.game_over:
        logger.warning("Stopped after %d pitches without a final out", max_pitches)
    return session.state


def main(argv: list[str] | None = None) -> int:
    from config import create_anthropic_client, load_settings

    parser = argparse.ArgumentParser(description="Deterministic pitch-by-pitch baseball game.")
    parser.add_argument("--seed", default=None, help="Seed, base 36 (e.g. 30nl0i) or decimal.")
    parser.add_argument(
        "--manage", choices=("home", "away"), default=None,
        help="Manage one team; the other is run by the AI manager.",
    )
    parser.add_argument(
        "--strategy", choices=[s.value for s in Strategy], default="balanced",
        help="Batting strategy for the managed team.",
    )
    parser.add_argument("--speed", choices=[s.value for s in Speed], default=None)
    parser.add_argument(
        "--watch", action="store_true",
        help="Real-time auto-play; unanswered decisions time out.",
    )
    parser.add_argument("--agent", action="store_true", help="Let Claude answer the managed team's decisions.")
    parser.add_argument("--replay", default=None, metavar="DECISIONS", help="Comma-separated decision log to replay.")
    parser.add_argument(
        "--tiebreak", action=argparse.BooleanOptionalAction, default=True,
        help="Runner on second in extra innings.",
    )
    parser.add_argument("--quiet", action="store_true", help="Only print the final box score.")
    args = parser.parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.WARNING),
        format="%(levelname)s: %(message)s",
    )

    managed = {"away": 0, "home": 1}.get(args.manage)
    speed = args.speed or settings.speed

    if args.replay is not None:
        from replay import replay_decisions

        seed, warning = resolve_seed(args.seed)
        if warning:
            print(f"Warning: {warning}", file=sys.stderr)
        setup = GameSetup(
            seed=seed, managed_team=managed, strategy=Strategy(args.strategy),
            tiebreak_runner=args.tiebreak, decision_timeout=settings.decision_timeout,
        )
        decisions = [d for d in args.replay.split(",") if d]
        session = replay_decisions(setup, decisions)
        if not args.quiet:
            print("\n".join(session.log))
        print()
        print(format_box_score(session.state))
        return 0

    source = None
    if managed is not None:
        if args.agent:
            from agent import ClaudeManager

            source = ClaudeManager(create_anthropic_client(), model=settings.agent_model).as_decision_source(
                managed, Strategy(args.strategy)
            )
        elif not args.watch:
            source = _prompt_source(Strategy(args.strategy))

    session = GameSession.create(
        seed=args.seed,
        managed_team=managed,
        strategy=args.strategy,
        tiebreak_runner=args.tiebreak,
        decision_timeout=settings.decision_timeout,
        decision_source=source,
        check_invariants=settings.check_invariants,
    )
    if session.seed_warning:
        print(f"Warning: {session.seed_warning}", file=sys.stderr)
    if not args.quiet:
        session.announcer.subscribe(print)

    print(f"Seed {format_seed(session.seed)}: {session.state.teams[0]} at {session.state.teams[1]}")
    print("=" * 72)

    if args.watch:
        session.start_auto_play(speed)
        try:
            session.loop.run(until=lambda: session.state.game_over)
        except KeyboardInterrupt:
            print("\nStopped.")
        finally:
            session.close()
    else:
        run_sim(session)

    print()
    print(format_box_score(session.state))
    if session.state.decision_log:
        print(f"\nDecisions: {','.join(session.state.decision_log)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
