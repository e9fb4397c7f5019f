# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for the game session.

Verifies:
1. Decisions open for the managed team and are answered by option name
2. Late answers are dropped once a decision has resolved
3. Unanswered decisions time out, are logged and hold the next decision
4. A decision source answers as soon as a decision opens; failures skip
5. The fielding manager is offered the shift at the start of a half-inning
6. dispatch is not re-entrant
7. Events go to the save store; store failures are logged, never raised
8. Auto-play runs a whole game on the timer loop
"""

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from decisions import make_decision
from game import GameSession, run_sim
from models import (
    DecisionKind,
    GameState,
    OnePitchModifier,
    OnePitchModifierAction,
    PitchRequest,
    SkipDecisionAction,
    StrikeAction,
)
from persistence import GameSetup
from scheduler import Speed
from strategy import Strategy
from timers import ManualClock, TimerLoop


def make_session(seed=12345, managed_team=None, **kwargs):
    setup = GameSetup(seed=seed, managed_team=managed_team, decision_timeout=10.0)
    return GameSession(setup, loop=TimerLoop(clock=ManualClock()), **kwargs)


# ===========================================================================
# Decisions
# ===========================================================================

def test_choose_resolves_pending_decision():
    session = make_session(managed_team=0)
    session.state = GameState(balls=3)
    session.pitch()
    assert session.state.pending_decision.kind is DecisionKind.COUNT30
    assert session.snapshot()["decision_status"] == "awaiting"

    assert session.choose("take") is True
    assert session.state.pending_decision is None
    assert session.state.one_pitch_modifier is OnePitchModifier.TAKE
    assert session.state.decision_log == ("0:take",)
    print("  test_choose_resolves_pending_decision: PASSED")


def test_late_answer_is_dropped():
    session = make_session(managed_team=0)
    session.state = GameState(balls=3)
    session.pitch()
    session.choose("skip")
    assert session.resolve_decision(OnePitchModifierAction(modifier=OnePitchModifier.SWING)) is False
    assert session.choose("swing") is False
    assert session.state.one_pitch_modifier is None
    assert session.state.decision_log == ("0:skip",)


def test_ineligible_choice_raises():
    session = make_session(managed_team=0)
    session.state = GameState(balls=3)
    session.pitch()
    with pytest.raises(ValueError):
        session.choose("bunt")
    assert session.state.pending_decision is not None


def test_timeout_skips_and_holds_next_decision():
    session = make_session(managed_team=0)
    session.state = GameState(balls=3)
    session.pitch()
    session.loop.advance(9.9)
    assert session.state.pending_decision is not None
    session.loop.advance(0.2)
    assert session.state.pending_decision is None
    assert session.state.decision_log == ("0:timeout",)
    assert session.state.suppress_next_decision is True

    # The next pitch is thrown, not another decision.
    session.pitch()
    assert session.state.pending_decision is None
    assert session.state.pitch_key == 1
    print("  test_timeout_skips_and_holds_next_decision: PASSED")


def test_answer_cancels_countdown():
    session = make_session(managed_team=0)
    session.state = GameState(balls=3)
    session.pitch()
    session.choose("take")
    session.loop.advance(60.0)
    assert session.state.decision_log == ("0:take",)


def test_decision_source_answers_immediately():
    seen = []

    def source(state, decision):
        seen.append(decision.kind)
        return OnePitchModifierAction(modifier=OnePitchModifier.TAKE)

    session = make_session(managed_team=0, decision_source=source)
    session.state = GameState(balls=3)
    session.pitch()
    assert seen == [DecisionKind.COUNT30]
    assert session.state.pending_decision is None
    assert session.state.decision_log == ("0:take",)


def test_failing_decision_source_skips(caplog):
    def source(state, decision):
        raise ConnectionError("agent offline")

    session = make_session(managed_team=0, decision_source=source)
    session.state = GameState(balls=3)
    with caplog.at_level(logging.ERROR, logger="game"):
        session.pitch()
    assert session.state.decision_log == ("0:skip",)
    assert any("agent offline" in r.getMessage() for r in caplog.records)


def test_fielding_manager_offered_shift():
    session = make_session(managed_team=1)
    session.pitch()
    decision = session.state.pending_decision
    assert decision.kind is DecisionKind.DEFENSIVE_SHIFT
    assert session.state.defensive_shift_offered is True
    session.choose("shift_on")
    assert session.state.defensive_shift is True
    assert session.state.decision_log == ("0:shift:on",)


# ===========================================================================
# Dispatch and persistence
# ===========================================================================

def test_dispatch_is_not_reentrant():
    session = make_session()
    errors = []

    def meddler(_message):
        try:
            session.dispatch(StrikeAction())
        except RuntimeError as exc:
            errors.append(exc)

    session.announcer.subscribe(meddler)
    session.dispatch(StrikeAction())
    assert len(errors) == 1
    assert session.state.strikes == 1


def test_events_recorded_and_stored():
    store = MagicMock()
    store.create_save.return_value = "save-1"
    session = make_session(store=store)
    session.pitch()
    session.pitch()

    assert session.save_id == "save-1"
    assert [e.index for e in session.events] == list(range(len(session.events)))
    assert all(e.seed == session.seed for e in session.events)
    assert sum(isinstance(e.action, PitchRequest) for e in session.events) == 2
    store.update_progress.assert_called_with("save-1", len(session.events))


def test_store_failure_is_logged(caplog):
    store = MagicMock()
    store.create_save.return_value = "save-1"
    store.append_events.side_effect = OSError("disk full")
    session = make_session(store=store)
    with caplog.at_level(logging.ERROR, logger="game"):
        session.pitch()
    assert session.state.pitch_key == 1
    assert any("disk full" in r.getMessage() for r in caplog.records)


def test_create_with_bad_seed_warns():
    session = GameSession.create(seed="???", loop=TimerLoop(clock=ManualClock()))
    assert session.seed_warning is not None
    assert 0 <= session.seed <= 0xFFFFFFFF


def test_create_parses_base36_seed():
    session = GameSession.create(seed="30nl0i", strategy="power")
    assert session.seed == int("30nl0i", 36)
    assert session.setup.strategy is Strategy.POWER


# ===========================================================================
# Whole games
# ===========================================================================

def test_run_sim_unmanaged_game():
    session = make_session(seed=42)
    state = run_sim(session)
    assert state.game_over is True
    assert state.decision_log == ()
    assert session.log[-1]


def test_run_sim_managed_game_times_out_every_decision():
    session = make_session(seed=42, managed_team=0)
    state = run_sim(session)
    assert state.game_over is True
    assert all(entry.endswith(":timeout") for entry in state.decision_log)


def test_same_seed_same_session_game():
    a = run_sim(make_session(seed=99, managed_team=1))
    b = run_sim(make_session(seed=99, managed_team=1))
    assert a == b


def test_auto_play_runs_to_the_end():
    session = make_session(seed=7)
    scheduler = session.start_auto_play(Speed.FAST)
    for _ in range(200):
        if session.state.game_over:
            break
        session.loop.advance(60.0)
    assert session.state.game_over is True
    assert scheduler.running is False
    print("  test_auto_play_runs_to_the_end: PASSED")


def test_auto_play_waits_for_decision():
    session = make_session(seed=7, managed_team=1)
    session.start_auto_play(Speed.FAST)
    session.loop.advance(Speed.FAST.interval + 0.01)
    assert session.state.pending_decision is not None
    key = session.state.pitch_key
    session.loop.advance(5.0)
    assert session.state.pitch_key == key
    session.choose("skip")
    session.loop.advance(Speed.FAST.interval + 0.01)
    assert session.state.pitch_key == key + 1


def test_pitch_now_takes_over_from_auto_play():
    session = make_session(seed=7)
    scheduler = session.start_auto_play(Speed.SLOW)
    session.pitch_now()
    assert scheduler.running is False
    assert session.state.pitch_key == 1


def test_close_cancels_every_timer():
    session = make_session(seed=7, managed_team=0)
    session.state = GameState(balls=3)
    session.start_auto_play()
    session.pitch()
    session.close()
    assert session.loop.pending == 0
