# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for replay, saves and share links.

Verifies:
1. A seed plus a decision log rebuilds the live game exactly
2. A recorded event stream rebuilds the live game exactly
3. Saved games survive export / import and restore up to their progress
4. Events from another seed are rejected
5. Share-link query strings carry the seed in base 36 and the decision log
6. A save taken mid-decision restores with a live countdown, and auto-play goes on
7. Decision-entry records resolve the pending decision; stray ones are rejected
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from decisions import DecisionStatus
from game import GameSession, run_sim
from models import GameState, PitchRequest
from persistence import EventRecord, GameSetup, SaveGame, export_save, import_save
from replay import (
    ReplayError,
    build_replay_query,
    parse_replay_query,
    replay_decisions,
    replay_events,
    restore_save,
    save_session,
)
from strategy import Strategy
from timers import ManualClock, TimerLoop


def play_live(setup: GameSetup, answer_first_option: bool = True) -> GameSession:
    """Play a game answering every decision with its first option."""
    session = GameSession(setup, loop=TimerLoop(clock=ManualClock()))
    for _ in range(10000):
        if session.state.game_over:
            break
        session.pitch()
        pending = session.state.pending_decision
        if pending is not None:
            if answer_first_option:
                session.choose(pending.options[0])
            else:
                session.loop.advance(setup.decision_timeout)
    return session


# ===========================================================================
# Decision log replay
# ===========================================================================

@pytest.mark.parametrize("seed", [1, 424242, int("30nl0i", 36)])
def test_decision_log_replays_live_game(seed):
    setup = GameSetup(seed=seed, managed_team=0, strategy=Strategy.AGGRESSIVE)
    live = play_live(setup)
    assert live.state.game_over
    assert live.state.decision_log

    replayed = replay_decisions(setup, live.state.decision_log)
    assert replayed.state == live.state
    assert replayed.log == live.log
    print(f"  test_decision_log_replays_live_game[{seed}]: PASSED")


def test_timed_out_decisions_replay():
    setup = GameSetup(seed=2024, managed_team=1)
    live = play_live(setup, answer_first_option=False)
    assert all(e.endswith(":timeout") for e in live.state.decision_log)
    assert replay_decisions(setup, live.state.decision_log).state == live.state


def test_missing_entries_resolve_as_timeouts():
    setup = GameSetup(seed=2024, managed_team=1)
    live = run_sim(GameSession(setup))
    assert replay_decisions(setup, []).state == live


def test_replay_stops_at_pitch_key():
    setup = GameSetup(seed=5)
    session = replay_decisions(setup, [], until_pitch_key=10)
    assert session.state.pitch_key == 10
    assert not session.state.game_over


# ===========================================================================
# Event stream replay and saves
# ===========================================================================

def test_event_stream_replays_live_game():
    setup = GameSetup(seed=31337, managed_team=0, strategy=Strategy.CONTACT)
    live = play_live(setup)
    assert any(isinstance(e.action, PitchRequest) for e in live.events)

    replayed = replay_events(setup, live.events)
    assert replayed.state == live.state


def test_event_from_other_seed_rejected():
    setup = GameSetup(seed=1)
    with pytest.raises(ReplayError):
        replay_events(setup, [EventRecord(seed=2, index=0, action=PitchRequest())])


def test_save_export_import_restore():
    setup = GameSetup(seed=8675309, managed_team=1)
    live = play_live(setup)
    save = save_session(live)
    assert save.progress == len(live.events)

    restored = restore_save(import_save(export_save(save)))
    assert restored.state == live.state


def test_restore_respects_progress():
    setup = GameSetup(seed=8675309)
    live = play_live(setup)
    save = SaveGame(setup=setup, events=live.events, progress=0)
    assert restore_save(save).state == GameState()


def test_import_rejects_garbage():
    with pytest.raises(ValueError):
        import_save('{"setup": {"seed": -4}}')


# ===========================================================================
# Share links
# ===========================================================================

def test_query_round_trip():
    seed = int("30nl0i", 36)
    query = build_replay_query(seed, ["0:shift:on", "12:bunt", "40:timeout"])
    assert "seed=30nl0i" in query
    assert parse_replay_query(query) == (seed, ["0:shift:on", "12:bunt", "40:timeout"])
    assert parse_replay_query("?" + query)[0] == seed


def test_query_without_decisions():
    assert build_replay_query(35, []) == "seed=z"
    assert parse_replay_query("seed=z") == (35, [])


def test_query_without_seed_rejected():
    with pytest.raises(ReplayError):
        parse_replay_query("decisions=1:bunt")


# ===========================================================================
# Open decisions
# ===========================================================================

def pitch_until_decision(setup: GameSetup) -> GameSession:
    session = GameSession(setup, loop=TimerLoop(clock=ManualClock()))
    while session.state.pending_decision is None:
        assert not session.state.game_over
        session.pitch()
    return session


def test_restore_mid_decision_restarts_countdown():
    setup = GameSetup(seed=1, managed_team=0)
    live = pitch_until_decision(setup)

    restored = restore_save(save_session(live), loop=TimerLoop(clock=ManualClock()))
    assert restored.state == live.state
    assert restored.decisions.status is DecisionStatus.AWAITING
    assert restored.loop.pending == 1

    restored.loop.advance(setup.decision_timeout)
    assert restored.state.pending_decision is None
    assert restored.state.decision_log[-1] == f"{live.state.pitch_key}:timeout"


def test_restored_decision_does_not_stall_auto_play():
    setup = GameSetup(seed=1, managed_team=0)
    live = pitch_until_decision(setup)
    pitch_key = live.state.pitch_key

    clock = ManualClock()
    restored = restore_save(save_session(live), loop=TimerLoop(clock=clock, sleep=clock.advance))
    restored.start_auto_play("fast")
    restored.loop.run(until=lambda: restored.state.game_over)
    assert restored.state.game_over
    assert restored.state.pitch_key > pitch_key


def test_decision_entry_record_resolves_pending():
    setup = GameSetup(seed=1, managed_team=0)
    live = pitch_until_decision(setup)
    records = list(live.events)
    records.append(EventRecord(seed=1, index=len(records), decision=f"{live.state.pitch_key}:skip"))
    live.choose("skip")

    rebuilt = replay_events(setup, records)
    assert rebuilt.state == live.state
    assert rebuilt.decisions.status is DecisionStatus.IDLE


def test_decision_entry_record_needs_pending_decision():
    setup = GameSetup(seed=1, managed_team=0)
    live = pitch_until_decision(setup)
    key = live.state.pitch_key
    live.choose("skip")
    records = list(live.events)

    with pytest.raises(ReplayError, match="no decision is pending"):
        replay_events(setup, records + [EventRecord(seed=1, index=len(records), decision=f"{key}:skip")])


def test_decision_entry_record_for_wrong_pitch_rejected():
    setup = GameSetup(seed=1, managed_team=0)
    live = pitch_until_decision(setup)
    records = list(live.events)
    stale = EventRecord(seed=1, index=len(records), decision=f"{live.state.pitch_key + 5}:skip")
    with pytest.raises(ReplayError, match="is for pitch"):
        replay_events(setup, records + [stale])


def test_empty_record_rejected():
    with pytest.raises(ReplayError, match="neither"):
        replay_events(GameSetup(seed=1), [EventRecord(seed=1, index=0)])
