# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0", "pytest>=7.0"]
# ///
"""Tests for manager decision points.

Verifies:
1. Detection priority: intentional walk, steal, pinch hitter, bunt, counts
2. Steals are only offered above the success threshold
3. Options map to the right actions; ineligible options are rejected
4. Decision log entries parse back into the same actions
5. The countdown fires a timeout once, and never after close()
6. The per-at-bat hold clears when the next batter comes up
"""

import logging
import sys
from pathlib import Path
from unittest.mock import MagicMock

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from decisions import (
    DecisionEngine,
    DecisionStatus,
    action_for_option,
    compute_steal_success_pct,
    detect_decision,
    make_decision,
    parse_decision_entry,
)
from models import (
    BuntAction,
    DecisionKind,
    DefensiveShiftAction,
    GameState,
    IntentionalWalkAction,
    OnePitchModifier,
    OnePitchModifierAction,
    PinchHitAction,
    SkipDecisionAction,
    StealAction,
)
from strategy import Strategy
from timers import ManualClock, TimerLoop


# ===========================================================================
# Detection
# ===========================================================================

def test_steal_success_pct():
    assert compute_steal_success_pct(0, Strategy.BALANCED) == 70
    assert compute_steal_success_pct(0, Strategy.AGGRESSIVE) == 91
    assert compute_steal_success_pct(1, Strategy.AGGRESSIVE) == 78
    assert compute_steal_success_pct(1, Strategy.PATIENT) == 42


def test_steal_offered_to_aggressive_team():
    state = GameState(base_layout=(1, 0, 0))
    decision = detect_decision(state, Strategy.AGGRESSIVE)
    assert decision.kind is DecisionKind.STEAL
    assert decision.base == 0
    assert decision.success_pct == 91
    assert decision.options == ("steal", "skip")
    print("  test_steal_offered_to_aggressive_team: PASSED")


def test_balanced_runner_on_first_gets_bunt_instead_of_steal():
    decision = detect_decision(GameState(base_layout=(1, 0, 0)), Strategy.BALANCED)
    assert decision.kind is DecisionKind.BUNT


def test_steal_of_third():
    decision = detect_decision(GameState(base_layout=(0, 1, 0), outs=1), Strategy.AGGRESSIVE)
    assert decision.kind is DecisionKind.STEAL
    assert decision.base == 1


def test_no_steal_with_two_outs():
    decision = detect_decision(GameState(base_layout=(1, 0, 0), outs=2), Strategy.AGGRESSIVE)
    assert decision is None


def test_intentional_walk_late_and_close():
    state = GameState(inning=8, outs=2, base_layout=(0, 1, 0), score=(2, 1), inning_runs=((2,), (1,)))
    decision = detect_decision(state, Strategy.BALANCED)
    assert decision.kind is DecisionKind.IBB


def test_no_intentional_walk_in_blowout():
    state = GameState(inning=8, outs=2, base_layout=(0, 1, 0), score=(6, 1), inning_runs=((6,), (1,)))
    assert detect_decision(state, Strategy.BALANCED) is None


def test_pinch_hitter_outranks_bunt_late():
    state = GameState(inning=7, base_layout=(0, 1, 0))
    assert detect_decision(state, Strategy.BALANCED).kind is DecisionKind.PINCH_HITTER
    # Only at the start of the at-bat
    state = state.model_copy(update={"balls": 1})
    assert detect_decision(state, Strategy.BALANCED).kind is DecisionKind.BUNT


def test_no_second_pinch_hitter():
    state = GameState(inning=7, base_layout=(0, 1, 0), pinch_hitter_strategy=Strategy.CONTACT)
    assert detect_decision(state, Strategy.BALANCED).kind is DecisionKind.BUNT


def test_count_decisions():
    assert detect_decision(GameState(balls=3), Strategy.BALANCED).kind is DecisionKind.COUNT30
    assert detect_decision(GameState(strikes=2), Strategy.BALANCED).kind is DecisionKind.COUNT02
    assert detect_decision(GameState(balls=1, strikes=1), Strategy.BALANCED) is None


def test_suppressed_or_finished_game_has_no_decision():
    assert detect_decision(GameState(balls=3, suppress_next_decision=True), Strategy.BALANCED) is None
    assert detect_decision(GameState(balls=3, game_over=True), Strategy.BALANCED) is None


def test_timeout_carried_on_decision():
    decision = detect_decision(GameState(balls=3), Strategy.BALANCED, timeout=4.0)
    assert decision.timeout == 4.0


# ===========================================================================
# Options and log entries
# ===========================================================================

def test_action_for_option():
    steal = make_decision(DecisionKind.STEAL, base=1, success_pct=78)
    assert action_for_option(steal, "steal") == StealAction(base=1, success_pct=78)
    assert action_for_option(steal, "skip") == SkipDecisionAction()

    assert action_for_option(make_decision(DecisionKind.BUNT), "bunt", Strategy.CONTACT) == BuntAction(
        strategy=Strategy.CONTACT
    )
    assert action_for_option(make_decision(DecisionKind.IBB), "ibb") == IntentionalWalkAction()
    assert action_for_option(make_decision(DecisionKind.COUNT30), "take") == OnePitchModifierAction(
        modifier=OnePitchModifier.TAKE
    )
    assert action_for_option(make_decision(DecisionKind.PINCH_HITTER), "power") == PinchHitAction(
        strategy=Strategy.POWER
    )
    assert action_for_option(make_decision(DecisionKind.DEFENSIVE_SHIFT), "shift_off") == DefensiveShiftAction(
        enabled=False
    )


def test_ineligible_option_rejected():
    with pytest.raises(ValueError):
        action_for_option(make_decision(DecisionKind.BUNT), "steal")
    with pytest.raises(ValueError):
        action_for_option(make_decision(DecisionKind.COUNT02), "take")


@pytest.mark.parametrize(
    "action",
    [
        StealAction(base=0, success_pct=91),
        IntentionalWalkAction(),
        OnePitchModifierAction(modifier=OnePitchModifier.PROTECT),
        PinchHitAction(strategy=Strategy.CONTACT),
        DefensiveShiftAction(enabled=True),
        SkipDecisionAction(),
        SkipDecisionAction(timed_out=True),
        BuntAction(),
    ],
)
def test_log_entry_parses_back(action):
    key, parsed = parse_decision_entry(f"17:{action.entry()}")
    assert key == 17
    assert parsed == action


def test_unknown_entry_is_reported(caplog):
    with caplog.at_level(logging.WARNING, logger="decisions"):
        key, parsed = parse_decision_entry("4:hit-and-run")
    assert key == 4
    assert parsed is None
    assert caplog.records


# ===========================================================================
# Countdown
# ===========================================================================

def make_engine(timeout=10.0):
    loop = TimerLoop(clock=ManualClock())
    on_timeout = MagicMock()
    return loop, on_timeout, DecisionEngine(loop, on_timeout, timeout)


def test_countdown_times_out_once():
    loop, on_timeout, engine = make_engine()
    engine.open(make_decision(DecisionKind.BUNT, 10.0))
    assert engine.status is DecisionStatus.AWAITING
    loop.advance(4.0)
    assert engine.remaining() == pytest.approx(6.0)
    on_timeout.assert_not_called()
    loop.advance(6.0)
    on_timeout.assert_called_once()
    loop.advance(20.0)
    on_timeout.assert_called_once()
    print("  test_countdown_times_out_once: PASSED")


def test_close_cancels_countdown():
    loop, on_timeout, engine = make_engine()
    engine.open(make_decision(DecisionKind.BUNT, 10.0))
    loop.advance(9.0)
    engine.close()
    loop.advance(5.0)
    on_timeout.assert_not_called()
    assert engine.status is DecisionStatus.IDLE
    assert engine.remaining() == 0.0


def test_only_one_decision_at_a_time():
    _, _, engine = make_engine()
    engine.open(make_decision(DecisionKind.BUNT))
    with pytest.raises(RuntimeError):
        engine.open(make_decision(DecisionKind.COUNT30))


def test_hold_for_rest_of_at_bat():
    _, _, engine = make_engine()
    decision = make_decision(DecisionKind.COUNT30)
    before = GameState(balls=3, pending_decision=decision)
    after = GameState(balls=3)
    engine.observe(before, after)
    assert engine.skip_rest_of_at_bat is True

    # Same batter, next pitch: still held
    engine.observe(after, after.model_copy(update={"strikes": 1}))
    assert engine.skip_rest_of_at_bat is True

    # Next batter up
    engine.observe(after, after.model_copy(update={"balls": 0, "batter_index": (1, 0)}))
    assert engine.skip_rest_of_at_bat is False
