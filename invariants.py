# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Sanity checks on game states between reducer steps.

The checks never raise: an impossible state is reported through logging so
a live game keeps going while the problem is visible in the logs and tests.
"""

from __future__ import annotations

import logging

from models import GameState

logger = logging.getLogger(__name__)

PITCH_ACTION_TYPES = frozenset({"strike", "ball", "wait", "foul", "hit", "walk"})


def check_game_invariants(state: GameState) -> list[str]:
    """Return a description of every invariant ``state`` violates."""
    problems = []
    if not 0 <= state.strikes <= 2:
        problems.append(f"strikes out of range: {state.strikes}")
    if not 0 <= state.balls <= 3:
        problems.append(f"balls out of range: {state.balls}")
    if not 0 <= state.outs <= 2:
        problems.append(f"outs out of range: {state.outs}")
    if state.inning < 1:
        problems.append(f"inning below 1: {state.inning}")
    if len(state.base_layout) != 3 or any(b not in (0, 1) for b in state.base_layout):
        problems.append(f"bad base layout: {state.base_layout}")
    for team in (0, 1):
        line_total = sum(state.inning_runs[team])
        if line_total != state.score[team]:
            problems.append(
                f"team {team} score {state.score[team]} != line score total {line_total}"
            )
        if not 0 <= state.batter_index[team] < state.lineup_size(team):
            problems.append(f"team {team} batter index out of range: {state.batter_index[team]}")
    return problems


def check_transition(before: GameState, after: GameState, action_type: str) -> list[str]:
    """Return problems with the step ``before -> after`` caused by ``action_type``."""
    problems = check_game_invariants(after)
    if before.game_over:
        if after != before:
            problems.append("state changed after game over")
        return problems
    if after.score[0] < before.score[0] or after.score[1] < before.score[1]:
        problems.append(f"score decreased: {before.score} -> {after.score}")
    if after.inning < before.inning:
        problems.append(f"inning decreased: {before.inning} -> {after.inning}")
    expected_step = 1 if action_type in PITCH_ACTION_TYPES else 0
    if after.pitch_key - before.pitch_key != expected_step:
        problems.append(
            f"pitch_key moved {before.pitch_key} -> {after.pitch_key} on {action_type}"
        )
    return problems


def warn_if_impossible(before: GameState, after: GameState, action_type: str) -> bool:
    """Log a warning per broken invariant. Returns True when all checks pass."""
    problems = check_transition(before, after, action_type)
    for problem in problems:
        logger.warning("Impossible state after %s: %s", action_type, problem)
    return not problems
