# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Rebuild a game from its seed.

Two inputs are supported. A decision log (the ``<pitch_key>:<choice>``
entries a session accumulates) re-drives a fresh session pitch by pitch and
answers each decision point from the log. A recorded event stream re-applies
every action, re-drawing the pitch outcomes. Neither uses the scheduler, and
both reproduce the live game's state exactly.
"""

from __future__ import annotations

import logging
from typing import Iterable
from urllib.parse import parse_qs, urlencode

from decisions import DecisionStatus, parse_decision_entry
from game import GameSession
from models import PitchRequest, SkipDecisionAction
from persistence import EventRecord, GameSetup, SaveGame
from resolver import resolve_pitch
from rng import format_seed, parse_seed
from timers import TimerLoop

logger = logging.getLogger(__name__)

MAX_REPLAY_PITCHES = 3000


class ReplayError(ValueError):
    """The replay input cannot describe a game of this seed."""


def replay_decisions(
    setup: GameSetup,
    decisions: Iterable[str],
    until_pitch_key: int | None = None,
    max_pitches: int = MAX_REPLAY_PITCHES,
) -> GameSession:
    """Re-drive a session from ``setup`` and a decision log.

    At every decision point, entries for earlier pitches are passed over and
    the entry logged at the current ``pitch_key`` answers it. A decision with
    no entry resolves as a timeout, which is what happened live when nobody
    answered.
    """
    session = GameSession(setup)
    entries = [parse_decision_entry(e, setup.strategy) for e in decisions]
    cursor = 0
    steps = 0

    while not session.state.game_over and steps < max_pitches * 4:
        state = session.state
        if until_pitch_key is not None and state.pitch_key >= until_pitch_key and state.pending_decision is None:
            break
        steps += 1

        if state.pending_decision is None:
            session.pitch()
            continue

        while cursor < len(entries) and entries[cursor][0] < state.pitch_key:
            logger.debug("Skipping stale decision entry for pitch %d", entries[cursor][0])
            cursor += 1
        action = None
        if cursor < len(entries) and entries[cursor][0] == state.pitch_key:
            action = entries[cursor][1]
            cursor += 1
        session.resolve_decision(action or SkipDecisionAction(timed_out=True))

    if cursor < len(entries):
        logger.info("%d decision entries were not used", len(entries) - cursor)
    return session


def replay_events(
    setup: GameSetup,
    records: Iterable[EventRecord],
    loop: TimerLoop | None = None,
) -> GameSession:
    """Re-apply a recorded event stream onto a fresh session.

    Records carry either an action or a ``<pitch_key>:<choice>`` decision
    entry. A decision still open at the end of the stream gets a fresh
    countdown, so the restored session times it out like the live one would.
    """
    session = GameSession(setup, loop=loop)
    for record in records:
        if record.seed != setup.seed:
            raise ReplayError(
                f"Event {record.index} belongs to seed {format_seed(record.seed)}, "
                f"not {format_seed(setup.seed)}"
            )
        if record.action is not None:
            _apply_action(session, record.action)
        elif record.decision is not None:
            _apply_decision_entry(session, record)
        else:
            raise ReplayError(f"Event {record.index} has neither an action nor a decision")

    pending = session.state.pending_decision
    if pending is not None and session.decisions.status is DecisionStatus.IDLE:
        session.decisions.open(pending)
    return session


def _apply_action(session: GameSession, action) -> None:
    if isinstance(action, PitchRequest):
        state = session.state
        session.dispatch(resolve_pitch(state, session.rng, session.strategy_for(state)), record=False)
        session.record_event(action)
    else:
        session.dispatch(action)


def _apply_decision_entry(session: GameSession, record: EventRecord) -> None:
    try:
        pitch_key, action = parse_decision_entry(record.decision, session.setup.strategy)
    except ValueError as e:
        raise ReplayError(f"Event {record.index}: bad decision entry {record.decision!r}") from e
    state = session.state
    if state.pending_decision is None:
        raise ReplayError(f"Event {record.index}: decision {record.decision!r} but no decision is pending")
    if pitch_key != state.pitch_key:
        raise ReplayError(
            f"Event {record.index}: decision {record.decision!r} is for pitch {pitch_key}, "
            f"the pending decision is at pitch {state.pitch_key}"
        )
    session.resolve_decision(action or SkipDecisionAction(timed_out=True))


def restore_save(save: SaveGame, loop: TimerLoop | None = None) -> GameSession:
    """Rebuild the session a saved game describes, up to its recorded progress."""
    return replay_events(save.setup, save.events[: save.progress], loop=loop)


def save_session(session: GameSession) -> SaveGame:
    return SaveGame(setup=session.setup, events=list(session.events), progress=len(session.events))


# ---------------------------------------------------------------------------
# Share links
# ---------------------------------------------------------------------------

def build_replay_query(seed: int, decisions: Iterable[str]) -> str:
    """Query string carrying a seed (base 36) and its decision log."""
    params = {"seed": format_seed(seed)}
    decisions = list(decisions)
    if decisions:
        params["decisions"] = ",".join(decisions)
    return urlencode(params)


def parse_replay_query(query: str) -> tuple[int, list[str]]:
    params = parse_qs(query.lstrip("?"))
    raw_seed = (params.get("seed") or [""])[0]
    seed = parse_seed(raw_seed, radix=36)
    if seed is None:
        raise ReplayError(f"No usable seed in {query!r}")
    raw = (params.get("decisions") or [""])[0]
    return seed, [entry for entry in raw.split(",") if entry]
