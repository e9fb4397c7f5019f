# /// script
# requires-python = ">=3.12"
# dependencies = ["flask>=3.0", "pydantic>=2.0"]
# ///
"""JSON API for playing games over HTTP.

Each game is a ``GameSession`` held in memory. Timers (auto-play, decision
countdowns) are advanced at the start of every request, so a client that
polls ``GET /api/games/<id>`` sees auto-play progress and decision timeouts.
The play-by-play is also streamed as server-sent events.

Usage:
    uv run app.py
"""

from __future__ import annotations

import json
import logging
import os
import queue
import threading
import uuid

from flask import Flask, Response, jsonify, request
from pydantic import ValidationError

from box_score import batting_lines, format_box_score, line_score
from game import GameSession
from models import parse_action
from persistence import GameSetup, export_save, import_save
from replay import (
    ReplayError,
    build_replay_query,
    parse_replay_query,
    replay_decisions,
    restore_save,
    save_session,
)
from rng import parse_seed
from scheduler import Speed
from simulation import InvalidActionError
from strategy import Strategy

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = Flask(__name__)

# In-memory store for active/completed games
GAMES: dict[str, dict] = {}

_TEAM_INDEX = {"away": 0, "home": 1}

# Play-by-play lines kept for SSE clients; older lines are dropped first.
EVENT_QUEUE_SIZE = 500


def _error(message: str, status: int):
    return jsonify({"error": message}), status


def _register(session: GameSession) -> str:
    game_id = uuid.uuid4().hex[:12]
    q: queue.Queue = queue.Queue(maxsize=EVENT_QUEUE_SIZE)
    session.announcer.subscribe(lambda msg: _enqueue(q, msg))
    GAMES[game_id] = {"session": session, "lock": threading.Lock(), "queue": q}
    return game_id


def _enqueue(q: queue.Queue, msg) -> None:
    while True:
        try:
            q.put_nowait(msg)
            return
        except queue.Full:
            try:
                q.get_nowait()
            except queue.Empty:
                # Drained by a reader in between; try again.
                continue


def _entry(game_id: str) -> dict | None:
    """Look up a game and fire any timers that came due since the last request."""
    entry = GAMES.get(game_id)
    if entry is None:
        return None
    with entry["lock"]:
        entry["session"].loop.run_due()
    return entry


def _managed_team(value) -> int | None:
    if value is None:
        return None
    if value in (0, 1):
        return value
    if value not in _TEAM_INDEX:
        raise ValueError(f"managed_team must be 'home', 'away' or null, got {value!r}")
    return _TEAM_INDEX[value]


def _state_payload(game_id: str, session: GameSession) -> dict:
    return {"game_id": game_id, "state": session.snapshot()}


# ---------------------------------------------------------------------------
# Game routes
# ---------------------------------------------------------------------------

@app.route("/api/games", methods=["POST"])
def api_create_game():
    data = request.get_json(silent=True) or {}
    try:
        managed = _managed_team(data.get("managed_team"))
        session = GameSession.create(
            seed=data.get("seed"),
            teams=tuple(data.get("teams") or ("Away", "Home")),
            lineups=tuple(data["lineups"]) if data.get("lineups") else None,
            managed_team=managed,
            strategy=data.get("strategy", Strategy.BALANCED.value),
            tiebreak_runner=bool(data.get("tiebreak_runner", True)),
            decision_timeout=float(data.get("decision_timeout", 10.0)),
        )
    except (ValidationError, ValueError, TypeError) as e:
        return _error(str(e), 400)

    game_id = _register(session)
    if data.get("speed"):
        try:
            session.start_auto_play(Speed(data["speed"]))
        except ValueError as e:
            return _error(str(e), 400)

    payload = _state_payload(game_id, session)
    payload["warning"] = session.seed_warning
    logger.info("Created game %s with seed %s", game_id, payload["state"]["seed"])
    return jsonify(payload), 201


@app.route("/api/games/<game_id>")
def api_game_state(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    return jsonify(_state_payload(game_id, entry["session"]))


@app.route("/api/games/<game_id>/pitch", methods=["POST"])
def api_pitch(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    session = entry["session"]
    with entry["lock"]:
        session.pitch_now()
    return jsonify(_state_payload(game_id, session))


@app.route("/api/games/<game_id>/decision", methods=["POST"])
def api_decision(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    data = request.get_json(silent=True) or {}
    option = data.get("option")
    if not isinstance(option, str):
        return _error("Missing 'option'", 400)

    session = entry["session"]
    with entry["lock"]:
        try:
            accepted = session.choose(option)
        except ValueError as e:
            return _error(str(e), 400)
    payload = _state_payload(game_id, session)
    payload["accepted"] = accepted
    return jsonify(payload), 200 if accepted else 409


@app.route("/api/games/<game_id>/actions", methods=["POST"])
def api_action(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error("Expected a JSON object", 400)

    session = entry["session"]
    with entry["lock"]:
        try:
            session.dispatch(parse_action(data))
        except (ValidationError, InvalidActionError, ValueError) as e:
            return _error(str(e), 400)
    return jsonify(_state_payload(game_id, session))


@app.route("/api/games/<game_id>/auto-play", methods=["POST", "DELETE"])
def api_auto_play(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    session = entry["session"]
    with entry["lock"]:
        if request.method == "DELETE":
            session.stop_auto_play()
        else:
            data = request.get_json(silent=True) or {}
            try:
                session.start_auto_play(Speed(data.get("speed", Speed.NORMAL.value)))
            except ValueError as e:
                return _error(str(e), 400)
    return jsonify(_state_payload(game_id, session))


@app.route("/api/games/<game_id>/box-score")
def api_box_score(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    state = entry["session"].state
    return jsonify({
        "teams": list(state.teams),
        "score": list(state.score),
        "line_score": line_score(state),
        "batting": [
            {str(slot): vars(line) for slot, line in batting_lines(state, team).items()}
            for team in (0, 1)
        ],
        "text": format_box_score(state),
    })


@app.route("/api/games/<game_id>/replay")
def api_replay_link(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    session = entry["session"]
    return jsonify({
        "query": build_replay_query(session.seed, session.state.decision_log),
        "save": json.loads(export_save(save_session(session))),
    })


@app.route("/api/games/<game_id>/events")
def api_game_events(game_id: str):
    entry = _entry(game_id)
    if entry is None:
        return _error("Game not found", 404)
    q: queue.Queue = entry["queue"]

    def generate():
        while True:
            try:
                msg = q.get(timeout=30)
            except queue.Empty:
                # Send keepalive
                yield ":\n\n"
                continue
            yield f"event: play\ndata: {json.dumps(msg)}\n\n"

    return Response(
        generate(),
        mimetype="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# ---------------------------------------------------------------------------
# Replay
# ---------------------------------------------------------------------------

@app.route("/api/replay", methods=["POST"])
def api_replay():
    """Rebuild a game from a share link query, a seed plus decisions, or a saved game."""
    data = request.get_json(silent=True) or {}
    try:
        if "save" in data:
            raw = data["save"]
            session = restore_save(import_save(raw if isinstance(raw, str) else json.dumps(raw)))
        else:
            if "query" in data:
                seed, decisions = parse_replay_query(data["query"])
            else:
                seed = parse_seed(str(data.get("seed", "")))
                if seed is None:
                    raise ReplayError(f"No usable seed in {data.get('seed')!r}")
                decisions = list(data.get("decisions") or [])
            setup = GameSetup(
                seed=seed,
                managed_team=_managed_team(data.get("managed_team")),
                strategy=Strategy(data.get("strategy", Strategy.BALANCED.value)),
                tiebreak_runner=bool(data.get("tiebreak_runner", True)),
            )
            session = replay_decisions(setup, decisions)
    except (ValidationError, ReplayError, ValueError) as e:
        return _error(str(e), 400)

    game_id = _register(session)
    return jsonify(_state_payload(game_id, session)), 201


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    port = int(os.environ.get("PORT", 5050))
    app.run(debug=True, host="0.0.0.0", port=port, threaded=True)
