# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Box score built from a game's play, out and strikeout logs."""

from __future__ import annotations

from dataclasses import dataclass

from models import GameState, Hit


@dataclass
class BattingLine:
    ab: int = 0
    h: int = 0
    bb: int = 0
    k: int = 0
    pa: int = 0
    runs_batted_in: int = 0


def batting_lines(state: GameState, team: int) -> dict[int, BattingLine]:
    """Per-slot batting lines (1-based slots) for ``team``.

    Hits and walks come from the play log, completed outs from the out log,
    and strikeouts (already counted as outs) from the strikeout log.
    """
    slots = max(9, len(state.lineup_order[team]))
    lines = {slot: BattingLine() for slot in range(1, slots + 1)}

    for entry in state.play_log:
        if entry.team != team:
            continue
        line = lines[entry.batter_num]
        if entry.event is Hit.WALK:
            line.bb += 1
        else:
            line.h += 1
        line.runs_batted_in += entry.runs
        line.pa += 1
    for entry in state.strikeout_log:
        if entry.team == team:
            lines[entry.batter_num].k += 1
    for entry in state.out_log:
        if entry.team == team:
            lines[entry.batter_num].ab += 1
            lines[entry.batter_num].pa += 1
    # Hits are at-bats too.
    for line in lines.values():
        line.ab += line.h
    return lines


def line_score(state: GameState) -> list[list[int]]:
    """Runs per inning for each team, padded to the innings played."""
    innings = max(state.inning, 9)
    rows = []
    for team in (0, 1):
        row = list(state.inning_runs[team]) + [0] * innings
        rows.append(row[:innings])
    return rows


def format_box_score(state: GameState) -> str:
    rows = line_score(state)
    innings = len(rows[0])
    width = max(len(state.teams[0]), len(state.teams[1]), 4)

    header = " " * width + " | " + " ".join(f"{i + 1:>2}" for i in range(innings)) + " |  R  H"
    out = [header, "-" * len(header)]
    for team in (0, 1):
        hits = sum(1 for e in state.play_log if e.team == team and e.event is not Hit.WALK)
        cells = " ".join(f"{r:>2}" for r in rows[team])
        out.append(f"{state.teams[team]:<{width}} | {cells} | {state.score[team]:>2} {hits:>2}")

    for team in (0, 1):
        out.append("")
        out.append(f"{state.teams[team]}")
        out.append(f"  {'#':>2} {'Batter':<16} {'AB':>3} {'H':>3} {'BB':>3} {'K':>3} {'RBI':>4}")
        lineup = state.lineup_order[team]
        for slot, line in batting_lines(state, team).items():
            if line.pa == 0 and slot > len(lineup):
                continue
            name = lineup[slot - 1] if slot <= len(lineup) else f"Batter {slot}"
            out.append(
                f"  {slot:>2} {name[:16]:<16} {line.ab:>3} {line.h:>3} {line.bb:>3} {line.k:>3} {line.runs_batted_in:>4}"
            )
    return "\n".join(out)
