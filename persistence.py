# /// script
# requires-python = ">=3.12"
# dependencies = ["pydantic>=2.0"]
# ///
"""Save-game records and the storage contract.

The engine does not store anything itself. It emits ``EventRecord``s to a
``SaveStore`` supplied by the host, and a saved game is the setup plus the
ordered records, which is enough to rebuild the state by replay.
"""

from __future__ import annotations

from typing import Literal, Optional, Protocol

from pydantic import BaseModel, Field

from models import RecordedAction
from strategy import Strategy

SAVE_FORMAT_VERSION = 1


class GameSetup(BaseModel):
    """Everything besides the seed's draws that shapes a game."""
    seed: int = Field(ge=0, le=0xFFFFFFFF)
    teams: tuple[str, str] = ("Away", "Home")
    lineups: tuple[list[str], list[str]] = ([], [])
    managed_team: Optional[Literal[0, 1]] = Field(default=None, description="None = nobody managed, AI on both sides")
    strategy: Strategy = Strategy.BALANCED
    tiebreak_runner: bool = True
    decision_timeout: float = Field(default=10.0, gt=0)


class EventRecord(BaseModel):
    """One entry of the replay log: an action or a decision-log entry, tagged with the seed."""
    seed: int
    index: int = Field(ge=0)
    action: Optional[RecordedAction] = None
    decision: Optional[str] = None


class SaveGame(BaseModel):
    version: int = SAVE_FORMAT_VERSION
    setup: GameSetup
    events: list[EventRecord] = Field(default_factory=list)
    progress: int = Field(default=0, ge=0, description="Number of events applied")


class SaveStore(Protocol):
    def create_save(self, setup: GameSetup) -> str: ...

    def append_events(self, save_id: str, events: list[EventRecord]) -> None: ...

    def update_progress(self, save_id: str, index: int) -> None: ...


def export_save(save: SaveGame) -> str:
    return save.model_dump_json()


def import_save(text: str) -> SaveGame:
    """Parse an exported save. Raises ``pydantic.ValidationError`` on bad input."""
    return SaveGame.model_validate_json(text)
