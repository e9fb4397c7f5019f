# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Batting strategies and their outcome multipliers.

A strategy scales the base probability of each outcome category. The
balanced row is the identity, so a balanced team plays the raw rates.
"""

from __future__ import annotations

from enum import Enum


class Strategy(str, Enum):
    BALANCED = "balanced"
    AGGRESSIVE = "aggressive"
    PATIENT = "patient"
    CONTACT = "contact"
    POWER = "power"


class Stat(str, Enum):
    WALK = "walk"
    STRIKEOUT = "strikeout"
    HOMERUN = "homerun"
    CONTACT = "contact"
    STEAL = "steal"
    ADVANCE = "advance"


_MODIFIERS: dict[Strategy, dict[Stat, float]] = {
    Strategy.BALANCED: {
        Stat.WALK: 1.0, Stat.STRIKEOUT: 1.0, Stat.HOMERUN: 1.0,
        Stat.CONTACT: 1.0, Stat.STEAL: 1.0, Stat.ADVANCE: 1.0,
    },
    Strategy.AGGRESSIVE: {
        Stat.WALK: 0.8, Stat.STRIKEOUT: 1.1, Stat.HOMERUN: 1.1,
        Stat.CONTACT: 1.0, Stat.STEAL: 1.3, Stat.ADVANCE: 1.3,
    },
    Strategy.PATIENT: {
        Stat.WALK: 1.4, Stat.STRIKEOUT: 0.8, Stat.HOMERUN: 0.9,
        Stat.CONTACT: 1.0, Stat.STEAL: 0.7, Stat.ADVANCE: 0.9,
    },
    Strategy.CONTACT: {
        Stat.WALK: 1.0, Stat.STRIKEOUT: 0.7, Stat.HOMERUN: 0.7,
        Stat.CONTACT: 1.4, Stat.STEAL: 1.0, Stat.ADVANCE: 1.1,
    },
    Strategy.POWER: {
        Stat.WALK: 0.9, Stat.STRIKEOUT: 1.3, Stat.HOMERUN: 1.6,
        Stat.CONTACT: 0.8, Stat.STEAL: 0.8, Stat.ADVANCE: 1.0,
    },
}


def modifier(strategy: Strategy | str, stat: Stat | str) -> float:
    """Multiplier applied to the base probability of ``stat`` under ``strategy``."""
    return _MODIFIERS[Strategy(strategy)][Stat(stat)]
