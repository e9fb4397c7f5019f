# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0"]
# ///
"""Tests for strategy modifiers and pitch types.

Verifies:
1. Balanced strategy is the identity for every stat
2. Known strategy multipliers
3. Pitch type selection by count
4. Per-pitch swing and strike-zone modifiers
"""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

from pitch_types import (
    PitchType,
    pitch_name,
    pitch_strike_zone_mod,
    pitch_swing_rate_mod,
    select_pitch_type,
)
from strategy import Stat, Strategy, modifier


# ---------------------------------------------------------------------------
# Strategy
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("stat", list(Stat))
def test_balanced_is_identity(stat):
    assert modifier(Strategy.BALANCED, stat) == 1.0


def test_known_multipliers():
    assert modifier(Strategy.PATIENT, Stat.WALK) == 1.4
    assert modifier(Strategy.CONTACT, Stat.CONTACT) == 1.4
    assert modifier(Strategy.POWER, Stat.HOMERUN) == 1.6
    assert modifier(Strategy.AGGRESSIVE, Stat.STEAL) == 1.3
    assert modifier(Strategy.PATIENT, Stat.STEAL) == 0.7


def test_modifier_accepts_strings():
    assert modifier("power", "contact") == 0.8


def test_unknown_strategy_raises():
    with pytest.raises(ValueError):
        modifier("reckless", Stat.WALK)


# ---------------------------------------------------------------------------
# Pitch types
# ---------------------------------------------------------------------------

def test_default_mix():
    assert select_pitch_type(1, 1, 0) is PitchType.FASTBALL
    assert select_pitch_type(1, 1, 54) is PitchType.FASTBALL
    assert select_pitch_type(1, 1, 55) is PitchType.CURVEBALL
    assert select_pitch_type(1, 1, 75) is PitchType.SLIDER
    assert select_pitch_type(1, 1, 99) is PitchType.CHANGEUP


def test_chase_pitch_on_0_2():
    assert select_pitch_type(0, 2, 0) is PitchType.SLIDER
    assert select_pitch_type(0, 2, 40) is PitchType.CURVEBALL
    assert select_pitch_type(0, 2, 70) is PitchType.CHANGEUP
    assert select_pitch_type(0, 2, 90) is PitchType.FASTBALL


def test_fastball_heavy_on_3_0():
    assert select_pitch_type(3, 0, 64) is PitchType.FASTBALL
    assert select_pitch_type(3, 0, 95) is PitchType.SLIDER


def test_full_count_mix():
    assert select_pitch_type(3, 2, 10) is PitchType.FASTBALL
    assert select_pitch_type(3, 2, 50) is PitchType.SLIDER
    assert select_pitch_type(3, 2, 80) is PitchType.CURVEBALL


def test_pitch_modifiers():
    assert pitch_swing_rate_mod(PitchType.FASTBALL) == 1.0
    assert pitch_swing_rate_mod(PitchType.SLIDER) == 1.1
    assert pitch_strike_zone_mod(PitchType.SLIDER) == 0.75
    assert pitch_name(PitchType.CHANGEUP) == "Changeup"
