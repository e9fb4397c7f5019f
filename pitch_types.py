# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Pitch type selection and per-pitch modifiers."""

from __future__ import annotations

from enum import Enum


class PitchType(str, Enum):
    FASTBALL = "fastball"
    CURVEBALL = "curveball"
    SLIDER = "slider"
    CHANGEUP = "changeup"


_SWING_RATE_MOD = {
    PitchType.FASTBALL: 1.00,
    PitchType.CURVEBALL: 0.90,
    PitchType.SLIDER: 1.10,
    PitchType.CHANGEUP: 1.05,
}

# Below 1.0 means the pitch is less likely to land in the zone.
_STRIKE_ZONE_MOD = {
    PitchType.FASTBALL: 1.00,
    PitchType.CURVEBALL: 0.85,
    PitchType.SLIDER: 0.75,
    PitchType.CHANGEUP: 0.90,
}

_NAMES = {
    PitchType.FASTBALL: "Fastball",
    PitchType.CURVEBALL: "Curveball",
    PitchType.SLIDER: "Slider",
    PitchType.CHANGEUP: "Changeup",
}


def select_pitch_type(balls: int, strikes: int, roll: int) -> PitchType:
    """Pick a pitch type for the count from a roll in [0, 100)."""
    if balls == 0 and strikes == 2:
        # Chase pitch
        if roll < 35:
            return PitchType.SLIDER
        if roll < 65:
            return PitchType.CURVEBALL
        if roll < 80:
            return PitchType.CHANGEUP
        return PitchType.FASTBALL
    if balls == 3 and strikes == 0:
        if roll < 65:
            return PitchType.FASTBALL
        if roll < 82:
            return PitchType.CURVEBALL
        if roll < 93:
            return PitchType.CHANGEUP
        return PitchType.SLIDER
    if balls == 3 and strikes == 2:
        if roll < 45:
            return PitchType.FASTBALL
        if roll < 75:
            return PitchType.SLIDER
        return PitchType.CURVEBALL
    if roll < 55:
        return PitchType.FASTBALL
    if roll < 75:
        return PitchType.CURVEBALL
    if roll < 90:
        return PitchType.SLIDER
    return PitchType.CHANGEUP


def pitch_swing_rate_mod(pitch_type: PitchType) -> float:
    return _SWING_RATE_MOD[pitch_type]


def pitch_strike_zone_mod(pitch_type: PitchType) -> float:
    return _STRIKE_ZONE_MOD[pitch_type]


def pitch_name(pitch_type: PitchType) -> str:
    return _NAMES[pitch_type]
