# /// script
# requires-python = ">=3.12"
# dependencies = []
# ///
"""Seeded random source for the simulation.

Every probabilistic choice in a game is drawn from a single ``SeededRandom``
owned by the game session, so a seed plus the ordered sequence of manager
decisions always replays to the same game. The generator is mulberry32 over
an unsigned 32-bit word, which keeps seeds short enough to share as base-36
strings.
"""

from __future__ import annotations

import logging
import math
import secrets
import string

logger = logging.getLogger(__name__)

MASK32 = 0xFFFFFFFF
_GOLDEN_GAMMA = 0x6D2B79F5
_TWO_POW_32 = 4294967296.0

_BASE36_DIGITS = string.digits + string.ascii_lowercase


def js_round(value: float) -> int:
    """Round half up, the way every probability threshold is rounded."""
    return math.floor(value + 0.5)


# ---------------------------------------------------------------------------
# Generator
# ---------------------------------------------------------------------------

class SeededRandom:
    """mulberry32 pseudo-random generator.

    Draw order is part of the game's contract: callers must not draw
    speculatively, since every extra draw shifts the rest of the game.
    """

    def __init__(self, seed: int):
        self._a = int(seed) & MASK32

    @property
    def state(self) -> int:
        """Current internal 32-bit word."""
        return self._a

    def restore(self, state: int) -> None:
        """Reinitialise the generator from a 32-bit word, discarding prior state."""
        self._a = int(state) & MASK32

    def random(self) -> float:
        """Return a float in [0, 1)."""
        self._a = (self._a + _GOLDEN_GAMMA) & MASK32
        t = self._a
        t = ((t ^ (t >> 15)) * (t | 1)) & MASK32
        t ^= (t + (((t ^ (t >> 7)) * (t | 61)) & MASK32)) & MASK32
        return ((t ^ (t >> 14)) & MASK32) / _TWO_POW_32

    def draw_int(self, bound: int) -> int:
        """Return an integer in [0, bound)."""
        if bound <= 0:
            raise ValueError(f"bound must be positive, got {bound}")
        return math.floor(self.random() * bound)


# ---------------------------------------------------------------------------
# Seeds
# ---------------------------------------------------------------------------

def generate_seed() -> int:
    """Draw a fresh 32-bit seed from OS entropy."""
    return secrets.randbits(32)


def format_seed(seed: int) -> str:
    """Render a seed in base 36, the form used in share links."""
    seed = int(seed) & MASK32
    if seed == 0:
        return "0"
    digits = []
    while seed:
        seed, rem = divmod(seed, 36)
        digits.append(_BASE36_DIGITS[rem])
    return "".join(reversed(digits))


def parse_seed(text: str, radix: int | None = None) -> int | None:
    """Parse user-entered seed text.

    Without an explicit ``radix``, text containing any letter is read as
    base 36 and anything else as decimal.
    Like a prefix parser, trailing garbage after the first valid digits is
    ignored. Returns ``None`` when no digits can be read.
    """
    raw = text.strip()
    if not raw:
        return None
    if radix is None:
        radix = 36 if any(ch.isalpha() for ch in raw) else 10

    sign = 1
    if raw[0] in "+-":
        sign = -1 if raw[0] == "-" else 1
        raw = raw[1:]

    valid = _BASE36_DIGITS[:radix]
    prefix = []
    for ch in raw.lower():
        if ch not in valid:
            break
        prefix.append(ch)
    if not prefix:
        return None
    return (sign * int("".join(prefix), radix)) & MASK32


def resolve_seed(value: int | str | None) -> tuple[int, str | None]:
    """Turn a seed argument into a usable seed.

    Returns ``(seed, warning)``. ``None`` means "pick one" and is not a
    warning; unparseable input falls back to a fresh seed and reports it.
    """
    if value is None:
        return generate_seed(), None
    if isinstance(value, bool):
        value = str(value)
    if isinstance(value, int):
        return value & MASK32, None
    parsed = parse_seed(str(value))
    if parsed is None:
        seed = generate_seed()
        warning = f"Invalid seed {value!r}; using generated seed {format_seed(seed)}"
        logger.warning(warning)
        return seed, warning
    return parsed, None
