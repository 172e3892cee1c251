"""Small numeric helpers shared by the scoring code."""

import math


def round_half_up(value: float) -> int:
    """Round .5 away from zero for positives (2.5 → 3), unlike built-in round()."""
    return int(math.floor(value + 0.5))


def clamp_percent(value: float) -> int:
    """Round to an integer percentage and clamp into [0, 100]."""
    return max(0, min(100, round_half_up(value)))
