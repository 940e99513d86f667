import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (``2.5 -> 3``), unlike ``round()``."""
    return math.floor(value + 0.5)


def clamp(low: float, high: float, value: float) -> float:
    return max(low, min(high, value))
