"""
Numeric helpers shared by the engine services.

Percentages shown on the dashboard are rounded half-up (2.5 -> 3), not with
Python's banker's rounding, so that boundary values land on the same side of
a threshold however the number was produced.
"""

import math
from typing import Any, Optional


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from negative infinity."""
    return int(math.floor(value + 0.5))


def clamp(value: float, low: float, high: float) -> float:
    return min(high, max(low, value))


def finite_or_none(value: Any) -> Optional[float]:
    """
    Coerce a value to a finite float.

    Returns:
        The float value, or None for None, NaN, infinities, booleans and
        anything that is not numeric
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def percent_or_none(numerator: float, denominator: float) -> Optional[int]:
    """
    Rounded percentage, or None when the denominator is zero.

    An empty denominator is "unknown", never 0% and never infinity.
    """
    if not denominator:
        return None
    return round_half_up(numerator / denominator * 100)
