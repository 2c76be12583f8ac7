"""
Shared tone helpers.

Every dashboard signal speaks the same three-valued language (green, amber,
red). The severity integers defined here are the only mapping between tones and
numbers; the flow score and the jobs-at-risk rollup both go through it.
"""

from typing import Dict, Optional

from signal_engine.models.enums import Tone


TONE_SEVERITY: Dict[Tone, int] = {
    Tone.GREEN: 0,
    Tone.AMBER: 1,
    Tone.RED: 2,
}


def tone_severity(tone: Optional[Tone]) -> int:
    """
    Map a tone to its severity integer.

    Args:
        tone: Tone value (or the raw string form); None counts as green

    Returns:
        2 for red, 1 for amber, 0 for green or missing
    """
    if tone is None:
        return 0
    try:
        return TONE_SEVERITY[Tone(tone)]
    except ValueError:
        return 0


def tone_for_threshold(
    value: Optional[float],
    *,
    green_at_least: float,
    amber_at_least: float,
    unknown: Tone = Tone.GREEN,
) -> Tone:
    """
    Tone for a "higher is better" percentage.

    Args:
        value: Percentage, None when unknown
        green_at_least: Minimum value that reads green
        amber_at_least: Minimum value that reads amber
        unknown: Tone used when value is None

    Returns:
        Tone for the value
    """
    if value is None:
        return unknown
    if value >= green_at_least:
        return Tone.GREEN
    if value >= amber_at_least:
        return Tone.AMBER
    return Tone.RED


__all__ = [
    'TONE_SEVERITY',
    'tone_severity',
    'tone_for_threshold',
]
