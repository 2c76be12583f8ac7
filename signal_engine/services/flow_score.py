"""
Flow score aggregation for the Performance Signal Engine.

The flow score blends the tones of five signals (momentum, jobs in drift,
capacity, deadlines, sales clarity) into one headline number and state.
Higher scores mean more drift.

Scoring:
- Each tone maps to a severity (red=2, amber=1, green=0); the five are summed (0-10)
- scorePct = clamp(round(sum / 10 * 100), 0, 100)
- sum >= 5 -> Drifting; sum >= 2 -> Watchlist; else In Flow

Overrides (applied in order after the base state):
1. Unreviewed overdue work while "In Flow" -> Watchlist, score at least 20
2. Capacity pressure above 110% -> Drifting, score at least 90

A single severe signal is never fully masked by four calm ones.

Driver label: the highest-severity signal, ties broken by the priority order
deadlines, capacity, jobs, momentum, sales. All green -> fallback label.
"""

import logging
from typing import Dict, Optional, Tuple

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.numeric import clamp, round_half_up
from signal_engine.models.enums import FlowState, SignalKey
from signal_engine.models.schemas import FlowScore, FlowSignals
from signal_engine.services.tones import TONE_SEVERITY, tone_severity

logger = logging.getLogger(__name__)


MAX_SEVERITY_SUM = len(SignalKey) * max(TONE_SEVERITY.values())

FALLBACK_DRIVER_LABEL = "Everything looks steady"

DRIVER_LABELS: Dict[SignalKey, str] = {
    SignalKey.DEADLINES: "Deadlines slipping",
    SignalKey.CAPACITY: "Capacity is strained",
    SignalKey.JOBS: "Jobs flagged for follow-up",
    SignalKey.MOMENTUM: "Delivery pace is warming up",
    SignalKey.SALES: "Revenue fog detected",
}

# Answer to "could I take a day off?"
STATE_MESSAGES: Dict[FlowState, str] = {
    FlowState.IN_FLOW: "Yeah, you could.",
    FlowState.WATCHLIST: "Probably, after a quick check-in.",
    FlowState.DRIFTING: "Not today. Things need you.",
}


def pick_driver(
    signals: FlowSignals,
    fallback_label: str = FALLBACK_DRIVER_LABEL,
) -> Tuple[Optional[SignalKey], str]:
    """
    Pick the signal that drives the flow score.

    Returns:
        Tuple of (SignalKey or None, label)
    """
    severities = {key: tone_severity(signals.tone_for(key)) for key in SignalKey}
    highest = max(severities.values())
    if highest <= 0:
        return None, fallback_label
    # SignalKey declaration order is the priority order
    for key in SignalKey:
        if severities[key] == highest:
            return key, DRIVER_LABELS[key]
    return None, fallback_label


def compute_flow_score(
    signals: FlowSignals,
    capacity_pressure_pct: Optional[int] = None,
    unreviewed_overdue_count: int = 0,
    fallback_label: str = FALLBACK_DRIVER_LABEL,
    settings: Optional[Settings] = None,
) -> FlowScore:
    """
    Blend five signal tones into the composite flow score.

    Args:
        signals: Tones of momentum, jobs, capacity, deadlines and sales
        capacity_pressure_pct: Raw capacity pressure, None when unknown
        unreviewed_overdue_count: Overdue deliverables nobody has reviewed
        fallback_label: Driver label used when every signal is green
        settings: Optional settings override

    Returns:
        FlowScore
    """
    settings = settings or get_settings()

    severity_sum = sum(tone_severity(signals.tone_for(key)) for key in SignalKey)
    score_pct = int(clamp(round_half_up(severity_sum / MAX_SEVERITY_SUM * 100), 0, 100))

    if severity_sum >= settings.flow_drifting_min_severity:
        state = FlowState.DRIFTING
    elif severity_sum >= settings.flow_watchlist_min_severity:
        state = FlowState.WATCHLIST
    else:
        state = FlowState.IN_FLOW

    if unreviewed_overdue_count > 0 and state == FlowState.IN_FLOW:
        state = FlowState.WATCHLIST
        score_pct = max(score_pct, settings.flow_unreviewed_overdue_min_score_pct)

    if capacity_pressure_pct is not None and capacity_pressure_pct > settings.flow_capacity_override_pct:
        state = FlowState.DRIFTING
        score_pct = max(score_pct, settings.flow_capacity_override_min_score_pct)

    driver_key, driver_label = pick_driver(signals, fallback_label)

    logger.debug(
        f"Flow score {score_pct}% ({state.value}), severity sum {severity_sum}, driver {driver_label}"
    )

    return FlowScore(
        scorePct=score_pct,
        state=state,
        message=STATE_MESSAGES[state],
        driverLabel=driver_label,
        driverKey=driver_key,
        severitySum=severity_sum,
    )


__all__ = [
    'FALLBACK_DRIVER_LABEL',
    'DRIVER_LABELS',
    'STATE_MESSAGES',
    'pick_driver',
    'compute_flow_score',
]
