"""
Performance pulse service for the Performance Signal Engine.

This module derives the five dashboard signals feeding the flow score and
runs the whole pipeline in one call:

    entities -> classifier -> {capacity forecast, jobs-at-risk rollup}
             -> signal tones -> flow score

Key Functions:
- job_effort_pct / job_timeline_pct: Pace of a single job
- compute_momentum_signal: Share of active jobs still on pace
- compute_jobs_signal: Tone of the jobs-at-risk rollup
- compute_capacity_signal: Tone of the capacity pressure
- compute_deadlines_signal: Open overdue / due-soon counts
- compute_sales_signal: Weighted pipeline coverage ("revenue fog")
- count_unreviewed_overdue: Overdue deliverables nobody has acknowledged
- build_performance_pulse: Main entry point, returns PerformancePulse

Tone Thresholds (defaults, see core.config):
- Momentum: on-time >= 85 green, >= 70 amber, else red; no active jobs -> green
- Jobs: amber when any job is at risk
- Capacity: > 110 red, > 90 amber; unknown pressure -> amber
- Deadlines: any open overdue -> red; more than 2 due soon -> amber
- Sales: coverage >= 90 green, >= 70 amber, else red; no won value -> amber
"""

import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.dates import DateLike, parse_date, resolve_today
from signal_engine.core.numeric import clamp, finite_or_none, percent_or_none, round_half_up
from signal_engine.models.enums import DealStage, DeliverableStatus, Tone
from signal_engine.models.schemas import (
    CapacityForecastResult,
    CapacitySignal,
    ClassifiedDeliverable,
    DeadlinesSignal,
    Deliverable,
    Job,
    JobsAtRiskRollup,
    JobsSignal,
    MomentumSignal,
    PerformancePulse,
    PulseSignals,
    SalesDeal,
    SalesSignal,
    Task,
    TeamMember,
)
from signal_engine.services.capacity import build_capacity_forecast
from signal_engine.services.classification import classify_deliverables
from signal_engine.services.flow_score import compute_flow_score
from signal_engine.services.jobs_at_risk import build_jobs_at_risk_rollup
from signal_engine.services.tones import tone_for_threshold

logger = logging.getLogger(__name__)


MAX_PACE_PCT = 200
ACTIVE_JOB_STATUS = "active"
CLOSED_DEAL_STAGES = (DealStage.WON, DealStage.LOST)


# =============================================================================
# Momentum (Delivery Pace)
# =============================================================================


def job_effort_pct(job: Job) -> int:
    """Logged vs. estimated hours, clamped to 0-200."""
    actual = finite_or_none(job.actualHours) or 0.0
    estimate = max(finite_or_none(job.estHours) or 1.0, 1.0)
    return int(clamp(round_half_up(actual / estimate * 100), 0, MAX_PACE_PCT))


def job_timeline_pct(job: Job, today: date) -> int:
    """
    Elapsed share of the job's planned window at today, clamped to 0-200.

    A missing or malformed window (or one that ends before it starts)
    yields 0.
    """
    start = parse_date(job.startDate)
    end = parse_date(job.plannedEnd or job.startDate)
    if start is None or end is None or end <= start:
        return 0
    elapsed = (today - start).days / (end - start).days * 100
    return int(clamp(round_half_up(elapsed), 0, MAX_PACE_PCT))


def compute_momentum_signal(
    jobs: Iterable[Job],
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> MomentumSignal:
    """
    Share of active jobs whose effort and timeline are both still on pace.

    A job is "warming up" when its effort % or timeline % exceeds
    pace_at_risk_pct.
    """
    settings = settings or get_settings()
    today = resolve_today(today)

    active = [job for job in jobs if (job.status or "").lower() == ACTIVE_JOB_STATUS]
    warming = [
        job for job in active
        if job_effort_pct(job) > settings.pace_at_risk_pct
        or job_timeline_pct(job, today) > settings.pace_at_risk_pct
    ]
    on_time_pct = percent_or_none(len(active) - len(warming), len(active))

    return MomentumSignal(
        onTimePct=on_time_pct,
        activeCount=len(active),
        warmingCount=len(warming),
        tone=tone_for_threshold(
            on_time_pct,
            green_at_least=settings.on_time_green_pct,
            amber_at_least=settings.on_time_amber_pct,
            unknown=Tone.GREEN,
        ),
    )


# =============================================================================
# Jobs, Capacity, Deadlines
# =============================================================================


def compute_jobs_signal(rollup: JobsAtRiskRollup) -> JobsSignal:
    return JobsSignal(
        jobsAtRiskCount=rollup.jobsAtRiskCount,
        needingAttention=rollup.jobsAtRiskNeedingAttention,
        tone=Tone.AMBER if rollup.jobsAtRiskCount > 0 else Tone.GREEN,
    )


def compute_capacity_signal(
    forecast: CapacityForecastResult,
    settings: Optional[Settings] = None,
) -> CapacitySignal:
    """Capacity tone; unknown pressure reads amber, never green."""
    settings = settings or get_settings()
    pressure = forecast.capacityPressurePct

    if pressure is None:
        tone = Tone.AMBER
    elif pressure > settings.capacity_red_pct:
        tone = Tone.RED
    elif pressure > settings.capacity_amber_pct:
        tone = Tone.AMBER
    else:
        tone = Tone.GREEN

    return CapacitySignal(
        pressurePct=pressure,
        knownDemandHours=forecast.knownDemandHours,
        capacityHours=forecast.capacityHours,
        tone=tone,
    )


def _is_open(deliverable: ClassifiedDeliverable) -> bool:
    return deliverable.status != DeliverableStatus.COMPLETED


def compute_deadlines_signal(
    deliverables: Iterable[ClassifiedDeliverable],
    settings: Optional[Settings] = None,
) -> DeadlinesSignal:
    settings = settings or get_settings()
    open_deliverables = [d for d in deliverables if _is_open(d)]
    overdue_open = sum(1 for d in open_deliverables if d.overdue)
    due_soon = sum(1 for d in open_deliverables if d.dueSoon)

    if overdue_open > 0:
        tone = Tone.RED
    elif due_soon > settings.deadlines_due_soon_amber_count:
        tone = Tone.AMBER
    else:
        tone = Tone.GREEN

    return DeadlinesSignal(
        overdueOpen=overdue_open,
        dueSoon=due_soon,
        totalWindow=overdue_open + due_soon,
        tone=tone,
    )


def count_unreviewed_overdue(deliverables: Iterable[ClassifiedDeliverable]) -> int:
    """Open overdue deliverables without a live review acknowledgement."""
    return sum(
        1 for d in deliverables
        if d.overdue and _is_open(d) and d.reviewed is None
    )


# =============================================================================
# Sales Clarity
# =============================================================================


def compute_sales_signal(
    deals: Iterable[SalesDeal],
    settings: Optional[Settings] = None,
) -> SalesSignal:
    """
    Weighted open pipeline as a share of won value.

    Open deals are weighted by their probability (default_deal_probability
    when missing or zero). With no won value the coverage is unknown and the
    signal reads amber.
    """
    settings = settings or get_settings()
    deals = list(deals)

    won = [d for d in deals if d.stage == DealStage.WON]
    open_deals = [d for d in deals if d.stage not in CLOSED_DEAL_STAGES]

    won_value = sum(finite_or_none(d.amount) or 0.0 for d in won)
    weighted_open = sum(
        (finite_or_none(d.amount) or 0.0)
        * (finite_or_none(d.probability) or settings.default_deal_probability)
        for d in open_deals
    )
    coverage_pct = percent_or_none(weighted_open, won_value)

    return SalesSignal(
        openCount=len(open_deals),
        weightedOpen=round_half_up(weighted_open),
        wonValue=round_half_up(won_value),
        coveragePct=coverage_pct,
        tone=tone_for_threshold(
            coverage_pct,
            green_at_least=settings.sales_coverage_green_pct,
            amber_at_least=settings.sales_coverage_amber_pct,
            unknown=Tone.AMBER,
        ),
    )


# =============================================================================
# Pipeline
# =============================================================================


def build_performance_pulse(
    team: Iterable[TeamMember] = (),
    jobs: Iterable[Job] = (),
    deliverables: Iterable[Deliverable] = (),
    tasks: Iterable[Task] = (),
    overrides: Optional[Any] = None,
    deals: Iterable[SalesDeal] = (),
    horizon_days: Optional[int] = None,
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> PerformancePulse:
    """
    Run the full signal pipeline over one entity snapshot.

    Args:
        team: Team roster
        jobs: Job collection
        deliverables: Base deliverables (overrides are merged here)
        tasks: Task collection
        overrides: Mapping or OverrideStore of deliverable overrides
        deals: Sales pipeline
        horizon_days: Capacity horizon (default from settings)
        today: Injectable "today"
        settings: Optional settings override

    Returns:
        PerformancePulse; stale review ids are reported, not persisted
    """
    settings = settings or get_settings()
    today = resolve_today(today)
    team = list(team)
    jobs = list(jobs)

    batch = classify_deliverables(deliverables, jobs, overrides, today, settings)
    classified: List[ClassifiedDeliverable] = batch.deliverables

    forecast = build_capacity_forecast(
        team=team,
        jobs=jobs,
        deliverables=classified,
        tasks=tasks,
        horizon_days=horizon_days,
        today=today,
        settings=settings,
    )
    rollup = build_jobs_at_risk_rollup(jobs, classified, today, settings)

    signals = PulseSignals(
        momentum=compute_momentum_signal(jobs, today, settings),
        jobs=compute_jobs_signal(rollup),
        capacity=compute_capacity_signal(forecast, settings),
        deadlines=compute_deadlines_signal(classified, settings),
        sales=compute_sales_signal(deals, settings),
    )
    unreviewed_overdue = count_unreviewed_overdue(classified)

    flow = compute_flow_score(
        signals.tones(),
        capacity_pressure_pct=forecast.capacityPressurePct,
        unreviewed_overdue_count=unreviewed_overdue,
        settings=settings,
    )

    logger.info(
        f"Pulse for {today.isoformat()}: {flow.state.value} {flow.scorePct}% "
        f"({flow.driverLabel}); {rollup.jobsAtRiskCount} jobs at risk, "
        f"capacity {forecast.capacityStateLabel.value}"
    )

    return PerformancePulse(
        today=today,
        deliverables=classified,
        invalidatedReviewIds=batch.invalidatedReviewIds,
        capacity=forecast,
        jobsAtRisk=rollup,
        signals=signals,
        unreviewedOverdueCount=unreviewed_overdue,
        flowScore=flow,
    )


__all__ = [
    'job_effort_pct',
    'job_timeline_pct',
    'compute_momentum_signal',
    'compute_jobs_signal',
    'compute_capacity_signal',
    'compute_deadlines_signal',
    'compute_sales_signal',
    'count_unreviewed_overdue',
    'build_performance_pulse',
]
