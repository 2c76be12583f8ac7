"""
Capacity forecast service for the Performance Signal Engine.

This module compares team capacity with the remaining work due inside a
rolling horizon and breaks the demand down per member, per service type and
per deliverable.

Key Functions:
- remaining_hours_for_task: Remaining work for one task (known or unknown)
- capacity_state_label: Map a pressure/utilization % to a CapacityState
- build_capacity_forecast: Main entry point, returns CapacityForecastResult

Horizon:
- Window is [today, today + horizon_days), at day granularity
- Member capacity = round(monthlyCapacityHours / 30 * horizon_days)
- Only tasks whose deliverable exists, is due inside the window and is not
  completed contribute demand

Remaining Hours:
- completed task -> 0
- remainingHours set and >= 0 -> used directly (0 is a known zero)
- else estimatedHours, else assignedHours, minus actualHours (floored at 0)
- nothing to estimate from -> unknown

Unknown demand is counted, never folded into known demand as zero. Capacity
pressure is None when the team has no capacity or when every task in the
window has unknown demand.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.dates import DateLike, add_days, parse_date, resolve_today
from signal_engine.core.numeric import finite_or_none, percent_or_none, round_half_up
from signal_engine.models.enums import CapacityState, DeliverableStatus
from signal_engine.models.schemas import (
    CapacityForecastResult,
    Deliverable,
    DeliverableEvidence,
    EntityId,
    Job,
    MemberCapacityRow,
    MemberDeliverableContribution,
    ServiceTypeDeliverableContribution,
    ServiceTypeDemandRow,
    Task,
    TeamMember,
)
from signal_engine.services.classification import normalize_status

logger = logging.getLogger(__name__)


DAYS_PER_MONTH = 30
OTHER_SERVICE_TYPE = "other"


# =============================================================================
# Remaining Hours
# =============================================================================


@dataclass(frozen=True)
class KnownHours:
    """Remaining work that could be estimated (may be exactly 0)."""
    hours: float


@dataclass(frozen=True)
class UnknownHours:
    """Remaining work that cannot be estimated from the task data."""


UNKNOWN_HOURS = UnknownHours()

RemainingHours = Union[KnownHours, UnknownHours]


def remaining_hours_for_task(task: Task) -> RemainingHours:
    """
    Compute the remaining work for a task.

    An explicit remainingHours of 0 counts as known zero work, not a fallback.

    Args:
        task: Task to evaluate

    Returns:
        KnownHours (never negative) or UNKNOWN_HOURS
    """
    if task.completed:
        return KnownHours(0.0)

    override = finite_or_none(task.remainingHours)
    if override is not None and override >= 0:
        return KnownHours(override)

    base = finite_or_none(task.estimatedHours)
    if base is None:
        base = finite_or_none(task.assignedHours)
    if base is None:
        return UNKNOWN_HOURS

    actual = finite_or_none(task.actualHours) or 0.0
    return KnownHours(max(0.0, base - actual))


def capacity_state_label(pct: Optional[int], settings: Optional[Settings] = None) -> CapacityState:
    """
    Map a pressure or utilization percentage to a capacity state.

    None -> Unknown; > 100 -> Overloaded; >= 85 -> Tight; else Balanced.
    """
    settings = settings or get_settings()
    if pct is None:
        return CapacityState.UNKNOWN
    if pct > settings.overloaded_pressure_pct:
        return CapacityState.OVERLOADED
    if pct >= settings.tight_pressure_pct:
        return CapacityState.TIGHT
    return CapacityState.BALANCED


# =============================================================================
# Accumulators
# =============================================================================


@dataclass
class _MemberAccumulator:
    member: TeamMember
    horizon_capacity_hours: int
    known_hours: float = 0.0
    unknown_tasks: List[Task] = field(default_factory=list)
    contributions: Dict[EntityId, MemberDeliverableContribution] = field(default_factory=dict)


@dataclass
class _ServiceTypeAccumulator:
    service_type_id: str
    known_hours: float = 0.0
    contributions: Dict[EntityId, ServiceTypeDeliverableContribution] = field(default_factory=dict)


def _is_excluded(deliverable: Deliverable, today) -> bool:
    if normalize_status(deliverable.status) == DeliverableStatus.COMPLETED:
        return True
    completed_on = parse_date(deliverable.completedAt)
    return completed_on is not None and completed_on < today


def _sort_evidence(evidence: Iterable[DeliverableEvidence]) -> List[DeliverableEvidence]:
    def key(entry: DeliverableEvidence):
        due = parse_date(entry.dueDate)
        return (due is None, due.toordinal() if due else 0, entry.deliverableName.lower())

    return sorted(evidence, key=key)


# =============================================================================
# Forecast
# =============================================================================


def build_capacity_forecast(
    team: Iterable[TeamMember] = (),
    jobs: Iterable[Job] = (),
    deliverables: Iterable[Deliverable] = (),
    tasks: Iterable[Task] = (),
    horizon_days: Optional[int] = None,
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> CapacityForecastResult:
    """
    Build the capacity vs. demand forecast for a rolling horizon.

    Deliverables should be the effective ones (overrides merged), e.g. the
    output of classify_deliverables, so that moved due dates and completions
    recorded as overrides are honoured.

    Args:
        team: Team roster
        jobs: Jobs, for display context
        deliverables: Effective deliverables
        tasks: Task collection
        horizon_days: Horizon length in days (default from settings)
        today: Injectable "today"
        settings: Optional settings override

    Returns:
        CapacityForecastResult

    Raises:
        ValueError: If horizon_days is not positive
    """
    settings = settings or get_settings()
    horizon_days = settings.default_horizon_days if horizon_days is None else horizon_days
    if horizon_days <= 0:
        raise ValueError(f"horizon_days must be positive, got {horizon_days}")

    today = resolve_today(today)
    horizon_end = add_days(today, horizon_days)
    jobs_by_id: Dict[EntityId, Job] = {job.id: job for job in jobs}
    deliverables_by_id: Dict[EntityId, Deliverable] = {d.id: d for d in deliverables}

    members: Dict[EntityId, _MemberAccumulator] = {}
    for member in team:
        monthly = finite_or_none(member.monthlyCapacityHours) or 0.0
        members[member.id] = _MemberAccumulator(
            member=member,
            horizon_capacity_hours=max(0, round_half_up(monthly / DAYS_PER_MONTH * horizon_days)),
        )

    service_types: Dict[str, _ServiceTypeAccumulator] = {}
    evidence: Dict[EntityId, DeliverableEvidence] = {}

    known_demand = 0.0
    unassigned_demand = 0.0
    unassigned_known_tasks = 0
    unknown_tasks = 0
    unknown_unassigned_tasks = 0

    for task in tasks:
        deliverable = deliverables_by_id.get(task.deliverableId)
        if deliverable is None:
            logger.debug(f"Task {task.id} references unknown deliverable {task.deliverableId}, skipping")
            continue

        due = parse_date(deliverable.due)
        if due is None or not (today <= due < horizon_end):
            continue
        if _is_excluded(deliverable, today):
            continue

        job = jobs_by_id.get(deliverable.jobId)
        job_name = job.name if job and job.name else f"Job {deliverable.jobId}"
        client_name = job.client if job and job.client else "Client"

        entry = evidence.get(deliverable.id)
        if entry is None:
            entry = evidence[deliverable.id] = DeliverableEvidence(
                deliverableId=deliverable.id,
                deliverableName=deliverable.name,
                jobId=deliverable.jobId,
                jobName=job_name,
                clientName=client_name,
                dueDate=deliverable.due,
            )

        service_type_id = task.serviceTypeId or OTHER_SERVICE_TYPE
        service_type = service_types.get(service_type_id)
        if service_type is None:
            service_type = service_types[service_type_id] = _ServiceTypeAccumulator(service_type_id)
        service_entry = service_type.contributions.get(deliverable.id)
        if service_entry is None:
            service_entry = service_type.contributions[deliverable.id] = ServiceTypeDeliverableContribution(
                deliverableId=deliverable.id,
                deliverableName=deliverable.name,
                jobId=deliverable.jobId,
                jobName=job_name,
                clientName=client_name,
                dueDate=deliverable.due,
            )

        member = members.get(task.assigneeId) if task.assigneeId is not None else None
        member_entry = None
        if member is not None:
            member_entry = member.contributions.get(deliverable.id)
            if member_entry is None:
                member_entry = member.contributions[deliverable.id] = MemberDeliverableContribution(
                    deliverableId=deliverable.id,
                    deliverableName=deliverable.name,
                    jobId=deliverable.jobId,
                    jobName=job_name,
                    clientName=client_name,
                    dueDate=deliverable.due,
                )

        remaining = remaining_hours_for_task(task)

        if isinstance(remaining, UnknownHours):
            unknown_tasks += 1
            if member is not None:
                member.unknown_tasks.append(task)
                member_entry.memberUnknownTaskCount += 1
            else:
                unknown_unassigned_tasks += 1
            entry.unknownTaskCountTotal += 1
            service_entry.unknownTasks += 1
            continue

        hours = remaining.hours
        known_demand += hours
        entry.knownHoursTotal += hours
        service_type.known_hours += hours
        service_entry.knownHours += hours

        if member is not None:
            member.known_hours += hours
            member_entry.memberAssignedKnownHours += hours
        else:
            unassigned_demand += hours
            unassigned_known_tasks += 1
            entry.unassignedKnownHoursTotal += hours
            service_entry.unassignedKnownHours += hours

    capacity_hours = sum(m.horizon_capacity_hours for m in members.values())
    all_unknown = known_demand == 0 and unknown_tasks > 0
    pressure_pct = None if all_unknown else percent_or_none(known_demand, capacity_hours)

    team_rows = []
    for member in members.values():
        utilization = percent_or_none(member.known_hours, member.horizon_capacity_hours)
        team_rows.append(MemberCapacityRow(
            memberId=member.member.id,
            memberName=member.member.name,
            horizonCapacityHours=member.horizon_capacity_hours,
            assignedKnownDemandHours=round_half_up(member.known_hours),
            utilizationPct=utilization,
            utilizationState=capacity_state_label(utilization, settings),
            deliverablesContributing=list(member.contributions.values()),
            unknownTasks=member.unknown_tasks,
        ))
    # Unknown utilization sorts after every known value
    team_rows.sort(key=lambda row: (row.utilizationPct is None, -(row.utilizationPct or 0)))

    total_service_demand = sum(s.known_hours for s in service_types.values())
    service_rows = [
        ServiceTypeDemandRow(
            serviceTypeId=s.service_type_id,
            knownDemandHours=round_half_up(s.known_hours),
            sharePct=percent_or_none(s.known_hours, total_service_demand),
            deliverablesContributing=list(s.contributions.values()),
        )
        for s in service_types.values()
    ]
    service_rows.sort(key=lambda row: -row.knownDemandHours)

    in_horizon = _sort_evidence(evidence.values())
    unknown_deliverables = sum(1 for e in in_horizon if e.unknownTaskCountTotal > 0)

    result = CapacityForecastResult(
        horizonLabel=f"Next {horizon_days} days",
        horizonDays=horizon_days,
        horizonStart=today,
        horizonEnd=horizon_end,
        knownDemandHours=round_half_up(known_demand),
        capacityHours=capacity_hours,
        capacityPressurePct=pressure_pct,
        capacityStateLabel=capacity_state_label(pressure_pct, settings),
        unknownDemandTaskCount=unknown_tasks,
        unknownDemandDeliverableCount=unknown_deliverables,
        unassignedDemandHours=round_half_up(unassigned_demand),
        unassignedKnownTaskCount=unassigned_known_tasks,
        unknownUnassignedTaskCount=unknown_unassigned_tasks,
        teamRows=team_rows,
        serviceTypes=service_rows,
        deliverablesInHorizon=in_horizon,
    )

    logger.debug(
        f"Capacity forecast {result.horizonLabel}: known={result.knownDemandHours}h "
        f"capacity={result.capacityHours}h pressure={result.capacityPressurePct} "
        f"unknown_tasks={unknown_tasks}"
    )
    return result


__all__ = [
    'KnownHours',
    'UnknownHours',
    'UNKNOWN_HOURS',
    'RemainingHours',
    'remaining_hours_for_task',
    'capacity_state_label',
    'build_capacity_forecast',
]
