"""
Pydantic models for the Performance Signal Engine.

This module defines the entity snapshots the engine consumes (team members,
jobs, deliverables, tasks, time entries, service types, sales deals), the
sparse override records merged over deliverables at read time, and every
derived report the engine produces.

Field names keep the camelCase names the dashboard uses on the wire so that
entity collections can be validated straight from their JSON form.

Entity models are frozen: the engine never mutates its inputs, and derived
values are produced with model_copy(update=...).

All models use Pydantic v2 syntax.
"""

from datetime import datetime, date as DateType
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from signal_engine.models.enums import (
    CapacityState,
    DealStage,
    DeliverableLens,
    DeliverableStatus,
    FlowState,
    JobPulseState,
    ProgressConfidence,
    ReasonId,
    ReviewedFilter,
    SignalKey,
    Tone,
)

# Jobs and deliverables are keyed by integers upstream, members and tasks by
# strings; both are accepted everywhere an id appears.
EntityId = Union[int, str]

# Raw date values as supplied by the entity collections. Strings are kept
# verbatim (they may be malformed) and parsed by signal_engine.core.dates.
DateValue = Optional[Union[datetime, DateType, str]]


FROZEN = ConfigDict(frozen=True)


# =============================================================================
# Entity Snapshots
# =============================================================================


class ServiceType(BaseModel):
    """A kind of work the agency sells (Web, Brand, SEO...)."""
    model_config = FROZEN

    id: str = Field(..., description="Service type identifier")
    name: str = Field(..., description="Display name")


class TeamMember(BaseModel):
    """
    A team member and their monthly availability.

    monthlyCapacityHours is hours available per 30-day month; the capacity
    forecast pro-rates it over the horizon.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "tm1",
                "name": "Sam",
                "monthlyCapacityHours": 200,
                "serviceTypes": ["Web", "API"],
            }
        },
    )

    id: EntityId = Field(..., description="Member identifier")
    name: str = Field(..., description="Display name")
    monthlyCapacityHours: Optional[float] = Field(
        default=0,
        description="Hours available per 30-day month"
    )
    serviceTypes: List[str] = Field(
        default_factory=list,
        description="Service type names the member usually works on"
    )


class Job(BaseModel):
    """
    A client job. Deliverables hang off jobs.

    estHours/actualHours/startDate/plannedEnd feed the delivery-pace
    (momentum) signal only.
    """
    model_config = FROZEN

    id: EntityId = Field(..., description="Job identifier")
    name: Optional[str] = Field(default=None, description="Job name")
    client: Optional[str] = Field(default=None, description="Client name")
    status: str = Field(default="active", description="active, completed, ...")
    serviceType: Optional[str] = Field(default=None, description="Service type name")
    estHours: Optional[float] = Field(default=None, description="Estimated job hours")
    actualHours: Optional[float] = Field(default=None, description="Hours logged so far")
    startDate: DateValue = Field(default=None, description="Job start date")
    plannedEnd: DateValue = Field(default=None, description="Planned end date")


class ReviewSnapshot(BaseModel):
    """
    The risk-relevant state of a deliverable at the moment it was reviewed.

    A review acknowledgement stays valid only while a freshly computed
    snapshot compares equal to the stored one; adding a tracked field here is
    the single change needed to widen what invalidates a review.
    """
    model_config = FROZEN

    due: Optional[str] = Field(default=None, description="Effective due date (ISO)")
    overdue: bool = Field(default=False)
    effortOver: bool = Field(default=False)
    timelineOver: bool = Field(default=False)
    confidence: ProgressConfidence = Field(
        default=ProgressConfidence.UNSET,
        description="Progress confidence, UNSET when none was set"
    )


class ReviewedAcknowledgement(BaseModel):
    """Who reviewed a drifting deliverable, when, and what they saw."""
    model_config = FROZEN

    by: str = Field(..., description="Reviewer name")
    at: DateValue = Field(default=None, description="Review timestamp")
    snapshot: Optional[ReviewSnapshot] = Field(
        default=None,
        description="Snapshot recorded at review time"
    )


class ChangeOrder(BaseModel):
    """A scope change recorded against a deliverable."""
    model_config = FROZEN

    id: str = Field(..., description="Change order identifier")
    note: str = Field(default="", description="Free-text note")
    createdAt: DateValue = Field(default=None, description="Creation timestamp")


class Deliverable(BaseModel):
    """
    A dated unit of work inside a job.

    effortConsumedPct and durationConsumedPct are consumption percentages;
    values above 100 indicate an overrun and are expected.
    """
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": 202,
                "jobId": 103,
                "name": "Final Report Delivery",
                "due": "2026-01-18",
                "status": "in-progress",
                "effortConsumedPct": 102,
                "durationConsumedPct": 115,
                "estimatedHours": 30,
            }
        },
    )

    id: EntityId = Field(..., description="Deliverable identifier")
    jobId: EntityId = Field(..., description="Parent job identifier")
    name: str = Field(default="", description="Deliverable name")
    owner: Optional[str] = Field(default=None, description="Owner display name")
    due: DateValue = Field(default=None, description="Due date")
    status: str = Field(
        default=DeliverableStatus.IN_PROGRESS.value,
        description="in-progress, backlog, completed, blocked"
    )
    effortConsumedPct: Optional[float] = Field(default=None, description="Effort consumed %")
    durationConsumedPct: Optional[float] = Field(default=None, description="Timeline consumed %")
    estimatedHours: Optional[float] = Field(default=None, description="Estimated hours")
    completedAt: DateValue = Field(default=None, description="Completion timestamp")
    originalDue: DateValue = Field(default=None, description="Due date before any move")
    changedAt: DateValue = Field(default=None, description="When the due date was moved")
    changedBy: Optional[str] = Field(default=None, description="Who moved the due date")
    progressConfidence: Optional[ProgressConfidence] = Field(
        default=None,
        description="Progress confidence; None when unset"
    )
    reviewed: Optional[ReviewedAcknowledgement] = Field(
        default=None,
        description="Review acknowledgement; merge_override replaces it with the override's"
    )
    changeOrders: List[ChangeOrder] = Field(default_factory=list)
    paceTone: Optional[Tone] = Field(
        default=None,
        description="Momentum/pace signal for this deliverable, when one is tracked"
    )


class Task(BaseModel):
    """
    A piece of work inside a deliverable.

    remainingHours=None means "not overridden"; an explicit 0 means the work
    is fully consumed. The two are never conflated.
    """
    model_config = FROZEN

    id: EntityId = Field(..., description="Task identifier")
    deliverableId: EntityId = Field(..., description="Owning deliverable")
    title: Optional[str] = Field(default=None)
    assigneeId: Optional[EntityId] = Field(default=None, description="Assigned member")
    serviceTypeId: Optional[str] = Field(default=None)
    estimatedHours: Optional[float] = Field(default=None)
    assignedHours: Optional[float] = Field(default=None)
    actualHours: Optional[float] = Field(default=None)
    remainingHours: Optional[float] = Field(default=None, description="Remaining-hours override")
    completed: bool = Field(default=False)


class TimeEntry(BaseModel):
    """
    Logged time. Job entries reference a task; quick entries reference a
    member directly.
    """
    model_config = FROZEN

    id: EntityId = Field(..., description="Entry identifier")
    taskId: Optional[EntityId] = Field(default=None)
    memberId: Optional[EntityId] = Field(default=None)
    serviceTypeId: Optional[str] = Field(default=None)
    hours: Optional[float] = Field(default=None)
    date: DateValue = Field(default=None, description="Day the time was logged")
    notes: str = Field(default="")
    quickTask: bool = Field(default=False)
    title: Optional[str] = Field(default=None)


class SalesDeal(BaseModel):
    """An opportunity in the sales pipeline."""
    model_config = FROZEN

    id: EntityId = Field(..., description="Deal identifier")
    name: str = Field(default="")
    client: Optional[str] = Field(default=None)
    ownerId: Optional[EntityId] = Field(default=None)
    serviceTypeId: Optional[str] = Field(default=None)
    source: Optional[str] = Field(default=None)
    stage: DealStage = Field(..., description="Pipeline stage")
    amount: Optional[float] = Field(default=None)
    probability: Optional[float] = Field(default=None, description="Win probability 0..1")
    createdAt: DateValue = Field(default=None)
    closedAt: DateValue = Field(default=None)


# =============================================================================
# Override Records
# =============================================================================


class DueOverride(BaseModel):
    """A due-date move recorded outside the base entity."""
    model_config = FROZEN

    due: DateValue = Field(..., description="New due date")
    originalDue: DateValue = Field(default=None, description="First due date before any move")
    changedAt: DateValue = Field(default=None)
    changedBy: Optional[str] = Field(default=None)


class DeliverableOverride(BaseModel):
    """
    Sparse patch merged over a deliverable at read time.

    Every field is optional; None means "not overridden". changeOrders=None
    means the base entity's list applies.
    """
    model_config = FROZEN

    dueOverride: Optional[DueOverride] = Field(default=None)
    statusOverride: Optional[str] = Field(default=None)
    completedAt: DateValue = Field(default=None)
    completedBy: Optional[str] = Field(default=None)
    progressConfidence: Optional[ProgressConfidence] = Field(default=None)
    reviewed: Optional[ReviewedAcknowledgement] = Field(default=None)
    changeOrders: Optional[List[ChangeOrder]] = Field(default=None)

    def is_empty(self) -> bool:
        """True when no field is overridden."""
        return not self.model_dump(exclude_none=True)


# =============================================================================
# Deliverable Risk Classifier Output
# =============================================================================


class ReasonChip(BaseModel):
    """A single drift reason shown as a chip."""
    model_config = FROZEN

    id: ReasonId
    label: str
    tone: Tone


class ClassifiedDeliverable(Deliverable):
    """
    A deliverable with overrides merged and risk flags derived.

    `reviewed` holds the acknowledgement only while it is still live;
    reviewInvalidated is True when this pass found it stale and dropped it.
    """

    status: DeliverableStatus = Field(..., description="Normalized effective status")
    jobName: str = Field(..., description="Parent job name (fallback 'Job <id>')")
    client: str = Field(..., description="Parent job client (fallback 'Client')")
    effortPct: int = Field(..., ge=0)
    timelinePct: int = Field(..., ge=0)
    overdue: bool
    dueSoon: bool
    effortOver: bool
    timelineOver: bool
    lowConfidence: bool
    needsCheckIn: bool
    atRisk: bool
    dateMoved: bool
    reasons: List[ReasonChip] = Field(default_factory=list)
    reviewInvalidated: bool = Field(default=False)


class ClassificationBatch(BaseModel):
    """Result of classifying a whole deliverable collection."""
    model_config = FROZEN

    deliverables: List[ClassifiedDeliverable] = Field(default_factory=list)
    invalidatedReviewIds: List[EntityId] = Field(
        default_factory=list,
        description="Deliverables whose stored review acknowledgement went stale"
    )


# =============================================================================
# Capacity Forecast Output
# =============================================================================


class MemberDeliverableContribution(BaseModel):
    """A deliverable contributing demand to one member."""

    deliverableId: EntityId
    deliverableName: str
    jobId: EntityId
    jobName: str
    clientName: str
    dueDate: DateValue = None
    memberAssignedKnownHours: float = 0
    memberUnknownTaskCount: int = 0


class MemberCapacityRow(BaseModel):
    """Per-member capacity vs. assigned known demand within the horizon."""

    memberId: EntityId
    memberName: str
    horizonCapacityHours: int
    assignedKnownDemandHours: int
    utilizationPct: Optional[int] = Field(
        default=None,
        description="None when the member has no capacity in the horizon"
    )
    utilizationState: CapacityState
    deliverablesContributing: List[MemberDeliverableContribution] = Field(default_factory=list)
    unknownTasks: List[Task] = Field(default_factory=list)


class ServiceTypeDeliverableContribution(BaseModel):
    """A deliverable contributing demand to one service type."""

    deliverableId: EntityId
    deliverableName: str
    jobId: EntityId
    jobName: str
    clientName: str
    dueDate: DateValue = None
    knownHours: float = 0
    unknownTasks: int = 0
    unassignedKnownHours: float = 0


class ServiceTypeDemandRow(BaseModel):
    """Known demand for one service type within the horizon."""

    serviceTypeId: str
    knownDemandHours: int
    sharePct: Optional[int] = Field(
        default=None,
        description="Share of all service-type known demand; None when that total is 0"
    )
    deliverablesContributing: List[ServiceTypeDeliverableContribution] = Field(default_factory=list)


class DeliverableEvidence(BaseModel):
    """Demand evidence for one deliverable due inside the horizon."""

    deliverableId: EntityId
    deliverableName: str
    jobId: EntityId
    jobName: str
    clientName: str
    dueDate: DateValue = None
    knownHoursTotal: float = 0
    unknownTaskCountTotal: int = 0
    unassignedKnownHoursTotal: float = 0


class CapacityForecastResult(BaseModel):
    """
    Capacity vs. demand over a rolling horizon.

    capacityPressurePct is None ("unknown") when team capacity is zero or
    when every task in the horizon has unknown demand.
    """
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "horizonLabel": "Next 30 days",
                "horizonDays": 30,
                "knownDemandHours": 100,
                "capacityHours": 100,
                "capacityPressurePct": 100,
                "capacityStateLabel": "Tight",
            }
        }
    )

    horizonLabel: str
    horizonDays: int
    horizonStart: DateType = Field(..., description="First day inside the horizon")
    horizonEnd: DateType = Field(..., description="First day after the horizon")
    knownDemandHours: int
    capacityHours: int
    capacityPressurePct: Optional[int] = None
    capacityStateLabel: CapacityState
    unknownDemandTaskCount: int = 0
    unknownDemandDeliverableCount: int = 0
    unassignedDemandHours: int = 0
    unassignedKnownTaskCount: int = 0
    unknownUnassignedTaskCount: int = 0
    teamRows: List[MemberCapacityRow] = Field(default_factory=list)
    serviceTypes: List[ServiceTypeDemandRow] = Field(default_factory=list)
    deliverablesInHorizon: List[DeliverableEvidence] = Field(default_factory=list)


# =============================================================================
# Jobs-at-Risk Rollup Output
# =============================================================================


class JobRiskEntry(BaseModel):
    """A job with at least one at-risk deliverable inside the risk horizon."""

    jobId: EntityId
    jobName: str
    clientName: str
    atRiskDeliverables: List[ClassifiedDeliverable] = Field(default_factory=list)
    atRiskDeliverableCount: int
    reviewedAtRiskDeliverableCount: int
    unreviewedAtRiskDeliverableCount: int
    unreviewedAtRisk: bool = Field(..., description="At least one at-risk deliverable is unreviewed")
    reviewedAtRisk: bool = Field(..., description="Every at-risk deliverable is reviewed")
    severity: int = Field(..., description="3 = drift flags, 2 = pace only")
    nextPainDate: Optional[DateType] = None
    driverChips: List[ReasonChip] = Field(default_factory=list)


class JobsAtRiskRollup(BaseModel):
    """Ordered jobs-at-risk list plus summary counts."""

    jobsAtRisk: List[JobRiskEntry] = Field(default_factory=list)
    jobsAtRiskCount: int = 0
    jobsAtRiskReviewedCount: int = 0
    jobsAtRiskNeedingAttention: int = 0


# =============================================================================
# Flow Score
# =============================================================================


class FlowSignals(BaseModel):
    """Tones of the five signals blended into the flow score."""
    model_config = FROZEN

    momentum: Tone = Tone.GREEN
    jobs: Tone = Tone.GREEN
    capacity: Tone = Tone.GREEN
    deadlines: Tone = Tone.GREEN
    sales: Tone = Tone.GREEN

    def tone_for(self, key: SignalKey) -> Tone:
        return getattr(self, key.value)


class FlowScore(BaseModel):
    """Composite headline score. Higher scorePct means more drift."""
    model_config = FROZEN

    scorePct: int = Field(..., ge=0, le=100)
    state: FlowState
    message: str
    driverLabel: str
    driverKey: Optional[SignalKey] = Field(
        default=None,
        description="Signal that drives the label; None when everything is green"
    )
    severitySum: int = Field(..., ge=0, le=10)


# =============================================================================
# Pulse Signals
# =============================================================================


class MomentumSignal(BaseModel):
    """Delivery pace across active jobs."""

    onTimePct: Optional[int] = None
    activeCount: int = 0
    warmingCount: int = 0
    tone: Tone


class JobsSignal(BaseModel):
    jobsAtRiskCount: int = 0
    needingAttention: int = 0
    tone: Tone


class CapacitySignal(BaseModel):
    pressurePct: Optional[int] = None
    knownDemandHours: int = 0
    capacityHours: int = 0
    tone: Tone


class DeadlinesSignal(BaseModel):
    overdueOpen: int = 0
    dueSoon: int = 0
    totalWindow: int = 0
    tone: Tone


class SalesSignal(BaseModel):
    """Weighted open pipeline vs. won value ("revenue fog")."""

    openCount: int = 0
    weightedOpen: int = 0
    wonValue: int = 0
    coveragePct: Optional[int] = None
    tone: Tone


class PulseSignals(BaseModel):
    momentum: MomentumSignal
    jobs: JobsSignal
    capacity: CapacitySignal
    deadlines: DeadlinesSignal
    sales: SalesSignal

    def tones(self) -> FlowSignals:
        return FlowSignals(
            momentum=self.momentum.tone,
            jobs=self.jobs.tone,
            capacity=self.capacity.tone,
            deadlines=self.deadlines.tone,
            sales=self.sales.tone,
        )


class PerformancePulse(BaseModel):
    """Everything the performance overview renders, computed in one pass."""

    today: DateType
    deliverables: List[ClassifiedDeliverable] = Field(default_factory=list)
    invalidatedReviewIds: List[EntityId] = Field(default_factory=list)
    capacity: CapacityForecastResult
    jobsAtRisk: JobsAtRiskRollup
    signals: PulseSignals
    unreviewedOverdueCount: int = 0
    flowScore: FlowScore


# =============================================================================
# Job Pulse
# =============================================================================


class JobPulseSummary(BaseModel):
    overdue: int = 0
    atRisk: int = 0
    watch: int = 0
    changeOrders: int = 0
    lowConfidence: int = 0
    needsCheckIn: int = 0
    stateLabel: JobPulseState


class JobHistoryEvent(BaseModel):
    at: datetime = Field(..., description="Event instant (naive UTC)")
    date: DateType
    kind: str = Field(..., description="moved, reviewed, completed, changeOrder")
    label: str
    deliverableId: EntityId


# =============================================================================
# At-Risk Deliverable Lens
# =============================================================================


class DeliverableFilter(BaseModel):
    """Filter state for the at-risk deliverables list."""

    lens: DeliverableLens = DeliverableLens.ALL
    filters: List[str] = Field(
        default_factory=list,
        description="overdue, dueSoon, effortOver, timelineOver, lowConf, needsCheckIn, moved"
    )
    reviewed: ReviewedFilter = ReviewedFilter.ALL
    client: str = ""
    jobId: Optional[EntityId] = None
    q: str = ""


class OpenDeliverableStats(BaseModel):
    atRisk: int = 0
    reviewed: int = 0
    needsCheckIn: int = 0


# =============================================================================
# Time Report
# =============================================================================


class ReportRange(BaseModel):
    """Inclusive day range."""
    model_config = FROZEN

    start: DateType
    end: DateType
    days: int


class EnrichedTimeEntry(BaseModel):
    uid: str
    date: DateType
    hours: float = 0
    notes: str = ""
    taskTitle: str = "Task"
    type: str = Field(..., description="quick or job")
    jobId: Optional[EntityId] = None
    jobName: Optional[str] = None
    client: Optional[str] = None
    deliverableId: Optional[EntityId] = None
    memberId: Optional[EntityId] = None
    memberName: Optional[str] = None
    serviceTypeId: str = "other"
    serviceTypeName: Optional[str] = None


class DailyTotal(BaseModel):
    date: DateType
    hours: float = 0


class DailyTotals(BaseModel):
    days: List[DailyTotal] = Field(default_factory=list)
    maxHours: float = 0


class TimeGroupTotal(BaseModel):
    id: str
    label: str
    hours: float = 0
    percent: Optional[int] = None


__all__ = [
    'EntityId',
    'DateValue',
    # Entities
    'ServiceType',
    'TeamMember',
    'Job',
    'Deliverable',
    'Task',
    'TimeEntry',
    'SalesDeal',
    # Overrides
    'ReviewSnapshot',
    'ReviewedAcknowledgement',
    'ChangeOrder',
    'DueOverride',
    'DeliverableOverride',
    # Classifier
    'ReasonChip',
    'ClassifiedDeliverable',
    'ClassificationBatch',
    # Capacity
    'MemberDeliverableContribution',
    'MemberCapacityRow',
    'ServiceTypeDeliverableContribution',
    'ServiceTypeDemandRow',
    'DeliverableEvidence',
    'CapacityForecastResult',
    # Jobs at risk
    'JobRiskEntry',
    'JobsAtRiskRollup',
    # Flow
    'FlowSignals',
    'FlowScore',
    # Pulse
    'MomentumSignal',
    'JobsSignal',
    'CapacitySignal',
    'DeadlinesSignal',
    'SalesSignal',
    'PulseSignals',
    'PerformancePulse',
    # Job pulse
    'JobPulseSummary',
    'JobHistoryEvent',
    # Lens
    'DeliverableFilter',
    'OpenDeliverableStats',
    # Time report
    'ReportRange',
    'EnrichedTimeEntry',
    'DailyTotal',
    'DailyTotals',
    'TimeGroupTotal',
]
