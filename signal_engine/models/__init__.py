"""
Data models for the Performance Signal Engine.

Re-exports every enumeration from enums.py and every Pydantic model from
schemas.py so callers can write:

    from signal_engine.models import Deliverable, Task, Tone
"""

# =============================================================================
# Enums
# =============================================================================

from signal_engine.models.enums import (
    CapacityState,
    DealStage,
    DeliverableLens,
    DeliverableStatus,
    FlowState,
    JobPulseState,
    ProgressConfidence,
    ReasonId,
    ReportGroupBy,
    ReportRangePreset,
    ReviewedFilter,
    SignalKey,
    Tone,
)

# =============================================================================
# Schemas
# =============================================================================

from signal_engine.models.schemas import (
    # Type aliases
    DateValue,
    EntityId,
    # Entities
    Deliverable,
    Job,
    SalesDeal,
    ServiceType,
    Task,
    TeamMember,
    TimeEntry,
    # Overrides
    ChangeOrder,
    DeliverableOverride,
    DueOverride,
    ReviewSnapshot,
    ReviewedAcknowledgement,
    # Classifier
    ClassificationBatch,
    ClassifiedDeliverable,
    ReasonChip,
    # Capacity
    CapacityForecastResult,
    DeliverableEvidence,
    MemberCapacityRow,
    MemberDeliverableContribution,
    ServiceTypeDeliverableContribution,
    ServiceTypeDemandRow,
    # Jobs at risk
    JobRiskEntry,
    JobsAtRiskRollup,
    # Flow score and pulse
    CapacitySignal,
    DeadlinesSignal,
    FlowScore,
    FlowSignals,
    JobsSignal,
    MomentumSignal,
    PerformancePulse,
    PulseSignals,
    SalesSignal,
    # Job pulse
    JobHistoryEvent,
    JobPulseSummary,
    # Lens
    DeliverableFilter,
    OpenDeliverableStats,
    # Time report
    DailyTotal,
    DailyTotals,
    EnrichedTimeEntry,
    ReportRange,
    TimeGroupTotal,
)

__all__ = [
    # Enums
    'CapacityState',
    'DealStage',
    'DeliverableLens',
    'DeliverableStatus',
    'FlowState',
    'JobPulseState',
    'ProgressConfidence',
    'ReasonId',
    'ReportGroupBy',
    'ReportRangePreset',
    'ReviewedFilter',
    'SignalKey',
    'Tone',
    # Type aliases
    'DateValue',
    'EntityId',
    # Entities
    'Deliverable',
    'Job',
    'SalesDeal',
    'ServiceType',
    'Task',
    'TeamMember',
    'TimeEntry',
    # Overrides
    'ChangeOrder',
    'DeliverableOverride',
    'DueOverride',
    'ReviewSnapshot',
    'ReviewedAcknowledgement',
    # Classifier
    'ClassificationBatch',
    'ClassifiedDeliverable',
    'ReasonChip',
    # Capacity
    'CapacityForecastResult',
    'DeliverableEvidence',
    'MemberCapacityRow',
    'MemberDeliverableContribution',
    'ServiceTypeDeliverableContribution',
    'ServiceTypeDemandRow',
    # Jobs at risk
    'JobRiskEntry',
    'JobsAtRiskRollup',
    # Flow score and pulse
    'CapacitySignal',
    'DeadlinesSignal',
    'FlowScore',
    'FlowSignals',
    'JobsSignal',
    'MomentumSignal',
    'PerformancePulse',
    'PulseSignals',
    'SalesSignal',
    # Job pulse
    'JobHistoryEvent',
    'JobPulseSummary',
    # Lens
    'DeliverableFilter',
    'OpenDeliverableStats',
    # Time report
    'DailyTotal',
    'DailyTotals',
    'EnrichedTimeEntry',
    'ReportRange',
    'TimeGroupTotal',
]
