"""
Engine services for the Performance Signal Engine.

Every service is a stateless module of pure functions: given the same entity
snapshot and "today", it returns the same result.

Services:
- classification: Deliverable risk flags, reason chips, review invalidation
- override_store / overrides: Override record contract and override actions
- capacity: Capacity vs. demand forecast over a rolling horizon
- jobs_at_risk: Job-level rollup of at-risk deliverables
- flow_score: Composite flow score from five signal tones
- pulse: Signal tones and the full pipeline
- job_pulse: Per-job summary, ordering and history
- deliverable_lens: At-risk deliverable filtering and ordering
- time_report: Logged-hours ranges, daily totals and top groups
"""

# =============================================================================
# Tones
# =============================================================================

from signal_engine.services.tones import (
    TONE_SEVERITY,
    tone_for_threshold,
    tone_severity,
)

# =============================================================================
# Deliverable Risk Classifier
# =============================================================================

from signal_engine.services.classification import (
    REASON_CHIPS,
    build_reason_chips,
    build_review_snapshot,
    classify_deliverable,
    classify_deliverables,
    has_material_review_change,
    merge_override,
    normalize_status,
)

# =============================================================================
# Overrides
# =============================================================================

from signal_engine.services.override_store import (
    InMemoryOverrideStore,
    OverrideStore,
)
from signal_engine.services.overrides import (
    apply_review_invalidations,
    clear_reviewed,
    complete_deliverable,
    create_change_order,
    mark_reviewed,
    reassign_tasks,
    set_progress_confidence,
    update_due_date,
)

# =============================================================================
# Capacity Forecast
# =============================================================================

from signal_engine.services.capacity import (
    UNKNOWN_HOURS,
    KnownHours,
    UnknownHours,
    build_capacity_forecast,
    capacity_state_label,
    remaining_hours_for_task,
)

# =============================================================================
# Jobs-at-Risk Rollup
# =============================================================================

from signal_engine.services.jobs_at_risk import (
    build_jobs_at_risk_rollup,
    is_rollup_candidate,
    unique_driver_chips,
)

# =============================================================================
# Flow Score and Pulse
# =============================================================================

from signal_engine.services.flow_score import (
    DRIVER_LABELS,
    FALLBACK_DRIVER_LABEL,
    STATE_MESSAGES,
    compute_flow_score,
    pick_driver,
)
from signal_engine.services.pulse import (
    build_performance_pulse,
    compute_capacity_signal,
    compute_deadlines_signal,
    compute_jobs_signal,
    compute_momentum_signal,
    compute_sales_signal,
    count_unreviewed_overdue,
    job_effort_pct,
    job_timeline_pct,
)

# =============================================================================
# Job Pulse, Lens, Time Report
# =============================================================================

from signal_engine.services.job_pulse import (
    build_job_history,
    drift_score,
    sort_job_deliverables,
    summarize_job,
)
from signal_engine.services.deliverable_lens import (
    filter_deliverables,
    lens_severity_score,
    passes_lens,
    sort_by_urgency,
    summarize_open_deliverables,
)
from signal_engine.services.time_report import (
    build_daily_totals,
    build_top_groups,
    enrich_time_entries,
    resolve_report_range,
    resolve_service_type_id,
)

__all__ = [
    # Tones
    'TONE_SEVERITY',
    'tone_for_threshold',
    'tone_severity',
    # Classifier
    'REASON_CHIPS',
    'build_reason_chips',
    'build_review_snapshot',
    'classify_deliverable',
    'classify_deliverables',
    'has_material_review_change',
    'merge_override',
    'normalize_status',
    # Overrides
    'InMemoryOverrideStore',
    'OverrideStore',
    'apply_review_invalidations',
    'clear_reviewed',
    'complete_deliverable',
    'create_change_order',
    'mark_reviewed',
    'reassign_tasks',
    'set_progress_confidence',
    'update_due_date',
    # Capacity
    'UNKNOWN_HOURS',
    'KnownHours',
    'UnknownHours',
    'build_capacity_forecast',
    'capacity_state_label',
    'remaining_hours_for_task',
    # Jobs at risk
    'build_jobs_at_risk_rollup',
    'is_rollup_candidate',
    'unique_driver_chips',
    # Flow score and pulse
    'DRIVER_LABELS',
    'FALLBACK_DRIVER_LABEL',
    'STATE_MESSAGES',
    'compute_flow_score',
    'pick_driver',
    'build_performance_pulse',
    'compute_capacity_signal',
    'compute_deadlines_signal',
    'compute_jobs_signal',
    'compute_momentum_signal',
    'compute_sales_signal',
    'count_unreviewed_overdue',
    'job_effort_pct',
    'job_timeline_pct',
    # Job pulse
    'build_job_history',
    'drift_score',
    'sort_job_deliverables',
    'summarize_job',
    # Lens
    'filter_deliverables',
    'lens_severity_score',
    'passes_lens',
    'sort_by_urgency',
    'summarize_open_deliverables',
    # Time report
    'build_daily_totals',
    'build_top_groups',
    'enrich_time_entries',
    'resolve_report_range',
    'resolve_service_type_id',
]
