"""
Deliverable risk classification service for the Performance Signal Engine.

This module merges a deliverable with its sparse override record and derives
the risk flags the rest of the engine consumes. It is the leaf of the
pipeline: the capacity forecast, the jobs-at-risk rollup and every pulse
signal read its output.

Key Functions:
- normalize_status: Collapse raw statuses to in-progress/backlog/completed
- merge_override: Produce the immutable effective deliverable (base + override)
- build_reason_chips: Ordered drift reason chips for a set of flags
- build_review_snapshot: Risk-relevant snapshot used by review acknowledgements
- has_material_review_change: Compare a fresh snapshot with the stored one
- classify_deliverable: Classify a single deliverable
- classify_deliverables: Classify a collection and report stale reviews

Flag Rules (each independent, evaluated at day granularity):
- overdue: effective due < today AND status != completed
- dueSoon: not overdue AND today <= due <= today + due_soon_days
- effortOver / timelineOver: consumption % > 100
- lowConfidence: progress confidence is "low"
- needsCheckIn: effort or timeline % inside [85, 100] AND no confidence set
- atRisk: status != completed AND (overdue OR effortOver OR timelineOver OR lowConfidence)

needsCheckIn is a prompt, not a drift flag: on its own it never makes a
deliverable at risk. It disappears as soon as any confidence is set.

Review Acknowledgements:
A stored review stays live only while the snapshot {due, overdue, effortOver,
timelineOver, confidence} is unchanged. A stale acknowledgement is dropped
from the classified value and its id reported in the batch result; persisting
the clear is the caller's job (see services.overrides).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.dates import DateLike, add_days, date_key, parse_date, resolve_today
from signal_engine.core.numeric import finite_or_none, round_half_up
from signal_engine.models.enums import (
    DeliverableStatus,
    ProgressConfidence,
    ReasonId,
    Tone,
)
from signal_engine.models.schemas import (
    ClassificationBatch,
    ClassifiedDeliverable,
    Deliverable,
    DeliverableOverride,
    EntityId,
    Job,
    ReasonChip,
    ReviewSnapshot,
    ReviewedAcknowledgement,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Reason Chips
# =============================================================================

# Declaration order is the display order.
REASON_CHIPS: Dict[ReasonId, ReasonChip] = {
    ReasonId.OVERDUE: ReasonChip(id=ReasonId.OVERDUE, label="Overdue", tone=Tone.RED),
    ReasonId.DUE_SOON: ReasonChip(id=ReasonId.DUE_SOON, label="Due soon", tone=Tone.AMBER),
    ReasonId.EFFORT_OVER: ReasonChip(id=ReasonId.EFFORT_OVER, label="Effort overrun", tone=Tone.AMBER),
    ReasonId.TIMELINE_OVER: ReasonChip(id=ReasonId.TIMELINE_OVER, label="Timeline overrun", tone=Tone.AMBER),
    ReasonId.LOW_CONFIDENCE: ReasonChip(id=ReasonId.LOW_CONFIDENCE, label="Low confidence", tone=Tone.RED),
    ReasonId.NEEDS_CHECK_IN: ReasonChip(id=ReasonId.NEEDS_CHECK_IN, label="Needs check-in", tone=Tone.AMBER),
    ReasonId.DATE_MOVED: ReasonChip(id=ReasonId.DATE_MOVED, label="Date moved", tone=Tone.AMBER),
}


def build_reason_chips(
    *,
    overdue: bool = False,
    due_soon: bool = False,
    effort_over: bool = False,
    timeline_over: bool = False,
    low_confidence: bool = False,
    needs_check_in: bool = False,
    date_moved: bool = False,
) -> List[ReasonChip]:
    """
    Build the ordered reason chip list for a set of flags.

    Chips are appended in a fixed order (overdue, dueSoon, effortOver,
    timelineOver, lowConfidence, needsCheckIn, dateMoved) so chip display and
    chip-based sorting are deterministic.

    Returns:
        List of ReasonChip, one per true flag
    """
    flags = [
        (ReasonId.OVERDUE, overdue),
        (ReasonId.DUE_SOON, due_soon),
        (ReasonId.EFFORT_OVER, effort_over),
        (ReasonId.TIMELINE_OVER, timeline_over),
        (ReasonId.LOW_CONFIDENCE, low_confidence),
        (ReasonId.NEEDS_CHECK_IN, needs_check_in),
        (ReasonId.DATE_MOVED, date_moved),
    ]
    return [REASON_CHIPS[reason_id] for reason_id, flag in flags if flag]


# =============================================================================
# Effective Deliverable
# =============================================================================


def normalize_status(status: Optional[str]) -> DeliverableStatus:
    """
    Normalize a raw status string.

    "completed" and "backlog" are kept; anything else (including "blocked"
    and missing values) is treated as in-progress.
    """
    if status is None:
        return DeliverableStatus.IN_PROGRESS
    value = str(getattr(status, 'value', status)).strip().lower()
    if value == DeliverableStatus.COMPLETED.value:
        return DeliverableStatus.COMPLETED
    if value == DeliverableStatus.BACKLOG.value:
        return DeliverableStatus.BACKLOG
    return DeliverableStatus.IN_PROGRESS


def merge_override(
    deliverable: Deliverable,
    override: Optional[DeliverableOverride] = None,
) -> Deliverable:
    """
    Merge a sparse override record over a base deliverable.

    The base is never mutated; a new Deliverable carrying the effective due
    date, due-move metadata, status, completion time, confidence, review
    acknowledgement and change orders is returned. The acknowledgement lives
    only in the override record, so any review carried on the base is dropped.

    Args:
        deliverable: Base deliverable from the entity snapshot
        override: Override record, or None when nothing is overridden

    Returns:
        The effective deliverable
    """
    if override is None:
        override = DeliverableOverride()

    due_override = override.dueOverride
    due = deliverable.due
    original_due = deliverable.originalDue or deliverable.due
    changed_at = deliverable.changedAt
    changed_by = deliverable.changedBy
    if due_override is not None:
        due = due_override.due or deliverable.due
        original_due = due_override.originalDue or original_due
        changed_at = due_override.changedAt or changed_at
        changed_by = due_override.changedBy or changed_by

    change_orders = deliverable.changeOrders
    if override.changeOrders is not None:
        change_orders = override.changeOrders

    return deliverable.model_copy(update={
        'due': due,
        'originalDue': original_due,
        'changedAt': changed_at,
        'changedBy': changed_by,
        'status': normalize_status(override.statusOverride or deliverable.status).value,
        'completedAt': override.completedAt or deliverable.completedAt,
        'progressConfidence': override.progressConfidence or deliverable.progressConfidence,
        'reviewed': override.reviewed,
        'changeOrders': list(change_orders),
    })


def _consumption_pct(value: Optional[float]) -> int:
    number = finite_or_none(value)
    if number is None:
        return 0
    return max(0, round_half_up(number))


def _effective_confidence(value: Optional[ProgressConfidence]) -> Optional[ProgressConfidence]:
    if value is None or value == ProgressConfidence.UNSET:
        return None
    return ProgressConfidence(value)


# =============================================================================
# Review Snapshots
# =============================================================================


def build_review_snapshot(deliverable: Any) -> ReviewSnapshot:
    """
    Capture the risk-relevant state of a classified deliverable.

    Args:
        deliverable: Any object exposing due, overdue, effortOver,
            timelineOver and progressConfidence (normally a
            ClassifiedDeliverable)

    Returns:
        ReviewSnapshot with the due date in canonical ISO form
    """
    confidence = _effective_confidence(getattr(deliverable, 'progressConfidence', None))
    return ReviewSnapshot(
        due=date_key(deliverable.due),
        overdue=bool(deliverable.overdue),
        effortOver=bool(deliverable.effortOver),
        timelineOver=bool(deliverable.timelineOver),
        confidence=confidence or ProgressConfidence.UNSET,
    )


def has_material_review_change(
    current: Optional[ReviewSnapshot],
    reviewed: Optional[ReviewSnapshot],
) -> bool:
    """
    True when a review acknowledgement no longer matches reality.

    A missing snapshot on either side always counts as a change.
    """
    if current is None or reviewed is None:
        return True
    return current != reviewed


# =============================================================================
# Classification
# =============================================================================


def classify_deliverable(
    deliverable: Deliverable,
    job: Optional[Job] = None,
    override: Optional[DeliverableOverride] = None,
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> ClassifiedDeliverable:
    """
    Classify one deliverable.

    Args:
        deliverable: Base deliverable
        job: Parent job, used for display context only
        override: Override record merged before classification
        today: Injectable "today" (date, datetime or ISO string)
        settings: Optional settings override

    Returns:
        ClassifiedDeliverable with flags, reasons and a live (or cleared)
        review acknowledgement
    """
    settings = settings or get_settings()
    today = resolve_today(today)

    effective = merge_override(deliverable, override)
    status = normalize_status(effective.status)
    confidence = _effective_confidence(effective.progressConfidence)

    effort_pct = _consumption_pct(effective.effortConsumedPct)
    timeline_pct = _consumption_pct(effective.durationConsumedPct)

    due_date = parse_date(effective.due)
    if effective.due is not None and due_date is None:
        logger.debug(f"Deliverable {deliverable.id} has unparsable due date {effective.due!r}")

    overdue = due_date is not None and due_date < today and status != DeliverableStatus.COMPLETED
    due_soon = (
        not overdue
        and due_date is not None
        and today <= due_date <= add_days(today, settings.due_soon_days)
    )
    effort_over = effort_pct > 100
    timeline_over = timeline_pct > 100
    low_confidence = confidence == ProgressConfidence.LOW

    needs_check_in = confidence is None and any(
        settings.check_in_min_pct <= pct <= settings.check_in_max_pct
        for pct in (effort_pct, timeline_pct)
    )

    at_risk = status != DeliverableStatus.COMPLETED and (
        overdue or effort_over or timeline_over or low_confidence
    )
    date_moved = bool(effective.changedAt)

    reasons = build_reason_chips(
        overdue=overdue,
        due_soon=due_soon,
        effort_over=effort_over,
        timeline_over=timeline_over,
        low_confidence=low_confidence,
        needs_check_in=needs_check_in,
        date_moved=date_moved,
    )

    fields = effective.model_dump(exclude={'status', 'progressConfidence'})
    classified = ClassifiedDeliverable(
        **fields,
        status=status,
        progressConfidence=confidence,
        jobName=(job.name if job and job.name else f"Job {deliverable.jobId}"),
        client=(job.client if job and job.client else "Client"),
        effortPct=effort_pct,
        timelinePct=timeline_pct,
        overdue=overdue,
        dueSoon=due_soon,
        effortOver=effort_over,
        timelineOver=timeline_over,
        lowConfidence=low_confidence,
        needsCheckIn=needs_check_in,
        atRisk=at_risk,
        dateMoved=date_moved,
        reasons=reasons,
    )

    acknowledgement: Optional[ReviewedAcknowledgement] = classified.reviewed
    if acknowledgement is not None:
        current = build_review_snapshot(classified)
        if has_material_review_change(current, acknowledgement.snapshot):
            logger.info(
                f"Review of deliverable {deliverable.id} by {acknowledgement.by} is stale, clearing"
            )
            classified = classified.model_copy(update={
                'reviewed': None,
                'reviewInvalidated': True,
            })

    return classified


def classify_deliverables(
    deliverables: Iterable[Deliverable],
    jobs: Iterable[Job] = (),
    overrides: Optional[Any] = None,
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> ClassificationBatch:
    """
    Classify a deliverable collection.

    Args:
        deliverables: Base deliverables
        jobs: Job collection for display context
        overrides: Mapping of deliverable id -> DeliverableOverride, or any
            OverrideStore; None when no overrides exist
        today: Injectable "today"
        settings: Optional settings override

    Returns:
        ClassificationBatch with classified deliverables (input order kept)
        and the ids whose review acknowledgement went stale
    """
    settings = settings or get_settings()
    today = resolve_today(today)
    jobs_by_id: Dict[EntityId, Job] = {job.id: job for job in jobs}

    classified: List[ClassifiedDeliverable] = []
    invalidated: List[EntityId] = []

    for deliverable in deliverables:
        override = overrides.get(deliverable.id) if overrides is not None else None
        job = jobs_by_id.get(deliverable.jobId)
        if job is None:
            logger.debug(f"Deliverable {deliverable.id} references unknown job {deliverable.jobId}")

        result = classify_deliverable(deliverable, job, override, today, settings)
        if result.reviewInvalidated:
            invalidated.append(deliverable.id)
        classified.append(result)

    logger.debug(
        f"Classified {len(classified)} deliverables for {today.isoformat()}, "
        f"{sum(1 for d in classified if d.atRisk)} at risk, {len(invalidated)} stale reviews"
    )

    return ClassificationBatch(deliverables=classified, invalidatedReviewIds=invalidated)


__all__ = [
    'REASON_CHIPS',
    'build_reason_chips',
    'normalize_status',
    'merge_override',
    'build_review_snapshot',
    'has_material_review_change',
    'classify_deliverable',
    'classify_deliverables',
]
