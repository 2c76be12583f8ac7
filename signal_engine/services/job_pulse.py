"""
Job pulse service: per-job view over classified deliverables.

Key Functions:
- drift_score: Weighted drift score of one deliverable
- summarize_job: Counts plus a Flowing/Wobbly/Drifting label
- sort_job_deliverables: Order deliverables for the job view
- build_job_history: Dated activity events, newest first
"""

import logging
from datetime import datetime
from typing import Iterable, List, Optional

from signal_engine.core.dates import parse_date, parse_datetime
from signal_engine.models.enums import DeliverableStatus, JobPulseState
from signal_engine.models.schemas import (
    ClassifiedDeliverable,
    EntityId,
    JobHistoryEvent,
    JobPulseSummary,
)

logger = logging.getLogger(__name__)


DRIFT_WEIGHTS = {
    'overdue': 6,
    'effortOver': 4,
    'timelineOver': 4,
    'lowConfidence': 3,
    'dueSoon': 1,
    'needsCheckIn': 0.5,
}

STATUS_ORDER = {
    DeliverableStatus.IN_PROGRESS: 0,
    DeliverableStatus.BACKLOG: 1,
    DeliverableStatus.COMPLETED: 3,
}


def drift_score(deliverable: ClassifiedDeliverable) -> float:
    """Sum of the weights of every drift flag the deliverable carries."""
    return sum(
        weight for flag, weight in DRIFT_WEIGHTS.items()
        if getattr(deliverable, flag)
    )


def _is_open(deliverable: ClassifiedDeliverable) -> bool:
    return deliverable.status != DeliverableStatus.COMPLETED


def summarize_job(deliverables: Iterable[ClassifiedDeliverable]) -> JobPulseSummary:
    """
    Summarize a job's deliverables.

    Drifting when anything open is overdue or anything is at risk; Wobbly
    when something open is due soon or needs a check-in; Flowing otherwise.
    """
    deliverables = list(deliverables)
    overdue = sum(1 for d in deliverables if d.overdue and _is_open(d))
    at_risk = sum(1 for d in deliverables if d.atRisk)
    watch = sum(1 for d in deliverables if d.dueSoon and _is_open(d))
    needs_check_in = sum(1 for d in deliverables if d.needsCheckIn)

    if overdue or at_risk:
        state = JobPulseState.DRIFTING
    elif watch or needs_check_in:
        state = JobPulseState.WOBBLY
    else:
        state = JobPulseState.FLOWING

    return JobPulseSummary(
        overdue=overdue,
        atRisk=at_risk,
        watch=watch,
        changeOrders=sum(len(d.changeOrders) for d in deliverables),
        lowConfidence=sum(1 for d in deliverables if d.lowConfidence),
        needsCheckIn=needs_check_in,
        stateLabel=state,
    )


def sort_job_deliverables(
    deliverables: Iterable[ClassifiedDeliverable],
    focused_id: Optional[EntityId] = None,
) -> List[ClassifiedDeliverable]:
    """
    Order a job's deliverables for display.

    Status (in-progress, backlog, other, completed), then unreviewed drifting
    first, then drift score desc, then due date asc (undated last), then
    name. The focused deliverable, when given, is pinned to the top.
    """
    def key(deliverable: ClassifiedDeliverable):
        score = drift_score(deliverable)
        due = parse_date(deliverable.due)
        return (
            STATUS_ORDER.get(deliverable.status, 2),
            not (deliverable.reviewed is None and score > 0),
            -score,
            due is None,
            due.toordinal() if due else 0,
            (deliverable.name or "").lower(),
        )

    ordered = sorted(deliverables, key=key)

    if focused_id is not None:
        for index, deliverable in enumerate(ordered):
            if str(deliverable.id) == str(focused_id):
                ordered.insert(0, ordered.pop(index))
                break

    return ordered


def build_job_history(deliverables: Iterable[ClassifiedDeliverable]) -> List[JobHistoryEvent]:
    """
    Collect dated activity across a job's deliverables, newest first.

    Events: due date moved, reviewed, completed, change order created.
    Events whose timestamp cannot be parsed are dropped.
    """
    events: List[JobHistoryEvent] = []

    def add(value, kind: str, label: str, deliverable: ClassifiedDeliverable) -> None:
        at: Optional[datetime] = parse_datetime(value)
        if at is None:
            if value:
                logger.debug(f"Dropping {kind} event with unparsable date {value!r}")
            return
        events.append(JobHistoryEvent(
            at=at,
            date=at.date(),
            kind=kind,
            label=f"{deliverable.name}: {label}",
            deliverableId=deliverable.id,
        ))

    for deliverable in deliverables:
        add(deliverable.changedAt, "moved", "Due date moved", deliverable)
        if deliverable.reviewed is not None:
            add(deliverable.reviewed.at, "reviewed", "Reviewed", deliverable)
        add(deliverable.completedAt, "completed", "Completed", deliverable)
        for change_order in deliverable.changeOrders:
            add(change_order.createdAt, "changeOrder", "Change order created", deliverable)

    events.sort(key=lambda event: event.at, reverse=True)
    return events


__all__ = [
    'DRIFT_WEIGHTS',
    'STATUS_ORDER',
    'drift_score',
    'summarize_job',
    'sort_job_deliverables',
    'build_job_history',
]
