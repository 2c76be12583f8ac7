"""
At-risk deliverable lens: filtering and urgency ordering of open deliverables.

Key Functions:
- lens_severity_score: Urgency score used to order the list
- passes_lens: Lens membership test (all/pace/deadlines/confidence)
- filter_deliverables: Apply a DeliverableFilter
- sort_by_urgency: Unreviewed first, then urgency, due date and job name
- summarize_open_deliverables: At-risk / reviewed / needs-check-in counts

Completed deliverables never appear in the lens.
"""

import logging
from typing import Callable, Dict, Iterable, List

from signal_engine.core.dates import parse_date
from signal_engine.models.enums import DeliverableLens, DeliverableStatus, ReviewedFilter
from signal_engine.models.schemas import (
    ClassifiedDeliverable,
    DeliverableFilter,
    OpenDeliverableStats,
)

logger = logging.getLogger(__name__)


CHECK_IN_FILTER = "needsCheckIn"

# Chip filter id -> predicate; every selected filter must match
CHIP_FILTERS: Dict[str, Callable[[ClassifiedDeliverable], bool]] = {
    "overdue": lambda d: d.overdue,
    "dueSoon": lambda d: d.dueSoon,
    "effortOver": lambda d: d.effortOver,
    "timelineOver": lambda d: d.timelineOver,
    "lowConf": lambda d: d.lowConfidence,
    CHECK_IN_FILTER: lambda d: d.needsCheckIn,
    "moved": lambda d: bool(d.changedAt),
}


def lens_severity_score(deliverable: ClassifiedDeliverable) -> int:
    """
    Urgency score for the at-risk list.

    Overdue 120 (else due soon 40), plus every point of effort and timeline
    overrun above 100, plus 40 for low confidence and 10 for a check-in.
    """
    score = 0
    if deliverable.overdue:
        score += 120
    elif deliverable.dueSoon:
        score += 40
    score += max(0, deliverable.effortPct - 100)
    score += max(0, deliverable.timelinePct - 100)
    if deliverable.lowConfidence:
        score += 40
    if deliverable.needsCheckIn:
        score += 10
    return score


def passes_lens(
    deliverable: ClassifiedDeliverable,
    lens: DeliverableLens,
    filters: Iterable[str] = (),
) -> bool:
    """
    Lens membership.

    The "all" lens shows at-risk deliverables, plus check-in prompts when the
    needsCheckIn chip filter is selected.
    """
    if lens == DeliverableLens.PACE:
        return deliverable.effortOver or deliverable.timelineOver or deliverable.lowConfidence
    if lens == DeliverableLens.DEADLINES:
        return deliverable.overdue or deliverable.dueSoon
    if lens == DeliverableLens.CONFIDENCE:
        return deliverable.lowConfidence or deliverable.needsCheckIn
    return deliverable.atRisk or (CHECK_IN_FILTER in filters and deliverable.needsCheckIn)


def _matches(deliverable: ClassifiedDeliverable, criteria: DeliverableFilter) -> bool:
    if deliverable.status == DeliverableStatus.COMPLETED:
        return False
    if not passes_lens(deliverable, criteria.lens, criteria.filters):
        return False

    for filter_id in criteria.filters:
        predicate = CHIP_FILTERS.get(filter_id)
        if predicate is None:
            logger.debug(f"Ignoring unknown chip filter {filter_id!r}")
            continue
        if not predicate(deliverable):
            return False

    is_reviewed = deliverable.reviewed is not None
    if criteria.reviewed == ReviewedFilter.HIDE and is_reviewed:
        return False
    if criteria.reviewed == ReviewedFilter.ONLY and not is_reviewed:
        return False

    if criteria.client and deliverable.client.lower() != criteria.client.lower():
        return False
    if criteria.jobId is not None and str(deliverable.jobId) != str(criteria.jobId):
        return False

    if criteria.q:
        query = criteria.q.lower()
        haystacks = (deliverable.name, deliverable.jobName, deliverable.client)
        if not any(query in (text or "").lower() for text in haystacks):
            return False

    return True


def filter_deliverables(
    deliverables: Iterable[ClassifiedDeliverable],
    criteria: DeliverableFilter,
) -> List[ClassifiedDeliverable]:
    """Apply lens, chip, review, client, job and text filters."""
    return [d for d in deliverables if _matches(d, criteria)]


def sort_by_urgency(deliverables: Iterable[ClassifiedDeliverable]) -> List[ClassifiedDeliverable]:
    """Unreviewed first, then severity desc, due date asc (undated last), job name."""
    def key(deliverable: ClassifiedDeliverable):
        due = parse_date(deliverable.due)
        return (
            deliverable.reviewed is not None,
            -lens_severity_score(deliverable),
            due is None,
            due.toordinal() if due else 0,
            deliverable.jobName.lower(),
        )

    return sorted(deliverables, key=key)


def summarize_open_deliverables(deliverables: Iterable[ClassifiedDeliverable]) -> OpenDeliverableStats:
    open_deliverables = [d for d in deliverables if d.status != DeliverableStatus.COMPLETED]
    return OpenDeliverableStats(
        atRisk=sum(1 for d in open_deliverables if d.atRisk),
        reviewed=sum(1 for d in open_deliverables if d.reviewed is not None),
        needsCheckIn=sum(1 for d in open_deliverables if d.needsCheckIn),
    )


__all__ = [
    'CHIP_FILTERS',
    'lens_severity_score',
    'passes_lens',
    'filter_deliverables',
    'sort_by_urgency',
    'summarize_open_deliverables',
]
