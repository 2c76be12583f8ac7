"""
Override actions for deliverables.

Each action takes the current override record (and, where the action depends
on effective state, the classified deliverable) and returns the NEXT override
record. Nothing is mutated; the caller writes the result through its
OverrideStore.

Every action except mark_reviewed drops any review acknowledgement: acting on
a deliverable means it has to be looked at again.

Key Functions:
- mark_reviewed: Record {by, at, snapshot} for the current classification
- clear_reviewed: Drop the review acknowledgement
- set_progress_confidence: Set or clear the progress confidence
- update_due_date: Move the due date, keeping the first original due date
- complete_deliverable: Mark a deliverable completed
- create_change_order: Append a change order
- reassign_tasks: Reassign every task of a deliverable
- apply_review_invalidations: Persist the review clears a classification batch signalled
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple, Union

from signal_engine.core.dates import DateLike
from signal_engine.models.enums import DeliverableStatus, ProgressConfidence
from signal_engine.models.schemas import (
    ChangeOrder,
    ClassificationBatch,
    ClassifiedDeliverable,
    DeliverableOverride,
    DueOverride,
    EntityId,
    ReviewedAcknowledgement,
    Task,
)
from signal_engine.services.classification import build_review_snapshot
from signal_engine.services.override_store import OverrideStore

logger = logging.getLogger(__name__)


DEFAULT_ACTOR = "You"


def _timestamp(at: Optional[DateLike] = None) -> str:
    if at is None:
        return datetime.now(timezone.utc).isoformat()
    if isinstance(at, str):
        return at
    return at.isoformat()


def _patch(override: Optional[DeliverableOverride], **changes: Any) -> Optional[DeliverableOverride]:
    """Apply field changes; an override left with no fields collapses to None."""
    base = override or DeliverableOverride()
    updated = DeliverableOverride.model_validate({**base.model_dump(), **changes})
    if updated.is_empty():
        return None
    return updated


# =============================================================================
# Review Acknowledgements
# =============================================================================


def mark_reviewed(
    deliverable: ClassifiedDeliverable,
    override: Optional[DeliverableOverride] = None,
    reviewer: str = DEFAULT_ACTOR,
    at: Optional[DateLike] = None,
) -> DeliverableOverride:
    """
    Acknowledge a drifting deliverable.

    The acknowledgement stores the deliverable's current review snapshot, so
    it stays valid only until any tracked field changes.

    Args:
        deliverable: The deliverable as currently classified
        override: Current override record
        reviewer: Who reviewed it
        at: Review timestamp (defaults to now, UTC)

    Returns:
        Next override record
    """
    acknowledgement = ReviewedAcknowledgement(
        by=reviewer,
        at=_timestamp(at),
        snapshot=build_review_snapshot(deliverable),
    )
    logger.info(f"Deliverable {deliverable.id} reviewed by {reviewer}")
    return _patch(override, reviewed=acknowledgement)


def clear_reviewed(override: Optional[DeliverableOverride]) -> Optional[DeliverableOverride]:
    """Drop the review acknowledgement, if any."""
    if override is None or override.reviewed is None:
        return override
    return _patch(override, reviewed=None)


# =============================================================================
# Deliverable Actions
# =============================================================================


def set_progress_confidence(
    override: Optional[DeliverableOverride],
    level: Optional[Union[ProgressConfidence, str]],
) -> Optional[DeliverableOverride]:
    """
    Set the progress confidence.

    Args:
        override: Current override record
        level: high/med/low; None or "unset" clears the confidence

    Returns:
        Next override record

    Raises:
        ValueError: If level is not a known confidence value
    """
    confidence = ProgressConfidence(level) if level else None
    if confidence == ProgressConfidence.UNSET:
        confidence = None
    return _patch(override, progressConfidence=confidence, reviewed=None)


def update_due_date(
    deliverable: ClassifiedDeliverable,
    override: Optional[DeliverableOverride],
    next_due: Optional[DateLike],
    actor: str = DEFAULT_ACTOR,
    at: Optional[DateLike] = None,
) -> Optional[DeliverableOverride]:
    """
    Move a deliverable's due date.

    The first original due date is preserved across repeated moves. An empty
    next_due leaves the override untouched.
    """
    if not next_due:
        return override

    existing = override.dueOverride if override else None
    original_due = (
        (existing.originalDue if existing else None)
        or deliverable.originalDue
        or deliverable.due
    )
    due_override = DueOverride(
        due=next_due,
        originalDue=original_due,
        changedAt=_timestamp(at),
        changedBy=actor,
    )
    logger.info(f"Deliverable {deliverable.id} due date moved to {next_due} by {actor}")
    return _patch(override, dueOverride=due_override, reviewed=None)


def complete_deliverable(
    override: Optional[DeliverableOverride],
    actor: str = DEFAULT_ACTOR,
    at: Optional[DateLike] = None,
) -> DeliverableOverride:
    """Mark a deliverable completed."""
    return _patch(
        override,
        statusOverride=DeliverableStatus.COMPLETED.value,
        completedAt=_timestamp(at),
        completedBy=actor,
        reviewed=None,
    )


def create_change_order(
    override: Optional[DeliverableOverride],
    note: str = "",
    at: Optional[DateLike] = None,
    change_order_id: Optional[str] = None,
) -> DeliverableOverride:
    """
    Append a change order to the deliverable's override.

    Args:
        override: Current override record
        note: Free-text note
        at: Creation timestamp (defaults to now, UTC)
        change_order_id: Explicit id; a random "co-..." id when omitted

    Returns:
        Next override record
    """
    existing = list(override.changeOrders or []) if override else []
    change_order = ChangeOrder(
        id=change_order_id or f"co-{uuid.uuid4().hex[:12]}",
        note=note,
        createdAt=_timestamp(at),
    )
    return _patch(override, changeOrders=existing + [change_order], reviewed=None)


def reassign_tasks(
    tasks: List[Task],
    deliverable_id: EntityId,
    assignee_id: Optional[EntityId],
    override: Optional[DeliverableOverride] = None,
) -> Tuple[List[Task], Optional[DeliverableOverride]]:
    """
    Reassign every task of a deliverable.

    Args:
        tasks: Current task collection
        deliverable_id: Deliverable whose tasks move
        assignee_id: New assignee (None unassigns)
        override: Current override record of that deliverable

    Returns:
        Tuple of (new task list, next override record)
    """
    reassigned = [
        task.model_copy(update={'assigneeId': assignee_id})
        if task.deliverableId == deliverable_id else task
        for task in tasks
    ]
    return reassigned, clear_reviewed(override)


# =============================================================================
# Persistence Helper
# =============================================================================


def apply_review_invalidations(store: OverrideStore, batch: ClassificationBatch) -> int:
    """
    Persist the review clears signalled by a classification batch.

    Args:
        store: Override store to write to
        batch: Result of classify_deliverables

    Returns:
        Number of override records updated
    """
    cleared = 0
    for deliverable_id in batch.invalidatedReviewIds:
        current = store.get(deliverable_id)
        if current is None or current.reviewed is None:
            continue
        store.set(deliverable_id, clear_reviewed(current))
        cleared += 1

    if cleared:
        logger.info(f"Cleared {cleared} stale review acknowledgements")
    return cleared


__all__ = [
    'DEFAULT_ACTOR',
    'mark_reviewed',
    'clear_reviewed',
    'set_progress_confidence',
    'update_due_date',
    'complete_deliverable',
    'create_change_order',
    'reassign_tasks',
    'apply_review_invalidations',
]
