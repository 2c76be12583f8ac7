"""
Jobs-at-risk rollup service for the Performance Signal Engine.

This module groups at-risk deliverables by job, grades each job's severity
and orders the jobs so that the ones nobody has looked at yet come first.

Key Functions:
- is_rollup_candidate: Risk-pool membership test for one deliverable
- unique_driver_chips: First-seen unique reason chips across deliverables
- build_jobs_at_risk_rollup: Main entry point, returns JobsAtRiskRollup

Risk Pool:
- Deliverable has a parsable due date and is not completed
- Due within the risk horizon (default 30 days, inclusive) or already overdue
- Flagged overdue, effortOver, timelineOver, lowConfidence, or its pace
  signal is red

Severity:
- 3: at least one deliverable carries a drift flag
- 2: pace signal alone is red
- jobs ending at 0 are dropped

Ordering: unreviewed-at-risk jobs first, then severity desc, then earliest
next pain date (undated last), then job name.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional

from signal_engine.core.config import Settings, get_settings
from signal_engine.core.dates import DateLike, add_days, parse_date, resolve_today
from signal_engine.models.enums import DeliverableStatus, Tone
from signal_engine.models.schemas import (
    ClassifiedDeliverable,
    EntityId,
    Job,
    JobRiskEntry,
    JobsAtRiskRollup,
    ReasonChip,
)
from signal_engine.services.classification import normalize_status

logger = logging.getLogger(__name__)


SEVERITY_DRIFT = 3
SEVERITY_PACE = 2
SEVERITY_NONE = 0


def _has_drift_flag(deliverable: ClassifiedDeliverable) -> bool:
    return bool(
        deliverable.overdue
        or deliverable.effortOver
        or deliverable.timelineOver
        or deliverable.lowConfidence
    )


def _pace_is_red(deliverable: ClassifiedDeliverable) -> bool:
    return deliverable.paceTone == Tone.RED


def is_rollup_candidate(
    deliverable: ClassifiedDeliverable,
    today: date,
    horizon_end: date,
) -> bool:
    """
    Test whether a deliverable belongs in the jobs-at-risk pool.

    Args:
        deliverable: Classified deliverable
        today: Resolved "today"
        horizon_end: Last day (inclusive) of the risk horizon

    Returns:
        True when the deliverable is dated, open, inside the horizon (or
        overdue) and drifting
    """
    due = parse_date(deliverable.due)
    if due is None:
        return False
    if normalize_status(deliverable.status) == DeliverableStatus.COMPLETED:
        return False
    if due > horizon_end and not deliverable.overdue:
        return False
    return _has_drift_flag(deliverable) or _pace_is_red(deliverable)


def unique_driver_chips(
    deliverables: Iterable[ClassifiedDeliverable],
    limit: int = 4,
) -> List[ReasonChip]:
    """Unique reason chips (by id) in first-seen order, capped at limit."""
    seen: Dict[str, ReasonChip] = {}
    for deliverable in deliverables:
        for chip in deliverable.reasons:
            if chip.id not in seen:
                seen[chip.id] = chip
    return list(seen.values())[:limit]


def _job_severity(deliverables: List[ClassifiedDeliverable]) -> int:
    if any(_has_drift_flag(d) for d in deliverables):
        return SEVERITY_DRIFT
    if any(_pace_is_red(d) for d in deliverables):
        return SEVERITY_PACE
    return SEVERITY_NONE


def _next_pain_date(deliverables: List[ClassifiedDeliverable]) -> Optional[date]:
    dates = [d for d in (parse_date(x.due) for x in deliverables) if d is not None]
    return min(dates) if dates else None


def _sort_key(entry: JobRiskEntry):
    return (
        not entry.unreviewedAtRisk,
        -entry.severity,
        entry.nextPainDate is None,
        entry.nextPainDate.toordinal() if entry.nextPainDate else 0,
        entry.jobName.lower(),
    )


def build_jobs_at_risk_rollup(
    jobs: Iterable[Job],
    deliverables: Iterable[ClassifiedDeliverable],
    today: Optional[DateLike] = None,
    settings: Optional[Settings] = None,
) -> JobsAtRiskRollup:
    """
    Roll at-risk deliverables up to their jobs.

    A deliverable counts as reviewed only while it carries a live review
    acknowledgement, i.e. the classifier has not invalidated it.

    Args:
        jobs: Job collection
        deliverables: Classified deliverables
        today: Injectable "today"
        settings: Optional settings override

    Returns:
        JobsAtRiskRollup with ordered entries and summary counts
    """
    settings = settings or get_settings()
    today = resolve_today(today)
    horizon_end = add_days(today, settings.risk_horizon_days)
    jobs_by_id: Dict[EntityId, Job] = {job.id: job for job in jobs}

    buckets: Dict[EntityId, List[ClassifiedDeliverable]] = {}
    for deliverable in deliverables:
        if not is_rollup_candidate(deliverable, today, horizon_end):
            continue
        job = jobs_by_id.get(deliverable.jobId)
        if job is None:
            logger.debug(
                f"At-risk deliverable {deliverable.id} references unknown job {deliverable.jobId}, skipping"
            )
            continue
        buckets.setdefault(job.id, []).append(deliverable)

    entries: List[JobRiskEntry] = []
    for job_id, bucket in buckets.items():
        severity = _job_severity(bucket)
        if severity == SEVERITY_NONE:
            continue

        job = jobs_by_id[job_id]
        reviewed_count = sum(1 for d in bucket if d.reviewed is not None)
        unreviewed_count = len(bucket) - reviewed_count

        entries.append(JobRiskEntry(
            jobId=job.id,
            jobName=job.name or f"Job {job.id}",
            clientName=job.client or "Client",
            atRiskDeliverables=bucket,
            atRiskDeliverableCount=len(bucket),
            reviewedAtRiskDeliverableCount=reviewed_count,
            unreviewedAtRiskDeliverableCount=unreviewed_count,
            unreviewedAtRisk=unreviewed_count > 0,
            reviewedAtRisk=unreviewed_count == 0,
            severity=severity,
            nextPainDate=_next_pain_date(bucket),
            driverChips=unique_driver_chips(bucket, settings.max_driver_chips),
        ))

    entries.sort(key=_sort_key)

    rollup = JobsAtRiskRollup(
        jobsAtRisk=entries,
        jobsAtRiskCount=len(entries),
        jobsAtRiskReviewedCount=sum(1 for e in entries if e.reviewedAtRisk),
        jobsAtRiskNeedingAttention=sum(1 for e in entries if e.unreviewedAtRisk),
    )
    logger.debug(
        f"Jobs at risk: {rollup.jobsAtRiskCount} "
        f"({rollup.jobsAtRiskNeedingAttention} need attention)"
    )
    return rollup


__all__ = [
    'SEVERITY_DRIFT',
    'SEVERITY_PACE',
    'SEVERITY_NONE',
    'is_rollup_candidate',
    'unique_driver_chips',
    'build_jobs_at_risk_rollup',
]
