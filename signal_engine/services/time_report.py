"""
Time report service: logged hours over a date range.

Key Functions:
- resolve_report_range: Named preset (or custom bounds) -> inclusive ReportRange
- enrich_time_entries: Resolve task/deliverable/job/member/service type per entry
- build_daily_totals: One row per day in the range
- build_top_groups: Top five groups plus an "Other" bucket

Weeks start on Sunday. Entries with a malformed date, or dated outside the
range, are excluded.
"""

import logging
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple, Union

from signal_engine.core.dates import DateLike, add_days, parse_date, resolve_today
from signal_engine.core.numeric import finite_or_none, percent_or_none
from signal_engine.models.enums import ReportGroupBy, ReportRangePreset
from signal_engine.models.schemas import (
    DailyTotal,
    DailyTotals,
    Deliverable,
    EnrichedTimeEntry,
    EntityId,
    Job,
    ReportRange,
    ServiceType,
    Task,
    TeamMember,
    TimeEntry,
    TimeGroupTotal,
)

logger = logging.getLogger(__name__)


DEFAULT_PRESET = ReportRangePreset.LAST_30
TOP_GROUP_LIMIT = 5
OTHER_ID = "other"
OTHER_LABEL = "Other"


# =============================================================================
# Date Ranges
# =============================================================================


def _range(start: date, end: date) -> ReportRange:
    return ReportRange(start=start, end=end, days=(end - start).days + 1)


def _preset_bounds(preset: ReportRangePreset, today: date) -> Optional[Tuple[date, date]]:
    # date.weekday() is Monday=0; weeks here start on Sunday
    days_since_sunday = (today.weekday() + 1) % 7
    week_start = add_days(today, -days_since_sunday)
    month_start = today.replace(day=1)

    if preset == ReportRangePreset.TODAY:
        return today, today
    if preset == ReportRangePreset.YESTERDAY:
        yesterday = add_days(today, -1)
        return yesterday, yesterday
    if preset == ReportRangePreset.THIS_WEEK:
        return week_start, today
    if preset == ReportRangePreset.LAST_WEEK:
        end = add_days(week_start, -1)
        return add_days(end, -6), end
    if preset == ReportRangePreset.THIS_MONTH:
        return month_start, today
    if preset == ReportRangePreset.LAST_MONTH:
        end = add_days(month_start, -1)
        return end.replace(day=1), end
    if preset == ReportRangePreset.THIS_YEAR:
        return date(today.year, 1, 1), today
    if preset == ReportRangePreset.LAST_YEAR:
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    if preset == ReportRangePreset.LAST_7:
        return add_days(today, -6), today
    if preset == ReportRangePreset.LAST_30:
        return add_days(today, -29), today
    if preset == ReportRangePreset.LAST_90:
        return add_days(today, -89), today
    return None


def resolve_report_range(
    preset: Union[ReportRangePreset, str, None] = DEFAULT_PRESET,
    today: Optional[DateLike] = None,
    start: Optional[DateLike] = None,
    end: Optional[DateLike] = None,
) -> ReportRange:
    """
    Resolve a preset (or custom bounds) to an inclusive day range.

    Args:
        preset: Preset id; unknown values fall back to last-30
        today: Injectable "today"
        start: Custom range start (preset "custom")
        end: Custom range end (preset "custom")

    Returns:
        ReportRange. Custom bounds given in reverse order are swapped;
        unparsable custom bounds fall back to last-30.
    """
    today = resolve_today(today)

    try:
        resolved = ReportRangePreset(preset) if preset is not None else DEFAULT_PRESET
    except ValueError:
        logger.debug(f"Unknown report range preset {preset!r}, using {DEFAULT_PRESET.value}")
        resolved = DEFAULT_PRESET

    if resolved == ReportRangePreset.CUSTOM:
        custom_start = parse_date(start)
        custom_end = parse_date(end)
        if custom_start is not None and custom_end is not None:
            if custom_start > custom_end:
                custom_start, custom_end = custom_end, custom_start
            return _range(custom_start, custom_end)
        logger.debug(f"Custom report range {start!r}..{end!r} is incomplete, using {DEFAULT_PRESET.value}")
        resolved = DEFAULT_PRESET

    bounds = _preset_bounds(resolved, today)
    return _range(*bounds)


# =============================================================================
# Entry Enrichment
# =============================================================================


def resolve_service_type_id(
    entry: TimeEntry,
    task: Optional[Task],
    job: Optional[Job],
    service_types: Iterable[ServiceType],
) -> Optional[str]:
    """
    Service type of a time entry: the entry's own, then the task's, then the
    job's service type matched by name. Only known service types count.
    """
    by_id = {s.id: s for s in service_types}
    by_name = {s.name.lower(): s for s in by_id.values()}

    if entry.serviceTypeId and entry.serviceTypeId in by_id:
        return entry.serviceTypeId
    if task is not None and task.serviceTypeId and task.serviceTypeId in by_id:
        return task.serviceTypeId
    if job is not None and job.serviceType:
        match = by_name.get(str(job.serviceType).lower())
        if match is not None:
            return match.id
    return None


def enrich_time_entries(
    entries: Iterable[TimeEntry],
    report_range: ReportRange,
    tasks: Iterable[Task] = (),
    deliverables: Iterable[Deliverable] = (),
    jobs: Iterable[Job] = (),
    team: Iterable[TeamMember] = (),
    service_types: Iterable[ServiceType] = (),
) -> List[EnrichedTimeEntry]:
    """
    Resolve the context of every entry inside the range, newest first.

    The member is the entry's own member, else the task assignee. Quick
    entries carry no task, deliverable or job.
    """
    service_types = list(service_types)
    tasks_by_id: Dict[EntityId, Task] = {t.id: t for t in tasks}
    deliverables_by_id: Dict[EntityId, Deliverable] = {d.id: d for d in deliverables}
    jobs_by_id: Dict[EntityId, Job] = {j.id: j for j in jobs}
    team_by_id: Dict[EntityId, TeamMember] = {m.id: m for m in team}
    service_names = {s.id: s.name for s in service_types}

    enriched: List[EnrichedTimeEntry] = []
    for index, entry in enumerate(entries):
        day = parse_date(entry.date)
        if day is None:
            logger.debug(f"Time entry {entry.id} has unparsable date {entry.date!r}, skipping")
            continue
        if not (report_range.start <= day <= report_range.end):
            continue

        task = tasks_by_id.get(entry.taskId) if entry.taskId is not None else None
        deliverable = deliverables_by_id.get(task.deliverableId) if task else None
        job = jobs_by_id.get(deliverable.jobId) if deliverable else None
        member_id = entry.memberId if entry.memberId is not None else (task.assigneeId if task else None)
        member = team_by_id.get(member_id) if member_id is not None else None

        service_type_id = entry.serviceTypeId or resolve_service_type_id(entry, task, job, service_types)

        enriched.append(EnrichedTimeEntry(
            uid=str(entry.id) if entry.id not in (None, "") else f"te-{index}",
            date=day,
            hours=finite_or_none(entry.hours) or 0.0,
            notes=entry.notes or "",
            taskTitle=entry.title or (task.title if task and task.title else None) or "Task",
            type="quick" if entry.quickTask else "job",
            jobId=job.id if job else None,
            jobName=job.name if job else None,
            client=job.client if job else None,
            deliverableId=deliverable.id if deliverable else None,
            memberId=member_id,
            memberName=member.name if member else None,
            serviceTypeId=service_type_id or OTHER_ID,
            serviceTypeName=service_names.get(service_type_id) if service_type_id else None,
        ))

    enriched.sort(key=lambda e: e.date, reverse=True)
    return enriched


# =============================================================================
# Aggregations
# =============================================================================


def build_daily_totals(entries: Iterable[EnrichedTimeEntry], report_range: ReportRange) -> DailyTotals:
    """Hours per day for every day of the range (days without time show 0)."""
    hours_by_day: Dict[date, float] = {
        add_days(report_range.start, offset): 0.0 for offset in range(report_range.days)
    }
    for entry in entries:
        if entry.date in hours_by_day:
            hours_by_day[entry.date] += entry.hours

    days = [DailyTotal(date=day, hours=hours) for day, hours in hours_by_day.items()]
    return DailyTotals(days=days, maxHours=max([d.hours for d in days] + [0.0]))


def _group_identity(entry: EnrichedTimeEntry, group_by: ReportGroupBy) -> Tuple[str, str]:
    if group_by == ReportGroupBy.SERVICE_TYPE:
        return entry.serviceTypeId or OTHER_ID, entry.serviceTypeName or OTHER_LABEL
    if group_by == ReportGroupBy.JOB:
        if entry.jobId is None:
            return OTHER_ID, OTHER_LABEL
        return f"job-{entry.jobId}", entry.jobName or f"Job {entry.jobId}"
    if group_by == ReportGroupBy.TEAM_MEMBER:
        if entry.memberId is None:
            return OTHER_ID, OTHER_LABEL
        return str(entry.memberId), entry.memberName or OTHER_LABEL
    if group_by == ReportGroupBy.CLIENT:
        if not entry.client:
            return OTHER_ID, OTHER_LABEL
        return f"client-{entry.client}", entry.client
    return OTHER_ID, OTHER_LABEL


def build_top_groups(
    entries: Iterable[EnrichedTimeEntry],
    group_by: Union[ReportGroupBy, str] = ReportGroupBy.SERVICE_TYPE,
    limit: int = TOP_GROUP_LIMIT,
) -> List[TimeGroupTotal]:
    """
    Hours per group, largest first: the top `limit` groups plus one "Other"
    bucket folding the rest.

    percent is each group's share of all hours, None when no hours exist.

    Raises:
        ValueError: If group_by is not a known grouping
    """
    group_by = ReportGroupBy(group_by)

    totals: Dict[str, TimeGroupTotal] = {}
    for entry in entries:
        group_id, label = _group_identity(entry, group_by)
        group = totals.get(group_id)
        if group is None:
            group = totals[group_id] = TimeGroupTotal(id=group_id, label=label)
        group.hours += entry.hours

    ranked = sorted(totals.values(), key=lambda g: -g.hours)
    total_hours = sum(g.hours for g in ranked)

    top = ranked[:limit]
    rest_hours = sum(g.hours for g in ranked[limit:])
    if rest_hours > 0:
        existing_other = next((g for g in top if g.id == OTHER_ID), None)
        if existing_other is not None:
            existing_other.hours += rest_hours
        else:
            top.append(TimeGroupTotal(id=OTHER_ID, label=OTHER_LABEL, hours=rest_hours))

    for group in top:
        group.percent = percent_or_none(group.hours, total_hours)
    return top


__all__ = [
    'resolve_report_range',
    'resolve_service_type_id',
    'enrich_time_entries',
    'build_daily_totals',
    'build_top_groups',
]
