"""
Enumeration definitions for the Performance Signal Engine.

All enums inherit from both `str` and `Enum` so that they serialize as plain
strings inside Pydantic models and compare equal to the raw strings supplied
by the entity collections.
"""

from enum import Enum


class Tone(str, Enum):
    """
    Attention-severity colour used uniformly across dashboard signals.

    Severity integers: red=2, amber=1, green=0 (see services.tones).
    """
    GREEN = "green"
    AMBER = "amber"
    RED = "red"


class DeliverableStatus(str, Enum):
    """
    Normalized deliverable status.

    Any status that is not "completed" or "backlog" normalizes to
    in-progress ("blocked" included).
    """
    IN_PROGRESS = "in-progress"
    BACKLOG = "backlog"
    COMPLETED = "completed"


class ProgressConfidence(str, Enum):
    """
    Progress confidence a lead can set on a deliverable.

    UNSET is only used inside review snapshots; on entities "no confidence"
    is represented by None.
    """
    HIGH = "high"
    MED = "med"
    LOW = "low"
    UNSET = "unset"


class ReasonId(str, Enum):
    """
    Identifiers of the drift reason chips, in their fixed display order.
    """
    OVERDUE = "overdue"
    DUE_SOON = "dueSoon"
    EFFORT_OVER = "effortOver"
    TIMELINE_OVER = "timelineOver"
    LOW_CONFIDENCE = "lowConf"
    NEEDS_CHECK_IN = "checkIn"
    DATE_MOVED = "moved"


class CapacityState(str, Enum):
    """
    Capacity label for the whole team or a single member.

    UNKNOWN is reported when the pressure percentage is unknown (None).
    """
    UNKNOWN = "Unknown"
    BALANCED = "Balanced"
    TIGHT = "Tight"
    OVERLOADED = "Overloaded"


class FlowState(str, Enum):
    """
    Composite flow state shown in the dashboard headline.
    """
    IN_FLOW = "In Flow"
    WATCHLIST = "Watchlist"
    DRIFTING = "Drifting"


class SignalKey(str, Enum):
    """
    The five dashboard signals blended into the flow score.

    Declaration order is the driver priority order used to pick the flow
    score's driver label.
    """
    DEADLINES = "deadlines"
    CAPACITY = "capacity"
    JOBS = "jobs"
    MOMENTUM = "momentum"
    SALES = "sales"


class JobPulseState(str, Enum):
    """
    Per-job health label on the job pulse view.
    """
    FLOWING = "Flowing"
    WOBBLY = "Wobbly"
    DRIFTING = "Drifting"


class DealStage(str, Enum):
    """
    Sales pipeline stages. WON and LOST are closed; everything else is open.
    """
    LEAD = "lead"
    DISCOVERY = "discovery"
    PROPOSAL = "proposal"
    NEGOTIATION = "negotiation"
    WON = "won"
    LOST = "lost"


class DeliverableLens(str, Enum):
    """
    Lens applied to the at-risk deliverables list.
    """
    ALL = "all"
    PACE = "pace"
    DEADLINES = "deadlines"
    CONFIDENCE = "confidence"


class ReviewedFilter(str, Enum):
    """
    How reviewed deliverables are treated by the at-risk deliverables list.
    """
    ALL = "all"
    HIDE = "hide"
    ONLY = "only"


class ReportGroupBy(str, Enum):
    """
    Grouping dimension for the time report breakdown.
    """
    SERVICE_TYPE = "service-type"
    JOB = "job"
    TEAM_MEMBER = "team-member"
    CLIENT = "client"


class ReportRangePreset(str, Enum):
    """
    Named date ranges for the time report.
    """
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this-week"
    LAST_WEEK = "last-week"
    THIS_MONTH = "this-month"
    LAST_MONTH = "last-month"
    THIS_YEAR = "this-year"
    LAST_YEAR = "last-year"
    LAST_7 = "last-7"
    LAST_30 = "last-30"
    LAST_90 = "last-90"
    CUSTOM = "custom"
