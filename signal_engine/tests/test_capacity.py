"""
Capacity Forecast Tests

Tests for remaining-hours estimation, the horizon window, pressure and
utilization, and the per-service-type and per-deliverable breakdowns.
"""

import pytest

from signal_engine.models import CapacityState, Deliverable, TeamMember
from signal_engine.services.capacity import (
    UNKNOWN_HOURS,
    KnownHours,
    build_capacity_forecast,
    capacity_state_label,
    remaining_hours_for_task,
)
from signal_engine.tests.conftest import TODAY, day


@pytest.fixture
def forecast(settings):
    """build_capacity_forecast pinned to TODAY and default settings."""
    def run(team=(), jobs=(), deliverables=(), tasks=(), horizon_days=30):
        return build_capacity_forecast(team, jobs, deliverables, tasks, horizon_days, TODAY, settings)

    return run


def member(member_id="tm1", monthly=100, name=None):
    return TeamMember(id=member_id, name=name or member_id.upper(), monthlyCapacityHours=monthly)


# =============================================================================
# Remaining Hours
# =============================================================================


class TestRemainingHours:
    """Tests for remaining_hours_for_task."""

    def test_estimate_minus_actual(self, make_task):
        assert remaining_hours_for_task(make_task(estimatedHours=150, actualHours=50)) == KnownHours(100)

    def test_floored_at_zero(self, make_task):
        assert remaining_hours_for_task(make_task(estimatedHours=10, actualHours=25)) == KnownHours(0)

    def test_completed_task_is_known_zero(self, make_task):
        assert remaining_hours_for_task(make_task(completed=True)) == KnownHours(0)

    def test_explicit_zero_override_is_known(self, make_task):
        """remainingHours=0 means done, not unknown."""
        result = remaining_hours_for_task(make_task(remainingHours=0, estimatedHours=40))
        assert result == KnownHours(0)

    def test_override_wins_over_estimate(self, make_task):
        result = remaining_hours_for_task(make_task(remainingHours=6, estimatedHours=40, actualHours=1))
        assert result == KnownHours(6)

    def test_negative_override_falls_through(self, make_task):
        result = remaining_hours_for_task(make_task(remainingHours=-3, estimatedHours=8, actualHours=2))
        assert result == KnownHours(6)

    def test_assigned_hours_fallback(self, make_task):
        assert remaining_hours_for_task(make_task(assignedHours=12, actualHours=2)) == KnownHours(10)

    def test_nothing_to_estimate_is_unknown(self, make_task):
        assert remaining_hours_for_task(make_task(actualHours=4)) is UNKNOWN_HOURS

    def test_non_finite_estimate_is_unknown(self, make_task):
        assert remaining_hours_for_task(make_task(estimatedHours=float("nan"))) is UNKNOWN_HOURS


class TestCapacityStateLabel:
    """Tests for capacity_state_label thresholds."""

    @pytest.mark.parametrize("pct,expected", [
        (None, CapacityState.UNKNOWN),
        (0, CapacityState.BALANCED),
        (84, CapacityState.BALANCED),
        (85, CapacityState.TIGHT),
        (100, CapacityState.TIGHT),
        (101, CapacityState.OVERLOADED),
    ])
    def test_thresholds(self, pct, expected, settings):
        assert capacity_state_label(pct, settings) == expected


# =============================================================================
# Forecast
# =============================================================================


@pytest.mark.scenario
class TestForecastScenario:
    """100h of capacity against 100h of remaining work reads Tight, not Overloaded."""

    def test_full_capacity_is_tight(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member("tm1", monthly=100)],
            deliverables=[make_deliverable(1, due_in=10)],
            tasks=[make_task("t1", 1, assigneeId="tm1", estimatedHours=150, actualHours=50)],
        )

        assert result.capacityHours == 100
        assert result.knownDemandHours == 100
        assert result.capacityPressurePct == 100
        assert result.capacityStateLabel == CapacityState.TIGHT
        assert result.teamRows[0].utilizationPct == 100
        assert result.teamRows[0].utilizationState == CapacityState.TIGHT

    def test_capacity_is_prorated_over_horizon(self, forecast):
        result = forecast(team=[member("tm1", monthly=200)], horizon_days=15)
        assert result.capacityHours == 100
        assert result.horizonLabel == "Next 15 days"


class TestHorizonWindow:
    """Tests for which deliverables fall inside [today, today + horizon)."""

    def test_window_is_half_open(self, forecast, make_deliverable, make_task):
        deliverables = [
            make_deliverable(1, due_in=0),
            make_deliverable(2, due_in=29),
            make_deliverable(3, due_in=30),
            make_deliverable(4, due_in=-1),
        ]
        tasks = [make_task(f"t{i}", i, estimatedHours=1) for i in range(1, 5)]

        result = forecast(team=[member()], deliverables=deliverables, tasks=tasks)

        assert [e.deliverableId for e in result.deliverablesInHorizon] == [1, 2]
        assert result.knownDemandHours == 2
        assert result.horizonStart == TODAY
        assert result.horizonEnd.isoformat() == day(30)

    def test_completed_and_missing_deliverables_are_excluded(self, forecast, make_deliverable, make_task):
        deliverables = [
            make_deliverable(1, due_in=5, status="completed"),
            make_deliverable(2, due_in=5, completedAt=day(-1)),
            make_deliverable(3, due_in=None, due="soon"),
            make_deliverable(4, due_in=5),
        ]
        tasks = [make_task(f"t{i}", i, estimatedHours=4) for i in range(1, 6)]

        result = forecast(team=[member()], deliverables=deliverables, tasks=tasks)

        assert result.knownDemandHours == 4
        assert [e.deliverableId for e in result.deliverablesInHorizon] == [4]

    def test_non_positive_horizon_raises(self, forecast):
        with pytest.raises(ValueError):
            forecast(horizon_days=0)

    def test_default_horizon_from_settings(self, settings):
        result = build_capacity_forecast(team=[member()], today=TODAY, settings=settings)
        assert result.horizonDays == 30
        assert result.capacityHours == 100


class TestPressure:
    """Tests for capacity pressure and unknown demand."""

    def test_all_unknown_demand_is_unknown_pressure(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member()],
            deliverables=[make_deliverable(1, due_in=3)],
            tasks=[make_task("t1", 1, assigneeId="tm1"), make_task("t2", 1)],
        )

        assert result.capacityPressurePct is None
        assert result.capacityStateLabel == CapacityState.UNKNOWN
        assert result.unknownDemandTaskCount == 2
        assert result.unknownDemandDeliverableCount == 1
        assert result.unknownUnassignedTaskCount == 1

    def test_zero_capacity_is_unknown_pressure(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member(monthly=0)],
            deliverables=[make_deliverable(1, due_in=3)],
            tasks=[make_task("t1", 1, estimatedHours=10)],
        )

        assert result.capacityHours == 0
        assert result.capacityPressurePct is None
        assert result.capacityStateLabel == CapacityState.UNKNOWN

    def test_no_demand_is_zero_pressure(self, forecast):
        result = forecast(team=[member()])
        assert result.capacityPressurePct == 0
        assert result.capacityStateLabel == CapacityState.BALANCED

    def test_unknown_tasks_do_not_inflate_known_demand(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member()],
            deliverables=[make_deliverable(1, due_in=3)],
            tasks=[make_task("t1", 1, estimatedHours=120), make_task("t2", 1)],
        )

        assert result.knownDemandHours == 120
        assert result.capacityPressurePct == 120
        assert result.capacityStateLabel == CapacityState.OVERLOADED
        assert result.unknownDemandTaskCount == 1


class TestMemberRows:
    """Tests for per-member utilization."""

    def test_rows_sorted_by_utilization_unknown_last(self, forecast, make_deliverable, make_task):
        team = [member("tm1", 100), member("tm2", 30), member("tm3", 0)]
        tasks = [
            make_task("t1", 1, assigneeId="tm1", estimatedHours=20),
            make_task("t2", 1, assigneeId="tm2", estimatedHours=15),
            make_task("t3", 1, assigneeId="tm3", estimatedHours=5),
        ]

        result = forecast(team=team, deliverables=[make_deliverable(1, due_in=2)], tasks=tasks)

        assert [row.memberId for row in result.teamRows] == ["tm2", "tm1", "tm3"]
        assert [row.utilizationPct for row in result.teamRows] == [50, 20, None]
        assert result.teamRows[2].utilizationState == CapacityState.UNKNOWN

    def test_unrostered_assignee_counts_as_unassigned(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member()],
            deliverables=[make_deliverable(1, due_in=2)],
            tasks=[make_task("t1", 1, assigneeId="ghost", estimatedHours=8)],
        )

        assert result.unassignedDemandHours == 8
        assert result.unassignedKnownTaskCount == 1
        assert result.teamRows[0].assignedKnownDemandHours == 0
        assert result.deliverablesInHorizon[0].unassignedKnownHoursTotal == 8

    def test_member_contributions_and_unknown_tasks(self, forecast, make_deliverable, make_task, make_job):
        tasks = [
            make_task("t1", 1, assigneeId="tm1", estimatedHours=6),
            make_task("t2", 1, assigneeId="tm1", estimatedHours=4),
            make_task("t3", 1, assigneeId="tm1"),
        ]

        result = forecast(
            team=[member()],
            jobs=[make_job(1, name="Website", client="Acme")],
            deliverables=[make_deliverable(1, due_in=2)],
            tasks=tasks,
        )

        row = result.teamRows[0]
        assert row.assignedKnownDemandHours == 10
        assert [t.id for t in row.unknownTasks] == ["t3"]
        contribution = row.deliverablesContributing[0]
        assert contribution.memberAssignedKnownHours == 10
        assert contribution.memberUnknownTaskCount == 1
        assert contribution.jobName == "Website"
        assert contribution.clientName == "Acme"


class TestServiceTypesAndEvidence:
    """Tests for service-type demand rows and the deliverable evidence list."""

    def test_service_type_shares(self, forecast, make_deliverable, make_task):
        tasks = [
            make_task("t1", 1, serviceTypeId="web", estimatedHours=30),
            make_task("t2", 1, serviceTypeId="brand", estimatedHours=10),
            make_task("t3", 1, estimatedHours=10),
        ]

        result = forecast(team=[member()], deliverables=[make_deliverable(1, due_in=2)], tasks=tasks)

        rows = {row.serviceTypeId: row for row in result.serviceTypes}
        assert result.serviceTypes[0].serviceTypeId == "web"
        assert rows["web"].sharePct == 60
        assert rows["brand"].sharePct == 20
        assert rows["other"].sharePct == 20

    def test_share_is_none_without_known_demand(self, forecast, make_deliverable, make_task):
        result = forecast(
            team=[member()],
            deliverables=[make_deliverable(1, due_in=2)],
            tasks=[make_task("t1", 1, serviceTypeId="web")],
        )

        assert result.serviceTypes[0].sharePct is None
        assert result.serviceTypes[0].deliverablesContributing[0].unknownTasks == 1

    def test_evidence_sorted_by_due_then_name(self, forecast, make_task):
        deliverables = [
            Deliverable(id=1, jobId=1, name="zeta", due=day(5)),
            Deliverable(id=2, jobId=1, name="Alpha", due=day(5)),
            Deliverable(id=3, jobId=1, name="beta", due=day(1)),
        ]
        tasks = [make_task(f"t{i}", i, estimatedHours=1) for i in range(1, 4)]

        result = forecast(team=[member()], deliverables=deliverables, tasks=tasks)

        assert [e.deliverableName for e in result.deliverablesInHorizon] == ["beta", "Alpha", "zeta"]
        assert result.deliverablesInHorizon[0].jobName == "Job 1"

    @pytest.mark.pipeline
    def test_sample_snapshot(self, forecast, sample_team, sample_jobs, sample_deliverables, sample_tasks):
        """
        Sample snapshot: 201 is overdue (outside), 205 completed; 202, 203
        and 204 are inside the horizon.
        """
        result = forecast(sample_team, sample_jobs, sample_deliverables, sample_tasks)

        # t2 20h, t3 0h, t5 10h known; t4 unknown and unassigned
        assert result.knownDemandHours == 30
        assert result.capacityHours == 270
        assert result.capacityPressurePct == 11
        assert result.unknownDemandTaskCount == 1
        assert result.unknownUnassignedTaskCount == 1
        assert [e.deliverableId for e in result.deliverablesInHorizon] == [202, 203, 204]
        assert [row.memberId for row in result.teamRows] == ["tm1", "tm2", "tm3"]
