"""
Performance Pulse Tests

Tests for the five signal tones and the full pipeline run by
build_performance_pulse.
"""

from datetime import timedelta

import pytest

from signal_engine.models import (
    CapacityForecastResult,
    CapacityState,
    DeliverableOverride,
    FlowState,
    JobsAtRiskRollup,
    SalesDeal,
    SignalKey,
    TeamMember,
    Tone,
)
from signal_engine.services.overrides import mark_reviewed
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
from signal_engine.services.override_store import InMemoryOverrideStore
from signal_engine.tests.conftest import TODAY, day


def forecast_with(pressure):
    return CapacityForecastResult(
        horizonLabel="Next 30 days",
        horizonDays=30,
        horizonStart=TODAY,
        horizonEnd=TODAY + timedelta(days=30),
        knownDemandHours=0,
        capacityHours=100,
        capacityPressurePct=pressure,
        capacityStateLabel=CapacityState.UNKNOWN,
    )


class TestJobPace:
    """Tests for job_effort_pct and job_timeline_pct."""

    def test_effort_pct(self, make_job):
        assert job_effort_pct(make_job(estHours=80, actualHours=78)) == 98

    def test_effort_clamped(self, make_job):
        assert job_effort_pct(make_job(estHours=10, actualHours=100)) == 200

    def test_effort_missing_estimate_floors_at_one(self, make_job):
        assert job_effort_pct(make_job(actualHours=1)) == 100
        assert job_effort_pct(make_job()) == 0

    def test_timeline_pct(self, make_job):
        job = make_job(startDate=day(-20), plannedEnd=day(5))
        assert job_timeline_pct(job, TODAY) == 80

    def test_timeline_before_start_is_zero(self, make_job):
        assert job_timeline_pct(make_job(startDate=day(3), plannedEnd=day(10)), TODAY) == 0

    @pytest.mark.parametrize("start,end", [
        (None, None),
        ("garbage", "2026-02-01"),
        ("2026-02-01", "2026-01-01"),
        ("2026-01-01", "2026-01-01"),
    ])
    def test_timeline_malformed_window_is_zero(self, make_job, start, end):
        assert job_timeline_pct(make_job(startDate=start, plannedEnd=end), TODAY) == 0


class TestMomentumSignal:
    """Tests for compute_momentum_signal."""

    def test_sample_jobs(self, sample_jobs, settings):
        """Brand Sprint's effort (98%) is warming up; 2 of 3 on pace reads red."""
        signal = compute_momentum_signal(sample_jobs, TODAY, settings)

        assert signal.activeCount == 3
        assert signal.warmingCount == 1
        assert signal.onTimePct == 67
        assert signal.tone == Tone.RED

    def test_inactive_jobs_are_ignored(self, make_job, settings):
        jobs = [make_job(1, status="completed", estHours=10, actualHours=50), make_job(2)]
        signal = compute_momentum_signal(jobs, TODAY, settings)

        assert signal.activeCount == 1
        assert signal.onTimePct == 100
        assert signal.tone == Tone.GREEN

    def test_no_active_jobs_is_green(self, settings):
        signal = compute_momentum_signal([], TODAY, settings)
        assert signal.onTimePct is None
        assert signal.tone == Tone.GREEN


class TestOtherSignals:
    """Tests for the jobs, capacity, deadlines and sales signals."""

    def test_jobs_signal(self):
        assert compute_jobs_signal(JobsAtRiskRollup()).tone == Tone.GREEN
        busy = compute_jobs_signal(JobsAtRiskRollup(jobsAtRiskCount=2, jobsAtRiskNeedingAttention=1))
        assert busy.tone == Tone.AMBER
        assert busy.needingAttention == 1

    @pytest.mark.parametrize("pressure,expected", [
        (None, Tone.AMBER),
        (50, Tone.GREEN),
        (90, Tone.GREEN),
        (91, Tone.AMBER),
        (110, Tone.AMBER),
        (111, Tone.RED),
    ])
    def test_capacity_signal(self, settings, pressure, expected):
        assert compute_capacity_signal(forecast_with(pressure), settings).tone == expected

    def test_deadlines_overdue_is_red(self, make_deliverable, classify, settings):
        signal = compute_deadlines_signal([classify(make_deliverable(due_in=-1))], settings)
        assert signal.overdueOpen == 1
        assert signal.tone == Tone.RED

    def test_deadlines_due_soon_threshold(self, make_deliverable, classify, settings):
        two = [classify(make_deliverable(i, due_in=i)) for i in (1, 2)]
        three = [classify(make_deliverable(i, due_in=i)) for i in (1, 2, 3)]

        assert compute_deadlines_signal(two, settings).tone == Tone.GREEN
        assert compute_deadlines_signal(three, settings).tone == Tone.AMBER
        assert compute_deadlines_signal(three, settings).totalWindow == 3

    def test_sales_signal(self, sample_deals, settings):
        """Won 10k; open 10k at 50% plus 10k at the default 35% -> 85% coverage."""
        signal = compute_sales_signal(sample_deals, settings)

        assert signal.wonValue == 10000
        assert signal.openCount == 2
        assert signal.weightedOpen == 8500
        assert signal.coveragePct == 85
        assert signal.tone == Tone.AMBER

    def test_sales_without_won_value_is_amber(self, settings):
        deals = [SalesDeal(id=1, stage="proposal", amount=5000, probability=0.9)]
        signal = compute_sales_signal(deals, settings)
        assert signal.coveragePct is None
        assert signal.tone == Tone.AMBER

    def test_sales_zero_probability_uses_default(self, settings):
        deals = [
            SalesDeal(id=1, stage="won", amount=1000),
            SalesDeal(id=2, stage="negotiation", amount=1000, probability=0),
        ]
        assert compute_sales_signal(deals, settings).weightedOpen == 350

    def test_count_unreviewed_overdue(self, make_deliverable, classify):
        overdue = make_deliverable(1, due_in=-2)
        acknowledged = classify(overdue, mark_reviewed(classify(overdue), None, "Lee", day(0)))
        deliverables = [
            acknowledged,
            classify(make_deliverable(2, due_in=-2)),
            classify(make_deliverable(3, due_in=-2, status="completed")),
        ]

        assert count_unreviewed_overdue(deliverables) == 1


@pytest.mark.pipeline
class TestPerformancePulse:
    """End-to-end runs of build_performance_pulse."""

    def test_sample_snapshot(
        self, settings, sample_team, sample_jobs, sample_deliverables, sample_tasks, sample_deals
    ):
        """
        momentum red (2) + jobs amber (1) + capacity green (0)
        + deadlines red (2) + sales amber (1) = 6 -> Drifting at 60%.
        """
        pulse = build_performance_pulse(
            team=sample_team,
            jobs=sample_jobs,
            deliverables=sample_deliverables,
            tasks=sample_tasks,
            deals=sample_deals,
            today=TODAY,
            settings=settings,
        )

        tones = pulse.signals.tones()
        assert tones.momentum == Tone.RED
        assert tones.jobs == Tone.AMBER
        assert tones.capacity == Tone.GREEN
        assert tones.deadlines == Tone.RED
        assert tones.sales == Tone.AMBER

        assert pulse.flowScore.severitySum == 6
        assert pulse.flowScore.scorePct == 60
        assert pulse.flowScore.state == FlowState.DRIFTING
        assert pulse.flowScore.driverKey == SignalKey.DEADLINES
        assert pulse.flowScore.driverLabel == "Deadlines slipping"

        assert pulse.unreviewedOverdueCount == 1
        assert pulse.capacity.capacityPressurePct == 11
        assert pulse.jobsAtRisk.jobsAtRiskCount == 2
        assert pulse.today == TODAY
        assert len(pulse.deliverables) == 5

    def test_overrides_flow_through(
        self, settings, sample_team, sample_jobs, sample_deliverables, sample_tasks
    ):
        """Completing the overdue deliverable clears the deadlines red."""
        store = InMemoryOverrideStore({201: DeliverableOverride(statusOverride="completed")})

        pulse = build_performance_pulse(
            team=sample_team,
            jobs=sample_jobs,
            deliverables=sample_deliverables,
            tasks=sample_tasks,
            overrides=store,
            today=TODAY,
            settings=settings,
        )

        assert pulse.signals.deadlines.overdueOpen == 0
        assert pulse.unreviewedOverdueCount == 0
        assert pulse.jobsAtRisk.jobsAtRiskCount == 1

    def test_quiet_agency_is_in_flow(self, settings, make_job, make_deliverable):
        pulse = build_performance_pulse(
            team=[],
            jobs=[make_job(1)],
            deliverables=[make_deliverable(1, due_in=20)],
            deals=[SalesDeal(id=1, stage="won", amount=100), SalesDeal(id=2, stage="lead", amount=1000)],
            today=TODAY,
            settings=settings,
        )

        # No capacity at all reads amber; everything else is calm
        assert pulse.capacity.capacityPressurePct is None
        assert pulse.flowScore.severitySum == 1
        assert pulse.flowScore.state == FlowState.IN_FLOW
        assert pulse.flowScore.driverLabel == "Capacity is strained"

    def test_capacity_override_in_pipeline(self, settings, make_job, make_deliverable, make_task):
        pulse = build_performance_pulse(
            team=[TeamMember(id="tm1", name="Sam", monthlyCapacityHours=30)],
            jobs=[make_job(1)],
            deliverables=[make_deliverable(1, due_in=5)],
            tasks=[make_task("t1", 1, assigneeId="tm1", estimatedHours=60)],
            deals=[SalesDeal(id=1, stage="won", amount=100), SalesDeal(id=2, stage="lead", amount=1000)],
            today=TODAY,
            settings=settings,
        )

        assert pulse.capacity.capacityPressurePct == 200
        assert pulse.flowScore.state == FlowState.DRIFTING
        assert pulse.flowScore.scorePct == 90
