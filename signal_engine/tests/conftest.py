"""
Pytest Configuration and Shared Fixtures for the Performance Signal Engine.

This module provides fixtures and configuration for all engine tests:
- A fixed "today" (Thursday 2026-01-15) so no test depends on the wall clock
- A Settings instance that ignores any local .env file
- Factory fixtures building entities with sensible defaults
- A small, consistent agency snapshot (team, jobs, deliverables, tasks)

Dates in the factories are given as day offsets from TODAY so each test reads
as "due in 3 days" rather than as a calendar date.
"""

from datetime import date, timedelta
from typing import Any, Callable, Dict, List, Optional

import pytest

from signal_engine.core.config import Settings, get_settings
from signal_engine.models import (
    ClassifiedDeliverable,
    Deliverable,
    DeliverableOverride,
    Job,
    SalesDeal,
    ServiceType,
    Task,
    TeamMember,
    TimeEntry,
)
from signal_engine.services.classification import classify_deliverable


TODAY = date(2026, 1, 15)


def day(offset: int) -> str:
    """ISO date `offset` days from TODAY."""
    return (TODAY + timedelta(days=offset)).isoformat()


# ============================================================
# PYTEST HOOKS
# ============================================================

def pytest_configure(config) -> None:
    """
    Register custom markers.

    - scenario: end-to-end behaviour of a documented dashboard scenario
    - pipeline: tests running the whole signal pipeline
    """
    config.addinivalue_line(
        'markers',
        'scenario: marks tests reproducing a documented dashboard scenario'
    )
    config.addinivalue_line(
        'markers',
        'pipeline: marks tests exercising the full signal pipeline'
    )


# ============================================================
# CLOCK AND SETTINGS
# ============================================================

@pytest.fixture
def today() -> date:
    """The fixed "today" used by every test."""
    return TODAY


@pytest.fixture
def settings() -> Settings:
    """Default settings, isolated from any .env file in the working tree."""
    return Settings(_env_file=None)


@pytest.fixture(autouse=True)
def clear_settings_cache():
    """Ensure get_settings() is re-read for every test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


# ============================================================
# ENTITY FACTORIES
# ============================================================

@pytest.fixture
def make_job() -> Callable[..., Job]:
    def factory(job_id: Any = 1, **fields: Any) -> Job:
        data: Dict[str, Any] = {
            'id': job_id,
            'name': f"Job {job_id} Site",
            'client': "Acme",
            'status': "active",
        }
        data.update(fields)
        return Job(**data)

    return factory


@pytest.fixture
def make_deliverable() -> Callable[..., Deliverable]:
    """
    Build a Deliverable. `due_in` is a day offset from TODAY; pass `due`
    directly for raw or malformed values.
    """
    def factory(
        deliverable_id: Any = 1,
        job_id: Any = 1,
        due_in: Optional[int] = 10,
        **fields: Any
    ) -> Deliverable:
        data: Dict[str, Any] = {
            'id': deliverable_id,
            'jobId': job_id,
            'name': f"Deliverable {deliverable_id}",
            'due': day(due_in) if due_in is not None else None,
            'status': "in-progress",
            'effortConsumedPct': 40,
            'durationConsumedPct': 40,
        }
        data.update(fields)
        return Deliverable(**data)

    return factory


@pytest.fixture
def make_task() -> Callable[..., Task]:
    def factory(task_id: Any = "t1", deliverable_id: Any = 1, **fields: Any) -> Task:
        data: Dict[str, Any] = {
            'id': task_id,
            'deliverableId': deliverable_id,
        }
        data.update(fields)
        return Task(**data)

    return factory


@pytest.fixture
def classify(make_job, settings) -> Callable[..., ClassifiedDeliverable]:
    """Classify a deliverable against TODAY with default settings."""
    def factory(
        deliverable: Deliverable,
        override: Optional[DeliverableOverride] = None,
        job: Optional[Job] = None,
        on: date = TODAY,
    ) -> ClassifiedDeliverable:
        return classify_deliverable(
            deliverable,
            job if job is not None else make_job(deliverable.jobId),
            override,
            on,
            settings,
        )

    return factory


# ============================================================
# SAMPLE SNAPSHOT
# ============================================================

@pytest.fixture
def sample_team() -> List[TeamMember]:
    return [
        TeamMember(id="tm1", name="Sam", monthlyCapacityHours=150),
        TeamMember(id="tm2", name="Riley", monthlyCapacityHours=120),
        TeamMember(id="tm3", name="Jordan", monthlyCapacityHours=0),
    ]


@pytest.fixture
def sample_service_types() -> List[ServiceType]:
    return [
        ServiceType(id="web", name="Web"),
        ServiceType(id="brand", name="Brand"),
        ServiceType(id="seo", name="SEO"),
    ]


@pytest.fixture
def sample_jobs() -> List[Job]:
    return [
        Job(id=101, name="Website Refresh", client="Acme", serviceType="Web",
            estHours=200, actualHours=120, startDate=day(-30), plannedEnd=day(30)),
        Job(id=102, name="Brand Sprint", client="Globex", serviceType="Brand",
            estHours=80, actualHours=78, startDate=day(-20), plannedEnd=day(5)),
        Job(id=103, name="SEO Audit", client="Initech", serviceType="SEO",
            estHours=40, actualHours=10, startDate=day(-5), plannedEnd=day(40)),
    ]


@pytest.fixture
def sample_deliverables() -> List[Deliverable]:
    return [
        Deliverable(id=201, jobId=101, name="Homepage Build", due=day(-1),
                    effortConsumedPct=60, durationConsumedPct=70),
        Deliverable(id=202, jobId=101, name="CMS Setup", due=day(3),
                    effortConsumedPct=92, durationConsumedPct=50),
        Deliverable(id=203, jobId=102, name="Logo Concepts", due=day(8),
                    effortConsumedPct=112, durationConsumedPct=60),
        Deliverable(id=204, jobId=103, name="Audit Report", due=day(20),
                    effortConsumedPct=20, durationConsumedPct=30),
        Deliverable(id=205, jobId=103, name="Kickoff", due=day(-10),
                    status="completed", completedAt=day(-11),
                    effortConsumedPct=100, durationConsumedPct=100),
    ]


@pytest.fixture
def sample_tasks() -> List[Task]:
    return [
        Task(id="t1", deliverableId=201, assigneeId="tm1", serviceTypeId="web",
             title="Hero section", estimatedHours=20, actualHours=12),
        Task(id="t2", deliverableId=202, assigneeId="tm1", serviceTypeId="web",
             title="Content model", estimatedHours=30, actualHours=10),
        Task(id="t3", deliverableId=203, assigneeId="tm2", serviceTypeId="brand",
             title="Sketches", estimatedHours=16, actualHours=18),
        Task(id="t4", deliverableId=203, assigneeId=None, serviceTypeId="brand",
             title="Review deck"),
        Task(id="t5", deliverableId=204, assigneeId="tm2", serviceTypeId="seo",
             title="Crawl", assignedHours=12, actualHours=2),
    ]


@pytest.fixture
def sample_deals() -> List[SalesDeal]:
    return [
        SalesDeal(id=1, name="Retainer", stage="won", amount=10000),
        SalesDeal(id=2, name="Redesign", stage="proposal", amount=10000, probability=0.5),
        SalesDeal(id=3, name="Audit", stage="lead", amount=10000),
        SalesDeal(id=4, name="Lost pitch", stage="lost", amount=50000),
    ]


@pytest.fixture
def sample_time_entries() -> List[TimeEntry]:
    return [
        TimeEntry(id="te1", taskId="t1", hours=3, date=day(0)),
        TimeEntry(id="te2", taskId="t3", hours=2.5, date=day(-1)),
        TimeEntry(id="te3", memberId="tm2", quickTask=True, title="Inbox zero",
                  hours=1, date=day(-1)),
        TimeEntry(id="te4", taskId="t5", hours=4, date=day(-40)),
        TimeEntry(id="te5", taskId="t2", hours=2, date="yesterday-ish"),
    ]
