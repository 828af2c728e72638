"""Tests for roadmap assembly."""

from datetime import UTC, datetime, timedelta

import pytest

from src.domain.business import BusinessPhase, LinkedProject, ProjectDependency
from src.domain.project import Project, ProjectMilestone, ProjectStatus
from src.models.service_models import DependencyStatus, MilestoneStatus
from src.planning.roadmap import build_roadmap, estimated_duration_days, milestone_progress


NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


def _project(project_id: str, milestones: list[ProjectMilestone] | None = None, **kwargs) -> Project:
    return Project(
        id=project_id,
        owner_id="user_1",
        title=f"Project {project_id}",
        status=ProjectStatus.ACTIVE,
        milestones=milestones or [],
        **kwargs,
    )


def _linked(project_id: str, phase: BusinessPhase = BusinessPhase.DEVELOPMENT, **kwargs) -> LinkedProject:
    return LinkedProject(owner_id="user_1", business_id="biz_1", project_id=project_id, business_phase=phase, **kwargs)


@pytest.mark.unit
def test_empty_roadmap_has_every_lane_and_zero_average() -> None:
    roadmap = build_roadmap([], {}, now=NOW)

    assert roadmap.phases == list(BusinessPhase)
    assert all(roadmap.lanes[phase] == [] for phase in BusinessPhase)
    assert roadmap.statistics.total_projects == 0
    assert roadmap.statistics.avg_progress == 0
    assert roadmap.timeline.start_date == NOW
    assert roadmap.timeline.end_date == NOW


@pytest.mark.unit
def test_projects_are_placed_in_their_phase_lane() -> None:
    projects = {"1": _project("1"), "2": _project("2")}
    linked = [_linked("1", BusinessPhase.RESEARCH), _linked("2", BusinessPhase.LAUNCH)]

    roadmap = build_roadmap(linked, projects, now=NOW)

    assert [e.project.id for e in roadmap.lanes[BusinessPhase.RESEARCH]] == ["1"]
    assert [e.project.id for e in roadmap.lanes[BusinessPhase.LAUNCH]] == ["2"]
    assert roadmap.lanes[BusinessPhase.GROWTH] == []


@pytest.mark.unit
def test_unresolved_projects_are_skipped() -> None:
    roadmap = build_roadmap([_linked("missing")], {}, now=NOW)

    assert roadmap.statistics.total_projects == 0


@pytest.mark.unit
def test_milestone_statuses_and_statistics() -> None:
    milestones = [
        ProjectMilestone(title="Spec", completed=True, estimated_hours=12),
        ProjectMilestone(title="Build", due_date=NOW - timedelta(days=1)),
        ProjectMilestone(title="Ship", due_date=NOW + timedelta(days=10), estimated_hours=16),
    ]
    roadmap = build_roadmap([_linked("1")], {"1": _project("1", milestones)}, now=NOW)

    entry = roadmap.lanes[BusinessPhase.DEVELOPMENT][0]
    assert [m.status for m in entry.milestones] == [
        MilestoneStatus.COMPLETED,
        MilestoneStatus.OVERDUE,
        MilestoneStatus.PENDING,
    ]
    assert [m.estimated_duration_days for m in entry.milestones] == [2, 1, 2]
    assert entry.progress == 33
    assert roadmap.statistics.total_milestones == 3
    assert roadmap.statistics.completed_milestones == 1
    assert roadmap.statistics.overdue_milestones == 1
    assert roadmap.statistics.avg_progress == 33


@pytest.mark.unit
def test_dependency_satisfied_when_target_fully_progressed() -> None:
    done = [ProjectMilestone(title="All", completed=True)]
    projects = {"1": _project("1", done), "2": _project("2"), "3": _project("3")}
    linked = [
        _linked("1"),
        _linked("2", dependencies=[ProjectDependency(project_id="1")]),
        _linked("3", dependencies=[ProjectDependency(project_id="2"), ProjectDependency(project_id="404")]),
    ]

    roadmap = build_roadmap(linked, projects, now=NOW)

    statuses = {(d.from_project_id, d.to_project_id): d.status for d in roadmap.dependencies}
    assert statuses == {
        ("1", "2"): DependencyStatus.SATISFIED,
        ("2", "3"): DependencyStatus.PENDING,
    }


@pytest.mark.unit
def test_timeline_spans_start_and_target_dates() -> None:
    start = NOW - timedelta(days=30)
    target = NOW + timedelta(days=60)
    projects = {
        "1": _project("1", start_date=start),
        "2": _project("2", target_completion_date=target),
    }

    roadmap = build_roadmap([_linked("1"), _linked("2")], projects, now=NOW)

    assert roadmap.timeline.start_date == start
    assert roadmap.timeline.end_date == target


@pytest.mark.unit
def test_milestone_helpers() -> None:
    assert milestone_progress(_project("1")) == 0
    assert estimated_duration_days(ProjectMilestone(title="x")) == 1
    assert estimated_duration_days(ProjectMilestone(title="x", estimated_hours=8)) == 1
    assert estimated_duration_days(ProjectMilestone(title="x", estimated_hours=9)) == 2
