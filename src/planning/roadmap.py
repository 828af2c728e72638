"""Business roadmap: phase lanes, milestone status, dependency satisfaction and statistics."""

import logging
import math
from collections.abc import Iterable, Mapping
from datetime import datetime

from src.core.config import constants
from src.domain.business import DEFAULT_PHASES, BusinessPhase, LinkedProject
from src.domain.common import ceil_days, round_half_up
from src.domain.project import Project, ProjectMilestone
from src.models.service_models import (
    DependencyStatus,
    MilestoneStatus,
    ProjectTimeMetrics,
    Roadmap,
    RoadmapDependency,
    RoadmapMilestone,
    RoadmapProject,
    RoadmapStatistics,
    RoadmapTimeline,
)


logger = logging.getLogger(__name__)


def milestone_progress(project: Project) -> int:
    """Share of completed milestones, 0 when the project has none."""
    if not project.milestones:
        return 0
    done = sum(1 for milestone in project.milestones if milestone.completed)
    return round_half_up(done / len(project.milestones) * 100)


def milestone_status(milestone: ProjectMilestone, now: datetime) -> MilestoneStatus:
    if milestone.completed:
        return MilestoneStatus.COMPLETED
    if milestone.due_date is not None and milestone.due_date < now:
        return MilestoneStatus.OVERDUE
    return MilestoneStatus.PENDING


def estimated_duration_days(milestone: ProjectMilestone) -> int:
    """Working days a milestone takes at eight hours a day; 1 when unestimated."""
    if not milestone.estimated_hours:
        return 1
    return math.ceil(milestone.estimated_hours / constants.MILESTONE_HOURS_PER_DAY)


def _roadmap_project(linked: LinkedProject, project: Project, now: datetime) -> RoadmapProject:
    progress = milestone_progress(project)
    milestones = [
        RoadmapMilestone(
            milestone=milestone,
            position=index,
            status=milestone_status(milestone, now),
            estimated_duration_days=estimated_duration_days(milestone),
        )
        for index, milestone in enumerate(project.milestones)
    ]
    target = project.target_completion_date
    time_metrics = ProjectTimeMetrics(
        days_active=ceil_days(now - project.start_date) if project.start_date else 0,
        days_until_deadline=ceil_days(target - now) if target else None,
        is_overdue=target is not None and target < now and progress < constants.GOAL_COMPLETE_PROGRESS,
    )
    return RoadmapProject(
        linked=linked,
        project=project,
        progress=progress,
        time_metrics=time_metrics,
        milestones=milestones,
        total_milestones=len(milestones),
        completed_milestones=sum(1 for m in milestones if m.status == MilestoneStatus.COMPLETED),
        overdue_milestones=sum(1 for m in milestones if m.status == MilestoneStatus.OVERDUE),
    )


def build_roadmap(
    linked_projects: Iterable[LinkedProject],
    projects: Mapping[str, Project],
    phases: Iterable[BusinessPhase] = DEFAULT_PHASES,
    *,
    now: datetime,
) -> Roadmap:
    """Assemble the roadmap for a business's linked projects.

    Args:
        linked_projects: The business's linked-project records
        projects: Resolved projects keyed by project id; links to missing projects are skipped
        phases: Lanes to build, in display order
        now: Reference time for overdue checks and the empty timeline
    """
    entries: list[RoadmapProject] = []
    for linked in linked_projects:
        project = projects.get(linked.project_id)
        if project is None:
            logger.warning(
                "Skipping linked project that could not be resolved",
                extra={"business_id": linked.business_id, "project_id": linked.project_id},
            )
            continue
        entries.append(_roadmap_project(linked, project, now))

    phase_list = list(phases)
    lanes = {phase: [entry for entry in entries if entry.linked.business_phase == phase] for phase in phase_list}

    by_project_id = {entry.linked.project_id: entry for entry in entries}
    dependencies = [
        RoadmapDependency(
            from_project_id=dependency.project_id,
            to_project_id=entry.linked.project_id,
            type=dependency.type,
            status=(
                DependencyStatus.SATISFIED
                if by_project_id[dependency.project_id].progress >= constants.GOAL_COMPLETE_PROGRESS
                else DependencyStatus.PENDING
            ),
        )
        for entry in entries
        for dependency in entry.linked.dependencies
        if dependency.project_id in by_project_id
    ]

    statistics = RoadmapStatistics(
        total_projects=len(entries),
        total_milestones=sum(entry.total_milestones for entry in entries),
        completed_milestones=sum(entry.completed_milestones for entry in entries),
        overdue_milestones=sum(entry.overdue_milestones for entry in entries),
        avg_progress=round_half_up(sum(entry.progress for entry in entries) / len(entries)) if entries else 0,
    )

    timeline = RoadmapTimeline(
        start_date=min((entry.project.start_date or now for entry in entries), default=now),
        end_date=max((entry.project.target_completion_date or now for entry in entries), default=now),
    )

    return Roadmap(
        phases=phase_list,
        lanes=lanes,
        dependencies=dependencies,
        timeline=timeline,
        statistics=statistics,
    )
