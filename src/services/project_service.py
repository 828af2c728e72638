"""Project service: creation, milestones and status, keeping linked goals current."""

import logging
from datetime import datetime

from src.core.errors import MilestoneNotFoundError
from src.core.logging import log_with_user_context, span
from src.domain.create_models import ProjectCreate, ProjectMilestoneCreate
from src.domain.project import Project, ProjectMilestone, ProjectStatus
from src.domain.update_models import ProjectMilestoneUpdate
from src.planning.roadmap import milestone_progress
from src.services import goal_service, repository


logger = logging.getLogger(__name__)


def recalculate_completion(project: Project, now: datetime) -> Project:
    """Re-derive completion from milestones; finishing every milestone completes the project.

    Projects without milestones keep their manually set percentage.
    """
    if not project.milestones:
        return project

    progress = milestone_progress(project)
    changes: dict[str, object] = {"completion_percentage": progress}

    if progress == 100 and project.status != ProjectStatus.COMPLETED:
        changes["status"] = ProjectStatus.COMPLETED
        changes["actual_completion_date"] = project.actual_completion_date or now
        logger.info("Project auto-completed", extra={"project_id": project.id})
    elif progress < 100 and project.status == ProjectStatus.COMPLETED:
        changes["status"] = ProjectStatus.ACTIVE
        changes["actual_completion_date"] = None
    elif progress > 0 and project.status == ProjectStatus.NOT_STARTED:
        changes["status"] = ProjectStatus.ACTIVE
        changes["start_date"] = project.start_date or now

    return project.model_copy(update=changes)


async def _save_and_refresh_goal(project: Project, now: datetime) -> Project:
    project = await repository.save_project(project)
    if project.goal_id:
        await goal_service.refresh_goal_status_by_id(goal_id=project.goal_id, owner_id=project.owner_id, now=now)
    return project


async def create_project(*, owner_id: str, data: ProjectCreate, now: datetime) -> Project:
    """Create a new project.

    Raises:
        GoalNotFoundError: goal_id does not name one of the owner's goals
    """
    with span("project_service.create_project"):
        if data.goal_id:
            await repository.find_goal_by_id(data.goal_id, owner_id)

        project = Project(
            owner_id=owner_id,
            title=data.title.strip(),
            description=data.description,
            status=data.status,
            priority=data.priority,
            completion_percentage=data.completion_percentage,
            milestones=[
                ProjectMilestone(title=m.title, due_date=m.due_date, estimated_hours=m.estimated_hours, order=index)
                for index, m in enumerate(data.milestones)
            ],
            start_date=data.start_date,
            target_completion_date=data.target_completion_date,
            goal_id=data.goal_id,
        )
        project = await _save_and_refresh_goal(recalculate_completion(project, now), now)
        log_with_user_context(logger, "info", "Created project", user_id=owner_id, project_id=project.id)
        return project


async def get_project(*, project_id: str, owner_id: str) -> Project:
    with span("project_service.get_project"):
        return await repository.find_project_by_id(project_id, owner_id)


async def add_milestone(*, project_id: str, owner_id: str, data: ProjectMilestoneCreate, now: datetime) -> Project:
    """Append a milestone and re-derive completion."""
    with span("project_service.add_milestone"):
        project = await repository.find_project_by_id(project_id, owner_id)
        milestone = ProjectMilestone(
            title=data.title,
            due_date=data.due_date,
            estimated_hours=data.estimated_hours,
            order=len(project.milestones),
        )
        project = project.model_copy(update={"milestones": [*project.milestones, milestone]})
        return await _save_and_refresh_goal(recalculate_completion(project, now), now)


async def update_milestone(
    *,
    project_id: str,
    owner_id: str,
    index: int,
    data: ProjectMilestoneUpdate,
    now: datetime,
) -> Project:
    """Edit or (un)complete a milestone and re-derive completion.

    Raises:
        MilestoneNotFoundError: index is out of range
    """
    with span("project_service.update_milestone"):
        project = await repository.find_project_by_id(project_id, owner_id)
        if not 0 <= index < len(project.milestones):
            raise MilestoneNotFoundError(f"Project {project_id} has no milestone {index}")

        milestone = project.milestones[index]
        changes = data.model_dump(exclude_unset=True, exclude={"completed"})
        if data.completed is not None and data.completed != milestone.completed:
            changes["completed"] = data.completed
            changes["completed_at"] = now if data.completed else None

        milestones = list(project.milestones)
        milestones[index] = milestone.model_copy(update=changes)
        project = project.model_copy(update={"milestones": milestones})
        logger.info("Updated project milestone", extra={"project_id": project_id, "index": index})
        return await _save_and_refresh_goal(recalculate_completion(project, now), now)


async def update_project_status(*, project_id: str, owner_id: str, status: ProjectStatus, now: datetime) -> Project:
    """Set a project's status by hand."""
    with span("project_service.update_project_status"):
        project = await repository.find_project_by_id(project_id, owner_id)
        changes: dict[str, object] = {"status": status}
        if status == ProjectStatus.COMPLETED:
            changes["actual_completion_date"] = project.actual_completion_date or now
            if not project.milestones:
                changes["completion_percentage"] = 100
        elif status == ProjectStatus.ACTIVE:
            changes["start_date"] = project.start_date or now
            changes["actual_completion_date"] = None

        project = await _save_and_refresh_goal(project.model_copy(update=changes), now)
        logger.info("Project status changed", extra={"project_id": project_id, "status": status})
        return project
