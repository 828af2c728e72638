"""Persistence of planner entities on top of the SQLite client.

Records are flat rows: nested structures live in JSON columns and a task's
link is spread over ``link_type`` / ``link_target_id`` / ``link_milestone_index``
so links can be filtered on. Every lookup is scoped to an owner; a record owned
by someone else is reported as missing.
"""

import logging
from typing import Any

from src.core import db_client
from src.core.config import constants
from src.core.errors import (
    GoalNotFoundError,
    LinkedProjectNotFoundError,
    ProjectNotFoundError,
    TaskNotFoundError,
)
from src.domain.business import LinkedProject
from src.domain.goal import Goal
from src.domain.project import Project
from src.domain.task import BusinessLink, GoalLink, NoLink, ProjectLink, Task, TaskLink


logger = logging.getLogger(__name__)

TASKS = "tasks"
GOALS = "goals"
PROJECTS = "projects"
LINKED_PROJECTS = "linked_projects"

_STORE_FIELDS = {"id", "created", "updated"}


def _quote(value: str | int | bool) -> str:
    return f'"{db_client.sanitize_param(value)}"'


def _link_target_id(link: TaskLink) -> str:
    match link:
        case ProjectLink():
            return link.project_id
        case GoalLink():
            return link.goal_id
        case BusinessLink():
            return link.business_id
        case _:
            return ""


def _link_from_columns(link_type: str | None, target_id: str | None, milestone_index: int | None) -> TaskLink:
    match link_type:
        case "project":
            return ProjectLink(project_id=target_id, milestone_index=milestone_index)
        case "goal":
            return GoalLink(goal_id=target_id)
        case "business":
            return BusinessLink(business_id=target_id)
        case _:
            return NoLink()


def task_to_record(task: Task) -> dict[str, Any]:
    """Flatten a task into column values."""
    data = task.model_dump(mode="json", exclude=_STORE_FIELDS | {"linked_to"})
    link = task.linked_to
    data["link_type"] = link.type
    data["link_target_id"] = _link_target_id(link)
    data["link_milestone_index"] = link.milestone_index if isinstance(link, ProjectLink) else None
    return data


def task_from_record(record: dict[str, Any]) -> Task:
    """Rebuild a task from a stored row."""
    data = dict(record)
    data["linked_to"] = _link_from_columns(
        data.pop("link_type", None),
        data.pop("link_target_id", None),
        data.pop("link_milestone_index", None),
    )
    return Task.model_validate(data)


async def _list_all(collection: str, filter_query: str, sort: str) -> list[dict[str, Any]]:
    """Every record matching the filter, read page by page until a short page comes back."""
    per_page = constants.FULL_SCAN_PER_PAGE
    records: list[dict[str, Any]] = []
    page = 1
    while True:
        batch = await db_client.list_records(
            collection=collection, filter_query=filter_query, page=page, per_page=per_page, sort=sort
        )
        records.extend(batch)
        if len(batch) < per_page:
            return records
        page += 1


def _project_to_record(project: Project) -> dict[str, Any]:
    data = project.model_dump(mode="json", exclude=_STORE_FIELDS)
    data["goal_id"] = project.goal_id or ""
    return data


# Tasks


async def find_task_by_id(task_id: str, owner_id: str) -> Task:
    """Load one of the owner's tasks.

    Raises:
        TaskNotFoundError: no such task for this owner
    """
    try:
        record = await db_client.get_record(collection=TASKS, record_id=task_id)
    except db_client.RecordNotFoundError as e:
        raise TaskNotFoundError(f"Task {task_id} not found") from e

    if record.get("owner_id") != owner_id:
        raise TaskNotFoundError(f"Task {task_id} not found")
    return task_from_record(record)


async def find_tasks(
    *,
    owner_id: str,
    include_archived: bool = False,
    status: str | None = None,
    urgency: str | None = None,
    importance: str | None = None,
    category: str | None = None,
    link_type: str | None = None,
    link_target_id: str | None = None,
) -> list[Task]:
    """All of an owner's tasks matching the given column filters, oldest first."""
    conditions = [f"owner_id = {_quote(owner_id)}"]
    if not include_archived:
        conditions.append('is_archived = "false"')
    for column, value in (
        ("status", status),
        ("urgency", urgency),
        ("importance", importance),
        ("category", category),
        ("link_type", link_type),
        ("link_target_id", link_target_id),
    ):
        if value is not None:
            conditions.append(f"{column} = {_quote(value)}")

    records = await _list_all(TASKS, " && ".join(conditions), "+created")
    return [task_from_record(record) for record in records]


async def find_tasks_by_goal(goal_id: str, owner_id: str) -> list[Task]:
    """Active tasks linked to a goal."""
    return await find_tasks(owner_id=owner_id, link_type="goal", link_target_id=goal_id)


async def find_tasks_where_depends_on(task_id: str, owner_id: str) -> list[Task]:
    """Tasks (archived included) holding any dependency on `task_id`."""
    tasks = await find_tasks(owner_id=owner_id, include_archived=True)
    return [task for task in tasks if any(d.task_id == task_id for d in task.dependencies)]


async def save_task(task: Task) -> Task:
    """Insert a new task or overwrite an existing one; returns the stored version."""
    data = task_to_record(task)
    if task.id is None:
        record = await db_client.create_record(collection=TASKS, data=data)
    else:
        record = await db_client.update_record(collection=TASKS, record_id=task.id, data=data)
    return task_from_record(record)


async def delete_task(task_id: str, owner_id: str) -> None:
    """Permanently remove a task."""
    await find_task_by_id(task_id, owner_id)
    await db_client.delete_record(collection=TASKS, record_id=task_id)


# Goals


async def find_goal_by_id(goal_id: str, owner_id: str) -> Goal:
    """Load one of the owner's goals.

    Raises:
        GoalNotFoundError: no such goal for this owner
    """
    try:
        record = await db_client.get_record(collection=GOALS, record_id=goal_id)
    except db_client.RecordNotFoundError as e:
        raise GoalNotFoundError(f"Goal {goal_id} not found") from e

    if record.get("owner_id") != owner_id:
        raise GoalNotFoundError(f"Goal {goal_id} not found")
    return Goal.model_validate(record)


async def find_goals(
    *,
    owner_id: str | None = None,
    category: str | None = None,
    priority: str | None = None,
    page: int = 1,
    per_page: int = constants.FULL_SCAN_PER_PAGE,
) -> list[Goal]:
    """Goals, newest first; `owner_id=None` lists every owner's goals (background jobs)."""
    conditions = []
    if owner_id is not None:
        conditions.append(f"owner_id = {_quote(owner_id)}")
    if category is not None:
        conditions.append(f"category = {_quote(category)}")
    if priority is not None:
        conditions.append(f"priority = {_quote(priority)}")

    records = await db_client.list_records(
        collection=GOALS,
        filter_query=" && ".join(conditions),
        page=page,
        per_page=per_page,
        sort="-created",
    )
    return [Goal.model_validate(record) for record in records]


async def save_goal(goal: Goal) -> Goal:
    data = goal.model_dump(mode="json", exclude=_STORE_FIELDS)
    if goal.id is None:
        record = await db_client.create_record(collection=GOALS, data=data)
    else:
        record = await db_client.update_record(collection=GOALS, record_id=goal.id, data=data)
    return Goal.model_validate(record)


async def delete_goal(goal_id: str, owner_id: str) -> None:
    await find_goal_by_id(goal_id, owner_id)
    await db_client.delete_record(collection=GOALS, record_id=goal_id)


# Projects


async def find_project_by_id(project_id: str, owner_id: str) -> Project:
    """Load one of the owner's projects.

    Raises:
        ProjectNotFoundError: no such project for this owner
    """
    try:
        record = await db_client.get_record(collection=PROJECTS, record_id=project_id)
    except db_client.RecordNotFoundError as e:
        raise ProjectNotFoundError(f"Project {project_id} not found") from e

    if record.get("owner_id") != owner_id:
        raise ProjectNotFoundError(f"Project {project_id} not found")
    return Project.model_validate(record)


async def find_projects_by_goal(goal_id: str, owner_id: str, *, include_archived: bool = False) -> list[Project]:
    """Projects counting toward a goal; archived ones only when asked for."""
    conditions = [f"owner_id = {_quote(owner_id)}", f"goal_id = {_quote(goal_id)}"]
    if not include_archived:
        conditions.append('archived = "false"')
    records = await _list_all(PROJECTS, " && ".join(conditions), "+created")
    return [Project.model_validate(record) for record in records]


async def find_projects_by_ids(project_ids: list[str], owner_id: str) -> dict[str, Project]:
    """Resolve project ids to projects, leaving out the ones that do not resolve."""
    projects: dict[str, Project] = {}
    for project_id in dict.fromkeys(project_ids):
        try:
            projects[project_id] = await find_project_by_id(project_id, owner_id)
        except ProjectNotFoundError:
            logger.debug("Project did not resolve", extra={"project_id": project_id})
    return projects


async def save_project(project: Project) -> Project:
    data = _project_to_record(project)
    if project.id is None:
        record = await db_client.create_record(collection=PROJECTS, data=data)
    else:
        record = await db_client.update_record(collection=PROJECTS, record_id=project.id, data=data)
    return Project.model_validate(record)


# Business links


async def find_linked_projects(business_id: str, owner_id: str) -> list[LinkedProject]:
    """Projects linked to a business, in link order."""
    records = await _list_all(
        LINKED_PROJECTS, f"business_id = {_quote(business_id)} && owner_id = {_quote(owner_id)}", "+id"
    )
    return [LinkedProject.model_validate(record) for record in records]


async def find_linked_project(business_id: str, project_id: str, owner_id: str) -> LinkedProject:
    """Find the link between a business and one project.

    Raises:
        LinkedProjectNotFoundError: the project is not linked to the business
    """
    for linked in await find_linked_projects(business_id, owner_id):
        if linked.project_id == project_id:
            return linked
    raise LinkedProjectNotFoundError(f"Project {project_id} is not linked to business {business_id}")


async def save_linked_project(linked: LinkedProject) -> LinkedProject:
    data = linked.model_dump(mode="json", exclude=_STORE_FIELDS)
    if linked.id is None:
        record = await db_client.create_record(collection=LINKED_PROJECTS, data=data)
    else:
        record = await db_client.update_record(collection=LINKED_PROJECTS, record_id=linked.id, data=data)
    return LinkedProject.model_validate(record)
