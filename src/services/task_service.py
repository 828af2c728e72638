"""Task service: CRUD, status transitions, recurrence, subtasks, links and analytics."""

import logging
from collections import defaultdict
from datetime import date, datetime, timedelta

from src.core.config import constants
from src.core.errors import (
    GoalNotFoundError,
    HasDependentsError,
    InvalidLinkError,
    PlannerValidationError,
    ProjectNotFoundError,
    RecurrenceEndedError,
    SubtaskNotFoundError,
    TaskNotFoundError,
)
from src.core.logging import log_with_user_context, span
from src.domain.common import ceil_days, round_half_up
from src.domain.create_models import SubtaskCreate, TaskCreate
from src.domain.task import (
    GoalLink,
    NoLink,
    ProjectLink,
    Quadrant,
    RecurringSettings,
    RecurringSettingsInput,
    Subtask,
    Task,
    TaskLink,
    TaskStatus,
)
from src.domain.update_models import SubtaskUpdate, TaskUpdate
from src.models.service_models import (
    CategoryBreakdownEntry,
    CompletionTrendEntry,
    RelatedTask,
    StatusBreakdownEntry,
    StatusChangeResult,
    TaskAnalyticsOverview,
    TaskDetail,
    TaskInsights,
    TaskListPage,
    TaskSummary,
    TaskView,
    TimeEfficiency,
)
from src.planning.dependencies import blocked_by, blocking
from src.planning.priority import classify_priority, quadrant, quadrant_levels, sort_by_priority
from src.planning.recurrence import create_recurring_instance
from src.services import goal_service, repository


logger = logging.getLogger(__name__)

TIMEFRAME_DAYS = {"7d": 7, "30d": 30, "90d": 90, "1y": 365}

# Fields a partial update may set back to null
_CLEARABLE_FIELDS = frozenset({"deadline", "estimated_time", "actual_time"})


def _related(task: Task) -> RelatedTask:
    return RelatedTask(id=task.id or "", title=task.title, status=task.status)


def _view(task: Task, now: datetime) -> TaskView:
    return TaskView(
        task=task,
        classification=classify_priority(task.urgency, task.importance),
        is_overdue=task.is_overdue(now),
        days_until_deadline=ceil_days(task.deadline - now) if task.deadline else None,
    )


def _goal_ids(*links: TaskLink) -> list[str]:
    return list(dict.fromkeys(link.goal_id for link in links if isinstance(link, GoalLink)))


async def _refresh_goals(owner_id: str, now: datetime, *links: TaskLink) -> None:
    """Refresh the cached status of every goal the given links point at."""
    for goal_id in _goal_ids(*links):
        try:
            await goal_service.refresh_goal_status_by_id(goal_id=goal_id, owner_id=owner_id, now=now)
        except GoalNotFoundError:
            logger.warning("Linked goal no longer exists", extra={"goal_id": goal_id, "owner_id": owner_id})


async def validate_link(*, link: TaskLink, owner_id: str) -> None:
    """Check that a link points at a project or goal the owner has.

    Business ids are not checked; businesses are managed outside this service.

    Raises:
        InvalidLinkError: the target does not exist, or the milestone index is out of range
    """
    try:
        if isinstance(link, ProjectLink):
            project = await repository.find_project_by_id(link.project_id, owner_id)
            if link.milestone_index is not None and link.milestone_index >= len(project.milestones):
                raise InvalidLinkError(
                    f"Project {link.project_id} has no milestone {link.milestone_index}",
                    details=[f"milestone_index must be below {len(project.milestones)}"],
                )
        elif isinstance(link, GoalLink):
            await repository.find_goal_by_id(link.goal_id, owner_id)
    except (ProjectNotFoundError, GoalNotFoundError) as e:
        raise InvalidLinkError(f"Linked {link.type} not found", details=[e.message]) from e


def _check_dependencies(task_id: str | None, task: Task) -> None:
    if task_id is not None and any(d.task_id == task_id for d in task.dependencies):
        raise PlannerValidationError("A task cannot depend on itself", details=["dependencies"])


async def create_task(*, owner_id: str, data: TaskCreate, now: datetime) -> Task:
    """Create a new task.

    Args:
        owner_id: Owning user ID
        data: Validated task fields
        now: Current time, used to reject deadlines in the past

    Returns:
        Created task

    Raises:
        PlannerValidationError: deadline lies in the past
        InvalidLinkError: linked project or goal does not exist
    """
    with span("task_service.create_task"):
        if data.deadline is not None and data.deadline < now:
            raise PlannerValidationError("Deadline cannot be in the past", details=["deadline"])

        await validate_link(link=data.linked_to, owner_id=owner_id)

        task = Task(
            owner_id=owner_id,
            title=data.title,
            description=data.description.strip(),
            urgency=data.urgency,
            importance=data.importance,
            category=data.category,
            tags=data.tags,
            deadline=data.deadline,
            estimated_time=data.estimated_time,
            subtasks=[Subtask(title=s.title, order=index) for index, s in enumerate(data.subtasks)],
            dependencies=data.dependencies,
            recurring=RecurringSettings.model_validate(
                data.recurring.model_dump(include=set(RecurringSettingsInput.model_fields))
            ),
            linked_to=data.linked_to,
        )
        task = await repository.save_task(task)

        log_with_user_context(
            logger,
            "info",
            "Created task",
            user_id=owner_id,
            task_id=task.id,
            quadrant=quadrant(task.urgency, task.importance),
        )
        await _refresh_goals(owner_id, now, task.linked_to)
        return task


async def list_tasks(
    *,
    owner_id: str,
    now: datetime,
    status: TaskStatus | None = None,
    urgency: str | None = None,
    importance: str | None = None,
    category: str | None = None,
    linked_type: str | None = None,
    quadrant_filter: Quadrant | None = None,
    overdue: bool | None = None,
    archived: bool = False,
    sort: str = "priority",
    page: int = 1,
    per_page: int = 20,
) -> TaskListPage:
    """Filter, sort and paginate an owner's tasks.

    Sort keys: ``priority`` (score, then deadline, then newest), ``deadline``
    (soonest first, undated last) and ``created`` (newest first).
    """
    with span("task_service.list_tasks"):
        tasks = await repository.find_tasks(
            owner_id=owner_id,
            include_archived=archived,
            status=status,
            urgency=urgency,
            importance=importance,
            category=category,
            link_type=linked_type,
        )
        if archived:
            tasks = [task for task in tasks if task.is_archived]

        if quadrant_filter is not None:
            urgency_levels, importance_levels = quadrant_levels(quadrant_filter)
            tasks = [t for t in tasks if t.urgency in urgency_levels and t.importance in importance_levels]

        if overdue is not None:
            tasks = [t for t in tasks if t.is_overdue(now) == overdue]

        if sort == "deadline":
            tasks.sort(key=lambda t: (t.deadline is None, t.deadline.timestamp() if t.deadline else 0.0))
        elif sort == "created":
            tasks.sort(key=lambda t: t.created or "", reverse=True)
        else:
            tasks = sort_by_priority(tasks)

        start = (page - 1) * per_page
        return TaskListPage(
            items=[_view(task, now) for task in tasks[start : start + per_page]],
            page=page,
            per_page=per_page,
            total=len(tasks),
        )


async def _dependency_tasks(task: Task) -> list[Task]:
    """Resolve a task's dependency targets; targets that no longer exist are left out."""
    resolved = []
    for dependency in task.dependencies:
        try:
            resolved.append(await repository.find_task_by_id(dependency.task_id, task.owner_id))
        except TaskNotFoundError:
            logger.debug("Dependency target missing", extra={"task_id": task.id, "target": dependency.task_id})
    return resolved


async def get_task_detail(*, task_id: str, owner_id: str, now: datetime) -> TaskDetail:
    """Task with derived insights, what blocks it, what it blocks and related tasks."""
    with span("task_service.get_task_detail"):
        task = await repository.find_task_by_id(task_id, owner_id)
        classification = classify_priority(task.urgency, task.importance)

        holding_back = blocked_by(task, await _dependency_tasks(task))
        all_tasks = await repository.find_tasks(owner_id=owner_id)
        held_back = [t for t in blocking(task_id, all_tasks) if t.id != task_id]

        time_efficiency = None
        if task.estimated_time and task.actual_time:
            time_efficiency = round_half_up(task.estimated_time / task.actual_time * 100)

        related = []
        if not isinstance(task.linked_to, NoLink):
            related = [
                _related(t)
                for t in all_tasks
                if t.id != task_id and t.linked_to == task.linked_to
            ][: constants.RELATED_TASKS_LIMIT]

        insights = TaskInsights(
            quadrant=classification.quadrant,
            quadrant_label=classification.label,
            priority_score=classification.score,
            is_overdue=task.is_overdue(now),
            days_until_deadline=ceil_days(task.deadline - now) if task.deadline else None,
            subtask_progress=task.subtask_progress,
            time_efficiency=time_efficiency,
            can_start=not holding_back,
            blocked_by=holding_back,
            blocking=[_related(t) for t in held_back],
        )
        return TaskDetail(task=task, insights=insights, related_tasks=related)


async def update_task(*, task_id: str, owner_id: str, data: TaskUpdate, now: datetime) -> Task:
    """Apply a partial update to a task's editable fields.

    Raises:
        TaskNotFoundError: task does not exist for this owner
        PlannerValidationError: the task would depend on itself
    """
    with span("task_service.update_task"):
        task = await repository.find_task_by_id(task_id, owner_id)
        changes = {
            field: value
            for field, value in data.model_dump(exclude_unset=True).items()
            if value is not None or field in _CLEARABLE_FIELDS
        }
        if "recurring" in changes:
            # Spawn bookkeeping survives edits to the recurrence rule
            changes["recurring"] = {**task.recurring.model_dump(), **changes["recurring"]}

        # Re-validate so tags are normalized and nested settings are checked
        updated = Task.model_validate({**task.model_dump(), **changes})
        _check_dependencies(task_id, updated)

        task = await repository.save_task(updated)
        logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(changes)})
        await _refresh_goals(owner_id, now, task.linked_to)
        return task


def _apply_status(task: Task, status: TaskStatus, actual_time: int | None, now: datetime) -> Task:
    """Status change with its lifecycle timestamps."""
    changes: dict[str, object] = {"status": status}
    if status == TaskStatus.IN_PROGRESS and task.started_at is None:
        changes["started_at"] = now
    if status == TaskStatus.COMPLETED and task.completed_at is None:
        changes["completed_at"] = now
    if actual_time is not None:
        changes["actual_time"] = actual_time
    return task.model_copy(update=changes)


async def change_status(
    *,
    task_id: str,
    owner_id: str,
    status: TaskStatus,
    now: datetime,
    actual_time: int | None = None,
) -> StatusChangeResult:
    """Move a task to a new status; completing a recurring task spawns its next instance.

    The spawned instance's id is stored on the completed task, so completing
    the same task again never spawns a second instance.

    Returns:
        The updated task and the spawned instance, if any
    """
    with span("task_service.change_status"):
        task = await repository.find_task_by_id(task_id, owner_id)
        previous_status = task.status
        task = _apply_status(task, status, actual_time, now)

        spawned = None
        if (
            status == TaskStatus.COMPLETED
            and task.recurring.is_recurring
            and task.recurring.spawned_task_id is None
        ):
            try:
                instance = create_recurring_instance(task, now)
            except RecurrenceEndedError:
                logger.info("Recurring series finished, no new instance", extra={"task_id": task_id})
            else:
                spawned = await repository.save_task(instance)
                task = task.model_copy(
                    update={
                        "recurring": task.recurring.model_copy(
                            update={"next_due": spawned.deadline, "spawned_task_id": spawned.id}
                        )
                    }
                )
                logger.info(
                    "Spawned recurring task instance",
                    extra={"task_id": task_id, "spawned_task_id": spawned.id, "next_due": str(spawned.deadline)},
                )
        elif status == TaskStatus.COMPLETED and task.recurring.spawned_task_id is not None:
            logger.info(
                "Recurring instance already spawned, skipping",
                extra={"task_id": task_id, "spawned_task_id": task.recurring.spawned_task_id},
            )

        task = await repository.save_task(task)
        log_with_user_context(
            logger,
            "info",
            "Task status changed",
            user_id=owner_id,
            task_id=task_id,
            from_status=previous_status,
            to_status=status,
        )
        await _refresh_goals(owner_id, now, task.linked_to)
        return StatusChangeResult(task=task, spawned_task=spawned)


async def delete_task(*, task_id: str, owner_id: str, now: datetime, permanent: bool = False) -> Task | None:
    """Archive a task, or remove it for good when `permanent` is set.

    Returns:
        The archived task, or None when permanently deleted

    Raises:
        HasDependentsError: permanent delete of a task other tasks depend on
    """
    with span("task_service.delete_task"):
        task = await repository.find_task_by_id(task_id, owner_id)

        if not permanent:
            task = await repository.save_task(task.model_copy(update={"is_archived": True}))
            logger.info("Archived task", extra={"task_id": task_id})
            await _refresh_goals(owner_id, now, task.linked_to)
            return task

        dependents = await repository.find_tasks_where_depends_on(task_id, owner_id)
        if dependents:
            raise HasDependentsError(
                f"Cannot delete task '{task.title}': {len(dependents)} task(s) depend on it",
                details=[dependent.title for dependent in dependents],
            )

        await repository.delete_task(task_id, owner_id)
        log_with_user_context(logger, "info", "Permanently deleted task", user_id=owner_id, task_id=task_id)
        await _refresh_goals(owner_id, now, task.linked_to)
        return None


# Subtasks


def _subtask_index(task: Task, index: int) -> None:
    if not 0 <= index < len(task.subtasks):
        raise SubtaskNotFoundError(f"Task {task.id} has no subtask {index}")


async def add_subtask(*, task_id: str, owner_id: str, data: SubtaskCreate) -> Task:
    """Append a subtask."""
    with span("task_service.add_subtask"):
        task = await repository.find_task_by_id(task_id, owner_id)
        subtask = Subtask(title=data.title, order=len(task.subtasks))
        return await repository.save_task(task.model_copy(update={"subtasks": [*task.subtasks, subtask]}))


async def update_subtask(*, task_id: str, owner_id: str, index: int, data: SubtaskUpdate, now: datetime) -> Task:
    """Rename or (un)complete a subtask."""
    with span("task_service.update_subtask"):
        task = await repository.find_task_by_id(task_id, owner_id)
        _subtask_index(task, index)

        subtask = task.subtasks[index]
        changes: dict[str, object] = {}
        if data.title is not None:
            changes["title"] = data.title.strip()
        if data.completed is not None and data.completed != subtask.completed:
            changes["completed"] = data.completed
            changes["completed_at"] = now if data.completed else None

        subtasks = list(task.subtasks)
        subtasks[index] = subtask.model_copy(update=changes)
        return await repository.save_task(task.model_copy(update={"subtasks": subtasks}))


async def delete_subtask(*, task_id: str, owner_id: str, index: int) -> Task:
    """Remove a subtask and renumber the rest."""
    with span("task_service.delete_subtask"):
        task = await repository.find_task_by_id(task_id, owner_id)
        _subtask_index(task, index)

        remaining = [s for i, s in enumerate(task.subtasks) if i != index]
        subtasks = [s.model_copy(update={"order": order}) for order, s in enumerate(remaining)]
        return await repository.save_task(task.model_copy(update={"subtasks": subtasks}))


# Links


async def link_task(*, task_id: str, owner_id: str, link: TaskLink, now: datetime) -> Task:
    """Point a task at a project, goal or business, replacing its previous link."""
    with span("task_service.link_task"):
        task = await repository.find_task_by_id(task_id, owner_id)
        await validate_link(link=link, owner_id=owner_id)

        previous = task.linked_to
        task = await repository.save_task(task.model_copy(update={"linked_to": link}))
        logger.info("Linked task", extra={"task_id": task_id, "link_type": link.type})
        await _refresh_goals(owner_id, now, previous, link)
        return task


async def unlink_task(*, task_id: str, owner_id: str, now: datetime) -> Task:
    """Clear a task's link."""
    return await link_task(task_id=task_id, owner_id=owner_id, link=NoLink(), now=now)


# Analytics


def summarize_tasks(tasks: list[Task], now: datetime) -> TaskSummary:
    """Headline counts over a set of non-archived tasks."""
    completed = sum(1 for t in tasks if t.is_completed)
    today = now.date()
    return TaskSummary(
        total=len(tasks),
        active=len(tasks) - completed,
        completed=completed,
        overdue=sum(1 for t in tasks if t.is_overdue(now)),
        due_today=sum(1 for t in tasks if t.deadline is not None and t.deadline.date() == today and not t.is_completed),
        completion_rate=round_half_up(completed / len(tasks) * 100) if tasks else 0,
    )


async def get_task_summary(*, owner_id: str, now: datetime) -> TaskSummary:
    with span("task_service.get_task_summary"):
        return summarize_tasks(await repository.find_tasks(owner_id=owner_id), now)


async def get_analytics_overview(*, owner_id: str, now: datetime, timeframe: str = "30d") -> TaskAnalyticsOverview:
    """Status, quadrant and category breakdowns, completion trend and estimate accuracy."""
    with span("task_service.get_analytics_overview"):
        tasks = await repository.find_tasks(owner_id=owner_id)
        since = now - timedelta(days=TIMEFRAME_DAYS.get(timeframe, TIMEFRAME_DAYS["30d"]))

        by_status: dict[TaskStatus, list[Task]] = defaultdict(list)
        by_category: dict[str, list[Task]] = defaultdict(list)
        matrix = dict.fromkeys(Quadrant, 0)
        trend: dict[date, list[Task]] = defaultdict(list)
        efficiencies = []

        for task in tasks:
            by_status[task.status].append(task)
            by_category[str(task.category)].append(task)
            if not task.is_completed:
                matrix[quadrant(task.urgency, task.importance)] += 1
            if task.completed_at is not None and task.completed_at >= since:
                trend[task.completed_at.date()].append(task)
            if task.is_completed and task.estimated_time and task.actual_time:
                efficiencies.append(task.estimated_time / task.actual_time * 100)

        return TaskAnalyticsOverview(
            summary=summarize_tasks(tasks, now),
            status_breakdown=[
                StatusBreakdownEntry(
                    status=status,
                    count=len(group),
                    total_estimated_time=sum(t.estimated_time or 0 for t in group),
                    total_actual_time=sum(t.actual_time or 0 for t in group),
                )
                for status, group in by_status.items()
            ],
            eisenhower_matrix=matrix,
            category_breakdown=[
                CategoryBreakdownEntry(
                    category=category,
                    total=len(group),
                    completed=(done := sum(1 for t in group if t.is_completed)),
                    completion_rate=round_half_up(done / len(group) * 100),
                )
                for category, group in sorted(by_category.items())
            ],
            completion_trend=[
                CompletionTrendEntry(day=day, completed=len(group), total_time=sum(t.actual_time or 0 for t in group))
                for day, group in sorted(trend.items())
            ],
            time_efficiency=TimeEfficiency(
                avg_efficiency=sum(efficiencies) / len(efficiencies) if efficiencies else 0,
                task_count=len(efficiencies),
            ),
            timeframe=timeframe if timeframe in TIMEFRAME_DAYS else "30d",
        )


async def get_tasks_by_quadrant(*, owner_id: str, q: Quadrant, now: datetime, limit: int = 10) -> list[TaskView]:
    """Open tasks in one Eisenhower quadrant, highest priority first."""
    with span("task_service.get_tasks_by_quadrant"):
        urgency_levels, importance_levels = quadrant_levels(q)
        tasks = [
            t
            for t in await repository.find_tasks(owner_id=owner_id)
            if not t.is_completed and t.urgency in urgency_levels and t.importance in importance_levels
        ]
        return [_view(task, now) for task in sort_by_priority(tasks)[:limit]]
