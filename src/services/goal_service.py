"""Goal service: progress roll-up, status cache, milestones, links and dashboard."""

import logging
from collections import Counter
from datetime import datetime

from src.core.config import constants
from src.core.errors import MilestoneNotFoundError
from src.core.logging import log_with_user_context, span
from src.domain.common import ceil_days, parse_timestamp
from src.domain.create_models import GoalCreate, GoalMilestoneCreate
from src.domain.goal import Goal, GoalMilestone, GoalStatus, ProgressEntry
from src.domain.task import GoalLink, NoLink
from src.domain.update_models import GoalProgressUpdate
from src.models.service_models import (
    CategoryCount,
    GoalDashboard,
    GoalLinkResult,
    GoalListItem,
    GoalListPage,
    GoalListStats,
    GoalOverview,
    GoalProgressReport,
    UpcomingDeadline,
)
from src.planning.goal_progress import (
    compute_goal_progress,
    compute_goal_status,
    goal_time_metrics,
    is_goal_overdue,
    needs_status_cache_update,
)
from src.services import repository


logger = logging.getLogger(__name__)


async def _progress_of(goal: Goal) -> int:
    assert goal.id is not None
    tasks = await repository.find_tasks_by_goal(goal.id, goal.owner_id)
    projects = await repository.find_projects_by_goal(goal.id, goal.owner_id)
    return compute_goal_progress(goal, tasks, projects)


def _with_status_cache(goal: Goal, status: GoalStatus, now: datetime) -> Goal:
    """Copy of the goal with its cached status and lifecycle timestamps brought up to date."""
    achieved_at = goal.achieved_at
    if status == GoalStatus.ACHIEVED:
        achieved_at = achieved_at or now
    else:
        achieved_at = None

    started_at = goal.started_at
    if started_at is None and status != GoalStatus.NOT_STARTED:
        started_at = now

    return goal.model_copy(update={"status": status, "achieved_at": achieved_at, "started_at": started_at})


async def refresh_goal_status(*, goal: Goal, now: datetime) -> tuple[Goal, int, GoalStatus]:
    """Recompute a goal's progress and status, writing the cache only when it changed.

    Returns:
        (goal as stored, progress, calculated status)
    """
    with span("goal_service.refresh_goal_status"):
        progress = await _progress_of(goal)
        status = compute_goal_status(goal, progress, now)

        if needs_status_cache_update(goal, status):
            previous = goal.status
            goal = await repository.save_goal(_with_status_cache(goal, status, now))
            logger.info(
                "Goal status changed",
                extra={"goal_id": goal.id, "from_status": previous, "to_status": status, "progress": progress},
            )

        return goal, progress, status


async def refresh_goal_status_by_id(*, goal_id: str, owner_id: str, now: datetime) -> None:
    """Refresh the cached status of a goal some linked work just changed on."""
    goal = await repository.find_goal_by_id(goal_id, owner_id)
    await refresh_goal_status(goal=goal, now=now)


async def create_goal(*, owner_id: str, data: GoalCreate) -> Goal:
    """Create a new goal.

    Args:
        owner_id: Owning user ID
        data: Validated goal fields

    Returns:
        Created goal
    """
    with span("goal_service.create_goal"):
        goal = Goal(
            owner_id=owner_id,
            title=data.title.strip(),
            description=data.description,
            category=data.category,
            priority=data.priority,
            target_date=data.target_date,
            current_value=data.current_value,
            target_value=data.target_value,
            milestones=[GoalMilestone(title=m.title, target_date=m.target_date) for m in data.milestones],
        )
        goal = await repository.save_goal(goal)
        log_with_user_context(logger, "info", "Created goal", user_id=owner_id, goal_id=goal.id)
        return goal


async def _report(goal: Goal, now: datetime) -> GoalProgressReport:
    assert goal.id is not None
    tasks = await repository.find_tasks_by_goal(goal.id, goal.owner_id)
    projects = await repository.find_projects_by_goal(goal.id, goal.owner_id)
    progress = compute_goal_progress(goal, tasks, projects)
    return GoalProgressReport(
        goal=goal,
        progress=progress,
        calculated_status=compute_goal_status(goal, progress, now),
        is_overdue=is_goal_overdue(goal, progress, now),
        time_metrics=goal_time_metrics(goal, progress, now),
        linked_tasks=tasks,
        linked_projects=projects,
    )


async def get_goal_report(*, goal_id: str, owner_id: str, now: datetime) -> GoalProgressReport:
    """Goal with computed progress, derived status, pace and linked work."""
    with span("goal_service.get_goal_report"):
        goal = await repository.find_goal_by_id(goal_id, owner_id)
        return await _report(goal, now)


async def list_goals(
    *,
    owner_id: str,
    now: datetime,
    status: GoalStatus | None = None,
    category: str | None = None,
    priority: str | None = None,
    search: str | None = None,
    page: int = 1,
    per_page: int = 20,
) -> GoalListPage:
    """List goals with computed progress; the status filter matches the derived status."""
    with span("goal_service.list_goals"):
        all_goals = await repository.find_goals(owner_id=owner_id)

        items = []
        for goal in all_goals:
            progress = await _progress_of(goal)
            items.append(
                GoalListItem(
                    goal=goal,
                    progress=progress,
                    calculated_status=compute_goal_status(goal, progress, now),
                    is_overdue=is_goal_overdue(goal, progress, now),
                )
            )

        stats = GoalListStats(
            total=len(items),
            achieved=sum(1 for item in items if item.calculated_status == GoalStatus.ACHIEVED),
            in_progress=sum(
                1 for item in items if item.calculated_status in (GoalStatus.NOT_STARTED, GoalStatus.IN_PROGRESS)
            ),
            overdue=sum(1 for item in items if item.is_overdue),
            categories=sorted({str(item.goal.category) for item in items}),
        )

        needle = search.lower() if search else None
        matching = [
            item
            for item in items
            if (status is None or item.calculated_status == status)
            and (category is None or item.goal.category == category)
            and (priority is None or item.goal.priority == priority)
            and (needle is None or needle in item.goal.title.lower() or needle in item.goal.description.lower())
        ]

        start = (page - 1) * per_page
        return GoalListPage(
            items=matching[start : start + per_page],
            page=page,
            per_page=per_page,
            total=len(matching),
            stats=stats,
        )


async def update_goal_progress(
    *,
    goal_id: str,
    owner_id: str,
    update: GoalProgressUpdate,
    now: datetime,
) -> GoalProgressReport:
    """Record a measured value and/or toggle a milestone, then refresh the status cache.

    Raises:
        GoalNotFoundError: goal does not exist for this owner
        MilestoneNotFoundError: milestone_id is not one of the goal's milestones
    """
    with span("goal_service.update_goal_progress"):
        goal = await repository.find_goal_by_id(goal_id, owner_id)
        changes: dict[str, object] = {}

        if update.current_value is not None:
            changes["current_value"] = update.current_value
            changes["progress_entries"] = [
                *goal.progress_entries,
                ProgressEntry(value=update.current_value, note=update.note, recorded_at=now),
            ]

        if update.milestone_id is not None:
            if not any(m.id == update.milestone_id for m in goal.milestones):
                raise MilestoneNotFoundError(f"Milestone {update.milestone_id} not found on goal {goal_id}")
            changes["milestones"] = [
                m.model_copy(
                    update={"is_completed": update.is_completed, "completed_at": now if update.is_completed else None}
                )
                if m.id == update.milestone_id
                else m
                for m in goal.milestones
            ]

        if changes:
            goal = await repository.save_goal(goal.model_copy(update=changes))

        goal, _progress, _status = await refresh_goal_status(goal=goal, now=now)
        return await _report(goal, now)


async def add_goal_milestone(*, goal_id: str, owner_id: str, data: GoalMilestoneCreate) -> GoalMilestone:
    """Append a milestone to a goal and return it."""
    with span("goal_service.add_goal_milestone"):
        goal = await repository.find_goal_by_id(goal_id, owner_id)
        milestone = GoalMilestone(title=data.title, target_date=data.target_date)
        await repository.save_goal(goal.model_copy(update={"milestones": [*goal.milestones, milestone]}))
        logger.info("Added goal milestone", extra={"goal_id": goal_id, "milestone_id": milestone.id})
        return milestone


async def link_task_to_goal(*, goal_id: str, owner_id: str, task_id: str, now: datetime) -> GoalLinkResult:
    """Point a task at a goal (replacing any previous link) and return the new progress."""
    with span("goal_service.link_task_to_goal"):
        goal = await repository.find_goal_by_id(goal_id, owner_id)
        task = await repository.find_task_by_id(task_id, owner_id)

        previous = task.linked_to
        task = await repository.save_task(task.model_copy(update={"linked_to": GoalLink(goal_id=goal_id)}))
        if isinstance(previous, GoalLink) and previous.goal_id != goal_id:
            await refresh_goal_status_by_id(goal_id=previous.goal_id, owner_id=owner_id, now=now)

        _goal, progress, _status = await refresh_goal_status(goal=goal, now=now)
        return GoalLinkResult(goal_id=goal_id, goal_progress=progress, task=task)


async def link_project_to_goal(*, goal_id: str, owner_id: str, project_id: str, now: datetime) -> GoalLinkResult:
    """Make a project count toward a goal and return the new progress."""
    with span("goal_service.link_project_to_goal"):
        goal = await repository.find_goal_by_id(goal_id, owner_id)
        project = await repository.find_project_by_id(project_id, owner_id)

        previous_goal_id = project.goal_id
        project = await repository.save_project(project.model_copy(update={"goal_id": goal_id}))
        if previous_goal_id and previous_goal_id != goal_id:
            await refresh_goal_status_by_id(goal_id=previous_goal_id, owner_id=owner_id, now=now)

        _goal, progress, _status = await refresh_goal_status(goal=goal, now=now)
        return GoalLinkResult(goal_id=goal_id, goal_progress=progress, project=project)


async def delete_goal(*, goal_id: str, owner_id: str) -> None:
    """Delete a goal, detaching (never deleting) the tasks and projects linked to it."""
    with span("goal_service.delete_goal"):
        await repository.find_goal_by_id(goal_id, owner_id)

        tasks = await repository.find_tasks(
            owner_id=owner_id, include_archived=True, link_type="goal", link_target_id=goal_id
        )
        for task in tasks:
            await repository.save_task(task.model_copy(update={"linked_to": NoLink()}))

        projects = await repository.find_projects_by_goal(goal_id, owner_id, include_archived=True)
        for project in projects:
            await repository.save_project(project.model_copy(update={"goal_id": None}))

        await repository.delete_goal(goal_id, owner_id)
        log_with_user_context(
            logger,
            "info",
            "Deleted goal",
            user_id=owner_id,
            goal_id=goal_id,
            detached_tasks=len(tasks),
            detached_projects=len(projects),
        )


async def get_goal_dashboard(*, owner_id: str, now: datetime) -> GoalDashboard:
    """Counts by status, category and priority, this month's activity, and upcoming deadlines."""
    with span("goal_service.get_goal_dashboard"):
        goals = await repository.find_goals(owner_id=owner_id)
        with_progress = [(goal, await _progress_of(goal)) for goal in goals]
        statuses = [compute_goal_status(goal, progress, now) for goal, progress in with_progress]

        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        categories = Counter(str(goal.category) for goal in goals)
        priorities = Counter(str(goal.priority) for goal in goals)

        upcoming = sorted(
            (
                (goal, progress)
                for goal, progress in with_progress
                if goal.target_date is not None
                and goal.target_date > now
                and progress < constants.GOAL_COMPLETE_PROGRESS
            ),
            key=lambda pair: pair[0].target_date,
        )[: constants.UPCOMING_DEADLINES_LIMIT]

        return GoalDashboard(
            overview=GoalOverview(
                total=len(goals),
                achieved=sum(1 for s in statuses if s == GoalStatus.ACHIEVED),
                in_progress=sum(1 for s in statuses if s in (GoalStatus.NOT_STARTED, GoalStatus.IN_PROGRESS)),
                overdue=sum(1 for goal, progress in with_progress if is_goal_overdue(goal, progress, now)),
            ),
            categories=dict(categories),
            priorities=dict(priorities),
            goals_created_this_month=sum(
                1 for goal in goals if (created := parse_timestamp(goal.created)) is not None and created >= month_start
            ),
            goals_achieved_this_month=sum(
                1 for goal in goals if goal.achieved_at is not None and goal.achieved_at >= month_start
            ),
            upcoming_deadlines=[
                UpcomingDeadline(
                    id=goal.id or "",
                    title=goal.title,
                    target_date=goal.target_date,
                    progress=progress,
                    days_until_deadline=ceil_days(goal.target_date - now),
                )
                for goal, progress in upcoming
                if goal.target_date is not None
            ],
            top_categories=[
                CategoryCount(category=category, count=count)
                for category, count in categories.most_common(constants.UPCOMING_DEADLINES_LIMIT)
            ],
        )


async def refresh_all_goal_statuses(*, now: datetime) -> int:
    """Refresh every goal's cached status; returns how many caches were rewritten.

    A goal that fails to refresh is logged and skipped.
    """
    with span("goal_service.refresh_all_goal_statuses"):
        updated = 0
        page = 1
        while True:
            goals = await repository.find_goals(page=page, per_page=constants.FULL_SCAN_PER_PAGE)
            for goal in goals:
                try:
                    stored, _progress, _status = await refresh_goal_status(goal=goal, now=now)
                except Exception:
                    logger.exception("Failed to refresh goal status", extra={"goal_id": goal.id})
                    continue
                if stored is not goal:
                    updated += 1
            if len(goals) < constants.FULL_SCAN_PER_PAGE:
                break
            page += 1

        logger.info("Refreshed goal statuses", extra={"updated": updated})
        return updated
