"""Goal progress roll-up from linked tasks and projects, and derived goal status."""

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta

from src.core.config import constants
from src.domain.common import ceil_days, parse_timestamp, round_half_up
from src.domain.goal import Goal, GoalStatus
from src.domain.project import Project, ProjectStatus
from src.domain.task import Task
from src.models.service_models import GoalTimeMetrics


logger = logging.getLogger(__name__)


def compute_goal_progress(goal: Goal, linked_tasks: Sequence[Task], linked_projects: Sequence[Project]) -> int:
    """Percentage of linked work done, 0-100.

    Completed tasks and projects count as one unit each; an active project
    contributes its completion percentage as a fraction of a unit. A goal with
    nothing linked has progress 0. Manual progress entries do not count.
    """
    total = len(linked_tasks) + len(linked_projects)
    if total == 0:
        return 0

    completed_units = float(sum(1 for task in linked_tasks if task.is_completed))
    for project in linked_projects:
        if project.status == ProjectStatus.COMPLETED:
            completed_units += 1
        elif project.status == ProjectStatus.ACTIVE:
            completed_units += project.completion_percentage / 100

    progress = round_half_up(completed_units / total * 100)
    logger.debug("Computed goal progress", extra={"goal_id": goal.id, "progress": progress, "linked": total})
    return progress


def compute_goal_status(goal: Goal, progress: int, now: datetime) -> GoalStatus:
    """Derive a goal's lifecycle state from its progress and target date."""
    if progress >= constants.GOAL_COMPLETE_PROGRESS:
        return GoalStatus.ACHIEVED

    if goal.target_date is not None:
        if goal.target_date < now:
            return GoalStatus.OVERDUE
        days_left = ceil_days(goal.target_date - now)
        if (
            days_left <= constants.GOAL_AT_RISK_WINDOW_DAYS
            and progress < constants.GOAL_AT_RISK_PROGRESS_THRESHOLD
        ):
            return GoalStatus.AT_RISK

    if progress > 0:
        return GoalStatus.IN_PROGRESS
    return GoalStatus.NOT_STARTED


def is_goal_overdue(goal: Goal, progress: int, now: datetime) -> bool:
    return goal.target_date is not None and goal.target_date < now and progress < constants.GOAL_COMPLETE_PROGRESS


def goal_time_metrics(goal: Goal, progress: int, now: datetime) -> GoalTimeMetrics:
    """Days active, days left, progress per day and a projected completion date."""
    created = parse_timestamp(goal.created) or now
    days_active = max(ceil_days(now - created), 0)
    progress_rate = progress / max(days_active, 1)

    days_until_deadline = None
    estimated_completion = None
    if goal.target_date is not None:
        days_until_deadline = ceil_days(goal.target_date - now)
        if progress_rate > 0:
            remaining_days = (constants.GOAL_COMPLETE_PROGRESS - progress) / progress_rate
            estimated_completion = now + timedelta(days=max(remaining_days, 0))

    return GoalTimeMetrics(
        days_active=days_active,
        days_until_deadline=days_until_deadline,
        progress_rate=progress_rate,
        estimated_completion=estimated_completion,
    )


def needs_status_cache_update(goal: Goal, calculated_status: GoalStatus) -> bool:
    """Whether the stored status (or achieved timestamp) lags behind the derived one."""
    if goal.status != calculated_status:
        return True
    return calculated_status == GoalStatus.ACHIEVED and goal.achieved_at is None
