"""Pure planning functions: prioritization, recurrence, dependencies, goal progress, roadmap."""

from src.planning.dependencies import blocked_by, blocking, can_task_start
from src.planning.goal_progress import compute_goal_progress, compute_goal_status, goal_time_metrics
from src.planning.priority import classify_priority, sort_by_priority
from src.planning.recurrence import create_recurring_instance
from src.planning.roadmap import build_roadmap


__all__ = [
    "blocked_by",
    "blocking",
    "build_roadmap",
    "can_task_start",
    "classify_priority",
    "compute_goal_progress",
    "compute_goal_status",
    "create_recurring_instance",
    "goal_time_metrics",
    "sort_by_priority",
]
