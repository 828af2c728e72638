"""Dependency resolution: which tasks may start and what holds them back."""

from collections.abc import Iterable

from src.domain.task import DependencyType, Task, TaskDependency, TaskStatus


def blocked_by(task: Task, dependency_tasks: Iterable[Task]) -> list[TaskDependency]:
    """Return the `blocks` dependencies of a task whose target is not completed.

    A target missing from `dependency_tasks` counts as not completed. Only
    `blocks` edges hold a task back; `enables` and `supports` never do.
    """
    status_by_id = {t.id: t.status for t in dependency_tasks if t.id is not None}
    return [
        dependency
        for dependency in task.dependencies
        if dependency.type == DependencyType.BLOCKS and status_by_id.get(dependency.task_id) != TaskStatus.COMPLETED
    ]


def can_start(task: Task, dependency_tasks: Iterable[Task]) -> bool:
    """Whether every blocking dependency of the task is completed.

    Cycles are not detected; tasks blocking each other all stay non-startable.
    """
    return not blocked_by(task, dependency_tasks)


can_task_start = can_start


def blocking(task_id: str, all_tasks: Iterable[Task]) -> list[Task]:
    """Tasks that cannot start until `task_id` is completed."""
    return [
        t
        for t in all_tasks
        if any(d.task_id == task_id and d.type == DependencyType.BLOCKS for d in t.dependencies)
    ]
