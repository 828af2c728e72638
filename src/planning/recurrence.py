"""Next-instance generation for recurring tasks."""

import logging
from datetime import datetime

from dateutil.relativedelta import relativedelta

from src.core.errors import NotRecurringError, RecurrenceEndedError
from src.domain.task import RecurrenceFrequency, Subtask, Task


logger = logging.getLogger(__name__)

_PERIODS: dict[RecurrenceFrequency, relativedelta] = {
    RecurrenceFrequency.DAILY: relativedelta(days=1),
    RecurrenceFrequency.WEEKLY: relativedelta(weeks=1),
    RecurrenceFrequency.MONTHLY: relativedelta(months=1),
    RecurrenceFrequency.QUARTERLY: relativedelta(months=3),
    RecurrenceFrequency.YEARLY: relativedelta(years=1),
}


def next_due_date(base: datetime, frequency: RecurrenceFrequency, interval: int = 1) -> datetime:
    """Advance a date by `interval` periods; month arithmetic clamps to the month end."""
    return base + _PERIODS[frequency] * interval


def create_next_instance(task: Task, now: datetime) -> Task:
    """Build the next occurrence of a completed recurring task.

    The new deadline is computed from the task's own deadline so a late
    completion does not shift the series. Without a deadline the completion
    time is used, then `now`. The input task is left untouched.

    Raises:
        NotRecurringError: the task does not recur
        RecurrenceEndedError: the next occurrence falls after the end date
    """
    recurring = task.recurring
    if not recurring.is_recurring or recurring.frequency is None:
        raise NotRecurringError(f"Task '{task.title}' is not recurring")

    base = task.deadline or task.completed_at or now
    next_due = next_due_date(base, recurring.frequency, recurring.interval)

    if recurring.end_date is not None and next_due > recurring.end_date:
        logger.info(
            "Recurrence ended",
            extra={"task_id": task.id, "next_due": next_due.isoformat(), "end_date": recurring.end_date.isoformat()},
        )
        raise RecurrenceEndedError(f"Task '{task.title}' recurrence ended on {recurring.end_date.date().isoformat()}")

    return Task(
        owner_id=task.owner_id,
        title=task.title,
        description=task.description,
        urgency=task.urgency,
        importance=task.importance,
        category=task.category,
        tags=list(task.tags),
        deadline=next_due,
        estimated_time=task.estimated_time,
        subtasks=[Subtask(title=subtask.title, order=subtask.order) for subtask in task.subtasks],
        dependencies=[dependency.model_copy() for dependency in task.dependencies],
        recurring=recurring.model_copy(update={"next_due": next_due, "spawned_task_id": None}),
        linked_to=task.linked_to.model_copy(),
    )


create_recurring_instance = create_next_instance
