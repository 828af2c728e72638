"""Eisenhower Matrix classification and priority ordering of tasks."""

import logging
from collections.abc import Iterable

from src.core.config import constants
from src.domain.task import Quadrant, Task
from src.models.service_models import PriorityClassification


logger = logging.getLogger(__name__)

QUADRANT_LABELS: dict[Quadrant, str] = {
    Quadrant.Q1: "Do First",
    Quadrant.Q2: "Schedule",
    Quadrant.Q3: "Delegate",
    Quadrant.Q4: "Eliminate",
}


def level_index(level: str) -> int:
    """Position of a level on the low..critical scale; unknown levels count as low."""
    try:
        return constants.PRIORITY_LEVELS.index(str(level))
    except ValueError:
        logger.warning("Unknown priority level, treating as low", extra={"level": level})
        return 0


def quadrant(urgency: str, importance: str) -> Quadrant:
    """Eisenhower quadrant for an (urgency, importance) pair."""
    urgent = level_index(urgency) >= constants.PRIORITY_LEVEL_THRESHOLD
    important = level_index(importance) >= constants.PRIORITY_LEVEL_THRESHOLD

    if urgent and important:
        return Quadrant.Q1
    if important:
        return Quadrant.Q2
    if urgent:
        return Quadrant.Q3
    return Quadrant.Q4


def priority_score(urgency: str, importance: str) -> int:
    """Sort score from 5 to 21; importance weighs more than urgency."""
    return (level_index(importance) + 1) * constants.IMPORTANCE_WEIGHT + (
        level_index(urgency) + 1
    ) * constants.URGENCY_WEIGHT


def classify_priority(urgency: str, importance: str) -> PriorityClassification:
    """Classify a task's urgency and importance. Never raises."""
    q = quadrant(urgency, importance)
    return PriorityClassification(
        quadrant=q,
        label=QUADRANT_LABELS[q],
        score=priority_score(urgency, importance),
    )


def quadrant_levels(q: Quadrant) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Return the (urgency levels, importance levels) that make up a quadrant."""
    threshold = constants.PRIORITY_LEVEL_THRESHOLD
    low = constants.PRIORITY_LEVELS[:threshold]
    high = constants.PRIORITY_LEVELS[threshold:]

    return {
        Quadrant.Q1: (high, high),
        Quadrant.Q2: (low, high),
        Quadrant.Q3: (high, low),
        Quadrant.Q4: (low, low),
    }[q]


def sort_by_priority(tasks: Iterable[Task]) -> list[Task]:
    """Order tasks by score (high first), then nearest deadline, then newest.

    Tasks without a deadline sort after those with one at the same score.
    """
    # Stable sorts applied from the least to the most significant key
    ordered = sorted(tasks, key=lambda t: t.created or "", reverse=True)
    ordered.sort(key=lambda t: (t.deadline is None, t.deadline.timestamp() if t.deadline else 0.0))
    ordered.sort(key=lambda t: priority_score(t.urgency, t.importance), reverse=True)
    return ordered
