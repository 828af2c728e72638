"""Domain models and DTOs."""

from src.domain.business import (
    DEFAULT_PHASES,
    BusinessPhase,
    LinkedProject,
    ProjectDependency,
    ProjectRole,
    RoadmapPosition,
)
from src.domain.common import Level, UTCDateTime, ceil_days, parse_timestamp, round_half_up, utc_now
from src.domain.goal import Goal, GoalCategory, GoalMilestone, GoalStatus, ProgressEntry
from src.domain.project import Project, ProjectMilestone, ProjectStatus
from src.domain.task import (
    BusinessLink,
    DependencyType,
    GoalLink,
    NoLink,
    ProjectLink,
    Quadrant,
    RecurrenceFrequency,
    RecurringSettings,
    RecurringSettingsInput,
    Subtask,
    Task,
    TaskCategory,
    TaskDependency,
    TaskLink,
    TaskStatus,
)


__all__ = [
    "DEFAULT_PHASES",
    "BusinessLink",
    "BusinessPhase",
    "DependencyType",
    "Goal",
    "GoalCategory",
    "GoalLink",
    "GoalMilestone",
    "GoalStatus",
    "Level",
    "LinkedProject",
    "NoLink",
    "ProgressEntry",
    "Project",
    "ProjectDependency",
    "ProjectLink",
    "ProjectMilestone",
    "ProjectRole",
    "ProjectStatus",
    "Quadrant",
    "RecurrenceFrequency",
    "RecurringSettings",
    "RecurringSettingsInput",
    "RoadmapPosition",
    "Subtask",
    "Task",
    "TaskCategory",
    "TaskDependency",
    "TaskLink",
    "TaskStatus",
    "UTCDateTime",
    "ceil_days",
    "parse_timestamp",
    "round_half_up",
    "utc_now",
]
