"""Task domain models and enums."""

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.domain.common import JsonColumn, Level, UTCDateTime, round_half_up


class TaskStatus(StrEnum):
    """Task lifecycle state."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class TaskCategory(StrEnum):
    """Broad area of life a task belongs to."""

    WORK = "work"
    PERSONAL = "personal"
    HEALTH = "health"
    FINANCE = "finance"
    EDUCATION = "education"
    HOUSEHOLD = "household"
    SOCIAL = "social"
    CREATIVE = "creative"
    ADMINISTRATIVE = "administrative"
    MAINTENANCE = "maintenance"
    SHOPPING = "shopping"
    OTHER = "other"


class DependencyType(StrEnum):
    """How one task (or project) relates to another it depends on."""

    BLOCKS = "blocks"  # Target must be completed first
    ENABLES = "enables"
    SUPPORTS = "supports"


class RecurrenceFrequency(StrEnum):
    """Base period of a recurring task."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class Quadrant(StrEnum):
    """Eisenhower Matrix quadrant."""

    Q1 = "Q1"  # urgent and important
    Q2 = "Q2"  # important, not urgent
    Q3 = "Q3"  # urgent, not important
    Q4 = "Q4"  # neither


class Subtask(BaseModel):
    """Checklist item inside a task."""

    title: str = Field(..., min_length=1, description="Subtask title")
    completed: bool = Field(default=False, description="Whether the subtask is done")
    completed_at: UTCDateTime | None = Field(default=None, description="When the subtask was completed")
    order: int = Field(default=0, ge=0, description="Position within the task")


class TaskDependency(BaseModel):
    """Edge from a task to another task it depends on."""

    task_id: str = Field(..., description="ID of the task depended on")
    type: DependencyType = Field(default=DependencyType.BLOCKS, description="Dependency kind")


class RecurringSettingsInput(BaseModel):
    """Recurrence configuration a client may set."""

    is_recurring: bool = Field(default=False, description="Whether the task repeats")
    frequency: RecurrenceFrequency | None = Field(default=None, description="Base period")
    interval: int = Field(default=1, ge=1, description="Number of periods between occurrences")
    end_date: UTCDateTime | None = Field(default=None, description="No occurrence is due after this date")

    @model_validator(mode="after")
    def validate_frequency(self) -> "RecurringSettingsInput":
        """A recurring task needs a frequency."""
        if self.is_recurring and self.frequency is None:
            msg = "frequency is required when is_recurring is true"
            raise ValueError(msg)
        return self


class RecurringSettings(RecurringSettingsInput):
    """Recurrence configuration plus the bookkeeping written when instances are spawned."""

    next_due: UTCDateTime | None = Field(default=None, description="Deadline of the next occurrence")
    spawned_task_id: str | None = Field(default=None, description="ID of the instance created on completion")


class NoLink(BaseModel):
    """Task is not linked to anything."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["none"] = "none"


class ProjectLink(BaseModel):
    """Task belongs to a project, optionally to one of its milestones."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["project"] = "project"
    project_id: str = Field(..., min_length=1)
    milestone_index: int | None = Field(default=None, ge=0)


class GoalLink(BaseModel):
    """Task counts toward a goal."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["goal"] = "goal"
    goal_id: str = Field(..., min_length=1)


class BusinessLink(BaseModel):
    """Task is work for a business."""

    model_config = ConfigDict(extra="forbid")

    type: Literal["business"] = "business"
    business_id: str = Field(..., min_length=1)


TaskLink = Annotated[NoLink | ProjectLink | GoalLink | BusinessLink, Field(discriminator="type")]


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim and lowercase tags, dropping empty ones."""
    return [tag.strip().lower() for tag in tags if tag and tag.strip()]


class Task(BaseModel):
    """Task data transfer object."""

    id: str | None = Field(default=None, description="Unique task ID from database (None before insert)")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
    owner_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., description="Task title")
    description: str = Field(default="", description="Detailed task description")
    urgency: Level = Field(default=Level.MEDIUM)
    importance: Level = Field(default=Level.MEDIUM)
    status: TaskStatus = Field(default=TaskStatus.NOT_STARTED)
    category: TaskCategory = Field(default=TaskCategory.PERSONAL)
    tags: Annotated[list[str], JsonColumn] = Field(default_factory=list)
    deadline: UTCDateTime | None = Field(default=None)
    estimated_time: int | None = Field(default=None, ge=0, description="Estimate in minutes")
    actual_time: int | None = Field(default=None, ge=0, description="Time spent in minutes")
    subtasks: Annotated[list[Subtask], JsonColumn] = Field(default_factory=list)
    dependencies: Annotated[list[TaskDependency], JsonColumn] = Field(default_factory=list)
    recurring: Annotated[RecurringSettings, JsonColumn] = Field(default_factory=RecurringSettings)
    linked_to: TaskLink = Field(default_factory=NoLink)
    started_at: UTCDateTime | None = Field(default=None)
    completed_at: UTCDateTime | None = Field(default=None)
    is_archived: bool = Field(default=False)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        """Normalize tags."""
        return normalize_tags(v)

    @field_validator("recurring", mode="before")
    @classmethod
    def default_recurring(cls, v: object) -> object:
        """Treat a missing recurrence blob as a one-off task."""
        return {} if v is None else v

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.COMPLETED

    @property
    def subtask_progress(self) -> int:
        """Percentage of subtasks completed; 100 when there are none."""
        if not self.subtasks:
            return 100
        done = sum(1 for subtask in self.subtasks if subtask.completed)
        return round_half_up(done / len(self.subtasks) * 100)

    def is_overdue(self, now: datetime) -> bool:
        """Past its deadline and not completed."""
        return self.deadline is not None and self.deadline < now and not self.is_completed
