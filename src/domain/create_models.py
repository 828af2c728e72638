"""Pydantic models for creating records in database."""

from pydantic import BaseModel, Field, field_validator

from src.core.config import constants
from src.domain.business import BusinessPhase, ProjectRole
from src.domain.common import Level, UTCDateTime
from src.domain.goal import GoalCategory
from src.domain.project import ProjectStatus
from src.domain.task import (
    NoLink,
    RecurringSettingsInput,
    TaskCategory,
    TaskDependency,
    TaskLink,
    normalize_tags,
)


class SubtaskCreate(BaseModel):
    """Pydantic model for adding a subtask."""

    title: str = Field(..., description="Subtask title")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Strip whitespace and require a non-empty title."""
        v = v.strip()
        if not v:
            msg = "Subtask title is required"
            raise ValueError(msg)
        return v


class TaskCreate(BaseModel):
    """Pydantic model for creating a task record."""

    title: str = Field(..., description="Task title")
    description: str = Field(default="", max_length=constants.TASK_DESCRIPTION_MAX_LENGTH)
    urgency: Level = Field(default=Level.MEDIUM)
    importance: Level = Field(default=Level.MEDIUM)
    category: TaskCategory = Field(default=TaskCategory.PERSONAL)
    tags: list[str] = Field(default_factory=list)
    deadline: UTCDateTime | None = Field(default=None, description="Must not be in the past")
    estimated_time: int | None = Field(default=None, ge=0, description="Estimate in minutes")
    subtasks: list[SubtaskCreate] = Field(default_factory=list)
    dependencies: list[TaskDependency] = Field(default_factory=list)
    recurring: RecurringSettingsInput = Field(default_factory=RecurringSettingsInput)
    linked_to: TaskLink = Field(default_factory=NoLink)

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str) -> str:
        """Trim the title and enforce its length bounds."""
        v = v.strip()
        if not constants.TASK_TITLE_MIN_LENGTH <= len(v) <= constants.TASK_TITLE_MAX_LENGTH:
            msg = (
                f"Title must be between {constants.TASK_TITLE_MIN_LENGTH} "
                f"and {constants.TASK_TITLE_MAX_LENGTH} characters"
            )
            raise ValueError(msg)
        return v

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class GoalMilestoneCreate(BaseModel):
    """Pydantic model for adding a goal milestone."""

    title: str = Field(..., min_length=1)
    target_date: UTCDateTime | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        v = v.strip()
        if not v:
            msg = "Milestone title is required"
            raise ValueError(msg)
        return v


class GoalCreate(BaseModel):
    """Pydantic model for creating a goal record."""

    title: str = Field(..., min_length=1, max_length=constants.TASK_TITLE_MAX_LENGTH)
    description: str = ""
    category: GoalCategory = GoalCategory.PERSONAL
    priority: Level = Level.MEDIUM
    target_date: UTCDateTime | None = None
    current_value: float | None = None
    target_value: float | None = None
    milestones: list[GoalMilestoneCreate] = Field(default_factory=list)


class ProjectMilestoneCreate(BaseModel):
    """Pydantic model for adding a project milestone."""

    title: str = Field(..., min_length=1)
    due_date: UTCDateTime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)


class ProjectCreate(BaseModel):
    """Pydantic model for creating a project record."""

    title: str = Field(..., min_length=1, max_length=constants.TASK_TITLE_MAX_LENGTH)
    description: str = ""
    status: ProjectStatus = ProjectStatus.NOT_STARTED
    priority: Level = Level.MEDIUM
    completion_percentage: float = Field(default=0, ge=0, le=100)
    milestones: list[ProjectMilestoneCreate] = Field(default_factory=list)
    start_date: UTCDateTime | None = None
    target_completion_date: UTCDateTime | None = None
    goal_id: str | None = None


class LinkedProjectCreate(BaseModel):
    """Pydantic model for linking a project to a business."""

    project_id: str = Field(..., min_length=1, description="Project to link")
    role: ProjectRole = ProjectRole.RELATED
    priority: Level = Level.MEDIUM
    business_phase: BusinessPhase = BusinessPhase.DEVELOPMENT
