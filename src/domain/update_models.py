"""Update models for database operations.

Every field is optional; services apply only the fields a client actually sent
(``model_dump(exclude_unset=True)``).
"""

from pydantic import BaseModel, Field, field_validator

from src.core.config import constants
from src.domain.business import BusinessPhase, ProjectDependency, RoadmapPosition
from src.domain.common import Level, UTCDateTime
from src.domain.project import ProjectStatus
from src.domain.task import RecurringSettingsInput, TaskCategory, TaskDependency, TaskLink, TaskStatus


class TaskUpdate(BaseModel):
    """Partial update of a task's editable fields."""

    title: str | None = None
    description: str | None = Field(default=None, max_length=constants.TASK_DESCRIPTION_MAX_LENGTH)
    urgency: Level | None = None
    importance: Level | None = None
    category: TaskCategory | None = None
    tags: list[str] | None = None
    deadline: UTCDateTime | None = None
    estimated_time: int | None = Field(default=None, ge=0)
    actual_time: int | None = Field(default=None, ge=0)
    dependencies: list[TaskDependency] | None = None
    recurring: RecurringSettingsInput | None = None

    @field_validator("title")
    @classmethod
    def validate_title_length(cls, v: str | None) -> str | None:
        """Trim the title and enforce its length bounds."""
        if v is None:
            return v
        v = v.strip()
        if not constants.TASK_TITLE_MIN_LENGTH <= len(v) <= constants.TASK_TITLE_MAX_LENGTH:
            msg = (
                f"Title must be between {constants.TASK_TITLE_MIN_LENGTH} "
                f"and {constants.TASK_TITLE_MAX_LENGTH} characters"
            )
            raise ValueError(msg)
        return v


class TaskStatusUpdate(BaseModel):
    """Status transition, optionally recording time spent."""

    status: TaskStatus
    actual_time: int | None = Field(default=None, ge=0, description="Minutes spent on the task")


class SubtaskUpdate(BaseModel):
    """Partial update of a subtask."""

    title: str | None = Field(default=None, min_length=1)
    completed: bool | None = None


class TaskLinkUpdate(BaseModel):
    """Replace what a task is linked to."""

    linked_to: TaskLink


class GoalProgressUpdate(BaseModel):
    """Record a measured value and/or toggle a milestone."""

    current_value: float | None = None
    note: str = ""
    milestone_id: str | None = None
    is_completed: bool = True


class GoalLinkTask(BaseModel):
    """Link an existing task to a goal."""

    task_id: str = Field(..., min_length=1)


class GoalLinkProject(BaseModel):
    """Link an existing project to a goal."""

    project_id: str = Field(..., min_length=1)


class ProjectStatusUpdate(BaseModel):
    """Change a project's status."""

    status: ProjectStatus


class ProjectMilestoneUpdate(BaseModel):
    """Partial update of a project milestone."""

    title: str | None = Field(default=None, min_length=1)
    completed: bool | None = None
    due_date: UTCDateTime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)


class RoadmapUpdate(BaseModel):
    """Move a linked project on the business roadmap."""

    business_phase: BusinessPhase | None = None
    priority: Level | None = None
    roadmap_position: RoadmapPosition | None = None
    dependencies: list[ProjectDependency] | None = None
