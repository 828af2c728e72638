"""Project domain models and enums."""

from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from src.domain.common import JsonColumn, Level, UTCDateTime


class ProjectStatus(StrEnum):
    """Project lifecycle state."""

    NOT_STARTED = "not_started"
    ACTIVE = "active"
    COMPLETED = "completed"


class ProjectMilestone(BaseModel):
    """Deliverable inside a project."""

    title: str = Field(..., min_length=1)
    completed: bool = False
    completed_at: UTCDateTime | None = None
    due_date: UTCDateTime | None = None
    estimated_hours: float | None = Field(default=None, ge=0)
    order: int = Field(default=0, ge=0)


class Project(BaseModel):
    """Project data transfer object."""

    id: str | None = Field(default=None, description="Unique project ID from database")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
    owner_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., description="Project title")
    description: str = Field(default="")
    status: ProjectStatus = Field(default=ProjectStatus.NOT_STARTED)
    priority: Level = Field(default=Level.MEDIUM)
    completion_percentage: float = Field(default=0, ge=0, le=100)
    milestones: Annotated[list[ProjectMilestone], JsonColumn] = Field(default_factory=list)
    start_date: UTCDateTime | None = None
    target_completion_date: UTCDateTime | None = None
    actual_completion_date: UTCDateTime | None = None
    goal_id: str | None = Field(default=None, description="Goal this project counts toward (weak reference)")
    archived: bool = False

    @field_validator("goal_id", mode="before")
    @classmethod
    def empty_goal_id(cls, v: str | None) -> str | None:
        """The store keeps an empty string for 'no goal'."""
        return v or None
