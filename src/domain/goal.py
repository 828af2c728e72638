"""Goal domain models and enums."""

from enum import StrEnum
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, Field

from src.domain.common import JsonColumn, Level, UTCDateTime, utc_now


class GoalCategory(StrEnum):
    """Life area a goal belongs to."""

    FINANCIAL = "financial"
    HEALTH = "health"
    PERSONAL = "personal"
    BUSINESS = "business"
    EDUCATION = "education"
    AWARDS = "awards"
    CAREER = "career"
    RELATIONSHIPS = "relationships"
    TRAVEL = "travel"
    HOBBIES = "hobbies"
    SPIRITUAL = "spiritual"
    OTHER = "other"


class GoalStatus(StrEnum):
    """Derived goal lifecycle state (stored copy is a cache)."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    AT_RISK = "at_risk"
    OVERDUE = "overdue"
    ACHIEVED = "achieved"


class GoalMilestone(BaseModel):
    """Checkpoint on the way to a goal."""

    id: str = Field(default_factory=lambda: uuid4().hex, description="Stable milestone ID")
    title: str = Field(..., min_length=1)
    target_date: UTCDateTime | None = None
    is_completed: bool = False
    completed_at: UTCDateTime | None = None


class ProgressEntry(BaseModel):
    """Manual progress note; never feeds the computed progress."""

    value: float
    note: str = ""
    recorded_at: UTCDateTime = Field(default_factory=utc_now)


class Goal(BaseModel):
    """Goal data transfer object."""

    id: str | None = Field(default=None, description="Unique goal ID from database")
    created: str | None = Field(default=None, description="Creation timestamp (ISO format)")
    updated: str | None = Field(default=None, description="Last update timestamp (ISO format)")
    owner_id: str = Field(..., description="Owning user ID")
    title: str = Field(..., description="Goal title")
    description: str = Field(default="")
    category: GoalCategory = Field(default=GoalCategory.PERSONAL)
    priority: Level = Field(default=Level.MEDIUM)
    target_date: UTCDateTime | None = Field(default=None, description="Deadline for achieving the goal")
    status: GoalStatus = Field(default=GoalStatus.NOT_STARTED, description="Cached derived status")
    current_value: float | None = Field(default=None, description="Measured value for quantitative goals")
    target_value: float | None = Field(default=None, description="Value at which the goal is met")
    milestones: Annotated[list[GoalMilestone], JsonColumn] = Field(default_factory=list)
    progress_entries: Annotated[list[ProgressEntry], JsonColumn] = Field(default_factory=list)
    started_at: UTCDateTime | None = Field(default=None)
    achieved_at: UTCDateTime | None = Field(default=None)
