"""Business roadmap context: projects linked to a business."""

from enum import StrEnum
from typing import Annotated

from pydantic import BaseModel, Field, field_validator

from src.domain.common import JsonColumn, Level
from src.domain.task import DependencyType


class ProjectRole(StrEnum):
    """What a linked project means to the business."""

    PRIMARY = "primary"
    SUPPORTING = "supporting"
    RELATED = "related"
    DEPENDENCY = "dependency"


class BusinessPhase(StrEnum):
    """Roadmap lane a linked project sits in."""

    RESEARCH = "research"
    DEVELOPMENT = "development"
    LAUNCH = "launch"
    GROWTH = "growth"
    MAINTENANCE = "maintenance"


DEFAULT_PHASES: tuple[BusinessPhase, ...] = tuple(BusinessPhase)


class ProjectDependency(BaseModel):
    """Edge from a linked project to another project it depends on."""

    project_id: str
    type: DependencyType = DependencyType.BLOCKS


class RoadmapPosition(BaseModel):
    """Where the project is drawn on the roadmap board."""

    x: float = 0
    y: float = 0
    lane: str | None = None


class LinkedProject(BaseModel):
    """A business's reference to a project, annotated with role, priority and phase."""

    id: str | None = Field(default=None, description="Unique link ID from database")
    created: str | None = None
    updated: str | None = None
    owner_id: str = Field(..., description="User who linked the project")
    business_id: str
    project_id: str
    role: ProjectRole = ProjectRole.RELATED
    priority: Level = Level.MEDIUM
    business_phase: BusinessPhase = BusinessPhase.DEVELOPMENT
    dependencies: Annotated[list[ProjectDependency], JsonColumn] = Field(default_factory=list)
    roadmap_position: Annotated[RoadmapPosition, JsonColumn] = Field(default_factory=RoadmapPosition)

    @field_validator("roadmap_position", mode="before")
    @classmethod
    def default_position(cls, v: object) -> object:
        return {} if v is None else v
