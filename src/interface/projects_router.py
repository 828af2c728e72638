"""Project API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.domain.create_models import ProjectCreate, ProjectMilestoneCreate
from src.domain.project import Project
from src.domain.update_models import ProjectMilestoneUpdate, ProjectStatusUpdate
from src.interface.context import RequestContext, get_request_context
from src.services import project_service


router = APIRouter(prefix="/api/projects", tags=["projects"])

Context = Annotated[RequestContext, Depends(get_request_context)]


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(data: ProjectCreate, ctx: Context) -> Project:
    return await project_service.create_project(owner_id=ctx.user_id, data=data, now=ctx.now)


@router.get("/{project_id}")
async def get_project(project_id: str, ctx: Context) -> Project:
    return await project_service.get_project(project_id=project_id, owner_id=ctx.user_id)


@router.post("/{project_id}/milestones", status_code=status.HTTP_201_CREATED)
async def add_milestone(project_id: str, data: ProjectMilestoneCreate, ctx: Context) -> Project:
    return await project_service.add_milestone(project_id=project_id, owner_id=ctx.user_id, data=data, now=ctx.now)


@router.patch("/{project_id}/milestones/{index}")
async def update_milestone(project_id: str, index: int, data: ProjectMilestoneUpdate, ctx: Context) -> Project:
    """Edit a milestone; completion percentage is re-derived from milestones."""
    return await project_service.update_milestone(
        project_id=project_id, owner_id=ctx.user_id, index=index, data=data, now=ctx.now
    )


@router.put("/{project_id}/status")
async def update_status(project_id: str, data: ProjectStatusUpdate, ctx: Context) -> Project:
    return await project_service.update_project_status(
        project_id=project_id, owner_id=ctx.user_id, status=data.status, now=ctx.now
    )
