"""Business roadmap API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from src.domain.business import LinkedProject
from src.domain.create_models import LinkedProjectCreate
from src.domain.update_models import RoadmapUpdate
from src.interface.context import RequestContext, get_request_context
from src.models.service_models import Roadmap
from src.services import roadmap_service


router = APIRouter(prefix="/api/businesses", tags=["roadmap"])

Context = Annotated[RequestContext, Depends(get_request_context)]


@router.post("/{business_id}/projects", status_code=status.HTTP_201_CREATED)
async def link_project(business_id: str, data: LinkedProjectCreate, ctx: Context) -> LinkedProject:
    """Link a project to a business; relinking updates role, priority and phase."""
    return await roadmap_service.link_project(business_id=business_id, owner_id=ctx.user_id, data=data)


@router.get("/{business_id}/projects/roadmap")
async def get_roadmap(business_id: str, ctx: Context) -> Roadmap:
    return await roadmap_service.get_roadmap(business_id=business_id, owner_id=ctx.user_id, now=ctx.now)


@router.put("/{business_id}/projects/{project_id}/roadmap")
async def update_roadmap_entry(business_id: str, project_id: str, data: RoadmapUpdate, ctx: Context) -> LinkedProject:
    return await roadmap_service.update_roadmap_entry(
        business_id=business_id, project_id=project_id, owner_id=ctx.user_id, data=data
    )
