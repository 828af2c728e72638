"""Goal API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.core.config import settings
from src.domain.common import Level
from src.domain.create_models import GoalCreate, GoalMilestoneCreate
from src.domain.goal import Goal, GoalCategory, GoalMilestone, GoalStatus
from src.domain.update_models import GoalLinkProject, GoalLinkTask, GoalProgressUpdate
from src.interface.context import RequestContext, get_request_context
from src.models.service_models import GoalDashboard, GoalLinkResult, GoalListPage, GoalProgressReport
from src.services import goal_service


router = APIRouter(prefix="/api/goals", tags=["goals"])

Context = Annotated[RequestContext, Depends(get_request_context)]


@router.get("")
async def list_goals(
    ctx: Context,
    status_filter: Annotated[GoalStatus | None, Query(alias="status")] = None,
    category: GoalCategory | None = None,
    priority: Level | None = None,
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=settings.max_page_size)] = settings.default_page_size,
) -> GoalListPage:
    """Goals with computed progress and stats; ``status`` filters on the derived status."""
    return await goal_service.list_goals(
        owner_id=ctx.user_id,
        now=ctx.now,
        status=status_filter,
        category=category,
        priority=priority,
        search=search,
        page=page,
        per_page=per_page,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_goal(data: GoalCreate, ctx: Context) -> Goal:
    return await goal_service.create_goal(owner_id=ctx.user_id, data=data)


@router.get("/stats/dashboard")
async def get_dashboard(ctx: Context) -> GoalDashboard:
    return await goal_service.get_goal_dashboard(owner_id=ctx.user_id, now=ctx.now)


@router.get("/{goal_id}")
async def get_goal(goal_id: str, ctx: Context) -> GoalProgressReport:
    return await goal_service.get_goal_report(goal_id=goal_id, owner_id=ctx.user_id, now=ctx.now)


@router.put("/{goal_id}/progress")
async def update_progress(goal_id: str, data: GoalProgressUpdate, ctx: Context) -> GoalProgressReport:
    """Record a measured value or toggle a milestone."""
    return await goal_service.update_goal_progress(goal_id=goal_id, owner_id=ctx.user_id, update=data, now=ctx.now)


@router.post("/{goal_id}/milestones", status_code=status.HTTP_201_CREATED)
async def add_milestone(goal_id: str, data: GoalMilestoneCreate, ctx: Context) -> GoalMilestone:
    return await goal_service.add_goal_milestone(goal_id=goal_id, owner_id=ctx.user_id, data=data)


@router.post("/{goal_id}/link-task")
async def link_task(goal_id: str, data: GoalLinkTask, ctx: Context) -> GoalLinkResult:
    return await goal_service.link_task_to_goal(
        goal_id=goal_id, owner_id=ctx.user_id, task_id=data.task_id, now=ctx.now
    )


@router.post("/{goal_id}/link-project")
async def link_project(goal_id: str, data: GoalLinkProject, ctx: Context) -> GoalLinkResult:
    return await goal_service.link_project_to_goal(
        goal_id=goal_id, owner_id=ctx.user_id, project_id=data.project_id, now=ctx.now
    )


@router.delete("/{goal_id}")
async def delete_goal(goal_id: str, ctx: Context) -> dict[str, str]:
    """Delete a goal; linked tasks and projects are detached, not deleted."""
    await goal_service.delete_goal(goal_id=goal_id, owner_id=ctx.user_id)
    return {"message": "Goal deleted", "goal_id": goal_id}
