"""Task API routes."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from src.core.config import settings
from src.domain.common import Level
from src.domain.create_models import SubtaskCreate, TaskCreate
from src.domain.task import Quadrant, Task, TaskCategory, TaskStatus
from src.domain.update_models import SubtaskUpdate, TaskLinkUpdate, TaskStatusUpdate, TaskUpdate
from src.interface.context import RequestContext, get_request_context
from src.models.service_models import (
    StatusChangeResult,
    TaskAnalyticsOverview,
    TaskDetail,
    TaskListPage,
    TaskView,
)
from src.services import task_service


router = APIRouter(prefix="/api/tasks", tags=["tasks"])

Context = Annotated[RequestContext, Depends(get_request_context)]


@router.get("")
async def list_tasks(
    ctx: Context,
    status_filter: Annotated[TaskStatus | None, Query(alias="status")] = None,
    urgency: Level | None = None,
    importance: Level | None = None,
    category: TaskCategory | None = None,
    linked_type: Annotated[str | None, Query(pattern="^(none|project|goal|business)$")] = None,
    quadrant: Quadrant | None = None,
    overdue: bool | None = None,
    archived: bool = False,
    sort: Annotated[str, Query(pattern="^(priority|deadline|created)$")] = "priority",
    page: Annotated[int, Query(ge=1)] = 1,
    per_page: Annotated[int, Query(ge=1, le=settings.max_page_size)] = settings.default_page_size,
) -> TaskListPage:
    """List tasks with filters, sorted by priority by default."""
    return await task_service.list_tasks(
        owner_id=ctx.user_id,
        now=ctx.now,
        status=status_filter,
        urgency=urgency,
        importance=importance,
        category=category,
        linked_type=linked_type,
        quadrant_filter=quadrant,
        overdue=overdue,
        archived=archived,
        sort=sort,
        page=page,
        per_page=per_page,
    )


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskCreate, ctx: Context) -> Task:
    return await task_service.create_task(owner_id=ctx.user_id, data=data, now=ctx.now)


@router.get("/analytics/overview")
async def get_analytics_overview(
    ctx: Context,
    timeframe: Annotated[str, Query(pattern="^(7d|30d|90d|1y)$")] = "30d",
) -> TaskAnalyticsOverview:
    return await task_service.get_analytics_overview(owner_id=ctx.user_id, now=ctx.now, timeframe=timeframe)


@router.get("/eisenhower/{quadrant}")
async def get_quadrant_tasks(
    quadrant: Quadrant,
    ctx: Context,
    limit: Annotated[int, Query(ge=1, le=100)] = 10,
) -> list[TaskView]:
    """Open tasks in one Eisenhower quadrant."""
    return await task_service.get_tasks_by_quadrant(owner_id=ctx.user_id, q=quadrant, now=ctx.now, limit=limit)


@router.get("/{task_id}")
async def get_task(task_id: str, ctx: Context) -> TaskDetail:
    """Task with insights: quadrant, score, overdue, blockers and related tasks."""
    return await task_service.get_task_detail(task_id=task_id, owner_id=ctx.user_id, now=ctx.now)


@router.put("/{task_id}")
async def update_task(task_id: str, data: TaskUpdate, ctx: Context) -> Task:
    return await task_service.update_task(task_id=task_id, owner_id=ctx.user_id, data=data, now=ctx.now)


@router.patch("/{task_id}/status")
async def change_status(task_id: str, data: TaskStatusUpdate, ctx: Context) -> StatusChangeResult:
    """Change status; completing a recurring task returns the spawned next instance."""
    return await task_service.change_status(
        task_id=task_id,
        owner_id=ctx.user_id,
        status=data.status,
        actual_time=data.actual_time,
        now=ctx.now,
    )


@router.delete("/{task_id}")
async def delete_task(task_id: str, ctx: Context, permanent: bool = False) -> dict[str, object]:
    """Archive a task, or delete it permanently with ``?permanent=true``."""
    archived = await task_service.delete_task(task_id=task_id, owner_id=ctx.user_id, now=ctx.now, permanent=permanent)
    if archived is None:
        return {"message": "Task permanently deleted", "task_id": task_id}
    return {"message": "Task archived", "task": archived.model_dump(mode="json")}


@router.post("/{task_id}/subtasks", status_code=status.HTTP_201_CREATED)
async def add_subtask(task_id: str, data: SubtaskCreate, ctx: Context) -> Task:
    return await task_service.add_subtask(task_id=task_id, owner_id=ctx.user_id, data=data)


@router.patch("/{task_id}/subtasks/{index}")
async def update_subtask(task_id: str, index: int, data: SubtaskUpdate, ctx: Context) -> Task:
    return await task_service.update_subtask(
        task_id=task_id, owner_id=ctx.user_id, index=index, data=data, now=ctx.now
    )


@router.delete("/{task_id}/subtasks/{index}")
async def delete_subtask(task_id: str, index: int, ctx: Context) -> Task:
    return await task_service.delete_subtask(task_id=task_id, owner_id=ctx.user_id, index=index)


@router.post("/{task_id}/link")
async def link_task(task_id: str, data: TaskLinkUpdate, ctx: Context) -> Task:
    return await task_service.link_task(task_id=task_id, owner_id=ctx.user_id, link=data.linked_to, now=ctx.now)


@router.delete("/{task_id}/link")
async def unlink_task(task_id: str, ctx: Context) -> Task:
    return await task_service.unlink_task(task_id=task_id, owner_id=ctx.user_id, now=ctx.now)
