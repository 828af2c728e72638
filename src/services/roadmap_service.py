"""Business roadmap service: linking projects to a business and building the roadmap."""

import logging
from datetime import datetime

from src.core.errors import LinkedProjectNotFoundError
from src.core.logging import log_with_user_context, span
from src.domain.business import LinkedProject
from src.domain.create_models import LinkedProjectCreate
from src.domain.update_models import RoadmapUpdate
from src.models.service_models import Roadmap
from src.planning.roadmap import build_roadmap
from src.services import repository


logger = logging.getLogger(__name__)


async def link_project(*, business_id: str, owner_id: str, data: LinkedProjectCreate) -> LinkedProject:
    """Link one of the owner's projects to a business; relinking updates role, priority and phase.

    Raises:
        ProjectNotFoundError: project does not exist for this owner
    """
    with span("roadmap_service.link_project"):
        await repository.find_project_by_id(data.project_id, owner_id)

        try:
            linked = await repository.find_linked_project(business_id, data.project_id, owner_id)
        except LinkedProjectNotFoundError:
            linked = LinkedProject(owner_id=owner_id, business_id=business_id, project_id=data.project_id)

        linked = await repository.save_linked_project(
            linked.model_copy(
                update={"role": data.role, "priority": data.priority, "business_phase": data.business_phase}
            )
        )
        log_with_user_context(
            logger,
            "info",
            "Linked project to business",
            user_id=owner_id,
            business_id=business_id,
            project_id=data.project_id,
            role=data.role,
        )
        return linked


async def get_roadmap(*, business_id: str, owner_id: str, now: datetime) -> Roadmap:
    """Roadmap of every project linked to the business."""
    with span("roadmap_service.get_roadmap"):
        linked_projects = await repository.find_linked_projects(business_id, owner_id)
        projects = await repository.find_projects_by_ids([lp.project_id for lp in linked_projects], owner_id)
        roadmap = build_roadmap(linked_projects, projects, now=now)
        logger.info(
            "Built business roadmap",
            extra={"business_id": business_id, "projects": roadmap.statistics.total_projects},
        )
        return roadmap


async def update_roadmap_entry(
    *,
    business_id: str,
    project_id: str,
    owner_id: str,
    data: RoadmapUpdate,
) -> LinkedProject:
    """Move a linked project to another phase or position, or change its dependencies.

    Raises:
        LinkedProjectNotFoundError: the project is not linked to the business
    """
    with span("roadmap_service.update_roadmap_entry"):
        linked = await repository.find_linked_project(business_id, project_id, owner_id)
        changes = {key: getattr(data, key) for key in data.model_fields_set if getattr(data, key) is not None}
        linked = await repository.save_linked_project(linked.model_copy(update=changes))
        logger.info("Updated roadmap entry", extra={"business_id": business_id, "project_id": project_id})
        return linked
