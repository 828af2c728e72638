from src.services import (
    goal_service,
    project_service,
    repository,
    roadmap_service,
    task_service,
)


__all__ = [
    "goal_service",
    "project_service",
    "repository",
    "roadmap_service",
    "task_service",
]
