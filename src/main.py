"""lifeplanner - personal task, goal and project planning service."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.core.config import settings
from src.core.db_client import DatabaseError, close_connection, init_db
from src.core.errors import PlannerError, classify_error_with_response, http_status_for
from src.core.logging import configure_logfire, instrument_fastapi
from src.core.scheduler import JOB_NAMES, start_scheduler, stop_scheduler
from src.core.scheduler_tracker import job_tracker
from src.interface.goals_router import router as goals_router
from src.interface.projects_router import router as projects_router
from src.interface.roadmap_router import router as roadmap_router
from src.interface.tasks_router import router as tasks_router


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan context manager."""
    # Configure logging first so startup logs are captured
    configure_logfire()

    await init_db()
    logger.info("Database initialized")

    if settings.enable_scheduler:
        start_scheduler()
    yield
    stop_scheduler()
    await close_connection()


app = FastAPI(
    title="lifeplanner",
    description="Tasks, goals and business roadmaps",
    version="0.1.0",
    lifespan=lifespan,
)

# Instrument FastAPI with Logfire
instrument_fastapi(app)

app.include_router(tasks_router)
app.include_router(goals_router)
app.include_router(projects_router)
app.include_router(roadmap_router)


@app.exception_handler(PlannerError)
async def planner_error_handler(_request: Request, exc: PlannerError) -> JSONResponse:
    """Render domain errors as structured error responses."""
    response = classify_error_with_response(exc)
    logger.info("request_rejected", extra={"code": response.code, "error_message": response.message})
    return JSONResponse(status_code=http_status_for(exc), content=response.model_dump(mode="json"))


@app.exception_handler(DatabaseError)
async def database_error_handler(_request: Request, exc: DatabaseError) -> JSONResponse:
    logger.error("database_error", extra={"error": str(exc)})
    response = classify_error_with_response(exc)
    return JSONResponse(status_code=http_status_for(exc), content=response.model_dump(mode="json"))


@app.get("/health")
async def health_check() -> JSONResponse:
    """Health check endpoint."""
    return JSONResponse(content={"status": "healthy"}, status_code=200)


@app.get("/health/scheduler")
async def scheduler_health_check() -> JSONResponse:
    """Scheduler health check endpoint with job statuses."""
    job_statuses = {name: job_tracker.get_job_status(name) for name in JOB_NAMES}
    dead_letters = job_tracker.get_dead_letter_queue()

    overall_status = "healthy"
    if any(status.consecutive_failures > 0 for status in job_statuses.values()):
        overall_status = "degraded"
    if dead_letters:
        overall_status = "critical"

    return JSONResponse(
        content={
            "status": overall_status,
            "jobs": {
                name: {**status.model_dump(mode="json"), "currently_running": status.currently_running}
                for name, status in job_statuses.items()
            },
            "dead_letter_queue_size": len(dead_letters),
            "dead_letter_queue": [letter.model_dump(mode="json") for letter in dead_letters],
        },
        status_code=200 if overall_status == "healthy" else 503,
    )
