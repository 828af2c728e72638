"""Error taxonomy and HTTP translation for planner operations."""

from enum import Enum

from pydantic import BaseModel, Field


class ErrorSeverity(Enum):
    """Severity levels for errors."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCode:
    """Error codes for specific error conditions."""

    # Task errors
    ERR_TASK_NOT_FOUND = "ERR_TASK_NOT_FOUND"
    ERR_NOT_RECURRING = "ERR_NOT_RECURRING"
    ERR_RECURRENCE_ENDED = "ERR_RECURRENCE_ENDED"
    ERR_HAS_DEPENDENCIES = "ERR_HAS_DEPENDENCIES"
    ERR_SUBTASK_NOT_FOUND = "ERR_SUBTASK_NOT_FOUND"
    ERR_INVALID_LINK = "ERR_INVALID_LINK"

    # Goal errors
    ERR_GOAL_NOT_FOUND = "ERR_GOAL_NOT_FOUND"
    ERR_MILESTONE_NOT_FOUND = "ERR_MILESTONE_NOT_FOUND"

    # Project / roadmap errors
    ERR_PROJECT_NOT_FOUND = "ERR_PROJECT_NOT_FOUND"
    ERR_PROJECT_NOT_LINKED = "ERR_PROJECT_NOT_LINKED"

    # Generic errors
    ERR_VALIDATION = "ERR_VALIDATION"
    ERR_UNKNOWN = "ERR_UNKNOWN"


class ErrorResponse(BaseModel):
    """Structured error response with user-friendly messaging."""

    code: str
    message: str
    suggestion: str
    severity: ErrorSeverity
    details: list[str] = Field(default_factory=list)


class PlannerError(Exception):
    """Base class for errors raised by planner services.

    Each subclass fixes the error code, HTTP status and a recovery suggestion so
    the API layer can translate any of them the same way.
    """

    code: str = ErrorCode.ERR_UNKNOWN
    http_status: int = 500
    suggestion: str = "Please try again later. If the problem persists, contact support."
    severity: ErrorSeverity = ErrorSeverity.MEDIUM

    def __init__(self, message: str, *, details: list[str] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or []


class PlannerValidationError(PlannerError):
    """Request data failed a business validation rule."""

    code = ErrorCode.ERR_VALIDATION
    http_status = 400
    suggestion = "Fix the listed problems and submit again."
    severity = ErrorSeverity.LOW


class NotRecurringError(PlannerError):
    """The recurrence engine was asked to spawn an instance of a one-off task."""

    code = ErrorCode.ERR_NOT_RECURRING
    http_status = 400
    suggestion = "Enable recurrence on the task before asking for its next instance."
    severity = ErrorSeverity.LOW


class RecurrenceEndedError(PlannerError):
    """The next occurrence would fall after the recurrence end date."""

    code = ErrorCode.ERR_RECURRENCE_ENDED
    http_status = 400
    suggestion = "Extend or clear the recurrence end date to keep the series going."
    severity = ErrorSeverity.LOW


class HasDependentsError(PlannerError):
    """A task cannot be permanently deleted while other tasks depend on it."""

    code = ErrorCode.ERR_HAS_DEPENDENCIES
    http_status = 400
    suggestion = "Remove the dependencies first, or archive the task instead."
    severity = ErrorSeverity.LOW


class InvalidLinkError(PlannerError):
    """A task link points at a project, goal or business the user does not own."""

    code = ErrorCode.ERR_INVALID_LINK
    http_status = 400
    suggestion = "Link the task to one of your own projects, goals or businesses."
    severity = ErrorSeverity.LOW


class NotFoundError(PlannerError):
    """Base class for missing entities."""

    http_status = 404
    suggestion = "Check the id and make sure the record belongs to you."
    severity = ErrorSeverity.LOW


class TaskNotFoundError(NotFoundError):
    """Task does not exist for this owner."""

    code = ErrorCode.ERR_TASK_NOT_FOUND


class SubtaskNotFoundError(NotFoundError):
    """Subtask index is out of range."""

    code = ErrorCode.ERR_SUBTASK_NOT_FOUND


class GoalNotFoundError(NotFoundError):
    """Goal does not exist for this owner."""

    code = ErrorCode.ERR_GOAL_NOT_FOUND


class MilestoneNotFoundError(NotFoundError):
    """Milestone id or index does not exist."""

    code = ErrorCode.ERR_MILESTONE_NOT_FOUND


class ProjectNotFoundError(NotFoundError):
    """Project does not exist for this owner."""

    code = ErrorCode.ERR_PROJECT_NOT_FOUND


class LinkedProjectNotFoundError(NotFoundError):
    """Project is not linked to the business."""

    code = ErrorCode.ERR_PROJECT_NOT_LINKED
    suggestion = "Link the project to the business before placing it on the roadmap."


def classify_error_with_response(exception: Exception) -> ErrorResponse:
    """Classify an error and return a structured response with recovery suggestions.

    Args:
        exception: The exception raised during execution

    Returns:
        ErrorResponse with code, message, suggestion, and severity
    """
    if isinstance(exception, PlannerError):
        return ErrorResponse(
            code=exception.code,
            message=exception.message,
            suggestion=exception.suggestion,
            severity=exception.severity,
            details=exception.details,
        )

    return ErrorResponse(
        code=ErrorCode.ERR_UNKNOWN,
        message="An unexpected error occurred.",
        suggestion="Please try again later. If the problem persists, contact support.",
        severity=ErrorSeverity.HIGH,
    )


def http_status_for(exception: Exception) -> int:
    """Return the HTTP status code an exception maps to."""
    if isinstance(exception, PlannerError):
        return exception.http_status
    return 500
