"""Pydantic models for service layer return types.

These models give the planning functions and services typed results instead of
loose dictionaries; the API returns them as JSON unchanged.
"""

from datetime import date, datetime
from enum import StrEnum

from pydantic import BaseModel, Field

from src.domain.business import BusinessPhase, LinkedProject
from src.domain.goal import Goal, GoalStatus
from src.domain.project import Project, ProjectMilestone
from src.domain.task import DependencyType, Quadrant, Task, TaskDependency, TaskStatus


class PriorityClassification(BaseModel):
    """Eisenhower quadrant and sort score for an (urgency, importance) pair."""

    quadrant: Quadrant
    label: str
    score: int


# Tasks


class RelatedTask(BaseModel):
    """Short reference to another task."""

    id: str
    title: str
    status: TaskStatus


class TaskInsights(BaseModel):
    """Derived facts about a task, recomputed on every read."""

    quadrant: Quadrant
    quadrant_label: str
    priority_score: int
    is_overdue: bool
    days_until_deadline: int | None
    subtask_progress: int
    time_efficiency: int | None = Field(default=None, description="estimated / actual * 100")
    can_start: bool
    blocked_by: list[TaskDependency] = Field(default_factory=list)
    blocking: list[RelatedTask] = Field(default_factory=list)


class TaskView(BaseModel):
    """Task as listed, with its classification."""

    task: Task
    classification: PriorityClassification
    is_overdue: bool
    days_until_deadline: int | None


class TaskDetail(BaseModel):
    """Single task with insights and tasks sharing its link."""

    task: Task
    insights: TaskInsights
    related_tasks: list[RelatedTask] = Field(default_factory=list)


class TaskListPage(BaseModel):
    """One page of a filtered, sorted task list."""

    items: list[TaskView]
    page: int
    per_page: int
    total: int


class StatusChangeResult(BaseModel):
    """Outcome of a status transition."""

    task: Task
    spawned_task: Task | None = None


class TaskSummary(BaseModel):
    """Headline counts over an owner's active (non-archived) tasks."""

    total: int
    active: int
    completed: int
    overdue: int
    due_today: int
    completion_rate: int


class StatusBreakdownEntry(BaseModel):
    status: TaskStatus
    count: int
    total_estimated_time: int
    total_actual_time: int


class CategoryBreakdownEntry(BaseModel):
    category: str
    total: int
    completed: int
    completion_rate: int


class CompletionTrendEntry(BaseModel):
    day: date
    completed: int
    total_time: int


class TimeEfficiency(BaseModel):
    """Average estimate accuracy over completed tasks with both times recorded."""

    avg_efficiency: float = 0
    task_count: int = 0


class TaskAnalyticsOverview(BaseModel):
    """Analytics dashboard for tasks."""

    summary: TaskSummary
    status_breakdown: list[StatusBreakdownEntry]
    eisenhower_matrix: dict[Quadrant, int]
    category_breakdown: list[CategoryBreakdownEntry]
    completion_trend: list[CompletionTrendEntry]
    time_efficiency: TimeEfficiency
    timeframe: str


# Goals


class GoalTimeMetrics(BaseModel):
    """Pace of a goal relative to its deadline."""

    days_active: int
    days_until_deadline: int | None
    progress_rate: float = Field(description="Progress points per active day")
    estimated_completion: datetime | None


class GoalProgressReport(BaseModel):
    """Goal with its computed progress, derived status and linked work."""

    goal: Goal
    progress: int
    calculated_status: GoalStatus
    is_overdue: bool
    time_metrics: GoalTimeMetrics
    linked_tasks: list[Task] = Field(default_factory=list)
    linked_projects: list[Project] = Field(default_factory=list)


class GoalListItem(BaseModel):
    goal: Goal
    progress: int
    calculated_status: GoalStatus
    is_overdue: bool


class GoalListStats(BaseModel):
    total: int
    achieved: int
    in_progress: int
    overdue: int
    categories: list[str]


class GoalListPage(BaseModel):
    items: list[GoalListItem]
    page: int
    per_page: int
    total: int
    stats: GoalListStats


class GoalLinkResult(BaseModel):
    """Result of attaching a task or project to a goal."""

    goal_id: str
    goal_progress: int
    task: Task | None = None
    project: Project | None = None


class UpcomingDeadline(BaseModel):
    id: str
    title: str
    target_date: datetime
    progress: int
    days_until_deadline: int


class CategoryCount(BaseModel):
    category: str
    count: int


class GoalOverview(BaseModel):
    total: int
    achieved: int
    in_progress: int
    overdue: int


class GoalDashboard(BaseModel):
    """Aggregated goal statistics for the dashboard."""

    overview: GoalOverview
    categories: dict[str, int]
    priorities: dict[str, int]
    goals_created_this_month: int
    goals_achieved_this_month: int
    upcoming_deadlines: list[UpcomingDeadline]
    top_categories: list[CategoryCount]


# Roadmap


class MilestoneStatus(StrEnum):
    COMPLETED = "completed"
    OVERDUE = "overdue"
    PENDING = "pending"


class DependencyStatus(StrEnum):
    SATISFIED = "satisfied"
    PENDING = "pending"


class RoadmapMilestone(BaseModel):
    """Project milestone placed on the roadmap."""

    milestone: ProjectMilestone
    position: int
    status: MilestoneStatus
    estimated_duration_days: int


class ProjectTimeMetrics(BaseModel):
    days_active: int
    days_until_deadline: int | None
    is_overdue: bool


class RoadmapProject(BaseModel):
    """Linked project with its resolved details and roll-ups."""

    linked: LinkedProject
    project: Project
    progress: int
    time_metrics: ProjectTimeMetrics
    milestones: list[RoadmapMilestone]
    total_milestones: int
    completed_milestones: int
    overdue_milestones: int


class RoadmapDependency(BaseModel):
    """Edge drawn between two projects on the roadmap."""

    from_project_id: str
    to_project_id: str
    type: DependencyType
    status: DependencyStatus


class RoadmapTimeline(BaseModel):
    start_date: datetime
    end_date: datetime


class RoadmapStatistics(BaseModel):
    total_projects: int = 0
    total_milestones: int = 0
    completed_milestones: int = 0
    overdue_milestones: int = 0
    avg_progress: int = 0


class Roadmap(BaseModel):
    """Business roadmap grouped into phase lanes."""

    phases: list[BusinessPhase]
    lanes: dict[BusinessPhase, list[RoadmapProject]]
    dependencies: list[RoadmapDependency]
    timeline: RoadmapTimeline
    statistics: RoadmapStatistics
