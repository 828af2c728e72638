"""Tests for scheduled planner jobs and scheduler lifecycle."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.triggers.cron import CronTrigger

from src.core import scheduler as scheduler_module
from src.core.scheduler import GOAL_STATUS_JOB, refresh_goal_statuses, start_scheduler, stop_scheduler
from src.core.scheduler_tracker import JobTracker
from src.domain.goal import Goal, GoalStatus
from src.services import repository


@pytest.fixture
def tracker(monkeypatch: pytest.MonkeyPatch) -> JobTracker:
    fresh = JobTracker()
    monkeypatch.setattr("src.core.scheduler_tracker.job_tracker", fresh)
    return fresh


@pytest.mark.unit
class TestGoalStatusRefresh:
    async def test_refresh_marks_lapsed_goal_overdue(self, patched_db, owner_id):
        goal = await repository.save_goal(
            Goal(owner_id=owner_id, title="Old goal", target_date=datetime(2020, 1, 1, tzinfo=UTC))
        )

        updated = await refresh_goal_statuses()

        assert updated == 1
        stored = await repository.find_goal_by_id(goal.id, owner_id)
        assert stored.status == GoalStatus.OVERDUE

    async def test_refresh_is_idempotent(self, patched_db, owner_id):
        await repository.save_goal(Goal(owner_id=owner_id, title="Someday"))

        await refresh_goal_statuses()

        assert await refresh_goal_statuses() == 0

    async def test_failing_refresh_is_retried_and_recorded(self, monkeypatch, tracker):
        failing = AsyncMock(side_effect=RuntimeError("db offline"))
        monkeypatch.setattr("src.services.goal_service.refresh_all_goal_statuses", failing)
        monkeypatch.setattr("src.core.scheduler_tracker.asyncio.sleep", AsyncMock())

        await scheduler_module._run_goal_status_refresh()

        assert failing.await_count == 3
        status = tracker.get_job_status(GOAL_STATUS_JOB)
        assert status.consecutive_failures == 1
        assert "db offline" in status.last_error


@pytest.mark.unit
class TestSchedulerLifecycle:
    def test_start_registers_daily_refresh_job(self, monkeypatch):
        fake = MagicMock()
        monkeypatch.setattr(scheduler_module, "scheduler", fake)
        monkeypatch.setattr(scheduler_module.settings, "goal_status_refresh_hour", 4)

        start_scheduler()

        fake.add_job.assert_called_once()
        kwargs = fake.add_job.call_args.kwargs
        assert kwargs["id"] == GOAL_STATUS_JOB
        assert kwargs["replace_existing"] is True
        assert isinstance(kwargs["trigger"], CronTrigger)
        assert str(kwargs["trigger"].fields[5]) == "4"
        fake.start.assert_called_once()

    def test_stop_is_noop_when_not_running(self, monkeypatch):
        fake = MagicMock(running=False)
        monkeypatch.setattr(scheduler_module, "scheduler", fake)

        stop_scheduler()

        fake.shutdown.assert_not_called()

    def test_stop_shuts_down_running_scheduler(self, monkeypatch):
        fake = MagicMock(running=True)
        monkeypatch.setattr(scheduler_module, "scheduler", fake)

        stop_scheduler()

        fake.shutdown.assert_called_once_with(wait=True)
