"""Tests for the task service."""

from datetime import timedelta

import pytest

from src.core.config import constants
from src.core.errors import (
    HasDependentsError,
    InvalidLinkError,
    PlannerValidationError,
    SubtaskNotFoundError,
    TaskNotFoundError,
)
from src.domain.common import Level
from src.domain.create_models import GoalCreate, SubtaskCreate, TaskCreate
from src.domain.goal import GoalStatus
from src.domain.task import (
    GoalLink,
    NoLink,
    ProjectLink,
    Quadrant,
    RecurrenceFrequency,
    RecurringSettings,
    TaskDependency,
    TaskStatus,
)
from src.domain.update_models import SubtaskUpdate, TaskUpdate
from src.services import goal_service, repository, task_service


async def _create(owner_id, now, **kwargs):
    return await task_service.create_task(owner_id=owner_id, data=TaskCreate(**kwargs), now=now)


@pytest.mark.unit
class TestCreateTask:
    async def test_create_task_persists_normalized_fields(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="  Write report  ",
            tags=[" Work ", "", "URGENT"],
            subtasks=[SubtaskCreate(title="Outline"), SubtaskCreate(title="Draft")],
        )

        assert task.id is not None
        assert task.title == "Write report"
        assert task.tags == ["work", "urgent"]
        assert [(s.title, s.order) for s in task.subtasks] == [("Outline", 0), ("Draft", 1)]
        assert task.status == TaskStatus.NOT_STARTED
        assert task.linked_to == NoLink()

    async def test_deadline_in_the_past_is_rejected(self, patched_db, owner_id, now):
        with pytest.raises(PlannerValidationError, match="Deadline"):
            await _create(owner_id, now, title="Late", deadline=now - timedelta(hours=1))

    async def test_link_to_missing_goal_is_rejected(self, patched_db, owner_id, now):
        with pytest.raises(InvalidLinkError):
            await _create(owner_id, now, title="Orphan", linked_to=GoalLink(goal_id="9999"))

    async def test_title_too_short_is_rejected(self):
        with pytest.raises(ValueError):
            TaskCreate(title=" a ")


@pytest.mark.unit
class TestOwnership:
    async def test_other_owner_cannot_see_task(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Private")

        with pytest.raises(TaskNotFoundError):
            await task_service.get_task_detail(task_id=task.id, owner_id="someone_else", now=now)


@pytest.mark.unit
class TestChangeStatus:
    async def test_start_and_complete_set_timestamps(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Plain")

        started = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.IN_PROGRESS, now=now
        )
        done = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now, actual_time=45
        )

        assert started.task.started_at == now
        assert done.task.completed_at == now
        assert done.task.actual_time == 45
        assert done.spawned_task is None

    async def test_completing_recurring_task_spawns_next_instance(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="Pay rent",
            deadline=now + timedelta(days=1),
            recurring=RecurringSettings(is_recurring=True, frequency=RecurrenceFrequency.MONTHLY),
        )

        result = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        assert result.spawned_task is not None
        assert result.spawned_task.id != task.id
        assert result.spawned_task.status == TaskStatus.NOT_STARTED
        assert result.spawned_task.deadline == task.deadline.replace(month=task.deadline.month + 1)
        assert result.task.recurring.spawned_task_id == result.spawned_task.id

    async def test_completing_twice_does_not_spawn_twice(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="Water plants",
            deadline=now + timedelta(days=1),
            recurring=RecurringSettings(is_recurring=True, frequency=RecurrenceFrequency.WEEKLY),
        )

        first = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )
        second = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        assert first.spawned_task is not None
        assert second.spawned_task is None
        tasks = await repository.find_tasks(owner_id=owner_id)
        assert len(tasks) == 2

    async def test_resending_recurrence_rule_keeps_spawn_marker(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="Water plants",
            deadline=now + timedelta(days=1),
            recurring=RecurringSettings(is_recurring=True, frequency=RecurrenceFrequency.WEEKLY),
        )
        first = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        edited = await task_service.update_task(
            task_id=task.id,
            owner_id=owner_id,
            data=TaskUpdate.model_validate(
                {"recurring": {"is_recurring": True, "frequency": "weekly", "spawned_task_id": None}}
            ),
            now=now,
        )
        second = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        assert edited.recurring.spawned_task_id == first.spawned_task.id
        assert edited.recurring.next_due == first.spawned_task.deadline
        assert second.spawned_task is None
        assert len(await repository.find_tasks(owner_id=owner_id)) == 2

    async def test_editing_interval_keeps_other_recurrence_fields(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="Review budget",
            recurring=RecurringSettings(is_recurring=True, frequency=RecurrenceFrequency.MONTHLY),
        )

        edited = await task_service.update_task(
            task_id=task.id,
            owner_id=owner_id,
            data=TaskUpdate.model_validate({"recurring": {"interval": 3}}),
            now=now,
        )

        assert edited.recurring.frequency == RecurrenceFrequency.MONTHLY
        assert edited.recurring.interval == 3

    async def test_spawn_marker_sent_on_create_is_ignored(self, patched_db, owner_id, now):
        data = TaskCreate.model_validate(
            {
                "title": "Stretch",
                "deadline": (now + timedelta(days=1)).isoformat(),
                "recurring": {
                    "is_recurring": True,
                    "frequency": "daily",
                    "spawned_task_id": "999",
                    "next_due": (now + timedelta(days=30)).isoformat(),
                },
            }
        )
        task = await task_service.create_task(owner_id=owner_id, data=data, now=now)

        result = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        assert task.recurring.spawned_task_id is None
        assert task.recurring.next_due is None
        assert result.spawned_task is not None
        assert result.spawned_task.deadline == task.deadline + timedelta(days=1)

    async def test_ended_series_completes_without_spawning(self, patched_db, owner_id, now):
        task = await _create(
            owner_id,
            now,
            title="Last session",
            deadline=now + timedelta(days=1),
            recurring=RecurringSettings(
                is_recurring=True, frequency=RecurrenceFrequency.WEEKLY, end_date=now + timedelta(days=3)
            ),
        )

        result = await task_service.change_status(
            task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now
        )

        assert result.task.status == TaskStatus.COMPLETED
        assert result.spawned_task is None

    async def test_completion_refreshes_linked_goal(self, patched_db, owner_id, now):
        goal = await goal_service.create_goal(owner_id=owner_id, data=GoalCreate(title="Launch"))
        task = await _create(owner_id, now, title="Ship it", linked_to=GoalLink(goal_id=goal.id))

        await task_service.change_status(task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now)

        stored = await repository.find_goal_by_id(goal.id, owner_id)
        assert stored.status == GoalStatus.ACHIEVED
        assert stored.achieved_at == now


@pytest.mark.unit
class TestDeleteTask:
    async def test_default_delete_archives(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Old idea")

        archived = await task_service.delete_task(task_id=task.id, owner_id=owner_id, now=now)

        assert archived is not None
        assert archived.is_archived is True
        assert await repository.find_tasks(owner_id=owner_id) == []
        assert len(await repository.find_tasks(owner_id=owner_id, include_archived=True)) == 1

    async def test_permanent_delete_refused_while_depended_on(self, patched_db, owner_id, now):
        base = await _create(owner_id, now, title="Foundation")
        await _create(owner_id, now, title="Walls", dependencies=[TaskDependency(task_id=base.id)])

        with pytest.raises(HasDependentsError) as exc_info:
            await task_service.delete_task(task_id=base.id, owner_id=owner_id, now=now, permanent=True)

        assert exc_info.value.details == ["Walls"]
        assert (await repository.find_task_by_id(base.id, owner_id)).title == "Foundation"

    async def test_archived_dependents_still_block_permanent_delete(self, patched_db, owner_id, now):
        base = await _create(owner_id, now, title="Foundation")
        dependent = await _create(owner_id, now, title="Walls", dependencies=[TaskDependency(task_id=base.id)])
        await task_service.delete_task(task_id=dependent.id, owner_id=owner_id, now=now)

        with pytest.raises(HasDependentsError):
            await task_service.delete_task(task_id=base.id, owner_id=owner_id, now=now, permanent=True)

    async def test_dependent_beyond_first_scan_page_blocks_permanent_delete(
        self, patched_db, monkeypatch, owner_id, now
    ):
        monkeypatch.setattr(constants, "FULL_SCAN_PER_PAGE", 2)
        base = await _create(owner_id, now, title="Foundation")
        for index in range(4):
            await _create(owner_id, now, title=f"Filler {index}")
        await _create(owner_id, now, title="Roof", dependencies=[TaskDependency(task_id=base.id)])

        with pytest.raises(HasDependentsError) as exc_info:
            await task_service.delete_task(task_id=base.id, owner_id=owner_id, now=now, permanent=True)

        assert exc_info.value.details == ["Roof"]
        page = await task_service.list_tasks(owner_id=owner_id, now=now)
        assert page.total == 6

    async def test_permanent_delete(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Temp")

        assert await task_service.delete_task(task_id=task.id, owner_id=owner_id, now=now, permanent=True) is None

        with pytest.raises(TaskNotFoundError):
            await repository.find_task_by_id(task.id, owner_id)


@pytest.mark.unit
class TestUpdateTask:
    async def test_partial_update(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Draft", urgency=Level.LOW)

        updated = await task_service.update_task(
            task_id=task.id,
            owner_id=owner_id,
            data=TaskUpdate(urgency=Level.CRITICAL, tags=["A"]),
            now=now,
        )

        assert updated.urgency == Level.CRITICAL
        assert updated.tags == ["a"]
        assert updated.title == "Draft"

    async def test_task_cannot_depend_on_itself(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Loop")

        with pytest.raises(PlannerValidationError):
            await task_service.update_task(
                task_id=task.id,
                owner_id=owner_id,
                data=TaskUpdate(dependencies=[TaskDependency(task_id=task.id)]),
                now=now,
            )

    async def test_title_is_trimmed_before_length_check(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Draft")

        with pytest.raises(ValueError, match="Title must be between"):
            TaskUpdate(title=" a ")

        updated = await task_service.update_task(
            task_id=task.id, owner_id=owner_id, data=TaskUpdate(title="  Final copy  "), now=now
        )
        assert updated.title == "Final copy"


@pytest.mark.unit
class TestSubtasks:
    async def test_add_complete_and_delete(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Move house")
        await task_service.add_subtask(task_id=task.id, owner_id=owner_id, data=SubtaskCreate(title="Pack"))
        await task_service.add_subtask(task_id=task.id, owner_id=owner_id, data=SubtaskCreate(title="Drive"))

        task = await task_service.update_subtask(
            task_id=task.id, owner_id=owner_id, index=0, data=SubtaskUpdate(completed=True), now=now
        )
        assert task.subtasks[0].completed_at == now
        assert task.subtask_progress == 50

        task = await task_service.delete_subtask(task_id=task.id, owner_id=owner_id, index=0)
        assert [(s.title, s.order) for s in task.subtasks] == [("Drive", 0)]

    async def test_out_of_range_index(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Empty")

        with pytest.raises(SubtaskNotFoundError):
            await task_service.delete_subtask(task_id=task.id, owner_id=owner_id, index=0)


@pytest.mark.unit
class TestDetailAndListing:
    async def test_detail_reports_blockers_and_blocked_tasks(self, patched_db, owner_id, now):
        first = await _create(owner_id, now, title="Design")
        second = await _create(owner_id, now, title="Build", dependencies=[TaskDependency(task_id=first.id)])

        second_detail = await task_service.get_task_detail(task_id=second.id, owner_id=owner_id, now=now)
        first_detail = await task_service.get_task_detail(task_id=first.id, owner_id=owner_id, now=now)

        assert second_detail.insights.can_start is False
        assert [d.task_id for d in second_detail.insights.blocked_by] == [first.id]
        assert [t.id for t in first_detail.insights.blocking] == [second.id]

        await task_service.change_status(task_id=first.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now)
        second_detail = await task_service.get_task_detail(task_id=second.id, owner_id=owner_id, now=now)
        assert second_detail.insights.can_start is True

    async def test_list_sorted_by_priority_with_quadrant_filter(self, patched_db, owner_id, now):
        await _create(owner_id, now, title="Low", urgency=Level.LOW, importance=Level.LOW)
        await _create(owner_id, now, title="Top", urgency=Level.CRITICAL, importance=Level.CRITICAL)
        await _create(owner_id, now, title="Plan", urgency=Level.LOW, importance=Level.HIGH)

        page = await task_service.list_tasks(owner_id=owner_id, now=now)
        q2 = await task_service.list_tasks(owner_id=owner_id, now=now, quadrant_filter=Quadrant.Q2)

        assert [view.task.title for view in page.items] == ["Top", "Plan", "Low"]
        assert page.total == 3
        assert [view.task.title for view in q2.items] == ["Plan"]

    async def test_list_pagination(self, patched_db, owner_id, now):
        for index in range(5):
            await _create(owner_id, now, title=f"Task {index}")

        page = await task_service.list_tasks(owner_id=owner_id, now=now, page=2, per_page=2)

        assert page.total == 5
        assert len(page.items) == 2

    async def test_quadrant_view_excludes_completed(self, patched_db, owner_id, now):
        done = await _create(owner_id, now, title="Done", urgency=Level.HIGH, importance=Level.HIGH)
        await _create(owner_id, now, title="Open", urgency=Level.HIGH, importance=Level.HIGH)
        await task_service.change_status(task_id=done.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now)

        views = await task_service.get_tasks_by_quadrant(owner_id=owner_id, q=Quadrant.Q1, now=now)

        assert [view.task.title for view in views] == ["Open"]

    async def test_analytics_overview(self, patched_db, owner_id, now):
        done = await _create(owner_id, now, title="Done", estimated_time=60)
        await _create(owner_id, now, title="Overdue-soon", deadline=now + timedelta(hours=1))
        await task_service.change_status(
            task_id=done.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now, actual_time=30
        )

        overview = await task_service.get_analytics_overview(owner_id=owner_id, now=now, timeframe="7d")

        assert overview.summary.total == 2
        assert overview.summary.completed == 1
        assert overview.summary.completion_rate == 50
        assert overview.summary.due_today == 1
        assert overview.time_efficiency.avg_efficiency == 200
        assert overview.time_efficiency.task_count == 1
        assert [entry.completed for entry in overview.completion_trend] == [1]
        assert sum(overview.eisenhower_matrix.values()) == 1


@pytest.mark.unit
class TestLinks:
    async def test_link_and_unlink_refresh_goal(self, patched_db, owner_id, now):
        goal = await goal_service.create_goal(owner_id=owner_id, data=GoalCreate(title="Learn Spanish"))
        task = await _create(owner_id, now, title="Lesson 1")
        await task_service.change_status(task_id=task.id, owner_id=owner_id, status=TaskStatus.COMPLETED, now=now)

        linked = await task_service.link_task(
            task_id=task.id, owner_id=owner_id, link=GoalLink(goal_id=goal.id), now=now
        )
        assert linked.linked_to == GoalLink(goal_id=goal.id)
        assert (await repository.find_goal_by_id(goal.id, owner_id)).status == GoalStatus.ACHIEVED

        await task_service.unlink_task(task_id=task.id, owner_id=owner_id, now=now)
        assert (await repository.find_goal_by_id(goal.id, owner_id)).status == GoalStatus.NOT_STARTED

    async def test_link_to_missing_project_is_rejected(self, patched_db, owner_id, now):
        task = await _create(owner_id, now, title="Stray")

        with pytest.raises(InvalidLinkError):
            await task_service.link_task(
                task_id=task.id, owner_id=owner_id, link=ProjectLink(project_id="9999"), now=now
            )
