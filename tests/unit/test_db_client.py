"""Tests for the SQLite client and schema against a real database file."""

from datetime import UTC, datetime

import pytest

from src.core import db_client
from src.core.db_client import DatabaseError, RecordNotFoundError, parse_filter, parse_sort, sanitize_param
from src.domain.task import ProjectLink, RecurrenceFrequency, RecurringSettings, Subtask, Task, TaskDependency
from src.services import repository


@pytest.mark.unit
class TestFilterParsing:
    def test_parses_conjunction_into_where_clause(self):
        clause, params = parse_filter('owner_id = "user_1" && title ~ "report"')

        assert clause == "owner_id = ? AND title LIKE ?"
        assert params == ["user_1", "%report%"]

    def test_converts_numbers_and_booleans(self):
        _clause, params = parse_filter('estimated_time >= "30" && is_archived = "false"')

        assert params == [30, False]

    def test_rejects_unquoted_values(self):
        with pytest.raises(ValueError, match="Invalid filter syntax"):
            parse_filter("owner_id = user_1")

    def test_empty_filter_has_no_clause(self):
        assert parse_filter("") == ("", [])

    @pytest.mark.parametrize(
        ("sort", "expected"),
        [
            ("-created", "created DESC"),
            ("+deadline", "deadline ASC"),
            ("title", "title ASC"),
            ("", "id ASC"),
            ("title; DROP TABLE tasks", "id ASC"),
        ],
    )
    def test_parse_sort(self, sort, expected):
        assert parse_sort(sort) == expected

    def test_sanitize_param_escapes_quotes(self):
        assert sanitize_param('say "hi"') == 'say \\"hi\\"'
        assert sanitize_param(True) == "True"


@pytest.mark.unit
class TestRecordCrud:
    async def test_create_get_update_delete(self, sqlite_db):
        created = await db_client.create_record(
            collection="goals",
            data={"owner_id": "user_1", "title": "Run a marathon", "milestones": []},
        )

        assert isinstance(created["id"], str)
        assert created["status"] == "not_started"
        assert created["created"].endswith("Z")

        updated = await db_client.update_record(
            collection="goals",
            record_id=created["id"],
            data={"status": "in_progress"},
        )
        assert updated["status"] == "in_progress"

        fetched = await db_client.get_record(collection="goals", record_id=created["id"])
        assert fetched["status"] == "in_progress"

        await db_client.delete_record(collection="goals", record_id=created["id"])
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="goals", record_id=created["id"])

    async def test_non_numeric_id_is_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.get_record(collection="tasks", record_id="abc")

    async def test_update_missing_record_is_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.update_record(collection="tasks", record_id="999", data={"title": "x"})

    async def test_delete_missing_record_is_not_found(self, sqlite_db):
        with pytest.raises(RecordNotFoundError):
            await db_client.delete_record(collection="tasks", record_id="999")

    async def test_empty_update_is_rejected(self, sqlite_db):
        with pytest.raises(ValueError, match="Empty update payload"):
            await db_client.update_record(collection="tasks", record_id="1", data={})

    async def test_invalid_collection_name_is_rejected(self, sqlite_db):
        with pytest.raises(ValueError, match="Invalid collection name"):
            await db_client.list_records(collection="tasks; DROP TABLE goals")

    async def test_unknown_table_raises_database_error(self, sqlite_db):
        with pytest.raises(DatabaseError, match="does not exist"):
            await db_client.create_record(collection="notes", data={"title": "x"})

    async def test_check_constraint_violation_raises_database_error(self, sqlite_db):
        with pytest.raises(DatabaseError):
            await db_client.create_record(
                collection="tasks",
                data={"owner_id": "user_1", "title": "Bad", "urgency": "extreme"},
            )

    async def test_list_filters_sorts_and_pages(self, sqlite_db):
        for title, minutes in (("b", 30), ("a", 10), ("c", 60)):
            await db_client.create_record(
                collection="tasks",
                data={"owner_id": "user_1", "title": title, "estimated_time": minutes},
            )
        await db_client.create_record(collection="tasks", data={"owner_id": "user_2", "title": "other"})

        records = await db_client.list_records(
            collection="tasks",
            filter_query='owner_id = "user_1" && estimated_time >= "20"',
            sort="-estimated_time",
        )
        assert [r["title"] for r in records] == ["c", "b"]

        first_page = await db_client.list_records(
            collection="tasks", filter_query='owner_id = "user_1"', sort="title", per_page=2
        )
        second_page = await db_client.list_records(
            collection="tasks", filter_query='owner_id = "user_1"', sort="title", per_page=2, page=2
        )
        assert [r["title"] for r in first_page] == ["a", "b"]
        assert [r["title"] for r in second_page] == ["c"]

    async def test_boolean_filter_matches_integer_column(self, sqlite_db):
        await db_client.create_record(collection="tasks", data={"owner_id": "u", "title": "live"})
        await db_client.create_record(collection="tasks", data={"owner_id": "u", "title": "old", "is_archived": True})

        live = await db_client.list_records(collection="tasks", filter_query='is_archived = "false"')
        archived = await db_client.list_records(collection="tasks", filter_query='is_archived = "true"')

        assert [r["title"] for r in live] == ["live"]
        assert [r["title"] for r in archived] == ["old"]

    async def test_linked_project_pair_is_unique(self, sqlite_db):
        data = {"owner_id": "u", "business_id": "b1", "project_id": "p1"}
        await db_client.create_record(collection="linked_projects", data=data)

        with pytest.raises(DatabaseError):
            await db_client.create_record(collection="linked_projects", data=data)


@pytest.mark.unit
class TestTaskRoundTripThroughSqlite:
    async def test_nested_fields_and_link_survive_storage(self, sqlite_db):
        deadline = datetime(2024, 7, 1, 9, 30, tzinfo=UTC)
        task = Task(
            owner_id="user_1",
            title="Ship release",
            tags=["work"],
            deadline=deadline,
            subtasks=[Subtask(title="Changelog", order=0)],
            dependencies=[TaskDependency(task_id="42")],
            recurring=RecurringSettings(is_recurring=True, frequency=RecurrenceFrequency.WEEKLY, interval=2),
            linked_to=ProjectLink(project_id="7", milestone_index=1),
        )

        saved = await repository.save_task(task)
        loaded = await repository.find_task_by_id(saved.id, "user_1")

        assert loaded.tags == ["work"]
        assert loaded.deadline == deadline
        assert loaded.subtasks[0].title == "Changelog"
        assert loaded.dependencies == [TaskDependency(task_id="42")]
        assert loaded.recurring.frequency == RecurrenceFrequency.WEEKLY
        assert loaded.recurring.interval == 2
        assert loaded.linked_to == ProjectLink(project_id="7", milestone_index=1)
        assert loaded.is_archived is False

    async def test_find_tasks_hides_archived_and_other_owners(self, sqlite_db):
        await repository.save_task(Task(owner_id="user_1", title="visible"))
        await repository.save_task(Task(owner_id="user_1", title="archived", is_archived=True))
        await repository.save_task(Task(owner_id="user_2", title="foreign"))

        tasks = await repository.find_tasks(owner_id="user_1")
        everything = await repository.find_tasks(owner_id="user_1", include_archived=True)

        assert [t.title for t in tasks] == ["visible"]
        assert {t.title for t in everything} == {"visible", "archived"}
