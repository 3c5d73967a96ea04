from datetime import date

import pytest
from pytest_mock import MockerFixture

from taskflow.exceptions import (
    RecordStoreError,
    RecordStoreNetworkError,
    TaskCreateError,
    TaskDeleteError,
    TaskUpdateError,
)
from taskflow.models import TASK_TABLE
from taskflow.record_store import InMemoryRecordStore
from taskflow.schemas import TaskDraft, TaskFields
from taskflow.services import TaskService


def draft(title="Write report", due="2030-01-10", **kwargs) -> TaskDraft:
    return TaskDraft(title=title, due_date=due, **kwargs)


class TestCreateTask:
    @pytest.mark.asyncio
    async def test_create_assigns_id_and_timestamp(self, service: TaskService):
        task = await service.create_task(
            draft(description="Quarterly numbers", priority="high", tags="work,finance")
        )
        assert isinstance(task.id, int)
        assert task.created_at is not None
        assert task.title == "Write report"
        assert task.description == "Quarterly numbers"
        assert task.completed is False
        assert task.due_date == date(2030, 1, 10)
        assert task.priority == "high"
        assert task.tag_list() == ["work", "finance"]

    @pytest.mark.asyncio
    async def test_create_sends_store_shape(self, service: TaskService, store: InMemoryRecordStore):
        task = await service.create_task(draft(title="  Padded  "))
        rows = (await store.fetch_records(TASK_TABLE, {}))["data"]
        assert len(rows) == 1
        row = rows[0]
        assert row["Id"] == task.id
        assert row["Name"] == "Padded"
        assert row["title"] == "Padded"
        assert row["Tags"] == ""
        assert row["completed"] is False
        assert row["dueDate"] == "2030-01-10"

    @pytest.mark.asyncio
    async def test_create_without_confirmation_fails(self, service: TaskService, store, mocker: MockerFixture):
        mocker.patch.object(store, "create_record", return_value={"success": False, "results": []})
        with pytest.raises(TaskCreateError, match="Failed to create task"):
            await service.create_task(draft())

    @pytest.mark.asyncio
    async def test_create_with_empty_results_fails(self, service: TaskService, store, mocker: MockerFixture):
        mocker.patch.object(store, "create_record", return_value={"success": True, "results": []})
        with pytest.raises(TaskCreateError):
            await service.create_task(draft())


class TestFetchTasks:
    @pytest.mark.asyncio
    async def test_sorted_by_due_date_ascending(self, service: TaskService):
        await service.create_task(draft(title="Later", due="2030-03-01"))
        await service.create_task(draft(title="Soon", due="2030-01-01"))
        await service.create_task(draft(title="Middle", due="2030-02-01"))
        await service.create_task(draft(title="Undated", due=None))

        titles = [t.title for t in await service.fetch_tasks()]
        assert titles == ["Soon", "Middle", "Later", "Undated"]

    @pytest.mark.asyncio
    async def test_completed_filter_is_exact(self, service: TaskService):
        done = await service.create_task(draft(title="Done"))
        await service.create_task(draft(title="Open"))
        await service.update_task(done.id, TaskFields.from_task(done, completed=True))

        completed = await service.fetch_tasks(completed=True)
        assert [t.title for t in completed] == ["Done"]
        still_open = await service.fetch_tasks(completed=False)
        assert [t.title for t in still_open] == ["Open"]

    @pytest.mark.asyncio
    async def test_search_term_matches_title_substring(self, service: TaskService):
        await service.create_task(draft(title="Buy milk"))
        await service.create_task(draft(title="Call plumber", description="about the milk pipe"))

        found = await service.fetch_tasks(search_term="milk")
        assert [t.title for t in found] == ["Buy milk"]

    @pytest.mark.asyncio
    async def test_builds_where_and_order(self, service: TaskService, store, mocker: MockerFixture):
        fetch = mocker.patch.object(store, "fetch_records", return_value={"success": True, "data": []})
        await service.fetch_tasks(completed=True, search_term="milk")

        table, params = fetch.call_args.args
        assert table == "task"
        assert params["where"] == [
            {"fieldName": "completed", "operator": "ExactMatch", "values": [True]},
            {"fieldName": "title", "operator": "Contains", "values": ["milk"]},
        ]
        assert params["orderBy"] == [{"field": "dueDate", "direction": "ASC"}]
        assert "CreatedOn" in params["fields"]

    @pytest.mark.asyncio
    async def test_no_filter_sends_no_where(self, service: TaskService, store, mocker: MockerFixture):
        fetch = mocker.patch.object(store, "fetch_records", return_value={"success": True, "data": []})
        assert await service.fetch_tasks() == []
        assert "where" not in fetch.call_args.args[1]

    @pytest.mark.asyncio
    async def test_transport_errors_propagate(self, service: TaskService, store, mocker: MockerFixture):
        mocker.patch.object(store, "fetch_records", side_effect=RecordStoreNetworkError())
        with pytest.raises(RecordStoreNetworkError):
            await service.fetch_tasks()

    @pytest.mark.asyncio
    async def test_unparseable_rows_raise_store_error(self, service: TaskService, store, mocker: MockerFixture):
        mocker.patch.object(store, "fetch_records", return_value={"success": True, "data": [{"title": "no id"}]})
        with pytest.raises(RecordStoreError, match="Failed to parse"):
            await service.fetch_tasks()


class TestUpdateTask:
    @pytest.mark.asyncio
    async def test_full_replacement(self, service: TaskService):
        task = await service.create_task(draft(description="old", tags="a"))
        updated = await service.update_task(
            task.id,
            TaskFields(title="New title", description=None, due_date="2031-05-05", priority="low", completed=True),
        )
        assert updated.id == task.id
        assert updated.created_at == task.created_at
        assert updated.title == "New title"
        assert updated.description is None
        assert updated.tags == ""
        assert updated.priority == "low"
        assert updated.completed is True
        assert updated.due_date == date(2031, 5, 5)

    @pytest.mark.asyncio
    async def test_update_missing_task_fails(self, service: TaskService):
        with pytest.raises(TaskUpdateError, match="Failed to update task"):
            await service.update_task(424242, TaskFields(title="Ghost"))


class TestDeleteTask:
    @pytest.mark.asyncio
    async def test_delete_existing(self, service: TaskService):
        task = await service.create_task(draft())
        assert await service.delete_task(task.id) is True
        assert await service.fetch_tasks() == []

    @pytest.mark.asyncio
    async def test_delete_missing_fails(self, service: TaskService):
        with pytest.raises(TaskDeleteError, match="Failed to delete task"):
            await service.delete_task(999)

    @pytest.mark.asyncio
    async def test_delete_sends_record_ids(self, service: TaskService, store, mocker: MockerFixture):
        delete = mocker.patch.object(store, "delete_record", return_value={"success": True})
        await service.delete_task(5)
        delete.assert_called_once_with("task", {"RecordIds": [5]})
