"""Task service adapter.

Translates between the application's Task shape and the record store's row
shape. Each operation issues exactly one store call; failures are logged and
propagated to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .exceptions import (
    RecordStoreError,
    TaskCreateError,
    TaskDeleteError,
    TaskUpdateError,
)
from .models import TASK_FIELDS, TASK_TABLE, FetchParams, StoreResponse, TaskRecord, WhereCondition
from .record_store import RecordStore
from .schemas import Task, TaskDraft, TaskFields

logger = logging.getLogger(__name__)


def _to_record(draft: TaskDraft) -> Dict[str, Any]:
    return {
        "title": draft.title,
        "description": draft.description,
        "dueDate": draft.due_date.isoformat() if draft.due_date else None,
        "priority": draft.priority,
        # Name mirrors title so the store's own UI shows something sensible
        "Name": draft.title,
        "Tags": draft.tags or "",
    }


def _first_result(response: Optional[StoreResponse]) -> Optional[TaskRecord]:
    """Return the first confirmed record of a create/update response, if any."""
    if not response or not response.get("success"):
        return None
    results = response.get("results") or []
    if not results:
        return None
    first = results[0]
    if first.get("success") is False or not first.get("data"):
        return None
    return first["data"]


def _parse_task(record: TaskRecord, operation: str) -> Task:
    try:
        return Task.from_record(record)
    except (KeyError, ValidationError) as e:
        logger.exception("Failed to parse task record returned by %s", operation)
        raise RecordStoreError.create_parse_error(TASK_TABLE, operation) from e


class TaskService:
    """CRUD over the record store's task table."""

    def __init__(self, store: RecordStore, table: str = TASK_TABLE) -> None:
        self._store = store
        self._table = table

    async def fetch_tasks(self, completed: Optional[bool] = None, search_term: Optional[str] = None) -> List[Task]:
        """
        Fetch tasks, optionally filtered, sorted ascending by due date.

        Args:
            completed: exact match on the completion flag when not None.
            search_term: substring match on the title when non-empty.
        """
        where: List[WhereCondition] = []
        if completed is not None:
            where.append({"fieldName": "completed", "operator": "ExactMatch", "values": [completed]})
        if search_term:
            where.append({"fieldName": "title", "operator": "Contains", "values": [search_term]})

        params: FetchParams = {
            "fields": list(TASK_FIELDS),
            "orderBy": [{"field": "dueDate", "direction": "ASC"}],
        }
        if where:
            params["where"] = where

        try:
            response = await self._store.fetch_records(self._table, params)
        except RecordStoreError:
            logger.exception("Error fetching tasks")
            raise

        rows: List[TaskRecord] = response.get("data") or []
        tasks = [_parse_task(row, "fetch") for row in rows]
        logger.debug("Fetched %d tasks (completed=%s, search=%r)", len(tasks), completed, search_term)
        return tasks

    async def create_task(self, draft: TaskDraft) -> Task:
        """Create a task; the store assigns id and creation timestamp."""
        record = _to_record(draft)
        record["completed"] = False
        try:
            response = await self._store.create_record(self._table, {"records": [record]})
        except RecordStoreError:
            logger.exception("Error creating task")
            raise

        created = _first_result(response)
        if created is None:
            logger.error("Record store did not confirm task creation")
            raise TaskCreateError
        task = _parse_task(created, "create")
        logger.info("Created task %s", task.id)
        return task

    async def update_task(self, task_id: int, fields: TaskFields) -> Task:
        """Replace every updateable field of task `task_id`."""
        record = _to_record(fields)
        record["Id"] = task_id
        record["completed"] = fields.completed
        try:
            response = await self._store.update_record(self._table, {"records": [record]})
        except RecordStoreError:
            logger.exception("Error updating task %s", task_id)
            raise

        updated = _first_result(response)
        if updated is None:
            logger.error("Record store did not confirm update of task %s", task_id)
            raise TaskUpdateError
        return _parse_task(updated, "update")

    async def delete_task(self, task_id: int) -> bool:
        try:
            response = await self._store.delete_record(self._table, {"RecordIds": [task_id]})
        except RecordStoreError:
            logger.exception("Error deleting task %s", task_id)
            raise

        if not response or not response.get("success"):
            logger.error("Record store did not confirm deletion of task %s", task_id)
            raise TaskDeleteError
        logger.info("Deleted task %s", task_id)
        return True
