"""Task list and task form controllers.

Both controllers hold per-browser view state. Remote calls go through
TaskService; local state changes only after the store confirms. Every list
load carries a generation number and every item mutation a per-item version,
so a response that arrives after a newer request for the same target is
discarded instead of overwriting fresher state.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from .exceptions import TaskFlowError, TaskValidationError
from .notifications import Notifier
from .schemas import (
    DraftChanges,
    DraftForm,
    FormState,
    Task,
    TaskDraft,
    TaskFields,
    TaskListOut,
    default_due_date,
)
from .services import TaskService

logger = logging.getLogger(__name__)

TAB_ALL = "all"
TAB_COMPLETED = "completed"

LOAD_ERROR_MESSAGE = "Failed to load tasks. Please try again."


def filter_for_tab(tab: str) -> Dict[str, Any]:
    """Return the fetch filter for a tab: only 'completed' narrows the query."""
    if tab == TAB_COMPLETED:
        return {"completed": True}
    return {}


class TaskListController:
    """Owns the task collection shown for the current tab."""

    def __init__(self, service: TaskService, notifier: Notifier) -> None:
        self._service = service
        self._notifier = notifier
        self.tasks: List[Task] = []
        self.loading = False
        self.error: Optional[str] = None
        self.active_tab = TAB_ALL
        self.search_term: Optional[str] = None
        self._generation = 0
        self._item_versions: Dict[int, int] = {}
        self._version_seq = 0
        self._in_flight = 0

    @property
    def busy(self) -> bool:
        return self._in_flight > 0

    def find(self, task_id: int) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def _bump(self, task_id: int) -> int:
        # Drawn from one counter so a version is never reissued after pruning.
        self._version_seq += 1
        self._item_versions[task_id] = self._version_seq
        return self._version_seq

    def _is_current(self, task_id: int, version: int) -> bool:
        return self._item_versions.get(task_id) == version

    def _replace(self, updated: Task) -> None:
        self.tasks = [updated if t.id == updated.id else t for t in self.tasks]

    async def load(self, tab: Optional[str] = None, search_term: Optional[str] = None) -> bool:
        """
        Fetch the tasks for `tab` and replace the local collection.

        Returns True when the collection was replaced. On failure the previous
        collection is kept, `error` is set and an error toast is queued.
        """
        if tab is not None:
            self.active_tab = tab
        self.search_term = search_term
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None

        try:
            fetched = await self._service.fetch_tasks(search_term=search_term, **filter_for_tab(self.active_tab))
        except TaskFlowError:
            logger.exception("Loading tasks for tab %r failed", self.active_tab)
            if generation == self._generation:
                self.loading = False
                self.error = LOAD_ERROR_MESSAGE
                self._notifier.error(LOAD_ERROR_MESSAGE)
            return False

        if generation != self._generation:
            logger.debug("Discarding stale task load (generation %d < %d)", generation, self._generation)
            return False

        self.tasks = fetched
        # Versions only matter for tasks still on screen.
        visible = {t.id for t in fetched}
        self._item_versions = {k: v for k, v in self._item_versions.items() if k in visible}
        self.loading = False
        return True

    async def retry(self) -> bool:
        return await self.load(self.active_tab, self.search_term)

    async def toggle_completion(self, task_id: int) -> Optional[Task]:
        """Flip the completion flag remotely, then locally once confirmed."""
        task = self.find(task_id)
        if task is None:
            logger.warning("Task %s is not in the current list", task_id)
            self._notifier.error("Failed to update task status")
            return None

        version = self._bump(task_id)
        self._in_flight += 1
        try:
            updated = await self._service.update_task(task_id, TaskFields.from_task(task, completed=not task.completed))
        except TaskFlowError:
            logger.exception("Toggling completion of task %s failed", task_id)
            self._notifier.error("Failed to update task status")
            return None
        finally:
            self._in_flight -= 1

        if not self._is_current(task_id, version):
            logger.debug("Discarding stale toggle response for task %s", task_id)
            return updated

        self._replace(updated)
        self._notifier.info(f"Task marked as {'completed' if updated.completed else 'incomplete'}")
        return updated

    async def remove(self, task_id: int) -> bool:
        """Delete remotely, then drop the local copy once confirmed."""
        self._in_flight += 1
        try:
            await self._service.delete_task(task_id)
        except TaskFlowError:
            logger.exception("Deleting task %s failed", task_id)
            self._notifier.error("Failed to delete task")
            return False
        finally:
            self._in_flight -= 1

        self.tasks = [t for t in self.tasks if t.id != task_id]
        # Any mutation still in flight for this task is now stale.
        self._item_versions.pop(task_id, None)
        self._notifier.success("Task deleted successfully!")
        return True

    async def create(self, draft: TaskDraft) -> Task:
        """Create a task and append it locally. Errors propagate to the caller."""
        self._in_flight += 1
        try:
            created = await self._service.create_task(draft)
        finally:
            self._in_flight -= 1
        self.tasks = [*self.tasks, created]
        return created

    async def update(self, task_id: int, fields: TaskFields) -> Task:
        """Replace a task's fields and the local copy. Errors propagate to the caller."""
        version = self._bump(task_id)
        self._in_flight += 1
        try:
            updated = await self._service.update_task(task_id, fields)
        finally:
            self._in_flight -= 1
        if self._is_current(task_id, version):
            self._replace(updated)
        return updated

    def filtered_view(self, tab: Optional[str] = None) -> List[Task]:
        """Tasks visible on `tab`; unknown tabs show everything."""
        tab = tab or self.active_tab
        if tab == TAB_COMPLETED:
            return [t for t in self.tasks if t.completed]
        return list(self.tasks)

    def snapshot(self, tab: Optional[str] = None) -> TaskListOut:
        tab = tab or self.active_tab
        return TaskListOut(
            tab=tab,
            tasks=self.filtered_view(tab),
            total=len(self.tasks),
            completed=sum(1 for t in self.tasks if t.completed),
            loading=self.loading,
            error=self.error,
        )


class TaskFormController:
    """Owns the add/edit task form."""

    def __init__(self, tasks: TaskListController, notifier: Notifier) -> None:
        self._tasks = tasks
        self._notifier = notifier
        self.draft = DraftForm()
        self.is_open = False
        self.editing_id: Optional[int] = None
        self._editing_completed = False
        self.is_validated = True

    def _reset(self) -> None:
        self.draft = DraftForm()
        self.editing_id = None
        self._editing_completed = False
        self.is_validated = True

    def state(self) -> FormState:
        return FormState(
            draft=self.draft.model_copy(),
            is_open=self.is_open,
            editing_id=self.editing_id,
            is_validated=self.is_validated,
        )

    def open(self) -> None:
        self.is_open = True

    def toggle(self) -> None:
        """The add-task button: abandons any edit in progress, then flips visibility."""
        if self.editing_id is not None:
            self._reset()
        self.is_open = not self.is_open

    def update_draft(self, changes: DraftChanges) -> DraftForm:
        data = changes.model_dump(exclude_none=True)
        self.draft = self.draft.model_copy(update=data)
        return self.draft

    def begin_edit(self, task: Task) -> None:
        self.editing_id = task.id
        # Snapshot: the list may be reloaded without this task before submit.
        self._editing_completed = task.completed
        self.draft = DraftForm(
            title=task.title,
            description=task.description or "",
            due_date=task.due_date.isoformat() if task.due_date else default_due_date(),
            priority=task.priority,
            tags=task.tags,
        )
        self.is_validated = True
        self.is_open = True

    def cancel(self) -> None:
        self._reset()
        self.is_open = False

    def _build_fields(self) -> TaskFields:
        return TaskFields(
            title=self.draft.title,
            description=self.draft.description,
            due_date=self.draft.due_date,
            priority=self.draft.priority,
            tags=self.draft.tags,
            completed=self._editing_completed if self.editing_id is not None else False,
        )

    async def submit(self) -> Task:
        """
        Validate the draft and create or update the task.

        Raises:
            TaskValidationError: empty title or unparseable due date; the form stays open.
            TaskFlowError: the store rejected the call; the form stays open.
        """
        if not self.draft.title.strip():
            self.is_validated = False
            self._notifier.error("Task title is required!")
            raise TaskValidationError()

        try:
            fields = self._build_fields()
        except ValidationError as e:
            self.is_validated = False
            self._notifier.error("Please enter a valid due date")
            raise TaskValidationError("Invalid due date") from e

        try:
            if self.editing_id is not None:
                task = await self._tasks.update(self.editing_id, fields)
                message = "Task updated successfully!"
            else:
                task = await self._tasks.create(TaskDraft(**fields.model_dump(exclude={"completed"})))
                message = "Task added successfully!"
        except TaskFlowError:
            action = "update" if self.editing_id is not None else "create"
            logger.exception("Submitting task form failed")
            self._notifier.error(f"Failed to {action} task")
            raise

        self._notifier.success(message)
        self._reset()
        self.is_open = False
        return task
