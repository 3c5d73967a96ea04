from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from ..dependencies import get_browser_session, require_api_user
from ..schemas import DraftChanges, FormState, Task, TaskDraft, TaskFields, TaskListOut
from ..session import BrowserSession

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
    dependencies=[Depends(require_api_user)],
)


def _task_or_404(session: BrowserSession, task_id: int) -> Task:
    task = session.tasks.find(task_id)
    if task is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
    return task


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TaskListOut,
    summary="List Tasks",
    description=(
        "Load tasks for a tab and return its view.\n\n"
        "Query parameters:\n"
        "- tab: 'all' (default) or 'completed'; any other value shows every task\n"
        "- q: substring search on titles\n\n"
        "A failed load keeps the previous tasks and reports `error`; POST /retry reloads."
    ),
)
async def list_tasks(
    tab: str = Query("all", description="'all' or 'completed'"),
    q: Optional[str] = Query(None, description="Search text for titles"),
    session: BrowserSession = Depends(get_browser_session),
) -> TaskListOut:
    await session.tasks.load(tab, q.strip() if q else None)
    return session.tasks.snapshot(tab)


@router.post("/retry", response_model=TaskListOut, summary="Retry the last load")
async def retry_load(session: BrowserSession = Depends(get_browser_session)) -> TaskListOut:
    await session.tasks.retry()
    return session.tasks.snapshot()


@router.get("/form", response_model=FormState, summary="Task form state")
def get_form(session: BrowserSession = Depends(get_browser_session)) -> FormState:
    return session.form.state()


@router.patch("/form", response_model=FormState, summary="Change draft fields")
def change_draft(changes: DraftChanges, session: BrowserSession = Depends(get_browser_session)) -> FormState:
    session.form.update_draft(changes)
    return session.form.state()


@router.post("/form/toggle", response_model=FormState, summary="Show or hide the task form")
def toggle_form(session: BrowserSession = Depends(get_browser_session)) -> FormState:
    session.form.toggle()
    return session.form.state()


# PUBLIC_INTERFACE
@router.post(
    "/form/submit",
    response_model=Task,
    summary="Submit the task form",
    description="Create a task, or update the task being edited, from the current draft.",
    responses={
        200: {"description": "Task saved; the form is reset and closed"},
        422: {"description": "Title missing or due date invalid; the form stays open"},
        502: {"description": "The record store rejected the call"},
    },
)
async def submit_form(session: BrowserSession = Depends(get_browser_session)) -> Task:
    return await session.form.submit()


@router.post("/form/cancel", response_model=FormState, summary="Discard the draft")
def cancel_form(session: BrowserSession = Depends(get_browser_session)) -> FormState:
    session.form.cancel()
    return session.form.state()


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=Task,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task directly from a payload, bypassing the draft form.",
)
async def create_task(payload: TaskDraft, session: BrowserSession = Depends(get_browser_session)) -> Task:
    created = await session.tasks.create(payload)
    session.notifier.success("Task added successfully!")
    return created


@router.get("/{task_id}", response_model=Task, summary="Get Task")
def get_task(task_id: int, session: BrowserSession = Depends(get_browser_session)) -> Task:
    return _task_or_404(session, task_id)


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=Task,
    summary="Replace Task",
    description="Replace every updateable field of a task.",
)
async def replace_task(
    task_id: int, payload: TaskFields, session: BrowserSession = Depends(get_browser_session)
) -> Task:
    updated = await session.tasks.update(task_id, payload)
    session.notifier.success("Task updated successfully!")
    return updated


@router.post("/{task_id}/edit", response_model=FormState, summary="Edit a task in the form")
def edit_task(task_id: int, session: BrowserSession = Depends(get_browser_session)) -> FormState:
    session.form.begin_edit(_task_or_404(session, task_id))
    return session.form.state()


# PUBLIC_INTERFACE
@router.post(
    "/{task_id}/toggle",
    response_model=Task,
    summary="Toggle completion",
    responses={404: {"description": "Task not loaded"}, 502: {"description": "Update not confirmed"}},
)
async def toggle_task(task_id: int, session: BrowserSession = Depends(get_browser_session)) -> Task:
    _task_or_404(session, task_id)
    updated = await session.tasks.toggle_completion(task_id)
    if updated is None:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to update task status")
    return updated


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    responses={
        204: {"description": "Task deleted"},
        404: {"description": "Task not found"},
        502: {"description": "Deletion not confirmed"},
    },
)
async def delete_task(task_id: int, session: BrowserSession = Depends(get_browser_session)) -> None:
    known = session.tasks.find(task_id) is not None
    ok = await session.tasks.remove(task_id)
    if not ok:
        if not known:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Task not found")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Failed to delete task")
    return None
