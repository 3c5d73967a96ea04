from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import TaskRecord

Priority = Literal["low", "medium", "high"]

# Shared type for incoming due dates which can be a date, datetime, or ISO8601 string
DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Normalize due date input into a date (no time component).
    - Strings are parsed as ISO dates or datetimes; the time part is dropped.
    - Empty strings mean "no due date".
    - datetimes are truncated to their date.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s.replace("Z", "+00:00")).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use ISO8601 date or datetime string (e.g., '2025-01-31' or '2025-01-31T13:45:00')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _require_title(v: Optional[str]) -> str:
    if v is None:
        raise ValueError("title is required")
    s = v.strip()
    if not s:
        raise ValueError("title is required")
    return s


# PUBLIC_INTERFACE
def default_due_date() -> str:
    """Return tomorrow's local date as YYYY-MM-DD, the form's default due date."""
    return (date.today() + timedelta(days=1)).isoformat()


# PUBLIC_INTERFACE
class Task(BaseModel):
    """
    A task as the application sees it, translated from the store's record shape.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "title": "Complete the project proposal",
                "description": "Write up the initial draft for the client meeting",
                "completed": False,
                "due_date": "2025-02-01",
                "priority": "high",
                "tags": "work,client",
                "created_at": "2025-01-25T10:15:30",
            }
        }
    )

    id: int = Field(..., description="Store-assigned identifier")
    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(default=False, description="Completion status flag")
    due_date: Optional[date] = Field(default=None, description="Due date (date only)")
    priority: Priority = Field(default="medium", description="low, medium or high")
    tags: str = Field(default="", description="Comma-separated labels")
    created_at: Optional[datetime] = Field(default=None, description="Creation timestamp assigned by the store")

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)

    @field_validator("priority", mode="before")
    @classmethod
    def normalize_priority(cls, v: Any) -> Any:
        # Rows created outside this app may carry no priority at all.
        if v is None or v == "":
            return "medium"
        return v.lower() if isinstance(v, str) else v

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: Any) -> str:
        if v is None:
            return ""
        if isinstance(v, (list, tuple)):
            return ",".join(str(t) for t in v)
        return str(v)

    @classmethod
    def from_record(cls, record: TaskRecord) -> "Task":
        """Build a Task from a record store row."""
        return cls(
            id=record["Id"],
            title=record.get("title") or record.get("Name") or "",
            description=record.get("description"),
            completed=bool(record.get("completed", False)),
            due_date=record.get("dueDate"),
            priority=record.get("priority") or "medium",
            tags=record.get("Tags") or "",
            created_at=record.get("CreatedOn"),
        )

    def tag_list(self) -> List[str]:
        return [t.strip() for t in self.tags.split(",") if t.strip()]


# PUBLIC_INTERFACE
class TaskDraft(BaseModel):
    """
    Fields sent when creating a task. The store assigns id and created_at.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "due_date": "2025-02-01",
                "priority": "medium",
                "tags": "home",
            }
        }
    )

    title: str = Field(..., description="Short title for the task")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    due_date: Optional[date] = Field(default=None, description="Due date; accepts ISO8601 date or datetime")
    priority: Priority = Field(default="medium", description="low, medium or high")
    tags: str = Field(default="", description="Comma-separated labels")

    @field_validator("title", mode="before")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> str:
        """Strip whitespace; reject empty titles."""
        return _require_title(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskFields(TaskDraft):
    """
    Full replacement of a task's updateable fields, completion flag included.
    """

    completed: bool = Field(default=False, description="Completion status flag")

    @classmethod
    def from_task(cls, task: Task, **overrides: Any) -> "TaskFields":
        data: Dict[str, Any] = {
            "title": task.title,
            "description": task.description,
            "due_date": task.due_date,
            "priority": task.priority,
            "tags": task.tags,
            "completed": task.completed,
        }
        data.update(overrides)
        return cls(**data)


# PUBLIC_INTERFACE
class DraftForm(BaseModel):
    """
    In-progress form state. Not validated until submit.
    """

    title: str = ""
    description: str = ""
    due_date: str = Field(default_factory=default_due_date, description="YYYY-MM-DD")
    priority: Priority = "medium"
    tags: str = ""


class DraftChanges(BaseModel):
    """Partial input changes applied to the draft form."""

    title: Optional[str] = None
    description: Optional[str] = None
    due_date: Optional[str] = None
    priority: Optional[Priority] = None
    tags: Optional[str] = None


class FormState(BaseModel):
    draft: DraftForm
    is_open: bool
    editing_id: Optional[int] = None
    is_validated: bool = True


class TaskListOut(BaseModel):
    tab: str
    tasks: List[Task]
    total: int
    completed: int
    loading: bool = False
    error: Optional[str] = None


class HomeView(BaseModel):
    user: Optional[Dict[str, Any]] = None
    dark_mode: bool = False
    tasks: TaskListOut
    form: FormState


class AuthCallbackIn(BaseModel):
    path: str = Field(..., description="Current browser path including query string")
    token: Optional[str] = Field(default=None, description="Token issued by the identity widget")


class AuthCallbackOut(BaseModel):
    navigate_to: str
    authenticated: bool
    user: Optional[Dict[str, Any]] = None


class ToastOut(BaseModel):
    level: str
    message: str
