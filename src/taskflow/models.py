from __future__ import annotations

from typing import Any, Dict, List, Optional, TypedDict

# Table holding task rows in the hosted record store.
TASK_TABLE = "task"

# Fields requested on every task fetch, in store naming.
TASK_FIELDS = ["Id", "Name", "title", "description", "completed", "dueDate", "priority", "Tags", "CreatedOn"]


# PUBLIC_INTERFACE
class TaskRecord(TypedDict, total=False):
    """
    A task row as the record store sends and receives it.

    Fields:
    - Id: store-assigned integer identifier
    - Name: display name, kept equal to title
    - title: short title
    - description: optional detailed description
    - completed: completion flag
    - dueDate: ISO8601 date string (YYYY-MM-DD)
    - priority: 'low' | 'medium' | 'high'
    - Tags: comma-separated labels
    - CreatedOn: ISO8601 creation timestamp assigned by the store
    """

    Id: int
    Name: str
    title: str
    description: Optional[str]
    completed: bool
    dueDate: Optional[str]
    priority: str
    Tags: str
    CreatedOn: str


class WhereCondition(TypedDict):
    """A single field/operator/values filter understood by the record store."""

    fieldName: str
    operator: str  # ExactMatch | Contains
    values: List[Any]


class OrderBy(TypedDict):
    field: str
    direction: str  # ASC | DESC


class FetchParams(TypedDict, total=False):
    fields: List[str]
    where: List[WhereCondition]
    orderBy: List[OrderBy]


StoreResponse = Dict[str, Any]
