from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from threading import RLock
from typing import Any, Dict, List, Optional

from .models import FetchParams, StoreResponse, WhereCondition
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class RecordStore(ABC):
    """
    Abstract contract for the hosted record store.

    Responses follow the hosted store's envelopes:
    - fetch: {"success": True, "data": [row, ...]}
    - create/update: {"success": bool, "results": [{"success": bool, "data": row}, ...]}
    - delete: {"success": bool, "results": [{"success": bool, "id": ...}, ...]}
    """

    @abstractmethod
    async def fetch_records(self, table: str, params: FetchParams) -> StoreResponse:
        """Return rows of `table` matching params.where, sorted by params.orderBy."""

    @abstractmethod
    async def create_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        """Insert params['records']; the store assigns Id and CreatedOn."""

    @abstractmethod
    async def update_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        """Replace the given fields of each record in params['records'], keyed by Id."""

    @abstractmethod
    async def delete_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        """Delete the rows listed in params['RecordIds']."""

    async def aclose(self) -> None:
        """Release network resources, if any."""


def _matches(row: Dict[str, Any], cond: WhereCondition) -> bool:
    value = row.get(cond["fieldName"])
    values = cond.get("values") or []
    operator = cond.get("operator", "ExactMatch")
    if operator == "ExactMatch":
        return value in values
    if operator == "Contains":
        haystack = str(value or "").lower()
        return any(str(v).lower() in haystack for v in values)
    raise ValueError(f"Unsupported operator: {operator}")


class InMemoryRecordStore(RecordStore):
    """
    Thread-safe in-process record store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._tables: Dict[str, Dict[int, Dict[str, Any]]] = {}
        self._next_id = 1

    def _now(self) -> str:
        return datetime.now().isoformat()

    def _table(self, table: str) -> Dict[int, Dict[str, Any]]:
        return self._tables.setdefault(table, {})

    def _allocate_id(self) -> int:
        with self._lock:
            i = self._next_id
            self._next_id += 1
            return i

    async def fetch_records(self, table: str, params: FetchParams) -> StoreResponse:
        with self._lock:
            rows: List[Dict[str, Any]] = list(self._table(table).values())

            for cond in params.get("where") or []:
                rows = [r for r in rows if _matches(r, cond)]

            # Apply sort keys last-to-first so the first key dominates; rows
            # without a value sort after those with one.
            for order in reversed(params.get("orderBy") or []):
                field = order["field"]
                descending = order.get("direction", "ASC").upper() == "DESC"
                present = [r for r in rows if r.get(field) is not None]
                missing = [r for r in rows if r.get(field) is None]
                present.sort(key=lambda r: r[field], reverse=descending)
                rows = present + missing

            fields = params.get("fields")
            if fields:
                rows = [{k: r.get(k) for k in fields} for r in rows]
            return {"success": True, "data": copy.deepcopy(rows)}

    async def create_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        results = []
        with self._lock:
            for record in params.get("records") or []:
                row = dict(record)
                row["Id"] = self._allocate_id()
                row["CreatedOn"] = self._now()
                self._table(table)[row["Id"]] = row
                results.append({"success": True, "data": copy.deepcopy(row)})
        logger.debug("Created %d record(s) in %s", len(results), table)
        return {"success": True, "results": results}

    async def update_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        results: List[Dict[str, Any]] = []
        with self._lock:
            rows = self._table(table)
            for record in params.get("records") or []:
                record_id = record.get("Id")
                existing = rows.get(record_id) if record_id is not None else None
                if existing is None:
                    results.append({"success": False, "message": f"Record {record_id} not found"})
                    continue
                # Id and CreatedOn are immutable once assigned
                updated = dict(existing)
                updated.update({k: v for k, v in record.items() if k not in {"Id", "CreatedOn"}})
                rows[record_id] = updated
                results.append({"success": True, "data": copy.deepcopy(updated)})
        return {"success": all(r["success"] for r in results), "results": results}

    async def delete_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        results: List[Dict[str, Any]] = []
        with self._lock:
            rows = self._table(table)
            for record_id in params.get("RecordIds") or []:
                removed = rows.pop(record_id, None) is not None
                results.append({"success": removed, "id": record_id})
        return {"success": bool(results) and all(r["success"] for r in results), "results": results}


# PUBLIC_INTERFACE
def get_record_store(settings: Optional[Settings] = None) -> RecordStore:
    """
    Factory to return the configured record store based on settings.
    - memory: InMemoryRecordStore
    - remote: HttpRecordStore (requires RECORD_STORE_URL)
    """
    if settings is None:
        settings = get_settings()
    if settings.persistence_backend == "remote":
        from .http_store import HttpRecordStore

        return HttpRecordStore.from_settings(settings)
    return InMemoryRecordStore()
