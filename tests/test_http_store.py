import json

import httpx
import pytest

from taskflow.exceptions import (
    RecordStoreError,
    RecordStoreHTTPError,
    RecordStoreNetworkError,
    RecordStoreTimeoutError,
)
from taskflow.http_store import HttpRecordStore
from taskflow.record_store import InMemoryRecordStore, get_record_store
from taskflow.services import TaskService
from taskflow.settings import Settings, get_settings

BASE_URL = "https://store.example/api"


def make_store(handler) -> HttpRecordStore:
    return HttpRecordStore(
        BASE_URL,
        project_id="proj-1",
        public_key="pk-secret",
        transport=httpx.MockTransport(handler),
    )


class TestRequests:
    @pytest.mark.asyncio
    async def test_fetch_posts_query(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "data": [{"Id": 1, "title": "A"}]})

        async with make_store(handler) as store:
            result = await store.fetch_records("task", {"fields": ["Id"], "orderBy": []})

        assert result["data"][0]["Id"] == 1
        (request,) = seen
        assert request.method == "POST"
        assert request.url.path == "/api/tables/task/records/query"
        assert request.headers["X-Project-Id"] == "proj-1"
        assert request.headers["X-Public-Key"] == "pk-secret"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content) == {"fields": ["Id"], "orderBy": []}

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "operation,method",
        [("create_record", "POST"), ("update_record", "PUT"), ("delete_record", "DELETE")],
    )
    async def test_mutations_use_record_endpoint(self, operation, method):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"success": True, "results": []})

        store = make_store(handler)
        await getattr(store, operation)("task", {"records": [{"Id": 3}]})
        await store.aclose()

        assert seen[0].method == method
        assert seen[0].url.path == "/api/tables/task/records"
        assert json.loads(seen[0].content) == {"records": [{"Id": 3}]}

    @pytest.mark.asyncio
    async def test_no_content_is_success(self):
        store = make_store(lambda request: httpx.Response(204))
        assert await store.delete_record("task", {"RecordIds": [1]}) == {"success": True}

    def test_repr_hides_key(self):
        store = make_store(lambda request: httpx.Response(200, json={}))
        assert "pk-secret" not in repr(store)
        assert "redacted" in repr(store)


class TestErrors:
    @pytest.mark.asyncio
    async def test_http_status_error(self):
        store = make_store(lambda request: httpx.Response(500, json={"message": "boom"}))
        with pytest.raises(RecordStoreHTTPError) as exc_info:
            await store.fetch_records("task", {})
        assert exc_info.value.status_code == 500

    @pytest.mark.asyncio
    async def test_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RecordStoreNetworkError):
            await make_store(handler).create_record("task", {"records": []})

    @pytest.mark.asyncio
    async def test_timeout_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(RecordStoreTimeoutError):
            await make_store(handler).fetch_records("task", {})

    @pytest.mark.asyncio
    async def test_unreadable_body(self):
        store = make_store(lambda request: httpx.Response(200, text="<html>oops</html>"))
        with pytest.raises(RecordStoreError, match="Failed to parse"):
            await store.fetch_records("task", {})

    @pytest.mark.asyncio
    async def test_non_object_body(self):
        store = make_store(lambda request: httpx.Response(200, json=[1, 2, 3]))
        with pytest.raises(RecordStoreError, match="Failed to parse"):
            await store.fetch_records("task", {})


class TestServiceOverHttp:
    @pytest.mark.asyncio
    async def test_fetch_tasks_parses_records(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": [
                        {
                            "Id": 7,
                            "title": "Remote",
                            "completed": True,
                            "dueDate": "2030-01-05T00:00:00Z",
                            "priority": None,
                            "Tags": "a,b",
                            "CreatedOn": "2029-12-01T10:00:00",
                        }
                    ],
                },
            )

        (task,) = await TaskService(make_store(handler)).fetch_tasks()
        assert task.id == 7
        assert task.completed is True
        assert task.due_date.isoformat() == "2030-01-05"
        assert task.priority == "medium"
        assert task.tag_list() == ["a", "b"]


class TestFactory:
    def test_memory_backend(self):
        assert isinstance(get_record_store(get_settings()), InMemoryRecordStore)

    def test_remote_backend_requires_url(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "remote")
        monkeypatch.delenv("RECORD_STORE_URL", raising=False)
        with pytest.raises(ValueError, match="RECORD_STORE_URL"):
            get_record_store(get_settings())

    def test_remote_backend(self, monkeypatch):
        monkeypatch.setenv("PERSISTENCE_BACKEND", "remote")
        monkeypatch.setenv("RECORD_STORE_URL", BASE_URL)
        settings: Settings = get_settings()
        assert isinstance(get_record_store(settings), HttpRecordStore)
