"""HTTP adapter for the hosted record store.

One request per operation, no retries. httpx failures are translated into the
RecordStoreError family so callers never see transport-specific exceptions.
"""

from __future__ import annotations

import logging
import types
from typing import Any, Dict, Optional

import httpx

from .exceptions import (
    RecordStoreError,
    RecordStoreHTTPError,
    RecordStoreNetworkError,
    RecordStoreTimeoutError,
)
from .models import FetchParams, StoreResponse
from .record_store import RecordStore
from .settings import Settings

logger = logging.getLogger(__name__)

_HTTP_NO_CONTENT = 204


class HttpRecordStore(RecordStore):
    """Record store backed by the hosted record API."""

    def __init__(
        self,
        base_url: str,
        project_id: Optional[str] = None,
        public_key: Optional[str] = None,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._project_id = project_id
        self._public_key = public_key
        self._timeout = timeout
        self._transport = transport
        self._http_client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "HttpRecordStore":
        if not settings.record_store_url:
            raise ValueError("RECORD_STORE_URL is required when PERSISTENCE_BACKEND=remote")
        return cls(
            base_url=settings.record_store_url,
            project_id=settings.record_store_project_id,
            public_key=settings.record_store_public_key,
            timeout=settings.http_timeout_seconds,
        )

    def __repr__(self) -> str:
        return f"HttpRecordStore(base_url='{self._base_url}', public_key='***redacted***')"

    async def __aenter__(self) -> "HttpRecordStore":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[types.TracebackType],
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            headers = {"Content-Type": "application/json"}
            if self._project_id:
                headers["X-Project-Id"] = self._project_id
            if self._public_key:
                headers["X-Public-Key"] = self._public_key
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                timeout=httpx.Timeout(self._timeout),
                headers=headers,
                transport=self._transport,
            )
        return self._http_client

    async def _request(self, method: str, path: str, body: Dict[str, Any]) -> StoreResponse:
        logger.debug("Record store request: %s %s", method, path)
        try:
            response = await self._get_http_client().request(method, path, json=body)
            response.raise_for_status()
        except httpx.HTTPStatusError as error:
            status_code = error.response.status_code
            logger.error("Record store answered %s for %s %s", status_code, method, path)
            raise RecordStoreHTTPError(status_code) from error
        except httpx.TimeoutException as error:
            logger.exception("Record store request timed out: %s %s", method, path)
            raise RecordStoreTimeoutError from error
        except httpx.TransportError as error:
            logger.exception("Network error talking to record store: %s %s", method, path)
            raise RecordStoreNetworkError from error

        if response.status_code == _HTTP_NO_CONTENT:
            return {"success": True}
        try:
            result = response.json()
        except ValueError as error:
            raise RecordStoreError.create_parse_error(path, method) from error
        if not isinstance(result, dict):
            raise RecordStoreError.create_parse_error(path, method)
        return result

    async def fetch_records(self, table: str, params: FetchParams) -> StoreResponse:
        return await self._request("POST", f"/tables/{table}/records/query", dict(params))

    async def create_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        return await self._request("POST", f"/tables/{table}/records", params)

    async def update_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        return await self._request("PUT", f"/tables/{table}/records", params)

    async def delete_record(self, table: str, params: Dict[str, Any]) -> StoreResponse:
        return await self._request("DELETE", f"/tables/{table}/records", params)
