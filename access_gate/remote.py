"""The remote request store as seen by the client workflow."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol

import httpx
from pymongo.database import Database

from access_gate.errors import RemoteStoreError, RequestNotFound
from access_gate.models import AccessRequest, RequestStatus
from access_gate.services import request_service

DEFAULT_HTTP_TIMEOUT = 10.0


class RemoteRequestStore(Protocol):
    """Durable store of access requests shared with the approver."""

    async def insert_request(self, request: AccessRequest) -> None:
        """Persist a new request. Raises RemoteStoreError on failure."""
        ...

    async def get_status(self, code: str) -> RequestStatus:
        """Return the status for a code.

        Raises RequestNotFound when no request exists and RemoteStoreError
        when the store cannot be read.
        """
        ...


class MongoRequestStore:
    """RemoteRequestStore backed by the request service.

    pymongo is blocking, so each call runs in a worker thread and the event
    loop keeps ticking while a request is in flight. With no database given
    the service falls back to its configured backend.
    """

    def __init__(self, db: Optional[Database] = None) -> None:
        self._db = db

    async def insert_request(self, request: AccessRequest) -> None:
        await asyncio.to_thread(
            request_service.insert_request,
            request.code,
            request.created_at,
            self._db,
        )

    async def get_status(self, code: str) -> RequestStatus:
        return await asyncio.to_thread(request_service.get_status, code, self._db)


class HttpRequestStore:
    """RemoteRequestStore that talks to the access gate HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def insert_request(self, request: AccessRequest) -> None:
        try:
            async with self._client() as client:
                response = await client.post("/api/access-requests", json={"code": request.code})
                response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteStoreError(f"Failed to insert access request {request.code}: {exc}") from exc

    async def get_status(self, code: str) -> RequestStatus:
        try:
            async with self._client() as client:
                response = await client.get(f"/api/access-requests/{code}")
                if response.status_code == 404:
                    raise RequestNotFound(code)
                response.raise_for_status()
                payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise RemoteStoreError(f"Failed to read status for {code}: {exc}") from exc

        try:
            return RequestStatus(payload.get("status"))
        except (AttributeError, ValueError) as exc:
            raise RemoteStoreError(f"Unexpected status payload for {code}: {payload!r}") from exc
