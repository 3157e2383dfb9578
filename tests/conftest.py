"""Shared pytest fixtures for the access gate tests."""

from __future__ import annotations

import inspect
import sys
from collections import defaultdict, deque
from pathlib import Path
from typing import Any, Callable, Deque, Dict, List, Tuple, Union

import mongomock
import pytest

# Ensure the application package is importable during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from access_gate import database  # noqa: E402
from access_gate.errors import RequestNotFound  # noqa: E402
from access_gate.models import AccessRequest, RequestStatus  # noqa: E402
from access_gate.storage import MemoryKeyValueStore, access_requests  # noqa: E402
from access_gate.utils.scheduler import CancelToken  # noqa: E402


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """Provide an isolated in-memory MongoDB database for each test."""
    test_db_name = "test_access_gate"
    monkeypatch.setenv("ENABLE_MONGODB", "true")
    monkeypatch.setenv("MONGODB_DATABASE", test_db_name)
    monkeypatch.delenv("ADMIN_TOKEN", raising=False)
    monkeypatch.delenv("ACCESS_GATE_API_URL", raising=False)

    client = mongomock.MongoClient()
    db = client[test_db_name]

    monkeypatch.setattr(database, "get_mongo_client", lambda: client)
    monkeypatch.setattr(database, "get_database", lambda: db)

    access_requests.clear()

    yield db

    client.drop_database(test_db_name)
    access_requests.clear()


class ManualScheduler:
    """Scheduler that only runs callbacks when a test says so."""

    def __init__(self) -> None:
        self.jobs: List[Tuple[CancelToken, float, Callable[[], Any]]] = []

    def start(self, interval: float, callback: Callable[[], Any]) -> CancelToken:
        token = CancelToken()
        self.jobs.append((token, interval, callback))
        return token

    def cancel(self, token: CancelToken) -> None:
        token.cancel()

    @property
    def active_jobs(self) -> List[Tuple[CancelToken, float, Callable[[], Any]]]:
        return [job for job in self.jobs if not job[0].cancelled]

    async def tick(self) -> int:
        """Fire every live job once, awaiting any coroutine it returns."""
        fired = 0
        for token, _, callback in list(self.jobs):
            if token.cancelled:
                continue
            result = callback()
            if inspect.isawaitable(result):
                await result
            fired += 1
        return fired


class FakeRequestStore:
    """RemoteRequestStore double that records calls.

    ``script(code, ...)`` queues statuses or exceptions returned by successive
    reads; once the queue is empty reads fall back to the stored status.
    """

    def __init__(self) -> None:
        self.inserted: List[AccessRequest] = []
        self.reads: List[str] = []
        self.statuses: Dict[str, RequestStatus] = {}
        self.insert_errors: Deque[Exception] = deque()
        self._scripts: Dict[str, Deque[Union[RequestStatus, Exception]]] = defaultdict(deque)

    def script(self, code: str, *responses: Union[RequestStatus, Exception]) -> None:
        self._scripts[code].extend(responses)

    def approve(self, code: str) -> None:
        self.statuses[code] = RequestStatus.APPROVED

    async def insert_request(self, request: AccessRequest) -> None:
        if self.insert_errors:
            raise self.insert_errors.popleft()
        self.inserted.append(request)
        self.statuses[request.code] = request.status

    async def get_status(self, code: str) -> RequestStatus:
        self.reads.append(code)
        if self._scripts[code]:
            response = self._scripts[code].popleft()
            if isinstance(response, Exception):
                raise response
            return response
        if code not in self.statuses:
            raise RequestNotFound(code)
        return self.statuses[code]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def request_store() -> FakeRequestStore:
    return FakeRequestStore()


@pytest.fixture
def kv_store() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()
