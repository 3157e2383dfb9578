"""Tests for polling the remote store until a request is approved."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from access_gate.errors import RemoteStoreError, RequestNotFound  # noqa: E402
from access_gate.models import RequestStatus  # noqa: E402
from access_gate.reconciler import (  # noqa: E402
    POLL_INTERVAL_MS,
    PollingReconciler,
    ReconcilerState,
)
from access_gate.services.local_code_store import LocalCodeStore  # noqa: E402

PENDING = RequestStatus.PENDING
APPROVED = RequestStatus.APPROVED


class Completion:
    def __init__(self):
        self.calls = 0

    def __call__(self):
        self.calls += 1


def make_reconciler(request_store, kv_store, scheduler):
    completion = Completion()
    local_codes = LocalCodeStore(kv_store)
    reconciler = PollingReconciler(request_store, local_codes, scheduler, completion)
    return reconciler, completion, local_codes


def test_pending_then_approved_scenario(request_store, kv_store, scheduler):
    reconciler, completion, local_codes = make_reconciler(request_store, kv_store, scheduler)
    request_store.statuses["40231"] = PENDING
    request_store.script("40231", PENDING, PENDING, PENDING, APPROVED)

    async def scenario():
        assert reconciler.start() is ReconcilerState.IDLE
        await reconciler.watch("40231")
        assert reconciler.state is ReconcilerState.AWAITING_APPROVAL

        await scheduler.tick()
        await scheduler.tick()
        assert completion.calls == 0

        await scheduler.tick()
        assert reconciler.state is ReconcilerState.APPROVED

        assert await scheduler.tick() == 0

    asyncio.run(scenario())

    assert request_store.reads == ["40231"] * 4
    assert completion.calls == 1
    assert local_codes.load_approval_flag() is True
    assert scheduler.jobs[0][1] == POLL_INTERVAL_MS / 1000 == 5
    assert scheduler.active_jobs == []


def test_idle_reconciler_does_not_poll(request_store, kv_store, scheduler):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)

    reconciler.start()
    asyncio.run(reconciler.check())

    assert reconciler.state is ReconcilerState.IDLE
    assert request_store.reads == []
    assert scheduler.jobs == []
    assert completion.calls == 0


def test_persisted_flag_completes_without_reading(request_store, kv_store, scheduler):
    LocalCodeStore(kv_store).mark_approved()
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)

    assert reconciler.start() is ReconcilerState.APPROVED
    assert completion.calls == 1

    asyncio.run(reconciler.watch("40231"))

    assert request_store.reads == []
    assert scheduler.jobs == []
    assert completion.calls == 1


def test_approval_fires_callback_once(request_store, kv_store, scheduler):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)
    request_store.approve("40231")

    async def scenario():
        await reconciler.watch("40231")
        # overlapping reads that both saw the approval
        await asyncio.gather(reconciler.check(), reconciler.check())

    asyncio.run(scenario())

    assert reconciler.state is ReconcilerState.APPROVED
    assert completion.calls == 1
    assert scheduler.jobs == []


def test_slow_reads_that_overlap_complete_once(kv_store, scheduler):
    class SlowStore:
        def __init__(self):
            self.reads = 0
            self.gate = None

        async def get_status(self, code):
            self.reads += 1
            await self.gate.wait()
            return APPROVED

    store = SlowStore()
    reconciler, completion, _ = make_reconciler(store, kv_store, scheduler)

    async def scenario():
        store.gate = asyncio.Event()
        reconciler.active_code = "40231"
        reconciler.state = ReconcilerState.AWAITING_APPROVAL
        first = asyncio.ensure_future(reconciler.check())
        second = asyncio.ensure_future(reconciler.check())
        await asyncio.sleep(0)
        store.gate.set()
        await asyncio.gather(first, second)

    asyncio.run(scenario())

    assert store.reads == 2
    assert completion.calls == 1


def test_poll_failures_are_logged_and_polling_continues(request_store, kv_store, scheduler, caplog):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)
    request_store.script(
        "40231",
        RemoteStoreError("connection reset"),
        RequestNotFound("40231"),
        ValueError("bad payload"),
        APPROVED,
    )

    async def scenario():
        await reconciler.watch("40231")
        await scheduler.tick()
        await scheduler.tick()
        assert reconciler.state is ReconcilerState.AWAITING_APPROVAL
        await scheduler.tick()

    with caplog.at_level(logging.WARNING, logger="access_gate.reconciler"):
        asyncio.run(scenario())

    assert reconciler.state is ReconcilerState.APPROVED
    assert completion.calls == 1
    assert caplog.text.count("Error checking status") == 3


def test_close_cancels_polling(request_store, kv_store, scheduler):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)
    request_store.statuses["40231"] = PENDING

    async def scenario():
        await reconciler.watch("40231")
        assert len(scheduler.active_jobs) == 1

        reconciler.close()
        assert scheduler.active_jobs == []

        request_store.approve("40231")
        assert await scheduler.tick() == 0
        await reconciler.check()

    asyncio.run(scenario())

    assert reconciler.closed
    assert completion.calls == 0
    assert request_store.reads == ["40231"]


def test_read_in_flight_during_close_is_ignored(kv_store, scheduler):
    class SlowStore:
        def __init__(self):
            self.gate = None

        async def get_status(self, code):
            await self.gate.wait()
            return APPROVED

    store = SlowStore()
    reconciler, completion, local_codes = make_reconciler(store, kv_store, scheduler)

    async def scenario():
        store.gate = asyncio.Event()
        watching = asyncio.ensure_future(reconciler.watch("40231"))
        await asyncio.sleep(0)
        reconciler.close()
        store.gate.set()
        await watching

    asyncio.run(scenario())

    assert completion.calls == 0
    assert local_codes.load_approval_flag() is False
    assert scheduler.jobs == []


def test_switching_codes_restarts_polling(request_store, kv_store, scheduler):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)
    request_store.statuses["11111"] = PENDING
    request_store.statuses["22222"] = PENDING

    async def scenario():
        await reconciler.watch("11111")
        await reconciler.watch("22222")
        assert len(scheduler.active_jobs) == 1

        await scheduler.tick()
        request_store.approve("11111")
        await scheduler.tick()
        assert reconciler.state is ReconcilerState.AWAITING_APPROVAL

        request_store.approve("22222")
        await scheduler.tick()

    asyncio.run(scenario())

    assert request_store.reads == ["11111", "22222", "22222", "22222", "22222"]
    assert reconciler.active_code == "22222"
    assert completion.calls == 1


def test_flag_written_by_another_session_completes(request_store, kv_store, scheduler):
    reconciler, completion, _ = make_reconciler(request_store, kv_store, scheduler)
    request_store.statuses["40231"] = PENDING

    async def scenario():
        await reconciler.watch("40231")
        LocalCodeStore(kv_store).mark_approved()
        await scheduler.tick()

    asyncio.run(scenario())

    assert reconciler.state is ReconcilerState.APPROVED
    assert completion.calls == 1
    assert request_store.reads == ["40231"]
