"""Cancellable recurring tasks on the asyncio event loop."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Callable, List, Optional, Protocol, Set

_LOGGER = logging.getLogger(__name__)


class CancelToken:
    """Handle for a recurring task started by a scheduler."""

    def __init__(self) -> None:
        self.cancelled = False
        self._handle: Optional[asyncio.TimerHandle] = None

    def attach(self, handle: asyncio.TimerHandle) -> None:
        """Track the timer for the next run, cancelling it if already cancelled."""
        self._handle = handle
        if self.cancelled:
            handle.cancel()

    def cancel(self) -> None:
        self.cancelled = True
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class Scheduler(Protocol):
    """Starts and cancels callbacks that repeat on a fixed interval."""

    def start(self, interval: float, callback: Callable[[], Any]) -> CancelToken:
        ...

    def cancel(self, token: CancelToken) -> None:
        ...


class AsyncioScheduler:
    """Run ``callback`` every ``interval`` seconds on an asyncio loop.

    The first run happens one interval after ``start``. A callback that returns
    an awaitable is scheduled as a task and the cadence does not wait for it,
    so a slow run can overlap with the next one.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop
        self._tasks: Set[asyncio.Future] = set()

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def start(self, interval: float, callback: Callable[[], Any]) -> CancelToken:
        loop = self._get_loop()
        token = CancelToken()

        def _run() -> None:
            if token.cancelled:
                return
            token.attach(loop.call_later(interval, _run))
            try:
                result = callback()
            except Exception:
                _LOGGER.exception("Scheduled callback failed")
                return
            if inspect.isawaitable(result):
                task = asyncio.ensure_future(result)
                self._tasks.add(task)
                task.add_done_callback(self._task_done)

        token.attach(loop.call_later(interval, _run))
        return token

    def cancel(self, token: CancelToken) -> None:
        token.cancel()

    def _task_done(self, task: asyncio.Future) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            _LOGGER.error("Scheduled task failed", exc_info=exc)

    def pending_tasks(self) -> List[asyncio.Future]:
        """Return tasks started by scheduled callbacks that are still running."""
        return list(self._tasks)
