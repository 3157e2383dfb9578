"""Poll the remote store until the active code is approved."""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

from access_gate.errors import PollError
from access_gate.models import RequestStatus
from access_gate.remote import RemoteRequestStore
from access_gate.services.local_code_store import LocalCodeStore
from access_gate.utils.scheduler import CancelToken, Scheduler

_LOGGER = logging.getLogger(__name__)

# Time between status checks while a request is pending.
POLL_INTERVAL_MS = 5000


class ReconcilerState(str, Enum):
    IDLE = "idle"
    AWAITING_APPROVAL = "awaiting_approval"
    APPROVED = "approved"


class PollingReconciler:
    """
    Watches one access code at a time and reports approval exactly once.

    ``on_approved`` is called with no arguments the first time approval is
    seen, either from a status read or from an approval flag left by an
    earlier session. After that the reconciler stays in ``APPROVED`` and does
    no further work. Read failures are logged and the next tick simply tries
    again.
    """

    def __init__(
        self,
        store: RemoteRequestStore,
        local_codes: LocalCodeStore,
        scheduler: Scheduler,
        on_approved: Callable[[], None],
    ) -> None:
        self._store = store
        self._local_codes = local_codes
        self._scheduler = scheduler
        self._on_approved = on_approved

        self.state = ReconcilerState.IDLE
        self.active_code: Optional[str] = None
        self._token: Optional[CancelToken] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def start(self) -> ReconcilerState:
        """Complete straight away if an earlier session was approved."""
        if self._closed or self.state is ReconcilerState.APPROVED:
            return self.state

        if self._local_codes.load_approval_flag():
            _LOGGER.info("Access was approved in an earlier session")
            self._complete(persist=False)
        return self.state

    async def watch(self, code: str) -> ReconcilerState:
        """Make ``code`` the active code, check it now and then every interval."""
        if self._closed or self.state is ReconcilerState.APPROVED:
            return self.state

        self._cancel_polling()
        self.active_code = code
        self.state = ReconcilerState.AWAITING_APPROVAL
        _LOGGER.debug("Waiting for approval of %s", code)

        await self.check()

        if (
            self.state is ReconcilerState.AWAITING_APPROVAL
            and not self._closed
            and self.active_code == code
            and self._token is None
        ):
            self._token = self._scheduler.start(POLL_INTERVAL_MS / 1000, self.check)
        return self.state

    async def check(self) -> ReconcilerState:
        """Run a single reconciliation tick."""
        if self._closed or self.state is not ReconcilerState.AWAITING_APPROVAL:
            return self.state

        if self._local_codes.load_approval_flag():
            self._complete(persist=False)
            return self.state

        code = self.active_code
        try:
            status = await self._read_status(code)
        except PollError as exc:
            _LOGGER.warning("Error checking status: %s", exc)
            return self.state

        if code != self.active_code:
            _LOGGER.debug("Discarding status for %s, no longer the active code", code)
            return self.state

        if status is RequestStatus.APPROVED:
            self._complete()
        return self.state

    def close(self) -> None:
        """Stop polling. Reads still in flight are ignored when they return."""
        self._closed = True
        self._cancel_polling()

    async def _read_status(self, code: str) -> RequestStatus:
        try:
            return await self._store.get_status(code)
        except Exception as exc:
            raise PollError(code, exc) from exc

    def _complete(self, persist: bool = True) -> None:
        if self._closed or self.state is ReconcilerState.APPROVED:
            return

        self.state = ReconcilerState.APPROVED
        self._cancel_polling()
        if persist:
            self._local_codes.mark_approved()
        _LOGGER.info("Access approved for %s", self.active_code or "a previous code")
        self._on_approved()

    def _cancel_polling(self) -> None:
        if self._token is not None:
            self._scheduler.cancel(self._token)
            self._token = None
