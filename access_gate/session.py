"""One client view of the access request workflow."""

from __future__ import annotations

from typing import Callable, Optional

from access_gate.models import SessionState
from access_gate.reconciler import PollingReconciler, ReconcilerState
from access_gate.remote import RemoteRequestStore
from access_gate.services.local_code_store import LocalCodeStore
from access_gate.storage import KeyValueStore
from access_gate.submitter import RequestSubmitter
from access_gate.utils.codes import generate_code
from access_gate.utils.scheduler import Scheduler


class AccessSession:
    """Wires the submitter, reconciler and local code store together."""

    def __init__(
        self,
        request_store: RemoteRequestStore,
        key_value_store: KeyValueStore,
        scheduler: Scheduler,
        on_access_granted: Callable[[], None],
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self.state = SessionState()
        self.local_codes = LocalCodeStore(key_value_store)
        self._on_access_granted = on_access_granted
        self.submitter = RequestSubmitter(
            request_store, self.local_codes, self.state, code_factory=code_factory
        )
        self.reconciler = PollingReconciler(
            request_store, self.local_codes, scheduler, self._access_granted
        )

    @property
    def reconciler_state(self) -> ReconcilerState:
        return self.reconciler.state

    def start(self) -> ReconcilerState:
        """Load saved codes and honour an approval from an earlier session."""
        self.state.saved_codes = self.local_codes.load()
        return self.reconciler.start()

    async def submit(self, code: Optional[str] = None) -> Optional[str]:
        """Send a new request (or adopt ``code``) and start polling for it.

        Once access has been granted, or after ``close``, nothing is sent and
        the current active code (possibly None) is returned unchanged.
        """
        if self.reconciler.closed or self.reconciler.state is ReconcilerState.APPROVED:
            return self.state.active_code

        active_code = await self.submitter.submit(code)
        await self.reconciler.watch(active_code)
        return active_code

    async def use_code(self, code: str) -> Optional[str]:
        """Poll for one of the saved codes again."""
        return await self.submit(code)

    def close(self) -> None:
        self.reconciler.close()

    def _access_granted(self) -> None:
        self.state.approved = True
        self._on_access_granted()
