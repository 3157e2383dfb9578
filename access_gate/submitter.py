"""Issue new access requests or adopt a code the user already has."""

from __future__ import annotations

import logging
from typing import Callable, Optional

from access_gate.errors import SUBMIT_FAILED_MESSAGE, SubmitError, SubmitInProgress
from access_gate.models import AccessRequest, SessionState
from access_gate.remote import RemoteRequestStore
from access_gate.services.local_code_store import LocalCodeStore
from access_gate.utils.codes import generate_code, now_utc

_LOGGER = logging.getLogger(__name__)


class RequestSubmitter:
    """Turns a submit action into an active code for the session.

    Only one new request may be in flight at a time. Reusing an explicit code
    never talks to the remote store.
    """

    def __init__(
        self,
        store: RemoteRequestStore,
        local_codes: LocalCodeStore,
        state: SessionState,
        code_factory: Callable[[], str] = generate_code,
    ) -> None:
        self._store = store
        self._local_codes = local_codes
        self._state = state
        self._code_factory = code_factory

    async def submit(self, explicit_code: Optional[str] = None) -> str:
        """Return the code to poll for, issuing a new request if none is given.

        Any non-empty ``explicit_code`` is used exactly as typed.

        Raises:
            SubmitInProgress: another new request is still being sent
            SubmitError: the remote store rejected the new request
        """
        if explicit_code:
            self._activate(explicit_code)
            return explicit_code

        if self._state.submitting:
            raise SubmitInProgress()

        self._state.submitting = True
        self._state.last_error = None
        try:
            code = self._code_factory()
            await self._store.insert_request(AccessRequest.pending(code, now_utc()))
        except Exception as exc:
            _LOGGER.error("Error submitting access request", exc_info=True)
            self._state.last_error = SUBMIT_FAILED_MESSAGE
            raise SubmitError(SUBMIT_FAILED_MESSAGE) from exc
        finally:
            self._state.submitting = False

        _LOGGER.info("Submitted access request %s", code)
        self._activate(code)
        return code

    def _activate(self, code: str) -> None:
        self._state.active_code = code
        self._state.last_error = None
        self._local_codes.remember(code)
        self._state.saved_codes = self._local_codes.load()
