"""Client-side memory of issued codes and of a previous approval."""

from __future__ import annotations

import json
import logging
from typing import List

from access_gate.storage import KeyValueStore

_LOGGER = logging.getLogger(__name__)

CODES_KEY = "accessCodes"
APPROVAL_KEY = "approvalStatus"
APPROVED_VALUE = "approved"


class LocalCodeStore:
    """Remembers codes across sessions on top of a key/value store.

    Storage problems never reach the caller: reads fall back to empty values
    and failed writes are logged and dropped.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store

    def load(self) -> List[str]:
        """Return saved codes in the order they were remembered."""
        try:
            raw = self._store.get(CODES_KEY)
        except Exception:
            _LOGGER.warning("Could not read saved access codes", exc_info=True)
            return []

        if raw is None:
            return []
        try:
            codes = json.loads(raw)
        except ValueError:
            _LOGGER.warning("Ignoring malformed saved access codes")
            return []
        if not isinstance(codes, list) or not all(isinstance(code, str) for code in codes):
            _LOGGER.warning("Ignoring malformed saved access codes")
            return []
        return codes

    def load_approval_flag(self) -> bool:
        """Return True if an earlier session saw its request approved."""
        try:
            return self._store.get(APPROVAL_KEY) == APPROVED_VALUE
        except Exception:
            _LOGGER.warning("Could not read saved approval status", exc_info=True)
            return False

    def remember(self, code: str) -> None:
        """Append a code to the saved list. Duplicates are kept."""
        codes = self.load()
        codes.append(code)
        try:
            self._store.set(CODES_KEY, json.dumps(codes))
        except Exception:
            _LOGGER.warning("Could not save access code %s", code, exc_info=True)

    def mark_approved(self) -> None:
        """Record that access was granted so later sessions skip polling."""
        try:
            self._store.set(APPROVAL_KEY, APPROVED_VALUE)
        except Exception:
            _LOGGER.warning("Could not save approval status", exc_info=True)
