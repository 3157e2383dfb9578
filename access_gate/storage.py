"""Key/value stores for client state and in-memory server data."""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

# Access requests keyed by code, used when MongoDB is disabled.
# Each code maps to the list of documents inserted for it, oldest first.
access_requests: Dict[str, List[Dict[str, Any]]] = {}

DEFAULT_STATE_FILE = "~/.access_gate/state.json"


class KeyValueStore(Protocol):
    """String key/value persistence used for client-side state."""

    def get(self, key: str) -> Optional[str]:
        ...

    def set(self, key: str, value: str) -> None:
        ...


class MemoryKeyValueStore:
    """Key/value store that lives only as long as the process."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFileKeyValueStore:
    """Key/value store persisted as a single JSON object on disk.

    A missing, unreadable or undecodable file reads as empty and is
    replaced on the next write. Writes replace the file
    atomically so a crash never leaves half a document behind.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path).expanduser()

    def _read_all(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            return {}
        if not isinstance(data, dict):
            return {}
        return {k: v for k, v in data.items() if isinstance(v, str)}

    def get(self, key: str) -> Optional[str]:
        return self._read_all().get(key)

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value

        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".state-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(data, handle, indent=2)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


def default_state_file() -> Path:
    """Return the configured client state file path."""
    return Path(os.getenv("ACCESS_GATE_STATE_FILE", DEFAULT_STATE_FILE)).expanduser()
