"""Helpers for issuing access codes and timestamps."""

from __future__ import annotations

import re
import secrets
from datetime import datetime, timezone

CODE_MIN = 10000
CODE_MAX = 99999

_CODE_PATTERN = re.compile(r"[0-9]{5}")


def generate_code() -> str:
    """Return a random five digit access code between 10000 and 99999."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def is_access_code(value: object) -> bool:
    """Return True if ``value`` looks like an access code we would issue."""
    if not isinstance(value, str) or not _CODE_PATTERN.fullmatch(value):
        return False
    return CODE_MIN <= int(value) <= CODE_MAX


def now_utc() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)
