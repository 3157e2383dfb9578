"""Data types for access requests and client session state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class RequestStatus(str, Enum):
    """Lifecycle of an access request as stored remotely."""
    PENDING = "pending"
    APPROVED = "approved"


@dataclass(frozen=True)
class AccessRequest:
    """One request for access, identified by its five digit code."""
    code: str
    status: RequestStatus
    created_at: datetime

    @classmethod
    def pending(cls, code: str, created_at: datetime) -> "AccessRequest":
        return cls(code=code, status=RequestStatus.PENDING, created_at=created_at)

    def to_document(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "status": self.status.value,
            "created_at": self.created_at,
        }


@dataclass
class SessionState:
    """What one client view knows about its request.

    Lives only in memory and is thrown away when the view is closed.
    """
    active_code: Optional[str] = None
    submitting: bool = False
    last_error: Optional[str] = None
    saved_codes: List[str] = field(default_factory=list)
    approved: bool = False
