"""Authorization helper for the admin routes."""

from __future__ import annotations

import os
import secrets
from typing import Any, Optional

from flask import jsonify, request


def require_admin() -> Optional[Any]:
    """Check the Bearer token against ADMIN_TOKEN.

    Returns an error response to send back, or None when the caller may
    proceed. Without ADMIN_TOKEN configured the admin routes are open.
    """
    expected = os.getenv("ADMIN_TOKEN")
    if not expected:
        return None

    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return jsonify(error="Missing authorization token."), 401

    token = auth_header[7:].strip()
    if not secrets.compare_digest(token, expected):
        return jsonify(error="Invalid admin token."), 401

    return None
