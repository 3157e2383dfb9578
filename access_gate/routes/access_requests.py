"""/api/access-requests routes used by clients waiting for approval."""

from __future__ import annotations

from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from access_gate.errors import RemoteStoreError, RequestNotFound
from access_gate.services import request_service
from access_gate.utils.codes import generate_code, is_access_code

bp = Blueprint("access_requests", __name__, url_prefix="/api/access-requests")


@bp.post("")
def create_access_request():
    """Store a pending request for the given code, or for a fresh one."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}
    provided_code = payload.get("code")

    if provided_code:
        code = str(provided_code).strip()
        if not is_access_code(code):
            return jsonify(error="Code must be five digits between 10000 and 99999."), 400
    else:
        code = generate_code()

    try:
        document = request_service.insert_request(code)
    except RemoteStoreError as e:
        current_app.logger.error(f"Failed to save access request: {e}")
        return jsonify(error="Your request could not be sent. Please try again."), 503

    return (
        jsonify(
            code=document["code"],
            status=document["status"],
            createdAt=document["created_at"].isoformat(),
        ),
        201,
    )


@bp.get("/<code>")
def get_access_request_status(code: str):
    """Return the status of the newest request for a code."""
    try:
        status = request_service.get_status(code)
    except RequestNotFound:
        return jsonify(error="Unknown access code."), 404
    except RemoteStoreError as e:
        current_app.logger.error(f"Failed to read access request status: {e}")
        return jsonify(error="Status is unavailable right now."), 503

    return jsonify(code=code, status=status.value), 200
