"""Admin routes for reviewing and approving access requests."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request

from access_gate.errors import RemoteStoreError
from access_gate.models import RequestStatus
from access_gate.services import request_service
from access_gate.utils.auth import require_admin

bp = Blueprint("admin", __name__, url_prefix="/api/admin")


def _to_json(document: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(document)
    for key in ("created_at", "approved_at"):
        if isinstance(result.get(key), datetime):
            result[key] = result[key].isoformat()
    return result


@bp.get("/requests")
def list_access_requests():
    """List access requests, newest first."""
    error_response = require_admin()
    if error_response is not None:
        return error_response

    status_param = request.args.get("status")
    status = None
    if status_param:
        try:
            status = RequestStatus(status_param)
        except ValueError:
            return jsonify(error=f"Unknown status '{status_param}'."), 400

    try:
        documents = request_service.list_requests(status=status)
    except RemoteStoreError as e:
        current_app.logger.error(f"Failed to list access requests: {e}")
        return jsonify(error=str(e)), 500

    return jsonify(
        requests=[_to_json(doc) for doc in documents],
        total_count=len(documents),
    ), 200


@bp.post("/requests/<code>/approve")
def approve_access_request(code: str):
    """Flip every request with this code to approved."""
    error_response = require_admin()
    if error_response is not None:
        return error_response

    try:
        found = request_service.approve_request(code)
    except RemoteStoreError as e:
        current_app.logger.error(f"Failed to approve access request: {e}")
        return jsonify(error=str(e)), 500

    if not found:
        return jsonify(error="Unknown access code."), 404

    current_app.logger.info(f"Approved access request {code}")
    return jsonify(code=code, status=RequestStatus.APPROVED.value), 200


@bp.get("/stats")
def get_stats():
    """Get request counts by status."""
    error_response = require_admin()
    if error_response is not None:
        return error_response

    try:
        counts = request_service.count_by_status()
    except RemoteStoreError as e:
        return jsonify(error=str(e)), 500

    return jsonify({**counts, "total": sum(counts.values())}), 200
