# Overview: Flask API routes for the activity log.

from flask import Blueprint, request, jsonify

from ..services import audit_service, session_service
from ..validation import ValidationError
from ..decorators import require_auth, require_permission


logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")


def _page_args() -> dict:
    return {
        "page": request.args.get("page", default=1, type=int),
        "limit": request.args.get("limit", default=50, type=int),
    }


@logs_bp.get("")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def list_logs_route():
    """Query: page, limit, action, user_id, date (YYYY-MM-DD)."""
    try:
        result = audit_service.get_logs(
            **_page_args(),
            action=request.args.get("action"),
            user_id=request.args.get("user_id", type=int),
            date=request.args.get("date"),
        )
        return jsonify(result), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@logs_bp.get("/stats")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def log_stats_route():
    return jsonify(audit_service.get_log_stats()), 200


@logs_bp.get("/users/<int:user_id>")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def user_logs_route(user_id: int):
    try:
        return jsonify(audit_service.get_logs(**_page_args(), user_id=user_id)), 200
    except ValidationError as e:
        return jsonify({"error": str(e)}), 400


@logs_bp.get("/sessions")
@require_auth
@require_permission("VIEW_AUDIT_LOG")
def active_sessions_route():
    sessions = session_service.list_active_sessions()
    return jsonify({"active_sessions": sessions, "total": len(sessions)}), 200
