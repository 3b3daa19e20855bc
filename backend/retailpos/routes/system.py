# backend/retailpos/routes/system.py
"""
System health endpoint.

Reports database reachability, session table state and whether the ledger
cache agrees with the movement ledger.
"""

import time
from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Product, SessionToken, User
from ..services import inventory_service
from retailpos.time_utils import utcnow

system_bp = Blueprint("system", __name__)


def _timed(check) -> dict:
    start_time = time.time()
    try:
        result = check()
    except SQLAlchemyError:
        current_app.logger.exception("Health check %s failed", check.__name__)
        db.session.rollback()
        result = {"status": "unhealthy", "error": "Database error"}
    result["latency_ms"] = round((time.time() - start_time) * 1000, 2)
    return result


def check_database_health() -> dict:
    return {
        "status": "healthy",
        "details": {
            "users": db.session.query(User).count(),
            "products": db.session.query(Product).count(),
        },
    }


def check_session_service_health() -> dict:
    now = utcnow()
    active_sessions = db.session.query(SessionToken).filter_by(is_revoked=False).count()
    expired_sessions = db.session.query(SessionToken).filter(
        SessionToken.expires_at < now,
        SessionToken.is_revoked.is_(False),
    ).count()
    return {
        "status": "healthy",
        "details": {
            "active_sessions": active_sessions,
            "expired_pending_cleanup": expired_sessions,
        },
    }


def check_ledger_health() -> dict:
    drift = inventory_service.find_ledger_drift()
    if drift:
        return {
            "status": "degraded",
            "warning": f"{len(drift)} product(s) with cached stock out of line with the ledger",
        }
    return {"status": "healthy"}


@system_bp.get("/health")
def health():
    """
    Returns:
    - 200: healthy or degraded (still operational)
    - 503: one or more checks unhealthy
    """
    start_time = time.time()

    checks = {
        "database": _timed(check_database_health),
        "session_service": _timed(check_session_service_health),
        "ledger": _timed(check_ledger_health),
    }

    statuses = {check["status"] for check in checks.values()}
    if "unhealthy" in statuses:
        overall_status, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall_status, http_status = "degraded", 200
    else:
        overall_status, http_status = "healthy", 200

    return {
        "status": overall_status,
        "timestamp": utcnow().isoformat() + "Z",
        "total_latency_ms": round((time.time() - start_time) * 1000, 2),
        "checks": checks,
    }, http_status
