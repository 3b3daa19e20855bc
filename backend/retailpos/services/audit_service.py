# Overview: Activity log (audit sink) writes and queries.

"""
Activity Log Service

Audit entries are written AFTER the audited operation has committed, in
their own transaction. A failing audit write is logged and discarded; it
never surfaces to the caller and never undoes the audited operation.

Writes go through the per-app AuditDispatcher: a single background worker
when AUDIT_ASYNC is on, inline in the caller's app context otherwise.
"""

from __future__ import annotations

import math
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import ActivityLog, User
from ..validation import ValidationError
from retailpos.time_utils import local_day_start, parse_iso_datetime, utcnow


LOGIN = "LOGIN"
LOGOUT = "LOGOUT"
CREATE_PRODUCT = "CREATE_PRODUCT"
UPDATE_PRODUCT = "UPDATE_PRODUCT"
DELETE_PRODUCT = "DELETE_PRODUCT"
VIEW_PRODUCT = "VIEW_PRODUCT"
CREATE_USER = "CREATE_USER"
UPDATE_USER = "UPDATE_USER"
DELETE_USER = "DELETE_USER"
CREATE_SALE = "CREATE_SALE"
RECEIVE_STOCK = "RECEIVE_STOCK"
ADJUST_STOCK = "ADJUST_STOCK"

ACTIONS = (
    LOGIN,
    LOGOUT,
    CREATE_PRODUCT,
    UPDATE_PRODUCT,
    DELETE_PRODUCT,
    VIEW_PRODUCT,
    CREATE_USER,
    UPDATE_USER,
    DELETE_USER,
    CREATE_SALE,
    RECEIVE_STOCK,
    ADJUST_STOCK,
)

MAX_PAGE_SIZE = 200


class AuditDispatcher:
    """Runs activity log writes for one Flask app."""

    def __init__(self, app, *, asynchronous: bool = True):
        self._app = app
        self._executor = (
            ThreadPoolExecutor(max_workers=1, thread_name_prefix="audit")
            if asynchronous else None
        )

    @property
    def asynchronous(self) -> bool:
        return self._executor is not None

    def submit(self, entry: dict) -> None:
        if self._executor is None:
            self._write(entry)
            return
        self._executor.submit(self._run, entry)

    def _run(self, entry: dict) -> None:
        with self._app.app_context():
            self._write(entry)

    def _write(self, entry: dict) -> None:
        try:
            db.session.add(ActivityLog(**entry))
            db.session.commit()
        except Exception:
            db.session.rollback()
            self._app.logger.exception(
                "Discarding activity log entry action=%s user_id=%s",
                entry.get("action"),
                entry.get("user_id"),
            )

    def shutdown(self, wait: bool = True) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=wait)


def init_app(app) -> AuditDispatcher:
    dispatcher = AuditDispatcher(app, asynchronous=app.config.get("AUDIT_ASYNC", True))
    app.extensions["audit_dispatcher"] = dispatcher
    return dispatcher


def record(
    actor_user_id: int | None,
    action: str,
    details: str | None = None,
    *,
    product_id: int | None = None,
    product_sku: str | None = None,
) -> None:
    """Fire-and-forget audit entry. Never raises."""
    try:
        entry = {
            "user_id": actor_user_id,
            "action": action,
            "details": details,
            "product_id": product_id,
            "product_sku": product_sku,
            "occurred_at": utcnow(),
        }
        dispatcher = current_app.extensions.get("audit_dispatcher")
        if dispatcher is None:
            current_app.logger.warning("Audit dispatcher not configured; dropping %s", action)
            return
        dispatcher.submit(entry)
    except Exception:
        current_app.logger.exception("Failed to dispatch activity log entry %s", action)


def _day_range(value: str):
    start = parse_iso_datetime(value)
    if start is None:
        raise ValidationError("date must be an ISO-8601 date")
    start = start.replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=1)


def get_logs(
    *,
    page: int = 1,
    limit: int = 50,
    action: str | None = None,
    user_id: int | None = None,
    date: str | None = None,
) -> dict:
    """Paginated activity log, newest first."""
    if page < 1:
        raise ValidationError("page must be >= 1")
    if limit < 1 or limit > MAX_PAGE_SIZE:
        raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")

    q = db.session.query(ActivityLog)
    if action:
        q = q.filter(ActivityLog.action == action.strip().upper())
    if user_id is not None:
        q = q.filter(ActivityLog.user_id == user_id)
    if date:
        try:
            start, end = _day_range(date)
        except ValueError as e:
            raise ValidationError(str(e))
        q = q.filter(ActivityLog.occurred_at >= start, ActivityLog.occurred_at < end)

    total = q.count()
    rows = (
        q.order_by(ActivityLog.occurred_at.desc(), ActivityLog.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "logs": [row.to_dict() for row in rows],
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": math.ceil(total / limit) if total else 0,
    }


def get_log_stats() -> dict:
    today_start = local_day_start(current_app.config["STORE_TIMEZONE"])

    total_logs = db.session.query(func.count(ActivityLog.id)).scalar() or 0
    today_logs = (
        db.session.query(func.count(ActivityLog.id))
        .filter(ActivityLog.occurred_at >= today_start)
        .scalar()
        or 0
    )
    unique_users = (
        db.session.query(func.count(func.distinct(ActivityLog.user_id)))
        .filter(ActivityLog.user_id.isnot(None))
        .scalar()
        or 0
    )

    most_active = (
        db.session.query(ActivityLog.user_id, func.count(ActivityLog.id).label("n"))
        .filter(ActivityLog.user_id.isnot(None))
        .group_by(ActivityLog.user_id)
        .order_by(func.count(ActivityLog.id).desc(), ActivityLog.user_id.asc())
        .first()
    )
    most_active_user = None
    if most_active:
        user = db.session.get(User, most_active.user_id)
        most_active_user = {
            "user": user.to_summary() if user else {"id": most_active.user_id},
            "count": most_active.n,
        }

    return {
        "total_logs": total_logs,
        "today_logs": today_logs,
        "unique_users": unique_users,
        "most_active_user": most_active_user,
    }
