# Overview: Read-side sales queries, daily summaries and statistics.

"""
Sales reporting.

Visibility rule shared by every read: EMPLOYEE sees only their own sales;
ADMIN and MANAGER see all sales and may narrow to one user.

Date bounds are inclusive on Sale.created_at (UTC-naive). A bare calendar
date passed as `end` covers that whole day.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Sale, User
from ..permissions import is_elevated_role
from ..validation import ValidationError
from retailpos.time_utils import (
    end_of_day,
    is_date_only,
    local_day_start,
    local_month_start,
    parse_iso_datetime,
)
from .sales_service import SaleNotFoundError, _hydrated_query

TOP_N = 5
UNCATEGORIZED = "UNCATEGORIZED"


class ReportAccessError(Exception):
    """Raised when the acting role may not read a report."""
    def __init__(self, message: str = "Report requires ADMIN or MANAGER role", details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


def _parse_bound(value, field: str, *, upper: bool) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    try:
        dt = parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an ISO-8601 date or datetime")
    if dt is not None and upper and is_date_only(value):
        dt = end_of_day(dt)
    return dt


def _filtered_query(
    *,
    acting_user_role: str,
    acting_user_id: int,
    target_user_id: int | None,
    start,
    end,
):
    start_dt = _parse_bound(start, "start", upper=False)
    end_dt = _parse_bound(end, "end", upper=True)
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")

    q = _hydrated_query()
    if not is_elevated_role(acting_user_role):
        q = q.filter(Sale.user_id == acting_user_id)
    elif target_user_id is not None:
        q = q.filter(Sale.user_id == target_user_id)

    if start_dt is not None:
        q = q.filter(Sale.created_at >= start_dt)
    if end_dt is not None:
        q = q.filter(Sale.created_at <= end_dt)

    return q.order_by(Sale.created_at.desc(), Sale.id.desc())


def list_sales(
    *,
    acting_user_role: str,
    acting_user_id: int,
    target_user_id: int | None = None,
    start=None,
    end=None,
) -> list[dict]:
    """Hydrated sales visible to the acting user, newest first."""
    sales = _filtered_query(
        acting_user_role=acting_user_role,
        acting_user_id=acting_user_id,
        target_user_id=target_user_id,
        start=start,
        end=end,
    ).all()
    return [sale.to_dict(include_items=True) for sale in sales]


def get_visible_sale(sale_id: int, *, acting_user_role: str, acting_user_id: int) -> dict:
    sale = _hydrated_query().filter(Sale.id == sale_id).first()
    if not sale or (not is_elevated_role(acting_user_role) and sale.user_id != acting_user_id):
        raise SaleNotFoundError("Sale not found", {"sale_id": sale_id})
    return sale.to_dict(include_items=True)


def _top(counter: dict) -> list[dict]:
    # sorted() is stable, so equal quantities keep encounter order
    ranked = sorted(counter.values(), key=lambda entry: entry["quantity"], reverse=True)
    return ranked[:TOP_N]


def summarize_sales(
    *,
    acting_user_role: str,
    acting_user_id: int,
    target_user_id: int | None = None,
    start=None,
    end=None,
) -> list[dict]:
    """
    Daily summaries keyed by the UTC calendar date of each sale, newest date first.

    Each bucket: date, sales_count, total_amount_cents, items_sold,
    top_products, top_categories (top 5 by quantity) and sales_by_user
    (sorted by amount descending).
    """
    sales = _filtered_query(
        acting_user_role=acting_user_role,
        acting_user_id=acting_user_id,
        target_user_id=target_user_id,
        start=start,
        end=end,
    ).all()

    buckets: dict[str, dict] = {}
    for sale in sales:
        day = sale.created_at.date().isoformat()
        bucket = buckets.get(day)
        if bucket is None:
            bucket = buckets[day] = {
                "date": day,
                "sales_count": 0,
                "total_amount_cents": 0,
                "items_sold": 0,
                "products": {},
                "categories": {},
                "users": {},
            }

        bucket["sales_count"] += 1
        bucket["total_amount_cents"] += sale.total_cents

        user = bucket["users"].setdefault(sale.user_id, {
            "user_id": sale.user_id,
            "name": sale.user.name if sale.user else None,
            "count": 0,
            "amount_cents": 0,
        })
        user["count"] += 1
        user["amount_cents"] += sale.total_cents

        for item in sale.items:
            bucket["items_sold"] += item.quantity
            product = item.product

            entry = bucket["products"].setdefault(item.product_id, {
                "product_id": item.product_id,
                "name": product.name if product else None,
                "sku": product.sku if product else None,
                "quantity": 0,
            })
            entry["quantity"] += item.quantity

            category = product.category.name if product and product.category else UNCATEGORIZED
            entry = bucket["categories"].setdefault(category, {"name": category, "quantity": 0})
            entry["quantity"] += item.quantity

    summaries = []
    for bucket in buckets.values():
        products = bucket.pop("products")
        categories = bucket.pop("categories")
        users = bucket.pop("users")
        bucket["top_products"] = _top(products)
        bucket["top_categories"] = _top(categories)
        bucket["sales_by_user"] = sorted(users.values(), key=lambda u: u["amount_cents"], reverse=True)
        summaries.append(bucket)
    return summaries


def get_sales_stats(*, acting_user_role: str, now: datetime | None = None) -> dict:
    """
    Totals for all time, since local midnight and since the first of the
    local month (STORE_TIMEZONE), plus per-user counts and amounts.
    """
    if not is_elevated_role(acting_user_role):
        raise ReportAccessError()

    tz_name = current_app.config["STORE_TIMEZONE"]
    today_start = local_day_start(tz_name, now)
    month_start = local_month_start(tz_name, now)

    def _count_since(since: datetime | None) -> int:
        q = db.session.query(func.count(Sale.id))
        if since is not None:
            q = q.filter(Sale.created_at >= since)
        return q.scalar() or 0

    per_user = (
        db.session.query(
            User.id,
            User.name,
            User.email,
            func.count(Sale.id).label("count"),
            func.coalesce(func.sum(Sale.total_cents), 0).label("amount"),
        )
        .join(Sale, Sale.user_id == User.id)
        .group_by(User.id, User.name, User.email)
        .order_by(func.count(Sale.id).desc(), User.id.asc())
        .all()
    )

    return {
        "total_sales": _count_since(None),
        "today_sales": _count_since(today_start),
        "month_sales": _count_since(month_start),
        "sales_by_user": [
            {
                "user": {"id": row.id, "name": row.name, "email": row.email},
                "count": row.count,
                "amount_cents": int(row.amount),
            }
            for row in per_user
        ],
    }
