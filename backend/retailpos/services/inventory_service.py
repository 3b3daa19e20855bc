# Overview: Service-layer operations for stock; the movement ledger and cached stock.

"""
Inventory invariants

- Product.stock_cached is the authoritative on-hand quantity for tracked
  products (NULL = not tracked). It is read directly, never replayed on the
  hot path.
- stock_cached changes only in the same DB transaction that appends a
  StockMovement row (IN = +quantity, OUT = -quantity).
- The ledger is append-only; movements are never updated or deleted.
- Cached stock may never go negative.
- find_ledger_drift() compares the cache with a ledger replay and only
  reports; it never rewrites stock_cached.
"""

from __future__ import annotations

from sqlalchemy import case, func

from ..extensions import db
from ..models import Product, StockMovement
from ..models.inventory import MOVEMENT_IN, MOVEMENT_OUT
from ..validation import (
    ValidationError,
    ConflictError,
    NotFoundError,
    enforce_rules_stock_adjust,
    enforce_rules_stock_receive,
)
from . import audit_service
from .concurrency import atomic, lock_for_update, run_with_retry

MAX_MOVEMENTS_PAGE = 500


def _signed_quantity():
    return case(
        (StockMovement.type == MOVEMENT_IN, StockMovement.quantity),
        else_=-StockMovement.quantity,
    )


def _get_locked_product(product_id: int) -> Product:
    product = (
        lock_for_update(db.session.query(Product).filter(Product.id == product_id))
        .populate_existing()
        .first()
    )
    if not product:
        raise NotFoundError("Product not found")
    if not product.is_active:
        raise ValidationError("Product is inactive")
    return product


def append_movement(
    product: Product,
    *,
    movement_type: str,
    quantity: int,
    user_id: int | None,
    note: str | None = None,
) -> StockMovement:
    """Append one ledger row and move the cache with it. No commit."""
    if not product.tracks_stock:
        raise ValidationError("Product does not track stock")
    current = product.stock_cached
    signed = quantity if movement_type == MOVEMENT_IN else -quantity
    if current + signed < 0:
        raise ConflictError(
            f"Stock cannot go negative (available {current}, requested {quantity})"
        )

    movement = StockMovement(
        product_id=product.id,
        type=movement_type,
        quantity=quantity,
        note=note,
        created_by_user_id=user_id,
    )
    db.session.add(movement)
    product.stock_cached = current + signed
    return movement


def receive_stock(*, product_id: int, quantity: int, user_id: int | None, note: str | None = None) -> dict:
    """Record incoming stock: one IN movement plus the cached increment."""
    enforce_rules_stock_receive(quantity)

    def _op():
        with atomic():
            product = _get_locked_product(product_id)
            movement = append_movement(
                product,
                movement_type=MOVEMENT_IN,
                quantity=quantity,
                user_id=user_id,
                note=note,
            )
            db.session.flush()
            return product, movement

    product, movement = run_with_retry(_op)
    audit_service.record(
        user_id,
        audit_service.RECEIVE_STOCK,
        f"+{quantity}" + (f" ({note})" if note else ""),
        product_id=product.id,
        product_sku=product.sku,
    )
    return {"product": product.to_dict(), "movement": movement.to_dict()}


def adjust_stock(*, product_id: int, quantity_delta: int, user_id: int | None, note: str | None = None) -> dict:
    """
    Manual correction (shrink, count differences).

    Positive deltas become IN movements, negative deltas OUT movements.
    Refuses to take cached stock below zero.
    """
    enforce_rules_stock_adjust(quantity_delta)

    def _op():
        with atomic():
            product = _get_locked_product(product_id)
            movement = append_movement(
                product,
                movement_type=MOVEMENT_IN if quantity_delta > 0 else MOVEMENT_OUT,
                quantity=abs(quantity_delta),
                user_id=user_id,
                note=note,
            )
            db.session.flush()
            return product, movement

    product, movement = run_with_retry(_op)
    audit_service.record(
        user_id,
        audit_service.ADJUST_STOCK,
        f"{quantity_delta:+d}" + (f" ({note})" if note else ""),
        product_id=product.id,
        product_sku=product.sku,
    )
    return {"product": product.to_dict(), "movement": movement.to_dict()}


def list_movements(*, product_id: int, limit: int = 200) -> list[dict]:
    if limit < 1 or limit > MAX_MOVEMENTS_PAGE:
        raise ValidationError(f"limit must be between 1 and {MAX_MOVEMENTS_PAGE}")
    if not db.session.get(Product, product_id):
        raise NotFoundError("Product not found")

    rows = (
        db.session.query(StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )
    return [row.to_dict() for row in rows]


def ledger_quantity(product_id: int) -> int:
    """Replay the ledger: SUM(IN) - SUM(OUT)."""
    total = (
        db.session.query(func.coalesce(func.sum(_signed_quantity()), 0))
        .filter(StockMovement.product_id == product_id)
        .scalar()
    )
    return int(total or 0)


def find_ledger_drift() -> list[dict]:
    """Tracked products whose cached stock differs from the ledger replay."""
    ledger = (
        db.session.query(
            StockMovement.product_id.label("product_id"),
            func.sum(_signed_quantity()).label("quantity"),
        )
        .group_by(StockMovement.product_id)
        .subquery()
    )

    rows = (
        db.session.query(Product, func.coalesce(ledger.c.quantity, 0))
        .outerjoin(ledger, ledger.c.product_id == Product.id)
        .filter(Product.stock_cached.isnot(None))
        .order_by(Product.id)
        .all()
    )

    return [
        {
            "product_id": product.id,
            "sku": product.sku,
            "stock_cached": product.stock_cached,
            "ledger_quantity": int(ledger_qty),
            "difference": product.stock_cached - int(ledger_qty),
        }
        for product, ledger_qty in rows
        if product.stock_cached != int(ledger_qty)
    ]
