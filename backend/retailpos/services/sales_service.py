"""
Sales Service - one-shot sale transaction engine

WHY: A sale, its line items, the stock decrements and the OUT movements
are written together or not at all. Stock is checked under a write lock so
two registers can never sell the same last unit.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from flask import current_app
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import joinedload, selectinload
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..models import Product, Sale, SaleItem, StockMovement, User
from ..models.inventory import MOVEMENT_OUT
from ..validation import ValidationError, coerce_int
from . import audit_service
from .concurrency import atomic, lock_for_update, run_with_retry
from .tax_service import compute_tax, parse_rate, rate_to_bps, round_half_up


class SaleError(Exception):
    """Raised for sale operation errors."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class SaleValidationError(SaleError):
    status_code = 400


class ProductNotFoundError(SaleError):
    status_code = 404

    def __init__(self, product_id: int):
        super().__init__(f"Product {product_id} not found", {"product_id": product_id})
        self.product_id = product_id


class InsufficientStockError(SaleError):
    status_code = 409

    def __init__(self, product_id: int, available: int, requested: int, details: dict | None = None):
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}",
            details or {"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class SaleNotFoundError(SaleError):
    status_code = 404


class SaleInternalError(SaleError):
    status_code = 500

    def __init__(self, message: str = "Failed to create sale"):
        super().__init__(message)


@dataclass(frozen=True)
class SaleItemInput:
    product_id: int
    quantity: int
    unit_price_cents: int | None
    discount_bps: int


def _parse_discount(value, index: int) -> int:
    """discount_percent (0..100, up to 2 decimals) -> basis points."""
    if value is None:
        return 0
    if isinstance(value, bool):
        raise SaleValidationError("discount_percent must be a number", {"index": index})
    try:
        percent = Decimal(str(value))
    except InvalidOperation:
        raise SaleValidationError("discount_percent must be a number", {"index": index})
    if not percent.is_finite() or percent < 0 or percent > 100:
        raise SaleValidationError("discount_percent must be between 0 and 100", {"index": index})
    bps = percent * 100
    if bps != bps.to_integral_value():
        raise SaleValidationError("discount_percent supports at most 2 decimal places", {"index": index})
    return int(bps)


def _parse_items(items) -> list[SaleItemInput]:
    if not isinstance(items, list) or not items:
        raise SaleValidationError("A sale needs at least one item")

    parsed = []
    for index, raw in enumerate(items):
        if not isinstance(raw, dict):
            raise SaleValidationError("Each item must be an object", {"index": index})
        try:
            product_id = coerce_int(raw.get("product_id"), "product_id")
            quantity = coerce_int(raw.get("quantity"), "quantity")
            unit_price = raw.get("unit_price_cents")
            if unit_price is not None:
                unit_price = coerce_int(unit_price, "unit_price_cents")
        except ValidationError as e:
            raise SaleValidationError(str(e), {"index": index})

        if quantity <= 0:
            raise SaleValidationError("quantity must be > 0", {"index": index})
        if unit_price is not None and unit_price < 0:
            raise SaleValidationError("unit_price_cents must be >= 0", {"index": index})

        parsed.append(SaleItemInput(
            product_id=product_id,
            quantity=quantity,
            unit_price_cents=unit_price,
            discount_bps=_parse_discount(raw.get("discount_percent"), index),
        ))
    return parsed


def line_total_cents(unit_price_cents: int, quantity: int, discount_bps: int) -> int:
    """round(unit_price * (1 - discount) * quantity), half-up."""
    final_unit = Decimal(unit_price_cents) * (Decimal(1) - Decimal(discount_bps) / Decimal(10000))
    return round_half_up(final_unit * quantity)


def _check_stock(items: list[SaleItemInput], products: dict[int, Product]) -> None:
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity

    insufficient = []
    for product_id, qty in requested.items():
        product = products[product_id]
        if product.tracks_stock and product.stock_cached < qty:
            insufficient.append({
                "product_id": product_id,
                "available": product.stock_cached,
                "requested": qty,
            })

    if insufficient:
        first = insufficient[0]
        raise InsufficientStockError(
            first["product_id"],
            first["available"],
            first["requested"],
            details={**first, "items": insufficient},
        )


def _load_locked_products(items: list[SaleItemInput]) -> dict[int, Product]:
    ids = sorted({item.product_id for item in items})
    rows = (
        lock_for_update(
            db.session.query(Product).filter(Product.id.in_(ids)).order_by(Product.id)
        )
        .populate_existing()
        .all()
    )
    products = {p.id: p for p in rows}

    for item in items:
        product = products.get(item.product_id)
        if product is None:
            raise ProductNotFoundError(item.product_id)
        if not product.is_active:
            raise SaleValidationError(
                f"Product {product.id} is inactive",
                {"product_id": product.id},
            )
    return products


def _insert_sale(
    items: list[SaleItemInput],
    products: dict[int, Product],
    *,
    acting_user_id: int,
    tax_included: bool,
    rate: Decimal,
) -> Sale:
    lines = []
    for item in items:
        product = products[item.product_id]
        unit_price = item.unit_price_cents if item.unit_price_cents is not None else product.sale_price_cents
        lines.append((item, product, unit_price, line_total_cents(unit_price, item.quantity, item.discount_bps)))

    breakdown = compute_tax(sum(line[3] for line in lines), tax_included, rate)

    sale = Sale(
        user_id=acting_user_id,
        subtotal_cents=breakdown.subtotal,
        tax_cents=breakdown.tax,
        tax_rate_bps=rate_to_bps(rate),
        tax_included=tax_included,
        total_cents=breakdown.total,
    )
    db.session.add(sale)
    db.session.flush()

    for item, product, unit_price, line_total in lines:
        sale_item = SaleItem(
            product_id=product.id,
            quantity=item.quantity,
            unit_price_cents=unit_price,
            discount_bps=item.discount_bps,
            line_total_cents=line_total,
        )
        sale.items.append(sale_item)

        if product.tracks_stock:
            product.stock_cached = product.stock_cached - item.quantity

        db.session.add(StockMovement(
            product_id=product.id,
            type=MOVEMENT_OUT,
            quantity=item.quantity,
            sale_item=sale_item,
            note=f"Sale #{sale.id}",
            created_by_user_id=acting_user_id,
        ))

    db.session.flush()
    return sale


def create_sale(
    *,
    items,
    acting_user_id: int,
    tax_included: bool = False,
    tax_rate=None,
) -> dict:
    """
    Validate, price, tax and persist a sale in one transaction.

    Returns the hydrated sale (items with product summaries, user summary).
    Raises SaleValidationError, ProductNotFoundError, InsufficientStockError
    or SaleInternalError; nothing is written when any of them is raised.
    """
    parsed = _parse_items(items)

    if not isinstance(tax_included, bool):
        raise SaleValidationError("tax_included must be a boolean")

    try:
        rate = parse_rate(tax_rate if tax_rate is not None else current_app.config["DEFAULT_TAX_RATE"])
    except ValidationError as e:
        raise SaleValidationError(str(e), {"field": "tax_rate"})

    def _op() -> tuple[int, int]:
        with atomic():
            user = db.session.get(User, acting_user_id)
            if user is None:
                raise SaleValidationError("Acting user not found", {"user_id": acting_user_id})

            products = _load_locked_products(parsed)
            _check_stock(parsed, products)

            sale = _insert_sale(
                parsed,
                products,
                acting_user_id=acting_user_id,
                tax_included=tax_included,
                rate=rate,
            )
            return sale.id, sale.total_cents

    try:
        sale_id, total_cents = run_with_retry(_op)
    except SaleError:
        raise
    except (OperationalError, StaleDataError):
        current_app.logger.exception("Sale aborted after retries (user_id=%s)", acting_user_id)
        raise SaleInternalError()
    except SQLAlchemyError:
        current_app.logger.exception("Sale persistence failed (user_id=%s)", acting_user_id)
        raise SaleInternalError()

    current_app.logger.info(
        "Sale #%s created by user %s: %s items, total %s",
        sale_id, acting_user_id, len(parsed), total_cents,
    )
    audit_service.record(
        acting_user_id,
        audit_service.CREATE_SALE,
        f"Sale #{sale_id} total {total_cents}",
    )

    return get_sale(sale_id)


def _hydrated_query():
    return db.session.query(Sale).options(
        selectinload(Sale.items).joinedload(SaleItem.product),
        joinedload(Sale.user),
    )


def get_sale(sale_id: int) -> dict:
    sale = _hydrated_query().filter(Sale.id == sale_id).first()
    if not sale:
        raise SaleNotFoundError("Sale not found", {"sale_id": sale_id})
    return sale.to_dict(include_items=True)
